from functools import wraps

from ..models import Staff
from .response import APIResponse


def _current_staff(request):
    user = getattr(request, 'user', None)
    return user if isinstance(user, Staff) else None


def user_required(view_func):
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if _current_staff(request) is None:
            return APIResponse.unauthorized()
        return view_func(request, *args, **kwargs)
    return wrapper


def role_required(*roles):
    def decorator(view_func):
        @wraps(view_func)
        def wrapper(request, *args, **kwargs):
            staff = _current_staff(request)
            if staff is None:
                return APIResponse.unauthorized()
            if staff.role not in roles:
                return APIResponse.forbidden()
            return view_func(request, *args, **kwargs)
        return wrapper
    return decorator
