from django.conf import settings
from django.views.decorators.csrf import csrf_exempt
from rest_framework.decorators import api_view

from ..helpers.request import parse_json_body
from ..helpers.require_login import user_required, role_required
from ..helpers.response import APIResponse
from ..models import Staff
from ..services.auth_service import AuthService


def _set_token_cookie(response, token):
    response.set_cookie(
        AuthService.COOKIE_NAME,
        token,
        max_age=AuthService.JWT_EXPIRY_DAYS * 24 * 60 * 60,
        httponly=True,
        secure=not settings.DEBUG,
        samesite='Lax',
    )
    return response


@csrf_exempt
@api_view(["GET", "POST"])
def setup(request):
    if request.method == "GET":
        exists = AuthService.admin_exists()
        return APIResponse.success(
            data={'admin_exists': exists, 'setup_required': not exists},
            message='Admin user already exists' if exists else 'No admin user found',
        )

    data, error = parse_json_body(request)
    if error:
        return error

    try:
        result = AuthService.setup_owner(
            name=data.get('name'),
            email=data.get('email'),
            password=data.get('password'),
            mobile=data.get('mobile'),
        )
    except Exception as e:
        return APIResponse.from_exception(e)

    return APIResponse.created(data=result, message=result['message'])


@csrf_exempt
@api_view(["POST"])
def login(request):
    data, error = parse_json_body(request)
    if error:
        return error

    try:
        result = AuthService.login(data.get('email'), data.get('password'))
    except Exception as e:
        return APIResponse.from_exception(e)

    response = APIResponse.success(data=result, message=result['message'])
    return _set_token_cookie(response, result['token'])


@csrf_exempt
@api_view(["POST"])
def logout(request):
    response = APIResponse.success(message='Logged out')
    response.delete_cookie(AuthService.COOKIE_NAME)
    return response


@csrf_exempt
@api_view(["GET"])
@user_required
def me(request):
    return APIResponse.success(data={'user': AuthService.serialize_staff(request.user)})


@csrf_exempt
@api_view(["POST"])
@role_required(Staff.Role.OWNER)
def register(request):
    data, error = parse_json_body(request)
    if error:
        return error

    try:
        result = AuthService.register(
            name=data.get('name'),
            email=data.get('email'),
            password=data.get('password'),
            role=data.get('role'),
            mobile=data.get('mobile'),
        )
    except Exception as e:
        return APIResponse.from_exception(e)

    return APIResponse.created(data=result, message=result['message'])
