from rest_framework.authentication import BaseAuthentication

from .services.auth_service import AuthService


class JWTAuthentication(BaseAuthentication):
    """
    Staff authentication from a Bearer token or the token cookie.

    Invalid or missing tokens leave the request anonymous; the view decorators
    decide whether that is a 401.
    """

    def authenticate(self, request):
        staff = AuthService.get_staff_from_request(request)
        if staff is None:
            return None
        return staff, None

    def authenticate_header(self, request):
        return 'Bearer'
