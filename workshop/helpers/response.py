import logging

from django.http import JsonResponse

from stock.services.base_service import ServiceError

logger = logging.getLogger(__name__)


class APIResponse:

    @staticmethod
    def json(body: dict, status: int = 200) -> JsonResponse:
        return JsonResponse(body, status=status)

    @staticmethod
    def success(data=None, message: str = None, status: int = 200) -> JsonResponse:
        body = {'success': True}
        if isinstance(data, dict):
            body.update(data)
        elif data is not None:
            body['data'] = data
        body['success'] = True
        if message:
            body['message'] = message
        body.setdefault('message', 'Success')
        return JsonResponse(body, status=status)

    @staticmethod
    def created(data=None, message: str = 'Created') -> JsonResponse:
        return APIResponse.success(data=data, message=message, status=201)

    @staticmethod
    def error(message: str, status: int = 400, code: str = 'error', details: dict = None) -> JsonResponse:
        body = {'success': False, 'error': {'code': code, 'message': message}}
        if details:
            body['error']['details'] = details
        return JsonResponse(body, status=status)

    @staticmethod
    def validation_error(errors: dict, message: str = 'Validation failed') -> JsonResponse:
        return APIResponse.error(message, 400, 'validation_error', errors)

    @staticmethod
    def not_found(message: str = 'Not found') -> JsonResponse:
        return APIResponse.error(message, 404, 'not_found')

    @staticmethod
    def unauthorized(message: str = 'Unauthorized') -> JsonResponse:
        return APIResponse.error(message, 401, 'unauthorized')

    @staticmethod
    def forbidden(message: str = 'Forbidden') -> JsonResponse:
        return APIResponse.error(message, 403, 'forbidden')

    @staticmethod
    def from_exception(e: Exception) -> JsonResponse:
        if isinstance(e, ServiceError):
            return APIResponse.error(e.message, e.status_code, e.code.lower(), e.details)
        logger.exception("Unhandled API error")
        return APIResponse.error(str(e) or 'Internal server error', 500, 'server_error')
