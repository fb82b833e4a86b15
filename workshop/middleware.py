from django.http import JsonResponse


class JSONOnlyMiddleware:
    """Rejects API writes that are not sent as JSON."""

    WRITE_METHODS = ('POST', 'PUT', 'PATCH')

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        if (
            request.path.startswith('/api/')
            and request.method in self.WRITE_METHODS
            and request.body
            and not request.content_type.startswith('application/json')
        ):
            return JsonResponse(
                {'success': False, 'error': {'code': 'unsupported_media_type',
                                             'message': 'Content-Type must be application/json'}},
                status=415
            )
        return self.get_response(request)
