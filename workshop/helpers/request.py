import json

from .response import APIResponse


def parse_json_body(request):
    """Return (data, None) or (None, error response) for a JSON object body."""
    try:
        data = json.loads(request.body) if request.body else {}
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None, APIResponse.error('Invalid JSON body', 400, 'invalid_json')

    if not isinstance(data, dict):
        return None, APIResponse.error('JSON body must be an object', 400, 'invalid_json')

    return data, None


def int_param(request, name, default):
    try:
        return int(request.GET.get(name, default))
    except (TypeError, ValueError):
        return default
