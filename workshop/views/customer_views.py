from django.views.decorators.csrf import csrf_exempt
from rest_framework.decorators import api_view

from ..helpers.request import parse_json_body, int_param
from ..helpers.require_login import user_required, role_required
from ..helpers.response import APIResponse
from ..models import Staff
from ..services.customer_service import CustomerService


@csrf_exempt
@api_view(["GET", "POST"])
@user_required
def customers(request):
    if request.method == "POST":
        return create_customer(request)

    result = CustomerService.list(
        search=request.GET.get('search'),
        page=int_param(request, 'page', 1),
        per_page=int_param(request, 'limit', 20),
    )
    return APIResponse.success(data=result)


@role_required(*Staff.MANAGER_ROLES)
def create_customer(request):
    data, error = parse_json_body(request)
    if error:
        return error

    try:
        result = CustomerService.create(
            name=data.get('name'),
            mobile=data.get('mobile'),
            vehicle_no=data.get('vehicle_no'),
            email=data.get('email'),
            source=data.get('source') or 'admin',
        )
    except Exception as e:
        return APIResponse.from_exception(e)

    return APIResponse.created(data=result, message=result['message'])


@csrf_exempt
@api_view(["GET"])
@user_required
def get_customer(request, customer_id):
    try:
        result = CustomerService.get(customer_id)
    except Exception as e:
        return APIResponse.from_exception(e)

    return APIResponse.success(data=result)
