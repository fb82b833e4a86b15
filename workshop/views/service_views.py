from django.views.decorators.csrf import csrf_exempt
from rest_framework.decorators import api_view

from stock.services.base_service import parse_bool
from ..helpers.request import parse_json_body, int_param
from ..helpers.require_login import user_required, role_required
from ..helpers.response import APIResponse
from ..models import Staff
from ..services.billing_service import BillingService
from ..services.service_record_service import ServiceRecordService


@csrf_exempt
@api_view(["GET", "POST"])
@user_required
def services(request):
    if request.method == "POST":
        return create_service(request)

    try:
        result = ServiceRecordService.list(
            customer_id=request.GET.get('customer_id') or request.GET.get('user_id'),
            service_type=request.GET.get('service_type'),
            start_date=request.GET.get('start_date'),
            end_date=request.GET.get('end_date'),
            complaints_only=parse_bool(request.GET.get('complaints')),
            page=int_param(request, 'page', 1),
            per_page=int_param(request, 'limit', 20),
        )
    except Exception as e:
        return APIResponse.from_exception(e)

    return APIResponse.success(data=result)


@role_required(*Staff.MANAGER_ROLES)
def create_service(request):
    data, error = parse_json_body(request)
    if error:
        return error

    try:
        result = BillingService.record_visit(
            created_by=request.user,
            customer_id=data.get('customer_id') or data.get('user_id'),
            service_date=data.get('service_date'),
            service_types=data.get('service_types') or data.get('service_type'),
            labour_charge=data.get('labour_charge'),
            parts_charge=data.get('parts_charge'),
            amount_paid=data.get('amount_paid'),
            next_due_date=data.get('next_due_date'),
            products_used=data.get('products_used'),
        )
    except Exception as e:
        return APIResponse.from_exception(e)

    return APIResponse.created(data=result, message=result['message'])


@csrf_exempt
@api_view(["GET", "PUT"])
@user_required
def service_detail(request, service_id):
    if request.method == "PUT":
        return update_service(request, service_id)

    try:
        result = ServiceRecordService.get(service_id)
    except Exception as e:
        return APIResponse.from_exception(e)

    return APIResponse.success(data=result)


@role_required(*Staff.MANAGER_ROLES)
def update_service(request, service_id):
    data, error = parse_json_body(request)
    if error:
        return error

    fields = {k: v for k, v in data.items() if k in ServiceRecordService.UPDATABLE_FIELDS}

    try:
        result = ServiceRecordService.update(service_id, **fields)
    except Exception as e:
        return APIResponse.from_exception(e)

    return APIResponse.success(data=result, message=result['message'])
