from django.views.decorators.csrf import csrf_exempt
from rest_framework.decorators import api_view

from stock.services.base_service import parse_bool
from ..helpers.request import parse_json_body, int_param
from ..helpers.require_login import user_required, role_required
from ..helpers.response import APIResponse
from ..models import Staff
from ..services.invoice_service import InvoiceService


@csrf_exempt
@api_view(["GET", "POST"])
@user_required
def invoices(request):
    if request.method == "POST":
        return create_invoice(request)

    payment = request.GET.get('payment_received')

    try:
        result = InvoiceService.list(
            service_id=request.GET.get('service_id'),
            payment_received=parse_bool(payment) if payment is not None else None,
            page=int_param(request, 'page', 1),
            per_page=int_param(request, 'limit', 20),
        )
    except Exception as e:
        return APIResponse.from_exception(e)

    return APIResponse.success(data=result)


@role_required(*Staff.BILLING_ROLES)
def create_invoice(request):
    data, error = parse_json_body(request)
    if error:
        return error

    try:
        result = InvoiceService.create(
            service_id=data.get('service_id'),
            discount_amount=data.get('discount_amount'),
            gst_rate=data.get('gst_rate'),
            is_interstate=data.get('is_interstate', False),
        )
    except Exception as e:
        return APIResponse.from_exception(e)

    return APIResponse.created(data=result, message=result['message'])


@csrf_exempt
@api_view(["GET"])
@user_required
def get_invoice(request, invoice_id):
    try:
        result = InvoiceService.get(invoice_id)
    except Exception as e:
        return APIResponse.from_exception(e)

    return APIResponse.success(data=result)


@csrf_exempt
@api_view(["POST"])
@role_required(*Staff.BILLING_ROLES)
def send_invoice(request, invoice_id):
    try:
        result = InvoiceService.send(invoice_id)
    except Exception as e:
        return APIResponse.from_exception(e)

    if not result['success']:
        return APIResponse.json(result, status=200)

    return APIResponse.success(data=result, message=result['message'])


@csrf_exempt
@api_view(["POST"])
@role_required(*Staff.BILLING_ROLES)
def mark_payment(request, invoice_id):
    data, error = parse_json_body(request)
    if error:
        return error

    try:
        result = InvoiceService.mark_payment_received(invoice_id, data.get('payment_received', True))
    except Exception as e:
        return APIResponse.from_exception(e)

    return APIResponse.success(data=result, message=result['message'])
