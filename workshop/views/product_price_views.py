from django.views.decorators.csrf import csrf_exempt
from rest_framework.decorators import api_view

from stock.services.base_service import parse_bool
from ..helpers.request import parse_json_body
from ..helpers.require_login import user_required, role_required
from ..helpers.response import APIResponse
from ..models import Staff
from ..services.product_price_service import ProductPriceService


@csrf_exempt
@api_view(["GET", "POST"])
@user_required
def product_prices(request):
    if request.method == "POST":
        return create_product_price(request)

    active = request.GET.get('is_active', 'true')

    result = ProductPriceService.list(
        product_type=request.GET.get('product_type'),
        search=request.GET.get('search'),
        is_active=None if active == 'all' else parse_bool(active),
    )
    return APIResponse.success(data=result)


@role_required(*Staff.MANAGER_ROLES)
def create_product_price(request):
    data, error = parse_json_body(request)
    if error:
        return error

    try:
        result = ProductPriceService.create(
            product_name=data.get('product_name'),
            product_type=data.get('product_type'),
            price=data.get('price'),
            brand=data.get('brand') or '',
            unit=data.get('unit'),
            is_active=data.get('is_active', True),
        )
    except Exception as e:
        return APIResponse.from_exception(e)

    return APIResponse.created(data=result, message=result['message'])


@csrf_exempt
@api_view(["GET", "PUT", "DELETE"])
@user_required
def product_price_detail(request, product_id):
    if request.method == "PUT":
        return update_product_price(request, product_id)
    if request.method == "DELETE":
        return delete_product_price(request, product_id)

    try:
        result = ProductPriceService.get(product_id)
    except Exception as e:
        return APIResponse.from_exception(e)

    return APIResponse.success(data=result)


@role_required(*Staff.MANAGER_ROLES)
def update_product_price(request, product_id):
    data, error = parse_json_body(request)
    if error:
        return error

    try:
        fields = {k: v for k, v in data.items() if k in ProductPriceService.UPDATABLE_FIELDS}
        result = ProductPriceService.update(product_id, **fields)
    except Exception as e:
        return APIResponse.from_exception(e)

    return APIResponse.success(data=result, message=result['message'])


@role_required(*Staff.MANAGER_ROLES)
def delete_product_price(request, product_id):
    try:
        result = ProductPriceService.delete(product_id)
    except Exception as e:
        return APIResponse.from_exception(e)

    return APIResponse.success(data=result, message=result['message'])
