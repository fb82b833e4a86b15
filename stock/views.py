import json
import logging

from django.http import JsonResponse
from django.views import View
from django.views.decorators.csrf import csrf_exempt
from django.utils.decorators import method_decorator

from stock.services import ServiceError, AuthenticationError, StockBatchService, parse_bool
from workshop.helpers.request import int_param
from workshop.models import Staff
from workshop.services.auth_service import AuthService

logger = logging.getLogger(__name__)


def error_response(message: str, code: str = "error", status: int = 400, details: dict = None):
    data = {"success": False, "error": {"code": code, "message": message}}
    if details:
        data["error"]["details"] = details
    return JsonResponse(data, status=status)


def handle_service_error(e: Exception):
    if isinstance(e, ServiceError):
        return error_response(e.message, e.code.lower(), e.status_code, e.details)
    logger.exception("Unhandled stock error")
    return error_response(str(e), "server_error", 500)


class BaseStockView(View):
    # HTTP method -> roles allowed; methods not listed only need a signed-in staff member
    required_roles = {}

    @method_decorator(csrf_exempt)
    def dispatch(self, request, *args, **kwargs):
        staff = AuthService.get_staff_from_request(request)
        roles = self.required_roles.get(request.method.lower())

        try:
            if roles:
                AuthService.require_role(staff, roles)
            elif staff is None:
                raise AuthenticationError()
        except ServiceError as e:
            return handle_service_error(e)

        request.staff = staff
        return super().dispatch(request, *args, **kwargs)

    def get_json_body(self, request):
        try:
            return json.loads(request.body) if request.body else {}
        except json.JSONDecodeError:
            return {}

    def success(self, data: dict, status: int = 200):
        return JsonResponse({"success": True, **data}, status=status)


# ==================== STOCK BATCHES ====================

class StockListView(BaseStockView):
    """GET/POST /api/stock/"""

    required_roles = {
        "post": Staff.MANAGER_ROLES,
    }

    def get(self, request):
        try:
            result = StockBatchService.list(
                search=request.GET.get("search") or None,
                low_stock=parse_bool(request.GET.get("low_stock")),
                defective=parse_bool(request.GET.get("defective")),
                page=int_param(request, "page", 1),
                per_page=int_param(request, "limit", 20),
            )
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)

    def post(self, request):
        try:
            data = self.get_json_body(request)
            result = StockBatchService.create(
                product_name=data.get("product_name"),
                batch_no=data.get("batch_no"),
                quantity_in=data.get("quantity_in"),
                unit_price=data.get("unit_price"),
                supplier=data.get("supplier"),
                purchase_date=data.get("purchase_date"),
                low_stock_threshold=data.get("low_stock_threshold"),
                notes=data.get("notes", ""),
            )
            return self.success(result, 201)
        except Exception as e:
            return handle_service_error(e)


class StockDetailView(BaseStockView):
    """GET/PUT/DELETE /api/stock/<id>/"""

    required_roles = {
        "put": Staff.MANAGER_ROLES,
        "delete": (Staff.Role.OWNER,),
    }

    def get(self, request, stock_id):
        try:
            result = StockBatchService.get(stock_id)
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)

    def put(self, request, stock_id):
        try:
            data = self.get_json_body(request)
            fields = {k: v for k, v in data.items() if k in StockBatchService.UPDATABLE_FIELDS}
            result = StockBatchService.update(stock_id, **fields)
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)

    def delete(self, request, stock_id):
        try:
            result = StockBatchService.delete(stock_id)
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)
