from typing import Dict, Any, Optional, List, Tuple
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from django.db.models import Model
from django.utils import timezone


class ServiceError(Exception):
    status_code = 500

    def __init__(self, message: str, code: str = "ERROR", details: Dict = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)


class ValidationError(ServiceError):
    status_code = 400

    def __init__(self, message: str, field: str = None, details: Dict = None):
        super().__init__(message, "VALIDATION_ERROR", details)
        self.field = field


class NotFoundError(ServiceError):
    status_code = 404

    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            f"{resource} not found: {identifier}",
            "NOT_FOUND",
            {"resource": resource, "identifier": str(identifier)}
        )


class ConflictError(ServiceError):
    status_code = 400

    def __init__(self, message: str, field: str = None):
        super().__init__(message, "CONFLICT", {"field": field} if field else {})
        self.field = field


class BusinessRuleError(ServiceError):
    status_code = 400

    def __init__(self, message: str, rule: str = None, details: Dict = None):
        super().__init__(message, "BUSINESS_RULE_VIOLATION", {"rule": rule, **(details or {})})


class InsufficientStockError(ServiceError):
    status_code = 400

    def __init__(self, item_name: str, required: Decimal, available: Decimal):
        super().__init__(
            f"Insufficient stock for {item_name}: required {required}, available {available}",
            "INSUFFICIENT_STOCK",
            {"item": item_name, "required": str(required), "available": str(available)}
        )


class AuthenticationError(ServiceError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized", details: Dict = None):
        super().__init__(message, "UNAUTHORIZED", details)


class PermissionDeniedError(ServiceError):
    status_code = 403

    def __init__(self, message: str = "Forbidden", required_roles: List[str] = None):
        super().__init__(message, "FORBIDDEN", {"required_roles": required_roles or []})


class UpstreamError(ServiceError):
    status_code = 500

    def __init__(self, service: str, message: str):
        super().__init__(f"{service} error: {message}", "UPSTREAM_FAILURE", {"service": service})


def success_response(data: Any = None, message: str = "Success") -> Dict:
    response = {"success": True, "message": message}
    if data is not None:
        if isinstance(data, dict):
            response.update(data)
        else:
            response["data"] = data
    return response


def paginate_queryset(queryset, page: int = 1, per_page: int = 20) -> Tuple[List, Dict]:
    page = max(1, page)
    per_page = min(max(1, per_page), 100)

    total = queryset.count()
    total_pages = (total + per_page - 1) // per_page

    offset = (page - 1) * per_page
    items = list(queryset[offset:offset + per_page])

    return items, {
        "page": page,
        "per_page": per_page,
        "total_items": total,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_prev": page > 1
    }


def to_decimal(value: Any, default: Decimal = Decimal("0")) -> Decimal:
    if value is None or value == "":
        return default
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return default


def parse_decimal(value: Any, field: str, default: Optional[Decimal] = None) -> Decimal:
    """Strict version of to_decimal for request input: bad values are a ValidationError."""
    if value is None or value == "":
        if default is None:
            raise ValidationError(f"{field} is required", field)
        return default
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number", field)
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"{field} must be a number", field)
    if not result.is_finite():
        raise ValidationError(f"{field} must be a number", field)
    return result


def round_decimal(value: Decimal, places: int = 2) -> Decimal:
    if value is None:
        return Decimal("0")
    quantize_str = "0." + "0" * places
    return value.quantize(Decimal(quantize_str), rounding=ROUND_HALF_UP)


def generate_number(prefix: str, model_class: Model, field: str = "invoice_no", offset: int = 0) -> str:
    """
    Next number in today's sequence, e.g. INV-20260101-0007.

    offset skips ahead when a concurrent writer already took the next value.
    """
    today = timezone.localtime()
    date_part = today.strftime("%Y%m%d")
    filter_kwargs = {f"{field}__startswith": f"{prefix}-{date_part}"}
    last = model_class.objects.filter(**filter_kwargs).order_by(f"-{field}").first()

    if last:
        last_num = getattr(last, field)
        try:
            seq = int(last_num.split("-")[-1]) + 1
        except ValueError:
            seq = 1
    else:
        seq = 1

    return f"{prefix}-{date_part}-{seq + offset:04d}"


def parse_id(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer", field)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer", field)


def parse_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


class BaseService:
    model = None

    @classmethod
    def get_by_id(cls, id: int) -> Optional[Model]:
        try:
            return cls.model.objects.get(id=id)
        except (cls.model.DoesNotExist, ValueError, TypeError):
            return None

    @classmethod
    def get_or_404(cls, id: int) -> Model:
        obj = cls.get_by_id(id)
        if not obj:
            raise NotFoundError(cls.model.__name__, id)
        return obj

    @classmethod
    def exists(cls, id: int) -> bool:
        try:
            return cls.model.objects.filter(id=id).exists()
        except (ValueError, TypeError):
            return False
