"""
Stock Batch Service - Batch intake, correction and consumption
"""
import logging
from typing import Dict, Any, Optional
from decimal import Decimal
from datetime import date

from django.conf import settings
from django.db import transaction
from django.db.models import F, ProtectedError
from django.utils import timezone
from django.utils.dateparse import parse_date

from stock.models import StockBatch
from stock.services.base_service import (
    BaseService, success_response, paginate_queryset,
    ValidationError, NotFoundError, BusinessRuleError, InsufficientStockError,
    parse_decimal, parse_bool, round_decimal,
)

logger = logging.getLogger(__name__)


def parse_batch_id(batch_id: Any) -> int:
    if isinstance(batch_id, bool):
        raise ValidationError(f"Invalid batch reference: {batch_id}", "stock_id")
    try:
        return int(batch_id)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid batch reference: {batch_id}", "stock_id")


def parse_quantity(value: Any, field: str = "quantity_used") -> Decimal:
    """Positive quantity with at most 2 decimal places."""
    quantity = parse_decimal(value, field)
    if quantity <= 0:
        raise ValidationError("Quantity must be positive", field)
    if quantity != round_decimal(quantity):
        raise ValidationError("Quantity cannot have more than 2 decimal places", field)
    return quantity


def format_quantity(value: Decimal) -> str:
    return str(round_decimal(value))


def parse_date_value(value: Any, field: str) -> Optional[date]:
    if value in (None, ""):
        return None
    if isinstance(value, date):
        return value
    try:
        parsed = parse_date(str(value)[:10])
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError(f"{field} must be a date (YYYY-MM-DD)", field)
    return parsed


class StockBatchService(BaseService):
    """Manage stock batches"""

    model = StockBatch

    UPDATABLE_FIELDS = [
        "product_name", "batch_no", "quantity_in", "quantity_used", "unit_price",
        "supplier", "purchase_date", "is_defective", "low_stock_threshold", "notes",
    ]
    DECIMAL_FIELDS = ["quantity_in", "quantity_used", "unit_price", "low_stock_threshold"]

    # ==================== SERIALIZATION ====================

    @classmethod
    def serialize(cls, batch: StockBatch, include_consumptions: bool = False) -> Dict[str, Any]:
        """Convert batch to dictionary"""
        data = {
            "id": batch.id,
            "uuid": str(batch.uuid),
            "product_name": batch.product_name,
            "batch_no": batch.batch_no,

            "quantity_in": format_quantity(batch.quantity_in),
            "quantity_used": format_quantity(batch.quantity_used),
            "remaining_quantity": format_quantity(batch.remaining_quantity),
            "low_stock_threshold": format_quantity(batch.low_stock_threshold),
            "is_low_stock": batch.is_low_stock,
            "is_defective": batch.is_defective,

            "unit_price": format_quantity(batch.unit_price),
            "total_value": format_quantity(batch.total_value),
            "supplier": batch.supplier,
            "purchase_date": batch.purchase_date.isoformat() if batch.purchase_date else None,
            "notes": batch.notes,

            "created_at": batch.created_at.isoformat(),
            "updated_at": batch.updated_at.isoformat(),
        }

        if include_consumptions:
            consumptions = batch.consumptions.select_related("service").order_by("-created_at")[:20]
            data["recent_consumptions"] = [
                {
                    "id": c.id,
                    "service_id": c.service_id,
                    "quantity_used": format_quantity(c.quantity_used),
                    "created_at": c.created_at.isoformat(),
                }
                for c in consumptions
            ]

        return data

    # ==================== LIST & SEARCH ====================

    @classmethod
    def list(cls,
             search: str = None,
             low_stock: bool = False,
             defective: bool = False,
             page: int = 1,
             per_page: int = 20) -> Dict[str, Any]:
        """List batches with filters"""
        queryset = cls.model.objects.all()

        if search:
            queryset = queryset.search(search)

        if defective:
            queryset = queryset.defective()

        if low_stock:
            queryset = queryset.low_stock()

        queryset = queryset.order_by("-created_at", "-id")

        batches, pagination = paginate_queryset(queryset, page, per_page)

        return success_response({
            "stocks": [cls.serialize(b) for b in batches],
            "pagination": pagination,
        })

    # ==================== GET SINGLE ====================

    @classmethod
    def get(cls, batch_id: int, include_consumptions: bool = True) -> Dict[str, Any]:
        """Get single batch"""
        batch = cls.get_or_404(batch_id)

        return success_response({
            "stock": cls.serialize(batch, include_consumptions=include_consumptions)
        })

    # ==================== CREATE ====================

    @classmethod
    @transaction.atomic
    def create(cls,
               product_name: str,
               batch_no: str,
               quantity_in: Any,
               unit_price: Any,
               supplier: str,
               purchase_date: Any = None,
               low_stock_threshold: Any = None,
               notes: str = "") -> Dict[str, Any]:
        """Record a stock intake"""
        missing = [
            name for name, value in (
                ("product_name", product_name),
                ("batch_no", batch_no),
                ("quantity_in", quantity_in),
                ("unit_price", unit_price),
                ("supplier", supplier),
            )
            if value in (None, "")
        ]
        if missing:
            raise ValidationError(
                f"Required fields are missing: {', '.join(missing)}",
                missing[0],
                {"missing": missing},
            )

        quantity_in = parse_decimal(quantity_in, "quantity_in")
        if quantity_in <= 0:
            raise ValidationError("Quantity must be positive", "quantity_in")

        unit_price = parse_decimal(unit_price, "unit_price")
        if unit_price < 0:
            raise ValidationError("Unit price cannot be negative", "unit_price")

        threshold = parse_decimal(
            low_stock_threshold, "low_stock_threshold",
            default=Decimal(str(settings.DEFAULT_LOW_STOCK_THRESHOLD)),
        )

        batch = cls.model.objects.create(
            product_name=str(product_name).strip(),
            batch_no=str(batch_no).strip(),
            quantity_in=quantity_in,
            quantity_used=Decimal("0"),
            unit_price=unit_price,
            supplier=str(supplier).strip(),
            purchase_date=parse_date_value(purchase_date, "purchase_date") or timezone.localdate(),
            low_stock_threshold=threshold,
            notes=notes or "",
        )

        logger.info("Stock intake: batch %s (%s) qty=%s", batch.batch_no, batch.product_name, batch.quantity_in)

        return success_response({
            "id": batch.id,
            "stock": cls.serialize(batch)
        }, f"Batch '{batch.batch_no}' created")

    # ==================== UPDATE ====================

    @classmethod
    @transaction.atomic
    def update(cls, batch_id: int, **kwargs) -> Dict[str, Any]:
        """Administrative correction of a batch"""
        batch = cls.get_or_404(batch_id)

        update_fields = ["updated_at"]

        for field in cls.UPDATABLE_FIELDS:
            if field not in kwargs or kwargs[field] is None:
                continue
            value = kwargs[field]

            if field in cls.DECIMAL_FIELDS:
                value = parse_decimal(value, field)
                if value < 0:
                    raise ValidationError(f"{field} cannot be negative", field)
            elif field == "purchase_date":
                value = parse_date_value(value, field)
                if value is None:
                    continue
            elif field == "is_defective":
                value = parse_bool(value)
            elif field in ("product_name", "batch_no", "supplier"):
                value = str(value).strip()
                if not value:
                    continue

            setattr(batch, field, value)
            update_fields.append(field)

        if batch.quantity_used > batch.quantity_in and not settings.ALLOW_NEGATIVE_STOCK:
            raise ValidationError(
                "quantity_used cannot exceed quantity_in",
                "quantity_in",
            )

        batch.save(update_fields=update_fields)

        logger.info("Batch %s corrected: %s", batch.id, ", ".join(update_fields[1:]) or "no changes")

        return success_response({
            "stock": cls.serialize(batch)
        }, "Batch updated")

    # ==================== DELETE ====================

    @classmethod
    @transaction.atomic
    def delete(cls, batch_id: int) -> Dict[str, Any]:
        batch = cls.get_or_404(batch_id)

        try:
            batch.delete()
        except ProtectedError:
            raise BusinessRuleError(
                f"Batch {batch.batch_no} has consumption records and cannot be deleted",
                "batch_in_use",
            )

        logger.info("Batch %s deleted", batch_id)

        return success_response(message="Stock deleted")

    # ==================== CONSUME FROM BATCH ====================

    @classmethod
    def consume(cls, batch_id: Any, quantity: Any) -> Dict[str, Any]:
        """
        Increment quantity_used of a batch by quantity.

        The increment is applied in the database with an F() expression, so
        concurrent consumptions of the same batch all land. Remaining stock is
        not checked unless ALLOW_NEGATIVE_STOCK is off.
        """
        batch_id = parse_batch_id(batch_id)
        quantity = parse_quantity(quantity)

        queryset = cls.model.objects.filter(id=batch_id)

        if not settings.ALLOW_NEGATIVE_STOCK:
            queryset = queryset.filter(quantity_in__gte=F("quantity_used") + quantity)

        updated = queryset.update(
            quantity_used=F("quantity_used") + quantity,
            updated_at=timezone.now(),
        )

        if not updated:
            batch = cls.get_by_id(batch_id)
            if not batch:
                raise NotFoundError("Batch", batch_id)
            raise InsufficientStockError(
                f"Batch {batch.batch_no}",
                quantity,
                batch.remaining_quantity,
            )

        batch = cls.model.objects.get(id=batch_id)

        if batch.is_low_stock:
            logger.warning(
                "Low stock: batch %s (%s) remaining=%s threshold=%s",
                batch.batch_no, batch.product_name,
                batch.remaining_quantity, batch.low_stock_threshold,
            )

        return success_response({
            "batch_id": batch.id,
            "consumed": format_quantity(quantity),
            "remaining": format_quantity(batch.remaining_quantity),
            "is_low_stock": batch.is_low_stock,
        }, f"Consumed {quantity} from batch")
