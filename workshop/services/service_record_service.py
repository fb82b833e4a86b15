"""
Service Record Service - Visits, feedback and complaints
"""
import logging
from typing import Dict, Any, List, Optional
from decimal import Decimal

from django.db import transaction

from stock.services.base_service import (
    BaseService, success_response, paginate_queryset,
    ValidationError, NotFoundError, parse_decimal, parse_bool, parse_id,
)
from stock.services.batch_service import parse_date_value
from ..models import ServiceRecord, Customer, Staff

logger = logging.getLogger(__name__)


def parse_service_types(value: Any) -> List[str]:
    """Accept a list or a comma-separated string of service types."""
    if isinstance(value, str):
        value = [v.strip() for v in value.split(",")]
    if not isinstance(value, (list, tuple)):
        raise ValidationError("service_types must be a list", "service_types")

    service_types = [str(v).strip() for v in value if str(v).strip()]
    if not service_types:
        raise ValidationError("At least one service type is required", "service_types")

    invalid = [t for t in service_types if t not in ServiceRecord.ServiceType.values]
    if invalid:
        raise ValidationError(
            f"Invalid service type: {', '.join(invalid)}",
            "service_types",
            {"valid": ServiceRecord.ServiceType.values},
        )
    return list(dict.fromkeys(service_types))


def parse_rating(value: Any) -> Optional[int]:
    if value in (None, ""):
        return None
    if isinstance(value, bool):
        raise ValidationError("Rating must be between 1 and 5", "feedback_rating")
    try:
        rating = int(value)
    except (TypeError, ValueError):
        raise ValidationError("Rating must be between 1 and 5", "feedback_rating")
    if rating != Decimal(str(value)) or not 1 <= rating <= 5:
        raise ValidationError("Rating must be between 1 and 5", "feedback_rating")
    return rating


class ServiceRecordService(BaseService):
    """Manage service visit records"""

    model = ServiceRecord

    UPDATABLE_FIELDS = [
        "service_date", "service_types", "labour_charge", "parts_charge", "amount_paid",
        "next_due_date", "feedback_text", "feedback_rating", "complaint_flag", "complaint_description",
    ]

    # ==================== SERIALIZATION ====================

    @classmethod
    def serialize(cls, service: ServiceRecord,
                  include_customer: bool = True,
                  include_products: bool = False) -> Dict[str, Any]:
        data = {
            "id": service.id,
            "customer_id": service.customer_id,
            "service_date": service.service_date.isoformat(),
            "service_types": service.service_types,
            "labour_charge": str(service.labour_charge),
            "parts_charge": str(service.parts_charge),
            "amount_paid": str(service.amount_paid),
            "next_due_date": service.next_due_date.isoformat() if service.next_due_date else None,
            "feedback_text": service.feedback_text,
            "feedback_rating": service.feedback_rating,
            "complaint_flag": service.complaint_flag,
            "complaint_description": service.complaint_description,
            "created_by": {
                "id": service.created_by_id,
                "name": service.created_by.name,
            },
            "created_at": service.created_at.isoformat(),
        }

        if include_customer:
            customer = service.customer
            data["customer"] = {
                "id": customer.id,
                "name": customer.name,
                "mobile": customer.mobile,
                "vehicle_no": customer.vehicle_no,
                "email": customer.email,
            }

        if include_products:
            data["products_used"] = [
                {
                    "id": c.id,
                    "stock_id": c.batch_id,
                    "product_name": c.batch.product_name,
                    "batch_no": c.batch.batch_no,
                    "quantity_used": str(c.quantity_used),
                }
                for c in service.consumptions.select_related("batch")
            ]

        return data

    @classmethod
    def get_or_404(cls, service_id) -> ServiceRecord:
        try:
            return ServiceRecord.objects.select_related("customer", "created_by").get(id=service_id)
        except (ServiceRecord.DoesNotExist, ValueError, TypeError):
            raise NotFoundError("Service", service_id)

    # ==================== LIST ====================

    @classmethod
    def list(cls,
             customer_id: int = None,
             service_type: str = None,
             start_date: Any = None,
             end_date: Any = None,
             complaints_only: bool = False,
             page: int = 1,
             per_page: int = 20) -> Dict[str, Any]:
        queryset = ServiceRecord.objects.select_related("customer", "created_by")

        if customer_id:
            queryset = queryset.filter(customer_id=parse_id(customer_id, "customer_id"))

        if service_type:
            # JSON list stored as text, so match the quoted element
            queryset = queryset.filter(service_types__icontains=f'"{service_type}"')

        start = parse_date_value(start_date, "start_date")
        if start:
            queryset = queryset.filter(service_date__gte=start)

        end = parse_date_value(end_date, "end_date")
        if end:
            queryset = queryset.filter(service_date__lte=end)

        if complaints_only:
            queryset = queryset.filter(complaint_flag=True)

        services, pagination = paginate_queryset(queryset.order_by("-service_date", "-id"), page, per_page)

        return success_response({
            "services": [cls.serialize(s) for s in services],
            "pagination": pagination,
        })

    # ==================== GET SINGLE ====================

    @classmethod
    def get(cls, service_id) -> Dict[str, Any]:
        service = cls.get_or_404(service_id)
        data = cls.serialize(service, include_products=True)

        invoice = getattr(service, "invoice", None)
        data["invoice"] = {
            "id": invoice.id,
            "invoice_no": invoice.invoice_no,
            "final_amount": str(invoice.final_amount),
        } if invoice else None

        return success_response({"service": data})

    # ==================== CREATE ====================

    @classmethod
    def create(cls,
               customer: Customer,
               created_by: Staff,
               service_date: Any,
               service_types: Any,
               labour_charge: Any,
               parts_charge: Any,
               amount_paid: Any,
               next_due_date: Any = None) -> ServiceRecord:
        """Persist a visit. Values are validated but amount_paid is stored as given."""
        service_date = parse_date_value(service_date, "service_date")
        if service_date is None:
            raise ValidationError("service_date is required", "service_date")

        labour = parse_decimal(labour_charge, "labour_charge", default=Decimal("0"))
        parts = parse_decimal(parts_charge, "parts_charge", default=Decimal("0"))
        paid = parse_decimal(amount_paid, "amount_paid")

        for field, value in (("labour_charge", labour), ("parts_charge", parts), ("amount_paid", paid)):
            if value < 0:
                raise ValidationError(f"{field} cannot be negative", field)

        service = ServiceRecord.objects.create(
            customer=customer,
            service_date=service_date,
            service_types=parse_service_types(service_types),
            labour_charge=labour,
            parts_charge=parts,
            amount_paid=paid,
            next_due_date=parse_date_value(next_due_date, "next_due_date"),
            created_by=created_by,
        )

        logger.info("Service #%s recorded for %s by %s", service.id, customer.vehicle_no, created_by.email)
        return service

    # ==================== UPDATE ====================

    @classmethod
    @transaction.atomic
    def update(cls, service_id, **kwargs) -> Dict[str, Any]:
        """Record feedback, complaints or corrections on an existing visit"""
        service = cls.get_or_404(service_id)

        update_fields = []

        for field in cls.UPDATABLE_FIELDS:
            if field not in kwargs:
                continue
            value = kwargs[field]

            if field in ("labour_charge", "parts_charge", "amount_paid"):
                if value is None:
                    continue
                value = parse_decimal(value, field)
                if value < 0:
                    raise ValidationError(f"{field} cannot be negative", field)
            elif field == "service_date":
                value = parse_date_value(value, field)
                if value is None:
                    continue
            elif field == "next_due_date":
                value = parse_date_value(value, field)
            elif field == "service_types":
                if value is None:
                    continue
                value = parse_service_types(value)
            elif field == "feedback_rating":
                value = parse_rating(value)
            elif field == "complaint_flag":
                value = parse_bool(value)

            setattr(service, field, value)
            update_fields.append(field)

        if update_fields:
            service.save(update_fields=update_fields)
            logger.info("Service #%s updated: %s", service.id, ", ".join(update_fields))

        return success_response({
            "service": cls.serialize(service, include_products=True)
        }, "Service updated successfully")
