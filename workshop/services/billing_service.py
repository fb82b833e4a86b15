"""
Billing Service - Record a visit and consume the stock it used
"""
import logging
from typing import Dict, Any, List, Optional
from django.conf import settings
from django.db import transaction

from stock.models import StockConsumption
from stock.services.base_service import (
    success_response, ValidationError, BusinessRuleError, ServiceError,
)
from stock.services.batch_service import StockBatchService, parse_quantity
from .customer_service import CustomerService
from .service_record_service import ServiceRecordService
from ..models import Staff

logger = logging.getLogger(__name__)


class BillingService:

    @classmethod
    @transaction.atomic
    def record_visit(cls,
                     created_by: Staff,
                     customer_id: Any,
                     service_date: Any,
                     service_types: Any,
                     labour_charge: Any = None,
                     parts_charge: Any = None,
                     amount_paid: Any = None,
                     next_due_date: Any = None,
                     products_used: Optional[List[Dict]] = None) -> Dict[str, Any]:
        """
        Create a service record, then apply each (stock_id, quantity_used) pair.

        Each pair runs in its own savepoint: a failing pair leaves no
        consumption row and no quantity change, and is reported in
        product_errors while the record and the other pairs are kept.
        With BILLING_ATOMIC_VISITS on, any failing pair rolls back the
        whole visit instead.
        """
        missing = [
            name for name, value in (
                ("customer_id", customer_id),
                ("service_date", service_date),
                ("service_types", service_types),
                ("amount_paid", amount_paid),
            )
            if value is None or value == "" or value == []
        ]
        if missing:
            raise ValidationError(
                f"Required fields are missing: {', '.join(missing)}",
                missing[0],
                {"missing": missing},
            )

        if products_used is None:
            products_used = []
        if not isinstance(products_used, list):
            raise ValidationError("products_used must be a list", "products_used")

        customer = CustomerService.get_or_404(customer_id)

        service = ServiceRecordService.create(
            customer=customer,
            created_by=created_by,
            service_date=service_date,
            service_types=service_types,
            labour_charge=labour_charge,
            parts_charge=parts_charge,
            amount_paid=amount_paid,
            next_due_date=next_due_date,
        )

        if service.amount_paid != service.total_charge:
            logger.warning(
                "Service #%s: amount_paid %s differs from labour + parts %s",
                service.id, service.amount_paid, service.total_charge,
            )

        product_errors = []
        atomic_visit = settings.BILLING_ATOMIC_VISITS

        for index, item in enumerate(products_used):
            stock_id = item.get("stock_id") if isinstance(item, dict) else None
            try:
                with transaction.atomic():
                    cls._apply_consumption(service, item)
            except ServiceError as e:
                product_errors.append({"index": index, "stock_id": stock_id, "error": e.message})
            except Exception as e:
                logger.exception("Unexpected error consuming stock for service #%s", service.id)
                product_errors.append({"index": index, "stock_id": stock_id, "error": str(e)})

            if product_errors and atomic_visit:
                logger.warning("Service #%s: aborted at product %d: %s", service.id, index, product_errors[0])
                raise BusinessRuleError(
                    "Stock consumption failed, visit not recorded",
                    "stock_consumption",
                    {"product_errors": product_errors},
                )

        if product_errors:
            logger.warning("Service #%s: %d product error(s): %s", service.id, len(product_errors), product_errors)

        message = "Service recorded successfully"
        if product_errors:
            message = f"Service recorded with {len(product_errors)} product error(s)"

        return success_response({
            "service": ServiceRecordService.serialize(service, include_products=True),
            "product_errors": product_errors,
        }, message)

    @classmethod
    def _apply_consumption(cls, service, item: Any) -> Dict[str, Any]:
        if not isinstance(item, dict):
            raise ValidationError("Each product must be an object with stock_id and quantity_used", "products_used")

        if item.get("stock_id") in (None, ""):
            raise ValidationError("stock_id is required", "stock_id")

        quantity = parse_quantity(item.get("quantity_used"))

        result = StockBatchService.consume(item["stock_id"], quantity)

        StockConsumption.objects.create(
            service=service,
            batch_id=result["batch_id"],
            quantity_used=quantity,
        )
        return result
