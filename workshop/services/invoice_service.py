"""
Invoice Service - GST invoices for service visits
"""
import logging
from typing import Dict, Any, Optional
from decimal import Decimal

from django.conf import settings
from django.db import transaction, IntegrityError
from django.utils import timezone

from stock.services.base_service import (
    BaseService, success_response, paginate_queryset,
    ValidationError, NotFoundError, ConflictError, BusinessRuleError,
    parse_decimal, parse_bool, parse_id, round_decimal, generate_number,
)
from .notification_service import WhatsAppService, get_whatsapp_service, format_message_template
from .service_record_service import ServiceRecordService
from .tax_service import calculate_gst
from ..models import Invoice

logger = logging.getLogger(__name__)


class InvoiceService(BaseService):
    """Create, send and settle invoices"""

    model = Invoice

    # ==================== SERIALIZATION ====================

    @classmethod
    def serialize(cls, invoice: Invoice, include_service: bool = True) -> Dict[str, Any]:
        data = {
            "id": invoice.id,
            "invoice_no": invoice.invoice_no,
            "service_id": invoice.service_id,
            "total_amount": str(invoice.total_amount),
            "discount_amount": str(invoice.discount_amount),
            "gst_rate": str(invoice.gst_rate),
            "is_interstate": invoice.is_interstate,
            "gst_amount": str(invoice.gst_amount),
            "cgst": str(invoice.cgst),
            "sgst": str(invoice.sgst),
            "igst": str(invoice.igst),
            "final_amount": str(invoice.final_amount),
            "sent_on_whatsapp": invoice.sent_on_whatsapp,
            "sent_at": invoice.sent_at.isoformat() if invoice.sent_at else None,
            "payment_received": invoice.payment_received,
            "payment_date": invoice.payment_date.isoformat() if invoice.payment_date else None,
            "created_at": invoice.created_at.isoformat(),
        }

        if include_service:
            data["service"] = ServiceRecordService.serialize(invoice.service)

        return data

    @classmethod
    def get_or_404(cls, invoice_id) -> Invoice:
        try:
            return Invoice.objects.select_related(
                "service__customer", "service__created_by"
            ).get(id=invoice_id)
        except (Invoice.DoesNotExist, ValueError, TypeError):
            raise NotFoundError("Invoice", invoice_id)

    # ==================== LIST & GET ====================

    @classmethod
    def list(cls,
             service_id: int = None,
             payment_received: Optional[bool] = None,
             page: int = 1,
             per_page: int = 20) -> Dict[str, Any]:
        queryset = Invoice.objects.select_related("service__customer", "service__created_by")

        if service_id:
            queryset = queryset.filter(service_id=parse_id(service_id, "service_id"))

        if payment_received is not None:
            queryset = queryset.filter(payment_received=payment_received)

        invoices, pagination = paginate_queryset(queryset.order_by("-created_at", "-id"), page, per_page)

        return success_response({
            "invoices": [cls.serialize(i) for i in invoices],
            "pagination": pagination,
        })

    @classmethod
    def get(cls, invoice_id) -> Dict[str, Any]:
        invoice = cls.get_or_404(invoice_id)
        return success_response({"invoice": cls.serialize(invoice)})

    # ==================== CREATE ====================

    @classmethod
    def create(cls,
               service_id: Any,
               discount_amount: Any = None,
               gst_rate: Any = None,
               is_interstate: Any = False) -> Dict[str, Any]:
        """
        Issue the invoice for a visit.

        total_amount is labour_charge + parts_charge of the visit and GST is
        charged on total_amount - discount_amount. Only one invoice may exist
        per visit; the unique index on service decides, including under races.
        """
        if service_id in (None, ""):
            raise ValidationError("Service ID is required", "service_id")

        discount = parse_decimal(discount_amount, "discount_amount", default=Decimal("0"))
        rate = parse_decimal(gst_rate, "gst_rate", default=Decimal(str(settings.DEFAULT_GST_RATE)))
        interstate = parse_bool(is_interstate)

        if discount < 0:
            raise ValidationError("discount_amount cannot be negative", "discount_amount")
        if rate < 0:
            raise ValidationError("gst_rate cannot be negative", "gst_rate")

        service = ServiceRecordService.get_or_404(service_id)
        total = round_decimal(service.total_charge)
        discount = round_decimal(discount)
        gst = calculate_gst(total - discount, rate, interstate)

        # stored split must add up to the stored gst_amount
        gst_amount = round_decimal(gst.gst_amount)
        if interstate:
            cgst = sgst = Decimal("0.00")
            igst = gst_amount
        else:
            cgst = round_decimal(gst_amount / Decimal("2"))
            sgst = gst_amount - cgst
            igst = Decimal("0.00")

        values = {
            "service": service,
            "total_amount": total,
            "discount_amount": discount,
            "gst_rate": round_decimal(rate),
            "is_interstate": interstate,
            "gst_amount": gst_amount,
            "cgst": cgst,
            "sgst": sgst,
            "igst": igst,
            "final_amount": total - discount + gst_amount,
        }

        prefix = settings.INVOICE_NUMBER_PREFIX
        for attempt in range(settings.INVOICE_NUMBER_MAX_ATTEMPTS):
            invoice_no = generate_number(prefix, Invoice, "invoice_no", offset=attempt)
            try:
                with transaction.atomic():
                    invoice = Invoice.objects.create(invoice_no=invoice_no, **values)
                break
            except IntegrityError:
                if Invoice.objects.filter(service_id=service.id).exists():
                    raise ConflictError("Invoice already exists for this service", "service_id")
                logger.warning("Invoice number %s already taken, retrying", invoice_no)
        else:
            raise BusinessRuleError("Could not allocate an invoice number", "invoice_number")

        logger.info("Invoice %s created for service #%s: %s", invoice.invoice_no, service.id, invoice.final_amount)

        return success_response({
            "invoice": cls.serialize(invoice)
        }, "Invoice generated successfully")

    # ==================== SEND ====================

    @classmethod
    def render_message(cls, invoice: Invoice) -> str:
        customer = invoice.service.customer
        return format_message_template(settings.INVOICE_MESSAGE_TEMPLATE, {
            "name": customer.name,
            "invoice_no": invoice.invoice_no,
            "vehicle_no": customer.vehicle_no,
            "final_amount": f"{invoice.final_amount:.2f}",
        })

    @classmethod
    def send(cls, invoice_id, notifier: Optional[WhatsAppService] = None) -> Dict[str, Any]:
        """
        Deliver the invoice message to the customer's mobile.

        sent_on_whatsapp and sent_at are set only when delivery succeeds.
        """
        invoice = cls.get_or_404(invoice_id)
        customer = invoice.service.customer
        notifier = notifier or get_whatsapp_service()

        sent, error = notifier.send_message(customer.mobile, cls.render_message(invoice))

        if not sent:
            logger.warning("Invoice %s not delivered to %s: %s", invoice.invoice_no, customer.mobile, error)
            return {
                "success": False,
                "message": "Failed to send invoice on WhatsApp",
                "error": error,
                "invoice": cls.serialize(invoice),
            }

        invoice.sent_on_whatsapp = True
        invoice.sent_at = timezone.now()
        invoice.save(update_fields=["sent_on_whatsapp", "sent_at"])

        return success_response({
            "invoice": cls.serialize(invoice)
        }, "Invoice sent successfully")

    # ==================== PAYMENT ====================

    @classmethod
    def mark_payment_received(cls, invoice_id, received: Any = True) -> Dict[str, Any]:
        invoice = cls.get_or_404(invoice_id)
        received = parse_bool(received, default=True)

        invoice.payment_received = received
        invoice.payment_date = timezone.now() if received else None
        invoice.save(update_fields=["payment_received", "payment_date"])

        logger.info("Invoice %s payment_received=%s", invoice.invoice_no, received)

        return success_response({
            "invoice": cls.serialize(invoice)
        }, "Payment recorded" if received else "Payment cleared")
