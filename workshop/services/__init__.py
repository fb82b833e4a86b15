from .auth_service import AuthService
from .billing_service import BillingService
from .customer_service import CustomerService
from .invoice_service import InvoiceService
from .notification_service import WhatsAppService, get_whatsapp_service, format_message_template
from .product_price_service import ProductPriceService
from .service_record_service import ServiceRecordService
from .tax_service import GSTBreakdown, calculate_gst

__all__ = [
    'AuthService',
    'BillingService',
    'CustomerService',
    'InvoiceService',
    'ProductPriceService',
    'ServiceRecordService',
    'WhatsAppService',
    'get_whatsapp_service',
    'format_message_template',
    'GSTBreakdown',
    'calculate_gst',
]
