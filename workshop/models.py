"""
Service Center Models
"""

from decimal import Decimal

from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models


class Staff(models.Model):
    class Role(models.TextChoices):
        OWNER = "owner", "Owner"
        ADMIN = "admin", "Admin"
        INVOICE_BILLER = "invoice_biller", "Invoice Biller"

    MANAGER_ROLES = (Role.OWNER, Role.ADMIN)
    BILLING_ROLES = (Role.OWNER, Role.ADMIN, Role.INVOICE_BILLER)

    name = models.CharField(max_length=100)
    email = models.EmailField(unique=True)
    password = models.CharField(max_length=128)
    role = models.CharField(max_length=20, choices=Role.choices)
    mobile = models.CharField(max_length=20)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name_plural = "staff"

    @property
    def is_authenticated(self):
        return True

    def __str__(self):
        return f"{self.name} ({self.get_role_display()})"


class Customer(models.Model):
    class Source(models.TextChoices):
        ADMIN = "admin", "Admin"
        EXCEL = "excel", "Excel import"

    name = models.CharField(max_length=100)
    mobile = models.CharField(max_length=20, unique=True)
    vehicle_no = models.CharField(max_length=20, db_index=True)
    email = models.EmailField(null=True, blank=True)
    source = models.CharField(max_length=10, choices=Source.choices, default=Source.ADMIN)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.name} – {self.vehicle_no}"


class ServiceRecord(models.Model):
    """
    One vehicle-service visit.

    amount_paid is stored as sent by the client (labour plus all line items)
    and is not recomputed from labour_charge and parts_charge.
    """

    class ServiceType(models.TextChoices):
        WASHING = "washing", "Washing"
        REPAIR = "repair", "Repair"
        BRAKE_PAD_CHANGE = "brake_pad_change", "Brake Pad Change"
        HEADLIGHT = "headlight", "Headlight"
        AC_WORK = "ac_work", "AC Work"
        TYRE_CHANGE = "tyre_change", "Tyre Change"
        OIL_CHANGE = "oil_change", "Oil Change"

    customer = models.ForeignKey(
        Customer,
        on_delete=models.PROTECT,
        related_name="services"
    )
    service_date = models.DateField(db_index=True)
    service_types = models.JSONField(default=list, help_text="e.g. ['washing', 'oil_change']")

    labour_charge = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    parts_charge = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    amount_paid = models.DecimalField(max_digits=12, decimal_places=2)

    next_due_date = models.DateField(null=True, blank=True)

    feedback_text = models.TextField(null=True, blank=True)
    feedback_rating = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1), MaxValueValidator(5)]
    )
    complaint_flag = models.BooleanField(default=False)
    complaint_description = models.TextField(null=True, blank=True)

    created_by = models.ForeignKey(
        Staff,
        on_delete=models.PROTECT,
        related_name="created_services"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-service_date", "-id"]

    @property
    def total_charge(self) -> Decimal:
        return (self.labour_charge or Decimal("0")) + (self.parts_charge or Decimal("0"))

    def __str__(self):
        return f"Service #{self.id} – {self.customer.name} ({self.service_date})"


class Invoice(models.Model):
    # One invoice per service visit, enforced by the unique index of the one-to-one column
    service = models.OneToOneField(
        ServiceRecord,
        on_delete=models.PROTECT,
        related_name="invoice"
    )
    invoice_no = models.CharField(max_length=32, unique=True)

    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    gst_rate = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("18"))
    is_interstate = models.BooleanField(default=False)
    gst_amount = models.DecimalField(max_digits=12, decimal_places=2)
    cgst = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    sgst = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    igst = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    final_amount = models.DecimalField(max_digits=12, decimal_places=2)

    sent_on_whatsapp = models.BooleanField(default=False)
    sent_at = models.DateTimeField(null=True, blank=True)

    payment_received = models.BooleanField(default=False)
    payment_date = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return self.invoice_no


class ProductPrice(models.Model):
    """Catalog price used to fill in visit line items. Not linked to stock quantities."""

    class ProductType(models.TextChoices):
        TYRE = "tyre", "Tyre"
        OIL = "oil", "Oil"
        BATTERY = "battery", "Battery"
        FILTER = "filter", "Filter"
        BRAKE_PAD = "brake_pad", "Brake Pad"
        OTHER = "other", "Other"

    product_name = models.CharField(max_length=150)
    product_type = models.CharField(max_length=20, choices=ProductType.choices)
    brand = models.CharField(max_length=100, blank=True, default="")
    price = models.DecimalField(max_digits=12, decimal_places=2)
    unit = models.CharField(max_length=30, default="per piece")
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["product_type", "product_name"]
        constraints = [
            models.UniqueConstraint(
                fields=["product_name", "product_type", "brand"],
                name="unique_product_price",
            ),
        ]

    def __str__(self):
        brand = f" ({self.brand})" if self.brand else ""
        return f"{self.product_name}{brand} – {self.price}"
