import uuid as uuid_lib
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import F, Q


def default_low_stock_threshold():
    return Decimal(str(getattr(settings, "DEFAULT_LOW_STOCK_THRESHOLD", 10)))


class StockBatchQuerySet(models.QuerySet):

    def with_remaining(self):
        return self.annotate(
            remaining=F("quantity_in") - F("quantity_used")
        )

    def low_stock(self):
        return self.with_remaining().filter(remaining__lte=F("low_stock_threshold"))

    def defective(self):
        return self.filter(is_defective=True)

    def search(self, term: str):
        return self.filter(
            Q(product_name__icontains=term)
            | Q(batch_no__icontains=term)
            | Q(supplier__icontains=term)
        )


class StockBatch(models.Model):
    """
    One intake lot of a purchased product.

    Remaining stock is never stored: it is always quantity_in - quantity_used.
    quantity_used is only changed through consumption (atomic increment) or
    an administrative correction.
    """

    uuid = models.UUIDField(default=uuid_lib.uuid4, unique=True, editable=False)
    product_name = models.CharField(max_length=200)
    batch_no = models.CharField(max_length=100)

    quantity_in = models.DecimalField(max_digits=12, decimal_places=2)
    quantity_used = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)

    supplier = models.CharField(max_length=200)
    purchase_date = models.DateField()

    is_defective = models.BooleanField(default=False, db_index=True)
    low_stock_threshold = models.DecimalField(
        max_digits=12, decimal_places=2, default=default_low_stock_threshold
    )
    notes = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = StockBatchQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        verbose_name_plural = "stock batches"
        indexes = [
            models.Index(fields=["product_name"]),
            models.Index(fields=["batch_no"]),
        ]

    @property
    def remaining_quantity(self) -> Decimal:
        return self.quantity_in - self.quantity_used

    @property
    def is_low_stock(self) -> bool:
        return self.remaining_quantity <= self.low_stock_threshold

    @property
    def total_value(self) -> Decimal:
        return self.quantity_in * self.unit_price

    def __str__(self):
        return f"Batch {self.batch_no} – {self.product_name}"


class StockConsumption(models.Model):
    """Quantity of a batch used by one service visit."""

    service = models.ForeignKey(
        "workshop.ServiceRecord",
        on_delete=models.CASCADE,
        related_name="consumptions",
    )
    batch = models.ForeignKey(
        StockBatch,
        on_delete=models.PROTECT,
        related_name="consumptions",
    )
    quantity_used = models.DecimalField(max_digits=12, decimal_places=2)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]

    def __str__(self):
        return f"{self.batch.product_name} x {self.quantity_used}"
