from django.contrib import admin
from django.utils.translation import gettext_lazy as _
from unfold.admin import ModelAdmin, TabularInline
from unfold.decorators import display
from unfold.contrib.filters.admin import RangeDateFilter

from .models import StockBatch, StockConsumption


class StockConsumptionInline(TabularInline):
    model = StockConsumption
    extra = 0
    fields = ('service', 'quantity_used', 'created_at')
    readonly_fields = ('service', 'quantity_used', 'created_at')
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(StockBatch)
class StockBatchAdmin(ModelAdmin):
    list_display = [
        'batch_no', 'product_name', 'supplier', 'quantity_in', 'quantity_used',
        'remaining_display', 'stock_badge', 'purchase_date',
    ]
    list_filter = ['is_defective', 'supplier', ('purchase_date', RangeDateFilter)]
    search_fields = ['product_name', 'batch_no', 'supplier']
    list_filter_submit = True
    readonly_fields = ['uuid', 'created_at', 'updated_at']
    inlines = [StockConsumptionInline]

    @display(description=_("Remaining"))
    def remaining_display(self, obj):
        return obj.remaining_quantity

    @display(description=_("Stock"), label=True)
    def stock_badge(self, obj):
        if obj.is_defective:
            return 'danger', _("Defective")
        if obj.is_low_stock:
            return 'warning', _("Low")
        return 'success', _("OK")
