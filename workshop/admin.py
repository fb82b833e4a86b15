from django import forms
from django.contrib import admin
from django.contrib.auth.hashers import make_password
from django.urls import reverse
from django.utils.html import format_html
from django.utils.translation import gettext_lazy as _
from unfold.admin import ModelAdmin, TabularInline
from unfold.decorators import display
from unfold.contrib.filters.admin import RangeDateFilter, RangeNumericFilter

from stock.models import StockConsumption
from .models import Staff, Customer, ServiceRecord, Invoice, ProductPrice


class StaffAdminForm(forms.ModelForm):
    password = forms.CharField(
        label=_("Password"),
        widget=forms.PasswordInput(attrs={'placeholder': 'Enter password'}),
        required=False,
    )

    class Meta:
        model = Staff
        fields = '__all__'

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        if self.instance and self.instance.pk:
            self.fields['password'].help_text = _(
                "Leave blank to keep the current password. Enter a new password to change it."
            )
        else:
            self.fields['password'].required = True

    def clean_password(self):
        password = self.cleaned_data.get('password')

        if self.instance.pk and not password:
            return None

        if password and len(password) < 6:
            raise forms.ValidationError(_("Password must be at least 6 characters long."))

        return password

    def save(self, commit=True):
        staff = super().save(commit=False)

        password = self.cleaned_data.get('password')
        if password:
            staff.password = make_password(password)
        elif staff.pk:
            staff.password = Staff.objects.values_list('password', flat=True).get(pk=staff.pk)

        if commit:
            staff.save()
        return staff


@admin.register(Staff)
class StaffAdmin(ModelAdmin):
    form = StaffAdminForm
    list_display = ['id', 'name', 'email', 'role_badge', 'mobile', 'active_badge', 'created_at']
    list_filter = ['role', 'is_active']
    search_fields = ['name', 'email', 'mobile']
    list_filter_submit = True

    fieldsets = (
        (_('Personal Information'), {
            'fields': ('name', 'email', 'mobile'),
        }),
        (_('Access & Security'), {
            'fields': ('role', 'is_active', 'password'),
        }),
    )

    @display(description=_("Role"), label=True)
    def role_badge(self, obj):
        colors = {
            Staff.Role.OWNER: 'danger',
            Staff.Role.ADMIN: 'warning',
            Staff.Role.INVOICE_BILLER: 'info',
        }
        return colors.get(obj.role, 'info'), obj.get_role_display()

    @display(description=_("Active"), label=True)
    def active_badge(self, obj):
        if obj.is_active:
            return 'success', _("Active")
        return 'danger', _("Inactive")


@admin.register(Customer)
class CustomerAdmin(ModelAdmin):
    list_display = ['id', 'name', 'mobile', 'vehicle_no', 'email', 'source', 'visit_count', 'created_at']
    list_filter = ['source', ('created_at', RangeDateFilter)]
    search_fields = ['name', 'mobile', 'vehicle_no', 'email']
    list_filter_submit = True

    @display(description=_("Visits"))
    def visit_count(self, obj):
        return obj.services.count()


class StockConsumptionInline(TabularInline):
    model = StockConsumption
    extra = 0
    fields = ('batch', 'quantity_used', 'created_at')
    readonly_fields = ('batch', 'quantity_used', 'created_at')
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(ServiceRecord)
class ServiceRecordAdmin(ModelAdmin):
    list_display = [
        'id', 'customer_link', 'service_date', 'types_display', 'amount_paid',
        'feedback_rating', 'complaint_badge', 'created_by',
    ]
    list_filter = [
        'complaint_flag',
        ('service_date', RangeDateFilter),
        ('amount_paid', RangeNumericFilter),
    ]
    search_fields = ['customer__name', 'customer__mobile', 'customer__vehicle_no']
    list_filter_submit = True
    list_select_related = ['customer', 'created_by']
    inlines = [StockConsumptionInline]

    fieldsets = (
        (_('Visit'), {
            'fields': ('customer', 'service_date', 'service_types', 'next_due_date', 'created_by'),
        }),
        (_('Charges'), {
            'fields': ('labour_charge', 'parts_charge', 'amount_paid'),
        }),
        (_('Feedback'), {
            'fields': ('feedback_text', 'feedback_rating', 'complaint_flag', 'complaint_description'),
        }),
    )

    @display(description=_("Customer"))
    def customer_link(self, obj):
        url = reverse('admin:workshop_customer_change', args=[obj.customer_id])
        return format_html('<a href="{}">{}</a>', url, obj.customer)

    @display(description=_("Services"))
    def types_display(self, obj):
        return ", ".join(obj.service_types or [])

    @display(description=_("Complaint"), label=True)
    def complaint_badge(self, obj):
        if obj.complaint_flag:
            return 'danger', _("Complaint")
        return 'success', _("OK")


@admin.register(Invoice)
class InvoiceAdmin(ModelAdmin):
    list_display = [
        'invoice_no', 'service', 'total_amount', 'discount_amount', 'gst_amount',
        'final_amount', 'sent_badge', 'payment_badge', 'created_at',
    ]
    list_filter = [
        'sent_on_whatsapp',
        'payment_received',
        'is_interstate',
        ('created_at', RangeDateFilter),
    ]
    search_fields = ['invoice_no', 'service__customer__name', 'service__customer__vehicle_no']
    list_filter_submit = True
    list_select_related = ['service__customer']
    readonly_fields = [
        'invoice_no', 'total_amount', 'gst_rate', 'is_interstate', 'gst_amount',
        'cgst', 'sgst', 'igst', 'final_amount', 'sent_at', 'created_at',
    ]

    @display(description=_("WhatsApp"), label=True)
    def sent_badge(self, obj):
        if obj.sent_on_whatsapp:
            return 'success', _("Sent")
        return 'warning', _("Not sent")

    @display(description=_("Payment"), label=True)
    def payment_badge(self, obj):
        if obj.payment_received:
            return 'success', _("Received")
        return 'danger', _("Pending")


@admin.register(ProductPrice)
class ProductPriceAdmin(ModelAdmin):
    list_display = ['id', 'product_name', 'product_type', 'brand', 'price', 'unit', 'is_active']
    list_filter = ['product_type', 'is_active', ('price', RangeNumericFilter)]
    search_fields = ['product_name', 'brand']
    list_filter_submit = True
    list_editable = ['price', 'is_active']
