from django.urls import path
from workshop.views import (
    auth_views, customer_views, service_views, invoice_views, product_price_views,
)


app_name = 'workshop'


urlpatterns = [
    path('auth/setup', auth_views.setup, name='setup'),
    path('auth/login', auth_views.login, name='login'),
    path('auth/logout', auth_views.logout, name='logout'),
    path('auth/register', auth_views.register, name='register'),
    path('auth/me', auth_views.me, name='me'),

    path('customers', customer_views.customers, name='customers'),
    path('customers/<int:customer_id>', customer_views.get_customer, name='customer-detail'),

    path('services', service_views.services, name='services'),
    path('services/<int:service_id>', service_views.service_detail, name='service-detail'),

    path('invoices', invoice_views.invoices, name='invoices'),
    path('invoices/<int:invoice_id>', invoice_views.get_invoice, name='invoice-detail'),
    path('invoices/<int:invoice_id>/send', invoice_views.send_invoice, name='invoice-send'),
    path('invoices/<int:invoice_id>/payment', invoice_views.mark_payment, name='invoice-payment'),

    path('product-prices', product_price_views.product_prices, name='product-prices'),
    path('product-prices/<int:product_id>', product_price_views.product_price_detail, name='product-price-detail'),
]
