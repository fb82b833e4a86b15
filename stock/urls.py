from django.urls import path
from . import views

app_name = "stock"

urlpatterns = [
    path("", views.StockListView.as_view(), name="stock-list"),
    path("<int:stock_id>/", views.StockDetailView.as_view(), name="stock-detail"),
]
