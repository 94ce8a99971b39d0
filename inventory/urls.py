from django.urls import path

from .views import MovementListView, StockItemListView

urlpatterns = [
    path("stock-items/", StockItemListView.as_view(), name="stock-item-list"),
    path("movements/", MovementListView.as_view(), name="movement-list"),
]

# EOF
