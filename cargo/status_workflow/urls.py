"""
URL configuration for the status workflow.

Provides the status catalog, dry-run validation and the package and
shipment transition endpoints.
"""

from django.urls import path
from rest_framework.routers import DefaultRouter

from .views import PackageViewSet, ShipmentViewSet, StatusCatalogView, ValidateTransitionView

# Create router and register viewsets
router = DefaultRouter()
router.register(r'packages', PackageViewSet, basename='package')
router.register(r'shipments', ShipmentViewSet, basename='shipment')

urlpatterns = [
    path('statuses/<str:kind>/', StatusCatalogView.as_view(), name='status-catalog'),
    path('validate/', ValidateTransitionView.as_view(), name='validate-transition'),
] + router.urls
