"""
Status Workflow Views
"""

from .catalog_views import StatusCatalogView, ValidateTransitionView
from .entity_views import PackageViewSet, ShipmentViewSet

__all__ = [
    'StatusCatalogView',
    'ValidateTransitionView',
    'PackageViewSet',
    'ShipmentViewSet',
]
