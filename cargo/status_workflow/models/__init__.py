"""
Status Lifecycle Models
"""

from .lifecycle import StatusLifecycleModel
from .package import Package
from .shipment import Shipment
from .audit import StatusAuditLog

__all__ = [
    'StatusLifecycleModel',
    'Package',
    'Shipment',
    'StatusAuditLog',
]
