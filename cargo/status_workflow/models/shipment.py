"""
Shipment model for the status lifecycle.
"""

from django.db import models
from django.conf import settings

from ..statuses import EntityKind, ShipmentStatus
from .lifecycle import StatusLifecycleModel


class Shipment(StatusLifecycleModel):
    """
    A consolidated group of packages dispatched together.
    """

    ENTITY_KIND = EntityKind.SHIPMENT

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='shipments',
        help_text="Customer who requested this shipment"
    )
    status = models.CharField(
        max_length=30,
        choices=ShipmentStatus.choices,
        default=ShipmentStatus.AWAITING_QUOTE,
        help_text="Current shipment status"
    )
    packages = models.ManyToManyField(
        'Package',
        blank=True,
        related_name='shipments',
        help_text="Packages consolidated into this shipment"
    )

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'status_changed_at'], name='shp_status_changed_idx'),
            models.Index(fields=['user', 'status'], name='shp_user_status_idx'),
        ]
