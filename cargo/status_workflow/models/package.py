"""
Package model for the status lifecycle.
"""

from django.db import models
from django.conf import settings

from ..statuses import EntityKind, PackageStatus
from .lifecycle import StatusLifecycleModel


class Package(StatusLifecycleModel):
    """
    An individual parcel received at the warehouse on behalf of a customer.
    """

    ENTITY_KIND = EntityKind.PACKAGE

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='packages',
        help_text="Customer who owns this package"
    )
    status = models.CharField(
        max_length=30,
        choices=PackageStatus.choices,
        default=PackageStatus.PENDING_ARRIVAL,
        help_text="Current package status"
    )
    description = models.CharField(
        max_length=255,
        blank=True,
        help_text="Declared package contents"
    )
    weight = models.DecimalField(
        max_digits=8,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Package weight in kg"
    )

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'status_changed_at'], name='pkg_status_changed_idx'),
            models.Index(fields=['user', 'status'], name='pkg_user_status_idx'),
        ]
