"""
Shared fields and behaviour for entities with a governed status lifecycle.
"""

import uuid
from django.db import models
from django.utils import timezone

from ..services.durations import default_policy
from ..services.transition_graph import default_graph
from ..statuses import info, requires_immediate_attention, is_trackable_by_customer


class StatusLifecycleModel(models.Model):
    """
    Abstract base for packages and shipments.

    The status column is only ever changed through the conditional update in
    StatusTransitionService, never by assigning and saving.
    """

    ENTITY_KIND = None

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tracking_number = models.CharField(
        max_length=50,
        unique=True,
        help_text="Customer-facing tracking identifier"
    )
    status_changed_at = models.DateTimeField(
        default=timezone.now,
        help_text="When the current status was set"
    )
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    def __str__(self):
        return f"{self.ENTITY_KIND.label} {self.tracking_number} ({self.status})"

    @property
    def status_info(self):
        return info(self.ENTITY_KIND, self.status)

    @property
    def valid_next_statuses(self):
        return sorted(default_graph.valid_next(self.ENTITY_KIND, self.status))

    @property
    def is_final(self):
        return default_graph.is_final(self.ENTITY_KIND, self.status)

    @property
    def is_overdue(self):
        return default_policy.is_overdue(self.ENTITY_KIND, self.status, self.status_changed_at)

    @property
    def requires_immediate_attention(self):
        return requires_immediate_attention(self.ENTITY_KIND, self.status)

    @property
    def is_trackable_by_customer(self):
        return is_trackable_by_customer(self.ENTITY_KIND, self.status)
