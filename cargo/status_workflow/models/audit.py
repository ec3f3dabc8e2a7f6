"""
Status audit log for packages and shipments.
"""

import uuid
from django.db import models
from django.conf import settings
from django.utils import timezone


class StatusAuditLog(models.Model):
    """
    Audit trail of applied status transitions.

    Records the business rule that justified each change and the outcome of
    the automation it triggered.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    # Entity being audited
    entity_type = models.CharField(
        max_length=20,
        help_text="Entity kind (package or shipment)"
    )
    entity_id = models.UUIDField(
        help_text="UUID of the entity being audited"
    )

    action = models.CharField(
        max_length=50,
        default='status_changed',
        help_text="Action performed"
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='status_audit_logs',
        help_text="User who performed the action"
    )
    actor_role = models.CharField(max_length=20, blank=True)

    # Before and after states
    old_values = models.JSONField(default=dict, blank=True)
    new_values = models.JSONField(default=dict, blank=True)

    rule = models.TextField(
        blank=True,
        help_text="Business rule that justified the transition"
    )

    timestamp = models.DateTimeField(default=timezone.now)
    notes = models.TextField(blank=True)
    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Additional audit metadata such as automation results"
    )

    class Meta:
        ordering = ['-timestamp']
        indexes = [
            models.Index(fields=['entity_type', 'entity_id', '-timestamp'], name='audit_entity_ts_idx'),
            models.Index(fields=['user', '-timestamp'], name='audit_user_ts_idx'),
        ]

    def __str__(self):
        return f"{self.entity_type} {self.entity_id} - {self.action} by {self.user} at {self.timestamp}"

    @classmethod
    def log_status_change(cls, entity, old_status: str, new_status: str, user=None, actor_role: str = '',
                          rule: str = '', notes: str = '', timestamp=None, metadata=None):
        """
        Log a status change for a package or shipment.

        Args:
            entity: The Package or Shipment instance
            old_status: Previous status
            new_status: New status
            user: User making the change
            actor_role: Role the change was authorized under
            rule: Business rule text of the applied edge
            notes: Additional notes
            timestamp: When the change was applied
            metadata: Additional metadata
        """
        return cls.objects.create(
            entity_type=str(entity.ENTITY_KIND),
            entity_id=entity.id,
            action='status_changed',
            user=user,
            actor_role=str(actor_role or ''),
            old_values={'status': str(old_status)},
            new_values={'status': str(new_status)},
            rule=rule or '',
            notes=notes or '',
            timestamp=timestamp or timezone.now(),
            metadata=metadata or {},
        )

    @classmethod
    def history_for(cls, entity):
        return cls.objects.filter(entity_type=str(entity.ENTITY_KIND), entity_id=entity.id)
