"""
Status transition service for packages and shipments.

Owns the read-validate-write cycle against the database. The write is a
conditional update on the validated status; when it misses, the service
re-reads and re-validates.
"""

import logging
from dataclasses import dataclass
from functools import partial
from datetime import datetime
from typing import Any, Dict, Optional

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from ..conf import get_setting
from ..exceptions import ConcurrentTransitionException, EntityNotFoundException
from ..models import Package, Shipment, StatusAuditLog
from ..statuses import EntityKind, STATUS_ENUMS, coerce_kind
from .automation import AutomationEngine, AutomationOutcome, default_engine
from .durations import DurationPolicy, default_policy
from .validator import TransitionContext, TransitionValidator, ValidationResult, default_validator

logger = logging.getLogger(__name__)

ENTITY_MODELS = {
    EntityKind.PACKAGE: Package,
    EntityKind.SHIPMENT: Shipment,
}


@dataclass
class TransitionOutcome:
    """Result of a transition request against the store."""
    validation: ValidationResult
    entity: Any = None
    previous_status: Optional[str] = None
    automation: Optional[AutomationOutcome] = None
    attempts: int = 1

    @property
    def applied(self) -> bool:
        return self.validation.is_valid

    def to_dict(self) -> Dict[str, Any]:
        return {
            'applied': self.applied,
            'previous_status': self.previous_status,
            'validation': self.validation.to_dict(),
            'automation': self.automation.to_dict() if self.automation else None,
            'attempts': self.attempts,
        }


def actor_role_of(actor) -> Optional[str]:
    if actor is None:
        return None
    return getattr(actor, 'role', None)


class StatusTransitionService:
    """Service class for applying status transitions to stored entities."""

    def __init__(self, validator: TransitionValidator = None, automation: AutomationEngine = None,
                 policy: DurationPolicy = None, max_attempts: Optional[int] = None):
        self.validator = validator or default_validator
        self.automation = automation or default_engine
        self.policy = policy or default_policy
        self.max_attempts = max_attempts

    def get_entity(self, kind, entity_id):
        """
        Load a package or shipment.

        Raises:
            EntityNotFoundException: If no entity has that id
        """
        kind = coerce_kind(kind)
        model = ENTITY_MODELS[kind]
        try:
            return model.objects.get(id=entity_id)
        except (model.DoesNotExist, ValueError, ValidationError):
            raise EntityNotFoundException(kind, entity_id) from None

    def validate(self, kind, entity_id, new_status, actor=None) -> ValidationResult:
        """Validate a transition against the entity's stored status without applying it."""
        entity = self.get_entity(kind, entity_id)
        return self.validator.validate(self._context(kind, entity, new_status, actor))

    def transition(self, kind, entity_id, new_status, actor=None, notes: str = '',
                   run_automation: bool = True) -> TransitionOutcome:
        """
        Move an entity to a new status.

        Args:
            kind: Entity kind
            entity_id: Entity UUID
            new_status: Requested status
            actor: User requesting the change; its role drives authorization
            notes: Free-text notes stored in the audit log
            run_automation: Run the automation rules once the change commits. Inside
                an outer transaction outcome.automation stays None until that
                transaction commits, and a rollback skips the automation

        Returns:
            TransitionOutcome; a rejected transition is returned, not raised

        Raises:
            EntityNotFoundException: If the entity does not exist
            ConcurrentTransitionException: If every write attempt lost a race
        """
        kind = coerce_kind(kind)
        model = ENTITY_MODELS[kind]
        max_attempts = self.max_attempts or get_setting('TRANSITION_MAX_ATTEMPTS')

        for attempt in range(1, max_attempts + 1):
            entity = self.get_entity(kind, entity_id)
            current_status = entity.status
            context = self._context(kind, entity, new_status, actor, notes)

            result = self.validator.validate(context)
            if not result.is_valid:
                return TransitionOutcome(result, entity, current_status, attempts=attempt)

            outcome = TransitionOutcome(result, entity, current_status, attempts=attempt)
            with transaction.atomic():
                updated = model.objects.filter(id=entity.id, status=current_status).update(
                    status=context.new_status,
                    status_changed_at=context.timestamp,
                    updated_at=context.timestamp,
                )
                if updated:
                    entity.refresh_from_db()
                    StatusAuditLog.log_status_change(
                        entity=entity,
                        old_status=current_status,
                        new_status=context.new_status,
                        user=actor if getattr(actor, 'pk', None) else None,
                        actor_role=context.actor_role,
                        rule=result.rule,
                        notes=notes,
                        timestamp=context.timestamp,
                    )
                    if run_automation:
                        transaction.on_commit(partial(self._automate, outcome, context))

            if updated:
                logger.info(f"{kind.label} {entity.tracking_number} status updated from {current_status} to {new_status}")
                return outcome

            logger.warning(
                f"{kind.label} {entity_id} changed from {current_status} during transition to {new_status}; "
                f"re-validating (attempt {attempt}/{max_attempts})"
            )

        raise ConcurrentTransitionException(kind, entity_id, new_status, max_attempts)

    def _automate(self, outcome: TransitionOutcome, context: TransitionContext) -> None:
        outcome.automation = self.run_automation(context)

    def run_automation(self, context: TransitionContext) -> AutomationOutcome:
        """Run automation for a committed transition and attach the outcome to its audit entry."""
        outcome = self.automation.resolve_and_execute(context)
        StatusAuditLog.objects.filter(
            entity_type=str(context.entity_kind),
            entity_id=context.entity_id,
            timestamp=context.timestamp,
        ).update(metadata={'automation': outcome.to_dict()})
        return outcome

    def find_overdue(self, kind, now: datetime = None):
        """
        Entities held in their current status longer than expected.

        Returns:
            QuerySet of packages or shipments
        """
        kind = coerce_kind(kind)
        model = ENTITY_MODELS[kind]
        now = now or timezone.now()

        overdue = Q(pk__in=[])
        for status in STATUS_ENUMS[kind]:
            cutoff = self.policy.overdue_since(kind, status, now)
            if cutoff is not None:
                overdue |= Q(status=status, status_changed_at__lt=cutoff)
        return model.objects.filter(overdue)

    @staticmethod
    def _context(kind, entity, new_status, actor, notes: str = '') -> TransitionContext:
        return TransitionContext(
            entity_id=entity.id,
            entity_kind=kind,
            current_status=entity.status,
            new_status=new_status,
            actor_role=actor_role_of(actor),
            actor_id=getattr(actor, 'pk', None),
            notes=notes,
            timestamp=timezone.now(),
        )


def transition_package(package_id, new_status, actor=None, notes: str = '') -> TransitionOutcome:
    return StatusTransitionService().transition(EntityKind.PACKAGE, package_id, new_status, actor, notes)


def transition_shipment(shipment_id, new_status, actor=None, notes: str = '') -> TransitionOutcome:
    return StatusTransitionService().transition(EntityKind.SHIPMENT, shipment_id, new_status, actor, notes)
