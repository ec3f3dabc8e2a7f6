"""
Transition validator for package and shipment status changes.

Composes the transition graph, the role permission table and the
kind-specific guards. Graph edges describe which statuses are reachable at
all; guards add the stricter business rules that depend on exactly where
the entity is coming from.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, FrozenSet, List, Mapping, Optional

from ..exceptions import (
    BusinessException, InvalidTransitionException,
    PreconditionNotMetException, UnauthorizedTransitionException
)
from ..statuses import EntityKind, PackageStatus, ShipmentStatus, coerce_kind, coerce_status
from .role_permissions import RolePermissionTable, default_permissions
from .transition_graph import TransitionGraph, default_graph

logger = logging.getLogger(__name__)


@dataclass
class TransitionContext:
    """A requested status change for one entity."""
    entity_id: Any
    entity_kind: str
    current_status: str
    new_status: str
    actor_role: Optional[str] = None
    actor_id: Any = None
    notes: str = ''
    timestamp: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'entity_id': str(self.entity_id),
            'entity_kind': str(self.entity_kind),
            'current_status': str(self.current_status),
            'new_status': str(self.new_status),
            'actor_role': str(self.actor_role) if self.actor_role else None,
            'actor_id': str(self.actor_id) if self.actor_id is not None else None,
            'notes': self.notes,
            'timestamp': self.timestamp.isoformat() if self.timestamp else None,
        }


@dataclass
class ValidationResult:
    """Outcome of validating a transition; rejections are values, not exceptions."""
    is_valid: bool
    rule: Optional[str] = None
    error: Optional[str] = None
    code: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
    suggested_actions: List[str] = field(default_factory=list)

    @property
    def reason(self) -> Optional[str]:
        return self.code

    @classmethod
    def accepted(cls, rule: Optional[str], suggested_actions: List[str]) -> 'ValidationResult':
        return cls(is_valid=True, rule=rule, suggested_actions=suggested_actions)

    @classmethod
    def rejected(cls, exc: BusinessException, suggested_actions: List[str]) -> 'ValidationResult':
        return cls(
            is_valid=False,
            error=exc.message,
            code=exc.code,
            details=dict(exc.details),
            suggested_actions=suggested_actions,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'is_valid': self.is_valid,
            'rule': self.rule,
            'error': self.error,
            'code': self.code,
            'details': self.details,
            'suggested_actions': list(self.suggested_actions),
        }


@dataclass(frozen=True)
class Guard:
    """Destination status that may only be entered from specific statuses."""
    allowed_from: FrozenSet[str]
    message: str
    suggestion: str


DEFAULT_GUARDS = {
    (EntityKind.PACKAGE, PackageStatus.ARRIVED): Guard(
        frozenset({PackageStatus.PENDING_ARRIVAL}),
        "Packages can only be marked as 'arrived' from 'pending_arrival' status",
        'Verify the package is actually arriving from pending status',
    ),
    (EntityKind.PACKAGE, PackageStatus.INSPECTED): Guard(
        frozenset({PackageStatus.ARRIVED}),
        "Packages must be 'arrived' before they can be 'inspected'",
        'Mark package as arrived first, then proceed with inspection',
    ),
    (EntityKind.PACKAGE, PackageStatus.READY_FOR_REVIEW): Guard(
        frozenset({PackageStatus.INSPECTED}),
        "Packages must be 'inspected' before being ready for customer review",
        'Complete package inspection first',
    ),
    (EntityKind.PACKAGE, PackageStatus.SHIPPED): Guard(
        frozenset({PackageStatus.READY_FOR_SHIPMENT, PackageStatus.CONSOLIDATED}),
        "Packages must be 'ready_for_shipment' or 'consolidated' before shipping",
        'Prepare package for shipment first',
    ),
    (EntityKind.SHIPMENT, ShipmentStatus.ARRIVED): Guard(
        frozenset({ShipmentStatus.SHIPPED, ShipmentStatus.IN_TRANSIT}),
        "Shipments can only be marked as 'arrived' from 'shipped' or 'in_transit' status",
        'Verify shipment is actually in transit before marking as arrived',
    ),
    (EntityKind.SHIPMENT, ShipmentStatus.PROCESSING): Guard(
        frozenset({ShipmentStatus.PAYMENT_PENDING}),
        'Shipments can only be processed after payment is confirmed',
        'Confirm payment before processing shipment',
    ),
    (EntityKind.SHIPMENT, ShipmentStatus.CUSTOMS_CLEARANCE): Guard(
        frozenset({ShipmentStatus.IN_TRANSIT, ShipmentStatus.ARRIVED}),
        "Shipments must be 'in_transit' or 'arrived' before customs clearance",
        'Wait for shipment to reach destination country',
    ),
}

# Next steps for staff once an entity reaches a status
SUGGESTED_ACTIONS = {
    EntityKind.PACKAGE: {
        PackageStatus.ARRIVED: ['Scan package barcode', 'Verify package condition', 'Update inventory system'],
        PackageStatus.INSPECTED: ['Document package contents', 'Take photos if needed', 'Check for damage'],
        PackageStatus.READY_FOR_REVIEW: ['Notify customer', 'Send inspection photos', 'Wait for customer approval'],
        PackageStatus.APPROVED: ['Prepare for consolidation', 'Update shipping queue'],
        PackageStatus.SHIPPED: ['Generate tracking number', 'Notify customer', 'Update carrier system'],
    },
    EntityKind.SHIPMENT: {
        ShipmentStatus.ARRIVED: ['Confirm arrival location', 'Update tracking system', 'Notify next handler'],
        ShipmentStatus.PROCESSING: ['Consolidate packages', 'Calculate final costs', 'Prepare shipping labels'],
        ShipmentStatus.SHIPPED: ['Dispatch to carrier', 'Generate tracking number', 'Send customer notification'],
        ShipmentStatus.CUSTOMS_CLEARANCE: [
            'Submit customs documentation', 'Pay duties if required', 'Track clearance progress'
        ],
    },
}


class TransitionValidator:
    """
    Accepts or rejects a requested status change.

    Checks run in order and stop at the first failure: graph membership,
    role authorization, then the destination guards.
    """

    def __init__(self, graph: TransitionGraph = None, permissions: RolePermissionTable = None,
                 guards: Mapping = None, suggested_actions: Mapping = None):
        self.graph = graph or default_graph
        self.permissions = permissions or default_permissions
        self.guards = DEFAULT_GUARDS if guards is None else guards
        self.suggestions = SUGGESTED_ACTIONS if suggested_actions is None else suggested_actions

    def validate(self, context: TransitionContext) -> ValidationResult:
        """
        Validate a transition context.

        Args:
            context: The requested transition

        Returns:
            ValidationResult carrying the matched rule on success, or the
            error code and details on rejection

        Raises:
            UnknownEntityKindError: If the entity kind is not known
            UnknownStatusError: If either status is not registered for the kind
        """
        kind = coerce_kind(context.entity_kind)
        current = coerce_status(kind, context.current_status)
        new = coerce_status(kind, context.new_status)

        try:
            self._check_graph(kind, current, new)
            self._check_role(kind, current, new, context.actor_role)
            self._check_guard(kind, current, new)
        except InvalidTransitionException as exc:
            valid_next = ', '.join(exc.details['valid_next_statuses']) or 'none (final status)'
            return self._reject(context, exc, [f"Valid next statuses: {valid_next}"])
        except UnauthorizedTransitionException as exc:
            return self._reject(context, exc, [f"Contact an administrator for status changes to '{new}'"])
        except PreconditionNotMetException as exc:
            guard = self.guards[(kind, new)]
            return self._reject(context, exc, [guard.suggestion])

        return ValidationResult.accepted(
            self.graph.rule_for(kind, current, new),
            self.get_suggested_actions(kind, new),
        )

    def can_transition(self, context: TransitionContext) -> bool:
        return self.validate(context).is_valid

    def get_suggested_actions(self, kind, status) -> List[str]:
        return list(self.suggestions.get(coerce_kind(kind), {}).get(status, []))

    def _check_graph(self, kind: EntityKind, current: str, new: str) -> None:
        if self.graph.is_legal(kind, current, new):
            return

        # A guard names the exact prior status, which is more useful than the bare edge set
        guard = self.guards.get((kind, new))
        if guard is not None and current not in guard.allowed_from:
            raise self._guard_failure(kind, current, new, guard)

        raise InvalidTransitionException(
            current_status=current,
            attempted_status=new,
            entity_type=kind,
            valid_next_statuses=self.graph.valid_next(kind, current),
        )

    def _check_role(self, kind: EntityKind, current: str, new: str, role: Optional[str]) -> None:
        if not self.permissions.is_authorized(role, kind, new):
            raise UnauthorizedTransitionException(
                actor_role=role,
                current_status=current,
                attempted_status=new,
                entity_type=kind,
            )

    def _check_guard(self, kind: EntityKind, current: str, new: str) -> None:
        guard = self.guards.get((kind, new))
        if guard is not None and current not in guard.allowed_from:
            raise self._guard_failure(kind, current, new, guard)

    def _guard_failure(self, kind: EntityKind, current: str, new: str, guard: Guard) -> PreconditionNotMetException:
        return PreconditionNotMetException(
            guard.message,
            current_status=current,
            attempted_status=new,
            entity_type=kind,
            required_statuses=sorted(guard.allowed_from),
            valid_next_statuses=self.graph.valid_next(kind, current),
        )

    def _reject(self, context: TransitionContext, exc: BusinessException,
                suggested_actions: List[str]) -> ValidationResult:
        logger.warning(
            f"Rejected {context.entity_kind} {context.entity_id} transition "
            f"{context.current_status} -> {context.new_status} ({exc.code}): {exc.message}"
        )
        return ValidationResult.rejected(exc, suggested_actions)


default_validator = TransitionValidator()


def validate(context: TransitionContext) -> ValidationResult:
    """Validate a transition against the default tables."""
    return default_validator.validate(context)


def validate_package_transition(context: TransitionContext) -> ValidationResult:
    return default_validator.validate(replace(context, entity_kind=EntityKind.PACKAGE))


def validate_shipment_transition(context: TransitionContext) -> ValidationResult:
    return default_validator.validate(replace(context, entity_kind=EntityKind.SHIPMENT))
