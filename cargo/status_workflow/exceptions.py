"""
Custom exceptions for the status lifecycle engine.

Business outcomes (invalid transition, unmet precondition, unauthorized role)
are modelled as exceptions so they carry a code and structured details, but the
validator folds them into a ValidationResult instead of raising them.
"""

from typing import Any, Dict, Iterable, Optional


class BusinessException(Exception):
    """Base exception for business logic errors."""

    def __init__(self, message: str, code: str = "BUSINESS_ERROR", details: Dict[str, Any] = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'code': self.code,
            'message': self.message,
            'details': self.details,
        }


class InvalidTransitionException(BusinessException):
    """Raised when the requested edge is not part of the transition graph."""

    def __init__(self, current_status: str, attempted_status: str, entity_type: str,
                 valid_next_statuses: Iterable[str] = ()):
        valid_next = sorted(str(status) for status in valid_next_statuses)
        message = f"Invalid transition for {entity_type}: cannot move from '{current_status}' to '{attempted_status}'"
        super().__init__(message, "INVALID_TRANSITION", {
            "current_status": str(current_status),
            "attempted_status": str(attempted_status),
            "entity_type": str(entity_type),
            "valid_next_statuses": valid_next,
        })


class PreconditionNotMetException(BusinessException):
    """Raised when a destination status requires a specific prior status."""

    def __init__(self, message: str, current_status: str, attempted_status: str, entity_type: str,
                 required_statuses: Iterable[str] = (), valid_next_statuses: Iterable[str] = ()):
        super().__init__(message, "PRECONDITION_NOT_MET", {
            "current_status": str(current_status),
            "attempted_status": str(attempted_status),
            "entity_type": str(entity_type),
            "required_statuses": [str(status) for status in required_statuses],
            "valid_next_statuses": sorted(str(status) for status in valid_next_statuses),
        })


class UnauthorizedTransitionException(BusinessException):
    """Raised when the actor's role may not set the requested status."""

    def __init__(self, actor_role: Optional[str], current_status: str, attempted_status: str, entity_type: str):
        if actor_role:
            message = f"Role '{actor_role}' is not authorized to set {entity_type} status '{attempted_status}'"
        else:
            message = "User role is required for status transitions"
        super().__init__(message, "UNAUTHORIZED", {
            "actor_role": str(actor_role) if actor_role else None,
            "current_status": str(current_status),
            "attempted_status": str(attempted_status),
            "entity_type": str(entity_type),
            "required_escalation": "contact an administrator",
        })


class EntityNotFoundException(BusinessException):
    """Raised when the referenced entity does not exist in the store."""

    def __init__(self, entity_type: str, entity_id: Any):
        message = f"{str(entity_type).capitalize()} {entity_id} not found"
        super().__init__(message, "NOT_FOUND", {
            "entity_type": str(entity_type),
            "entity_id": str(entity_id),
        })


class ConcurrentTransitionException(BusinessException):
    """Raised when the status kept changing underneath every write attempt."""

    def __init__(self, entity_type: str, entity_id: Any, attempted_status: str, attempts: int):
        message = (
            f"{str(entity_type).capitalize()} {entity_id} status changed concurrently; "
            f"gave up setting '{attempted_status}' after {attempts} attempts"
        )
        super().__init__(message, "CONCURRENT_UPDATE", {
            "entity_type": str(entity_type),
            "entity_id": str(entity_id),
            "attempted_status": str(attempted_status),
            "attempts": attempts,
        })


class AutomationActionFailed(BusinessException):
    """Recorded when a single automation action errors or times out."""

    def __init__(self, action: str, reason: str):
        message = f"Automation action '{action}' failed: {reason}"
        super().__init__(message, "AUTOMATION_ACTION_FAILED", {
            "action": action,
            "reason": reason,
        })


class UnknownEntityKindError(ValueError):
    """Caller passed an entity kind the engine does not know."""

    def __init__(self, kind: Any):
        self.kind = kind
        super().__init__(f"Unknown entity kind: {kind!r}")


class UnknownStatusError(ValueError):
    """Caller passed a status string that is not registered for the entity kind."""

    def __init__(self, kind: Any, value: Any):
        self.kind = kind
        self.value = value
        super().__init__(f"Unknown {kind} status: {value!r}")
