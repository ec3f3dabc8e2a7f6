"""
Status Lifecycle Services

StatusTransitionService touches the models and is imported from
services.transition_service directly.
"""

from .transition_graph import (
    TransitionGraph, default_graph,
    get_valid_next_statuses, is_valid_transition, get_transition_rule
)
from .role_permissions import RolePermissionTable, default_permissions, is_authorized
from .durations import DurationPolicy, default_policy, expected_duration, is_overdue
from .validator import (
    TransitionContext, TransitionValidator, ValidationResult, default_validator,
    validate, validate_package_transition, validate_shipment_transition
)
from .automation import (
    AutomationEngine, AutomationOutcome, AutomationRule, default_engine,
    get_automation_rules, resolve_and_execute_automation
)

__all__ = [
    # Transition graph
    'TransitionGraph', 'default_graph',
    'get_valid_next_statuses', 'is_valid_transition', 'get_transition_rule',

    # Role permissions
    'RolePermissionTable', 'default_permissions', 'is_authorized',

    # Durations
    'DurationPolicy', 'default_policy', 'expected_duration', 'is_overdue',

    # Validation
    'TransitionContext', 'TransitionValidator', 'ValidationResult', 'default_validator',
    'validate', 'validate_package_transition', 'validate_shipment_transition',

    # Automation
    'AutomationEngine', 'AutomationOutcome', 'AutomationRule', 'default_engine',
    'get_automation_rules', 'resolve_and_execute_automation',
]
