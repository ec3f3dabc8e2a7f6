"""
Workflow automation for committed status changes.

Maps a resulting status to follow-up actions and notification channel tags.
Actions are dispatched through the action adapter; notifications are only
collected here and handed to an external dispatcher.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..adapters.action_adapter import ActionDispatcherInterface, get_action_dispatcher
from ..conf import get_setting
from ..exceptions import AutomationActionFailed
from ..statuses import EntityKind, PackageStatus, ShipmentStatus, URGENT_STATUSES, coerce_kind, find_status

logger = logging.getLogger(__name__)

STATUS_CHANGE = 'status_change'


@dataclass(frozen=True)
class AutomationRule:
    """Follow-up actions and notification channels for a resulting status."""
    trigger: str
    conditions: Dict[str, Any]
    actions: Tuple[str, ...]
    notifications: Tuple[str, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'trigger': self.trigger,
            'conditions': {key: str(value) for key, value in self.conditions.items()},
            'actions': list(self.actions),
            'notifications': list(self.notifications),
        }


@dataclass
class AutomationOutcome:
    """What happened when the automation for a transition ran."""
    executed: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    notifications: List[str] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'executed': list(self.executed),
            'failed': list(self.failed),
            'notifications': list(self.notifications),
            'errors': dict(self.errors),
        }


def on_status(status, actions: Sequence[str], notifications: Sequence[str]) -> AutomationRule:
    return AutomationRule(STATUS_CHANGE, {'status': status}, tuple(actions), tuple(notifications))


PACKAGE_AUTOMATION_RULES = (
    on_status(PackageStatus.ARRIVED,
              ['update_inventory', 'log_arrival_time'],
              ['warehouse_team']),
    on_status(PackageStatus.READY_FOR_REVIEW,
              ['send_customer_notification', 'start_review_timer'],
              ['customer_email', 'customer_whatsapp']),
    on_status(PackageStatus.SHIPPED,
              ['generate_tracking', 'update_carrier_system'],
              ['customer_email', 'customer_sms', 'customer_whatsapp']),
)

SHIPMENT_AUTOMATION_RULES = (
    on_status(ShipmentStatus.ARRIVED,
              ['update_tracking', 'log_arrival_location'],
              ['customer_app', 'tracking_system']),
    on_status(ShipmentStatus.DELIVERED,
              ['complete_delivery', 'archive_shipment', 'generate_delivery_report'],
              ['customer_email', 'customer_whatsapp', 'admin_dashboard']),
)

# Urgent statuses additionally raise a flag on the admin dashboard
URGENT_AUTOMATION_RULES = {
    kind: tuple(on_status(status, ['flag_for_attention'], ['admin_dashboard']) for status in sorted(statuses))
    for kind, statuses in URGENT_STATUSES.items()
}

DEFAULT_AUTOMATION_RULES = {
    EntityKind.PACKAGE: PACKAGE_AUTOMATION_RULES + URGENT_AUTOMATION_RULES[EntityKind.PACKAGE],
    EntityKind.SHIPMENT: SHIPMENT_AUTOMATION_RULES + URGENT_AUTOMATION_RULES[EntityKind.SHIPMENT],
}


def _unique(values) -> List[str]:
    seen = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen


class AutomationEngine:
    """
    Resolves and runs the automation rules for a resulting status.

    Actions run concurrently and independently: one failing or timing out is
    recorded in `failed` and never stops the others. All outcomes are
    collected before execute() returns.
    """

    def __init__(self, rules: Mapping[str, Sequence[AutomationRule]] = None,
                 dispatcher: ActionDispatcherInterface = None,
                 timeout: Optional[float] = None, max_workers: Optional[int] = None):
        if rules is None:
            rules = DEFAULT_AUTOMATION_RULES
        self.rules = {coerce_kind(kind): tuple(kind_rules) for kind, kind_rules in rules.items()}
        self.dispatcher = dispatcher
        self.timeout = timeout
        self.max_workers = max_workers

    def resolve(self, new_status, kind) -> List[AutomationRule]:
        """Automation rules whose status condition matches new_status."""
        kind = coerce_kind(kind)
        status = find_status(kind, new_status)
        if status is None:
            return []
        return [
            rule for rule in self.rules.get(kind, ())
            if rule.trigger == STATUS_CHANGE and rule.conditions.get('status') == status
        ]

    def execute(self, context, rules: Sequence[AutomationRule] = None,
                timeout: Optional[float] = None) -> AutomationOutcome:
        """
        Run the actions of the given rules for a committed transition.

        Args:
            context: TransitionContext of the committed transition
            rules: Rules to run, resolved from context.new_status when omitted
            timeout: Seconds each action may run, counted from when a worker
                picks it up; an action past its timeout is counted as failed
                and left to finish in the background

        Returns:
            AutomationOutcome with executed and failed actions and the union
            of notification tags
        """
        if rules is None:
            rules = self.resolve(context.new_status, context.entity_kind)

        outcome = AutomationOutcome(
            notifications=_unique(tag for rule in rules for tag in rule.notifications)
        )
        actions = _unique(action for rule in rules for action in rule.actions)
        if not actions:
            return outcome

        if timeout is None:
            timeout = self.timeout if self.timeout is not None else get_setting('AUTOMATION_ACTION_TIMEOUT')
        max_workers = self.max_workers or get_setting('AUTOMATION_MAX_WORKERS')
        dispatcher = self.dispatcher or get_action_dispatcher()

        started_at = {}
        executor = ThreadPoolExecutor(max_workers=min(max_workers, len(actions)),
                                      thread_name_prefix='status-automation')
        try:
            futures = {
                action: executor.submit(self._run_action, dispatcher, action, context, started_at)
                for action in actions
            }
            for action, future in futures.items():
                reason = self._await_action(future, action, started_at, timeout)
                if reason is not None:
                    self._record_failure(outcome, context, AutomationActionFailed(action, reason))
                    continue

                error = future.exception()
                if error is not None:
                    self._record_failure(outcome, context, AutomationActionFailed(action, str(error)), error)
                    continue

                outcome.executed.append(action)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        logger.info(
            f"Automation for {context.entity_kind} {context.entity_id} -> {context.new_status}: "
            f"{len(outcome.executed)} executed, {len(outcome.failed)} failed"
        )
        return outcome

    def resolve_and_execute(self, context, timeout: Optional[float] = None) -> AutomationOutcome:
        return self.execute(context, self.resolve(context.new_status, context.entity_kind), timeout)

    @staticmethod
    def _run_action(dispatcher: ActionDispatcherInterface, action: str, context, started_at: Dict[str, float]):
        started_at[action] = time.monotonic()
        return dispatcher.dispatch(action, context)

    @staticmethod
    def _await_action(future, action: str, started_at: Dict[str, float], timeout: float) -> Optional[str]:
        """
        Wait for one action, counting its timeout from when a worker picked it up.

        Returns:
            None once the action finished, otherwise the reason it was given up
        """
        while not future.done():
            start = started_at.get(action)
            if start is None:
                # Still queued behind other actions
                wait([future], timeout=timeout)
                if action not in started_at and future.cancel():
                    return f"not started within {timeout}s"
                continue

            remaining = start + timeout - time.monotonic()
            if remaining <= 0:
                return f"timed out after {timeout}s"
            wait([future], timeout=remaining)
        return None

    @staticmethod
    def _record_failure(outcome: AutomationOutcome, context, failure: AutomationActionFailed,
                        error: BaseException = None) -> None:
        action = failure.details['action']
        outcome.failed.append(action)
        outcome.errors[action] = failure.details['reason']
        logger.error(
            f"{failure.message} ({context.entity_kind} {context.entity_id})",
            exc_info=error,
        )


default_engine = AutomationEngine()


def get_automation_rules(new_status, kind) -> List[AutomationRule]:
    return default_engine.resolve(new_status, kind)


def resolve_and_execute_automation(context, timeout: Optional[float] = None) -> AutomationOutcome:
    """Resolve the automation rules for a committed transition and run them."""
    return default_engine.resolve_and_execute(context, timeout)
