"""
Automation action adapter for the status lifecycle engine.

Automation rules name actions by string tag ("update_inventory",
"generate_tracking", ...). The adapter maps a tag to the collaborator that
performs it; the engine never knows what an action actually does.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)


class ActionDispatcherInterface(ABC):
    """
    Interface for dispatching automation actions to collaborators.

    Implementations must be safe to call from several worker threads at once.
    """

    @abstractmethod
    def dispatch(self, action: str, context) -> None:
        """
        Perform one automation action for a committed transition.

        Args:
            action: Action tag from an automation rule
            context: TransitionContext of the transition that triggered it

        Raises:
            Exception: Any failure; the engine records it and carries on
        """
        pass


class LoggingActionDispatcher(ActionDispatcherInterface):
    """
    Default dispatcher that only records which actions a transition triggered.

    Real integrations register handlers per tag; unregistered tags are logged.
    """

    def __init__(self, handlers: Mapping[str, Callable[[Any], None]] = None):
        self.handlers: Dict[str, Callable[[Any], None]] = dict(handlers or {})

    def register(self, action: str, handler: Callable[[Any], None]) -> None:
        self.handlers[action] = handler

    def dispatch(self, action: str, context) -> None:
        handler = self.handlers.get(action)
        if handler is None:
            logger.info(f"Automation action {action} requested for {context.entity_kind} {context.entity_id}")
            return
        handler(context)


class MockActionDispatcher(ActionDispatcherInterface):
    """
    Deterministic dispatcher for testing and development.

    Records every dispatched action and can be told to fail or stall on
    specific tags.
    """

    def __init__(self, failing_actions: Iterable[str] = (), slow_actions: Mapping[str, float] = None):
        self.failing_actions = set(failing_actions)
        self.slow_actions = dict(slow_actions or {})
        self.dispatched: List[Tuple[str, Any]] = []

    def dispatch(self, action: str, context) -> None:
        delay = self.slow_actions.get(action)
        if delay:
            time.sleep(delay)

        if action in self.failing_actions:
            raise RuntimeError(f"Mock failure for action {action}")

        self.dispatched.append((action, context.entity_id))

    @property
    def dispatched_actions(self) -> List[str]:
        return [action for action, _ in self.dispatched]


# Global dispatcher instance - replaced by integrations at startup
action_dispatcher: ActionDispatcherInterface = LoggingActionDispatcher()


def get_action_dispatcher() -> ActionDispatcherInterface:
    """Return the dispatcher currently used for automation actions."""
    return action_dispatcher


def switch_to_mock_dispatcher(failing_actions: Iterable[str] = (),
                              slow_actions: Optional[Mapping[str, float]] = None) -> MockActionDispatcher:
    """Switch to a fresh mock dispatcher for testing and return it."""
    global action_dispatcher
    action_dispatcher = MockActionDispatcher(failing_actions, slow_actions)
    return action_dispatcher


def switch_to_dispatcher(dispatcher: ActionDispatcherInterface) -> None:
    """
    Switch to a real dispatcher implementation.

    Args:
        dispatcher: Implementation of ActionDispatcherInterface
    """
    global action_dispatcher
    action_dispatcher = dispatcher
