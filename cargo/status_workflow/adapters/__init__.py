from .action_adapter import (
    ActionDispatcherInterface, LoggingActionDispatcher, MockActionDispatcher,
    get_action_dispatcher, switch_to_mock_dispatcher, switch_to_dispatcher
)

__all__ = [
    'ActionDispatcherInterface', 'LoggingActionDispatcher', 'MockActionDispatcher',
    'get_action_dispatcher', 'switch_to_mock_dispatcher', 'switch_to_dispatcher',
]
