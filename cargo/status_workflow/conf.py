"""
Settings access for the status lifecycle engine.

Values come from the STATUS_WORKFLOW dict in Django settings, falling back
to the defaults below.
"""

from django.conf import settings

DEFAULTS = {
    'AUTOMATION_ACTION_TIMEOUT': 10.0,
    'AUTOMATION_MAX_WORKERS': 4,
    'TRANSITION_MAX_ATTEMPTS': 3,
}


def get_setting(name: str):
    if name not in DEFAULTS:
        raise KeyError(f"Unknown status workflow setting: {name}")
    overrides = getattr(settings, 'STATUS_WORKFLOW', None) or {}
    return overrides.get(name, DEFAULTS[name])
