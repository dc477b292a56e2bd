"""Utility functions for switchboard-config."""

from datetime import datetime
from datetime import timezone
from typing import Any


def utc_now() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries with overlay precedence.

    Recursively merges nested dictionaries. Non-dict values in overlay
    completely replace corresponding values in base.

    Args:
        base: Base dictionary
        overlay: Overlay dictionary (takes precedence)

    Returns:
        New merged dictionary (base and overlay are not modified)

    Examples:
        >>> base = {"env": {"A": "1", "B": "2"}, "model": "opus"}
        >>> overlay = {"env": {"A": "10"}, "theme": "dark"}
        >>> deep_merge(base, overlay)
        {'env': {'A': '10', 'B': '2'}, 'model': 'opus', 'theme': 'dark'}

        >>> deep_merge({}, {"a": 1})
        {'a': 1}
    """
    result = base.copy()

    for key, value in overlay.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def fill_missing(data: dict[str, Any], defaults: dict[str, Any]) -> dict[str, Any]:
    """Add top-level keys from defaults that are absent in data.

    Present keys are never touched, even when their value differs from the
    default or is itself a partial dictionary.

    Args:
        data: Existing dictionary
        defaults: Keys and values to add when missing

    Returns:
        New dictionary (inputs are not modified)

    Examples:
        >>> fill_missing({"theme": "opencode"}, {"theme": "tokyonight", "autoupdate": False})
        {'theme': 'opencode', 'autoupdate': False}
    """
    result = data.copy()
    for key, value in defaults.items():
        if key not in result:
            result[key] = value.copy() if isinstance(value, dict) else value
    return result
