from typing import Any

from .settings import Settings, get_settings


def env(key: str, default: Any = None) -> Any:
    """Read a configuration value by name.

    Declared ``Settings`` fields win (they are validated and type-converted);
    anything else falls back to the raw values captured through ``extra="allow"``.
    """
    settings = get_settings()

    declared = getattr(settings, key.upper(), None)
    if declared is not None:
        return declared

    extras = settings.model_extra or {}
    return extras.get(key.lower(), extras.get(key.upper(), default))


__all__ = ["Settings", "env", "get_settings"]
