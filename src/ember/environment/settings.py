"""Process-wide rendering settings.

Defaults are read from the environment once at import:

- ``EMBER_CACHE_TEMPLATE_LOADING``: cache template reads (``1``/``true``/``yes``)
- ``EMBER_TRIM_MODE``: trim mode passed to the scripted-markup lexer
- ``EMBER_MAX_RENDER_DEPTH``: nested ``render_file`` limit

Example:
    >>> from ember.environment.settings import configure, settings
    >>> configure(cache_template_loading=True)
    >>> settings.cache_template_loading
    True

"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from typing import Any

_TRUTHY = frozenset({"1", "true", "yes", "on"})


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUTHY


@dataclass(slots=True)
class Settings:
    """Rendering configuration shared by every ``View`` that does not override it.

    Attributes:
        cache_template_loading: Honour cached template text until the backing
            file's modification time moves past the cached load time. When
            False, every render re-reads the template from storage.
        trim_mode: Scripted-markup trim mode (any of ``-``, ``>``, ``<>``, ``%``)
        partial_marker: Leading character that marks a template as a partial
        max_render_depth: Maximum nested ``render_file`` depth
    """

    cache_template_loading: bool = False
    trim_mode: str = "-"
    partial_marker: str = "_"
    max_render_depth: int = 50

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from ``EMBER_*`` environment variables."""
        return cls(
            cache_template_loading=_env_flag("EMBER_CACHE_TEMPLATE_LOADING", False),
            trim_mode=os.environ.get("EMBER_TRIM_MODE", "-"),
            max_render_depth=int(os.environ.get("EMBER_MAX_RENDER_DEPTH", "50")),
        )

    def copy(self, **overrides: Any) -> Settings:
        return replace(self, **overrides)


settings = Settings.from_env()


def configure(**overrides: Any) -> Settings:
    """Update the process-wide settings in place.

    Raises:
        TypeError: If an unknown setting name is given
    """
    known = {f.name for f in fields(Settings)}
    unknown = set(overrides) - known
    if unknown:
        raise TypeError(f"Unknown setting(s): {', '.join(sorted(unknown))}")
    for name, value in overrides.items():
        setattr(settings, name, value)
    return settings


def reset_settings() -> Settings:
    """Restore environment defaults (used by tests)."""
    defaults = Settings.from_env()
    for f in fields(Settings):
        setattr(settings, f.name, getattr(defaults, f.name))
    return settings
