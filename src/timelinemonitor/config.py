"""Process-wide switches for timeline instrumentation.

Two settings are read from the environment once, at import time:

- ``TIMELINE_MONITOR_DISABLED``: when truthy, every monitor becomes a
  no-op. Exports return empty timelines and elapsed times read as zero.
- ``TIMELINE_MONITOR_STRICT``: when truthy, contract violations such as
  closing a span twice raise. When falsy they are logged and ignored.
  Defaults to ``__debug__``.

Applications that decide at startup may call ``configure()`` instead.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Any

_TRUTHY = frozenset({"1", "true", "yes", "on"})


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUTHY


@dataclass(slots=True)
class Settings:
    """Hold the instrumentation switches.

    Attributes:
        enabled (bool):
            Record events at all.
        strict (bool):
            Raise on contract violations instead of logging them.
    """

    enabled: bool = True
    strict: bool = __debug__

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from ``TIMELINE_MONITOR_*`` variables."""
        return cls(
            enabled=not _env_flag("TIMELINE_MONITOR_DISABLED", False),
            strict=_env_flag("TIMELINE_MONITOR_STRICT", __debug__),
        )


settings: Settings = Settings.from_env()


def configure(**overrides: Any) -> dict[str, Any]:
    """Update the global settings in place.

    Args:
        **overrides:
            Field values to set, e.g. ``enabled=False``.

    Returns:
        dict[str, Any]:
            The previous values of the overridden fields, suitable for
            passing back to ``configure`` to restore them.

    Raises:
        TypeError:
            If an unknown setting name is given.
    """
    known = {f.name for f in fields(Settings)}
    unknown = set(overrides) - known
    if unknown:
        raise TypeError(f"unknown setting(s): {', '.join(sorted(unknown))}")

    previous = {name: getattr(settings, name) for name in overrides}
    for name, value in overrides.items():
        setattr(settings, name, bool(value))
    return previous
