"""Scoped resource guards.

Stands in for an OS handle: opening is simulated, and the only observable
state is whether the guard is still active. Leaving a `with` block closes
the guard on every exit path, and close() is safe to repeat.
"""

from __future__ import annotations

from tether_core.errors import TetherCopyError
from tether_core.logging import get_logger
from tether_core.logging_tags import SCOPE
from tether_metrics.counters import DEFAULT_GUARD_COUNTERS, LifecycleCounters

logger = get_logger(__name__)


class ScopedGuard:
    __slots__ = ("_label", "_active", "_counters")

    def __init__(self, label: str, *, counters: LifecycleCounters | None = None):
        self._label = label
        self._counters = counters if counters is not None else DEFAULT_GUARD_COUNTERS
        self._active = True
        self._counters.on_construct()
        logger.debug("%s opened %s", SCOPE, label)

    @property
    def label(self) -> str:
        return self._label

    @property
    def is_active(self) -> bool:
        return self._active

    def close(self) -> bool:
        """Deactivate the guard. Returns False if it was already inactive."""
        if not self._active:
            return False
        self._active = False
        self._counters.on_release()
        logger.debug("%s closed %s", SCOPE, self._label)
        return True

    def take(self) -> "ScopedGuard":
        """Move the open resource into a new guard; this one goes inactive."""
        moved = ScopedGuard.__new__(ScopedGuard)
        moved._label = self._label
        moved._counters = self._counters
        moved._active = self._active
        self._active = False
        return moved

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def __copy__(self):
        raise TetherCopyError("scoped guard")

    def __deepcopy__(self, memo):
        raise TetherCopyError("scoped guard")

    def __repr__(self) -> str:
        state = "active" if self._active else "closed"
        return f"ScopedGuard({self._label!r}, {state})"


def open_guard(label: str, *, counters: LifecycleCounters | None = None) -> ScopedGuard:
    return ScopedGuard(label, counters=counters)


__all__ = [
    "ScopedGuard",
    "open_guard",
]
