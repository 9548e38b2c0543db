"""Process-wide diagnostic counters.

Each component takes an injected LifecycleCounters bundle and falls back to
its module default, so tests can run against private bundles in any order.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from tether_core.errors import TetherResetError
from tether_core.logging import get_logger
from tether_core.logging_tags import METRICS

logger = get_logger(__name__)


class AtomicCounter:
    __slots__ = ("_value", "_lock")

    def __init__(self, value: int = 0):
        self._value = int(value)
        self._lock = threading.Lock()

    def add(self, n: int = 1) -> int:
        with self._lock:
            self._value += n
            return self._value

    def sub(self, n: int = 1) -> int:
        with self._lock:
            self._value -= n
            return self._value

    def load(self) -> int:
        with self._lock:
            return self._value

    def store(self, value: int) -> None:
        with self._lock:
            self._value = int(value)

    def __int__(self) -> int:
        return self.load()

    def __repr__(self) -> str:
        return f"AtomicCounter({self.load()})"


@dataclass(frozen=True, slots=True)
class LifecycleCounters:
    """Diagnostic bundle: live instances, constructions and releases."""

    name: str = "lifecycle"
    live: AtomicCounter = field(default_factory=AtomicCounter)
    constructed: AtomicCounter = field(default_factory=AtomicCounter)
    released: AtomicCounter = field(default_factory=AtomicCounter)

    def on_construct(self) -> None:
        self.constructed.add()
        self.live.add()

    def on_release(self) -> None:
        self.released.add()
        self.live.sub()

    def reset(self, *, force: bool = False) -> None:
        """Zero every counter.

        Only meant for sequential test setup. Resetting while instances are
        live would let their later releases drive `live` negative, so that
        is refused unless force=True.
        """
        live = self.live.load()
        if live and not force:
            raise TetherResetError(live=live, context=self.name)
        if live:
            logger.warning("%s forced reset of %s with %d live", METRICS, self.name, live)
        self.live.store(0)
        self.constructed.store(0)
        self.released.store(0)

    def snapshot(self) -> dict:
        return {
            "live": self.live.load(),
            "constructed": self.constructed.load(),
            "released": self.released.load(),
        }


DEFAULT_RESOURCE_COUNTERS = LifecycleCounters("resources")
DEFAULT_LINK_COUNTERS = LifecycleCounters("links")
DEFAULT_GUARD_COUNTERS = LifecycleCounters("guards")
DEFAULT_CELL_COUNTERS = LifecycleCounters("cells")
DEFAULT_BUFFER_COUNTERS = LifecycleCounters("buffers")


def default_counters() -> dict:
    return {
        c.name: c
        for c in (
            DEFAULT_RESOURCE_COUNTERS,
            DEFAULT_LINK_COUNTERS,
            DEFAULT_GUARD_COUNTERS,
            DEFAULT_CELL_COUNTERS,
            DEFAULT_BUFFER_COUNTERS,
        )
    }


def counters_snapshot() -> dict:
    return {name: c.snapshot() for name, c in default_counters().items()}


__all__ = [
    "AtomicCounter",
    "LifecycleCounters",
    "DEFAULT_RESOURCE_COUNTERS",
    "DEFAULT_LINK_COUNTERS",
    "DEFAULT_GUARD_COUNTERS",
    "DEFAULT_CELL_COUNTERS",
    "DEFAULT_BUFFER_COUNTERS",
    "default_counters",
    "counters_snapshot",
]
