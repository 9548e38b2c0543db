"""Move-by-default buffers.

A LargeBuffer owns an int32 array. Handing it to another owner (take(),
process_buffer) moves the array without allocating; only construction and
an explicit clone() count as allocations.
"""

from __future__ import annotations

from typing import List, Optional

import jax
import jax.numpy as jnp
import numpy as np

from tether_core.errors import TetherReleasedError
from tether_core.logging import get_logger
from tether_core.logging_tags import BUFFER
from tether_metrics.counters import DEFAULT_BUFFER_COUNTERS, LifecycleCounters

logger = get_logger(__name__)


class LargeBuffer:
    __slots__ = ("_data", "_counters")

    def __init__(self, size: int, *, counters: LifecycleCounters | None = None):
        if size < 0:
            raise ValueError(f"buffer size must be >= 0, got {size}")
        self._counters = counters if counters is not None else DEFAULT_BUFFER_COUNTERS
        self._data: Optional[jnp.ndarray] = jnp.zeros((int(size),), dtype=jnp.int32)
        self._counters.on_construct()
        logger.debug("%s allocated %d element(s)", BUFFER, size)

    @classmethod
    def _adopt(cls, data: jnp.ndarray, counters: LifecycleCounters) -> "LargeBuffer":
        buf = cls.__new__(cls)
        buf._data = data
        buf._counters = counters
        return buf

    def _require_data(self, context: str) -> jnp.ndarray:
        if self._data is None:
            raise TetherReleasedError("buffer", context=context)
        return self._data

    @property
    def is_empty(self) -> bool:
        return self._data is None

    def __bool__(self) -> bool:
        return self._data is not None

    @property
    def size(self) -> int:
        return int(self._require_data("LargeBuffer.size").shape[0])

    def fill(self, value: int) -> None:
        data = self._require_data("LargeBuffer.fill")
        self._data = jnp.full(data.shape, value, dtype=jnp.int32)

    def values(self) -> List[int]:
        data = self._require_data("LargeBuffer.values")
        return np.asarray(jax.device_get(data)).tolist()

    def clone(self) -> "LargeBuffer":
        """Deep copy; counts as a new allocation."""
        data = self._require_data("LargeBuffer.clone")
        self._counters.on_construct()
        return LargeBuffer._adopt(jnp.array(data, copy=True), self._counters)

    def take(self) -> "LargeBuffer":
        data = self._require_data("LargeBuffer.take")
        self._data = None
        return LargeBuffer._adopt(data, self._counters)

    def release(self) -> bool:
        if self._data is None:
            return False
        self._data = None
        self._counters.on_release()
        return True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False

    def __copy__(self):
        return self.clone()

    def __repr__(self) -> str:
        if self._data is None:
            return "LargeBuffer(<moved>)"
        return f"LargeBuffer(size={self.size})"


def create_buffer(size: int, *, counters: LifecycleCounters | None = None) -> LargeBuffer:
    buf = LargeBuffer(size, counters=counters)
    buf.fill(42)
    return buf


def process_buffer(buf: LargeBuffer) -> LargeBuffer:
    """Take ownership of `buf`, refill it, and hand it back as a new owner."""
    owned = buf.take()
    owned.fill(100)
    return owned


def alloc_count(counters: LifecycleCounters | None = None) -> int:
    counters = counters if counters is not None else DEFAULT_BUFFER_COUNTERS
    return counters.constructed.load()


def dealloc_count(counters: LifecycleCounters | None = None) -> int:
    counters = counters if counters is not None else DEFAULT_BUFFER_COUNTERS
    return counters.released.load()


def reset_counts(counters: LifecycleCounters | None = None, *, force: bool = False) -> None:
    counters = counters if counters is not None else DEFAULT_BUFFER_COUNTERS
    counters.reset(force=force)


__all__ = [
    "LargeBuffer",
    "create_buffer",
    "process_buffer",
    "alloc_count",
    "dealloc_count",
    "reset_counts",
]
