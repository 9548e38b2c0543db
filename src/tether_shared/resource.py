from __future__ import annotations

from dataclasses import dataclass
from typing import List

from tether_core.logging import get_logger
from tether_core.logging_tags import SHARED
from tether_metrics.counters import DEFAULT_RESOURCE_COUNTERS, LifecycleCounters
from tether_shared.rc import Rc

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class SharedResource:
    id: int


def _resource_counters(counters: LifecycleCounters | None) -> LifecycleCounters:
    return counters if counters is not None else DEFAULT_RESOURCE_COUNTERS


def create_resource(id: int, *, counters: LifecycleCounters | None = None) -> Rc[SharedResource]:
    """Allocate one resource and return its first handle."""
    counters = _resource_counters(counters)

    def _drop(resource: SharedResource) -> None:
        counters.on_release()
        logger.debug("%s resource %d destroyed", SHARED, resource.id)

    counters.on_construct()
    logger.debug("%s resource %d created", SHARED, id)
    return Rc(SharedResource(id), on_drop=_drop)


def share_resource(handle: Rc[SharedResource], copies: int) -> List[Rc[SharedResource]]:
    """Return `copies` new handles to the resource behind `handle`."""
    if copies < 0:
        raise ValueError(f"copies must be >= 0, got {copies}")
    return [handle.clone() for _ in range(copies)]


def instance_count(counters: LifecycleCounters | None = None) -> int:
    return _resource_counters(counters).live.load()


def reset_count(counters: LifecycleCounters | None = None, *, force: bool = False) -> None:
    """Zero the resource counters; test setup only, see LifecycleCounters.reset."""
    _resource_counters(counters).reset(force=force)


__all__ = [
    "SharedResource",
    "create_resource",
    "share_resource",
    "instance_count",
    "reset_count",
]
