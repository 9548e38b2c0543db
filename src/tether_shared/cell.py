from __future__ import annotations

from tether_core.borrow import Ref, RefCell, RefMut
from tether_core.logging import get_logger
from tether_core.logging_tags import CELL
from tether_metrics.counters import DEFAULT_CELL_COUNTERS, LifecycleCounters
from tether_shared.rc import Rc

logger = get_logger(__name__)


class MutableCell:
    """Integer counter with runtime-checked interior mutability.

    Handles only ever hold the cell through Rc; mutation goes through an
    exclusive borrow, so overlapping access fails with AliasingViolation
    instead of corrupting the interior.
    """

    __slots__ = ("_interior",)

    def __init__(self, value: int = 0):
        self._interior: RefCell[int] = RefCell(value)

    @property
    def borrow_state(self) -> str:
        return self._interior.borrow_state

    def borrow(self) -> Ref[int]:
        return self._interior.borrow(context="MutableCell.borrow")

    def borrow_mut(self) -> RefMut[int]:
        return self._interior.borrow_mut(context="MutableCell.borrow_mut")

    def increment(self) -> int:
        with self._interior.borrow_mut(context="MutableCell.increment") as slot:
            slot.value = slot.value + 1
            return slot.value

    def get(self) -> int:
        with self._interior.borrow(context="MutableCell.get") as slot:
            return slot.value

    def replace(self, value: int) -> int:
        return self._interior.replace(value, context="MutableCell.replace")


def create_cell(*, counters: LifecycleCounters | None = None) -> Rc[MutableCell]:
    counters = counters if counters is not None else DEFAULT_CELL_COUNTERS

    def _drop(cell: MutableCell) -> None:
        counters.on_release()
        logger.debug("%s cell dropped", CELL)

    counters.on_construct()
    return Rc(MutableCell(), on_drop=_drop)


def share_cell(handle: Rc[MutableCell]) -> Rc[MutableCell]:
    return handle.clone()


def increment(handle: Rc[MutableCell]) -> int:
    return handle.payload.increment()


def get(handle: Rc[MutableCell]) -> int:
    return handle.payload.get()


__all__ = [
    "MutableCell",
    "create_cell",
    "share_cell",
    "increment",
    "get",
]
