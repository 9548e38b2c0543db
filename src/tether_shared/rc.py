"""Reference-counted shared handles.

The strong count lives in a box shared by every handle. Cloning bumps it;
releasing a handle drops it, and the drop hook runs exactly once when it
reaches zero. Counting is explicit: nothing here depends on when the
garbage collector gets around to a handle.
"""

from __future__ import annotations

from typing import Callable, Generic, Optional, TypeVar

from tether_core.errors import TetherReleasedError

T = TypeVar("T")


class _RcBox(Generic[T]):
    __slots__ = ("payload", "strong", "on_drop")

    def __init__(self, payload: T, on_drop: Optional[Callable[[T], None]]):
        self.payload = payload
        self.strong = 1
        self.on_drop = on_drop


class Rc(Generic[T]):
    """One owning handle to a shared payload."""

    __slots__ = ("_box",)

    def __init__(self, payload: T, *, on_drop: Optional[Callable[[T], None]] = None):
        self._box: Optional[_RcBox[T]] = _RcBox(payload, on_drop)

    @classmethod
    def _from_box(cls, box: _RcBox[T]) -> "Rc[T]":
        handle = cls.__new__(cls)
        handle._box = box
        return handle

    def _require_box(self, context: str) -> _RcBox[T]:
        if self._box is None:
            raise TetherReleasedError("shared handle", context=context)
        return self._box

    @property
    def payload(self) -> T:
        return self._require_box("Rc.payload").payload

    @property
    def strong_count(self) -> int:
        """Handles sharing the payload; 0 for a released or moved-from handle."""
        return 0 if self._box is None else self._box.strong

    @property
    def is_released(self) -> bool:
        return self._box is None

    def __bool__(self) -> bool:
        return self._box is not None

    def clone(self) -> "Rc[T]":
        box = self._require_box("Rc.clone")
        box.strong += 1
        return Rc._from_box(box)

    def take(self) -> "Rc[T]":
        """Move the ownership into a new handle; the count is unchanged."""
        box = self._require_box("Rc.take")
        self._box = None
        return Rc._from_box(box)

    def release(self) -> bool:
        """Drop this handle. Returns True if it was the last one."""
        box = self._box
        if box is None:
            return False
        self._box = None
        box.strong -= 1
        if box.strong > 0:
            return False
        if box.on_drop is not None:
            box.on_drop(box.payload)
        return True

    def ptr_eq(self, other: "Rc") -> bool:
        return self._box is not None and self._box is other._box

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False

    def __copy__(self):
        return self.clone()

    def __repr__(self) -> str:
        if self._box is None:
            return "Rc(<released>)"
        return f"Rc({self._box.payload!r}, strong={self._box.strong})"


class owning:
    """Release every handle in `handles` when the block exits, however it exits."""

    __slots__ = ("handles",)

    def __init__(self, handles):
        self.handles = list(handles)

    def __enter__(self):
        return self.handles

    def __exit__(self, exc_type, exc, tb):
        first_error = None
        for handle in reversed(self.handles):
            try:
                handle.release()
            except Exception as err:
                if first_error is None:
                    first_error = err
        if first_error is not None:
            raise first_error
        return False


__all__ = [
    "Rc",
    "owning",
]
