"""Runtime borrow checking.

A BorrowFlag tracks outstanding accesses to one value: any number of
shared borrows, or a single exclusive borrow. Conflicting requests raise
AliasingViolation at the point of the request; nothing ever waits.
"""

from __future__ import annotations

from typing import Callable, Generic, TypeVar

from tether_core.errors import AliasingViolation, TetherReleasedError

T = TypeVar("T")

SHARED = "shared"
EXCLUSIVE = "exclusive"

_UNUSED = 0
_WRITING = -1


class BorrowFlag:
    __slots__ = ("_state",)

    def __init__(self):
        self._state = _UNUSED

    @property
    def readers(self) -> int:
        return self._state if self._state > 0 else 0

    @property
    def is_writing(self) -> bool:
        return self._state == _WRITING

    @property
    def is_unused(self) -> bool:
        return self._state == _UNUSED

    def state(self) -> str:
        if self._state == _WRITING:
            return EXCLUSIVE
        if self._state > 0:
            return SHARED
        return "unused"

    def acquire_shared(self, *, context: str | None = None) -> None:
        if self._state == _WRITING:
            raise AliasingViolation(
                requested=SHARED, outstanding=EXCLUSIVE, context=context
            )
        self._state += 1

    def acquire_exclusive(self, *, context: str | None = None) -> None:
        if self._state != _UNUSED:
            raise AliasingViolation(
                requested=EXCLUSIVE, outstanding=self.state(), context=context
            )
        self._state = _WRITING

    def release_shared(self) -> None:
        if self._state <= 0:
            raise RuntimeError("release_shared without an outstanding shared borrow")
        self._state -= 1

    def release_exclusive(self) -> None:
        if self._state != _WRITING:
            raise RuntimeError("release_exclusive without an outstanding exclusive borrow")
        self._state = _UNUSED

    def shared(self, *, context: str | None = None) -> "BorrowToken":
        self.acquire_shared(context=context)
        return BorrowToken(self, SHARED, context)

    def exclusive(self, *, context: str | None = None) -> "BorrowToken":
        self.acquire_exclusive(context=context)
        return BorrowToken(self, EXCLUSIVE, context)


class BorrowToken:
    """One outstanding borrow; released on context exit or release()."""

    __slots__ = ("_flag", "kind", "context")

    def __init__(self, flag: BorrowFlag, kind: str, context: str | None = None):
        self._flag = flag
        self.kind = kind
        self.context = context

    @property
    def held(self) -> bool:
        return self._flag is not None

    def release(self) -> bool:
        flag = self._flag
        if flag is None:
            return False
        self._flag = None
        if self.kind == EXCLUSIVE:
            flag.release_exclusive()
        else:
            flag.release_shared()
        return True

    def _require_held(self) -> None:
        if self._flag is None:
            raise TetherReleasedError(f"{self.kind} borrow", context=self.context)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False


class Ref(BorrowToken, Generic[T]):
    __slots__ = ("_get",)

    def __init__(self, flag: BorrowFlag, get: Callable[[], T], context: str | None = None):
        super().__init__(flag, SHARED, context)
        self._get = get

    @property
    def value(self) -> T:
        self._require_held()
        return self._get()


class RefMut(BorrowToken, Generic[T]):
    __slots__ = ("_get", "_set")

    def __init__(
        self,
        flag: BorrowFlag,
        get: Callable[[], T],
        set: Callable[[T], None],
        context: str | None = None,
    ):
        super().__init__(flag, EXCLUSIVE, context)
        self._get = get
        self._set = set

    @property
    def value(self) -> T:
        self._require_held()
        return self._get()

    @value.setter
    def value(self, new: T) -> None:
        self._require_held()
        self._set(new)


class RefCell(Generic[T]):
    """A value behind a BorrowFlag."""

    __slots__ = ("_value", "_flag")

    def __init__(self, value: T):
        self._value = value
        self._flag = BorrowFlag()

    @property
    def borrow_state(self) -> str:
        return self._flag.state()

    def _get(self) -> T:
        return self._value

    def _set(self, value: T) -> None:
        self._value = value

    def borrow(self, *, context: str | None = None) -> Ref[T]:
        self._flag.acquire_shared(context=context)
        return Ref(self._flag, self._get, context)

    def borrow_mut(self, *, context: str | None = None) -> RefMut[T]:
        self._flag.acquire_exclusive(context=context)
        return RefMut(self._flag, self._get, self._set, context)

    def replace(self, value: T, *, context: str | None = None) -> T:
        with self.borrow_mut(context=context) as slot:
            old = slot.value
            slot.value = value
        return old


__all__ = [
    "SHARED",
    "EXCLUSIVE",
    "BorrowFlag",
    "BorrowToken",
    "Ref",
    "RefMut",
    "RefCell",
]
