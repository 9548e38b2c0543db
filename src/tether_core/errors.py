from __future__ import annotations

from dataclasses import dataclass


@dataclass(eq=False)
class AliasingViolation(RuntimeError):
    """Conflicting borrow requested while another access is outstanding."""

    requested: str
    outstanding: str
    context: str | None = None

    def __str__(self) -> str:
        where = f" in {self.context}" if self.context else ""
        return (
            f"aliasing violation{where}: {self.requested} access requested "
            f"while {self.outstanding} access is outstanding"
        )


@dataclass(eq=False)
class TetherReleasedError(RuntimeError):
    what: str
    context: str | None = None

    def __str__(self) -> str:
        where = f" ({self.context})" if self.context else ""
        return f"{self.what} used after release or move{where}"


@dataclass(eq=False)
class TetherCapacityError(ValueError):
    capacity: int
    requested: int = 1

    def __str__(self) -> str:
        return (
            f"arena capacity exceeded: requested {self.requested} "
            f"slot(s) with capacity {self.capacity}"
        )


@dataclass(eq=False)
class TetherArenaCorruptError(RuntimeError):
    message: str
    slot: int | None = None

    def __str__(self) -> str:
        if self.slot is None:
            return self.message
        return f"{self.message} (slot {self.slot})"


@dataclass(eq=False)
class TetherConfigError(ValueError):
    message: str
    context: str | None = None

    def __str__(self) -> str:
        return self.message


@dataclass(eq=False)
class TetherGrowthModeError(ValueError):
    mode: object
    allowed: tuple[str, ...] = ("grow", "fixed")
    context: str | None = None

    def __str__(self) -> str:
        return f"unknown growth mode={self.mode!r}"


@dataclass(eq=False)
class TetherResetError(RuntimeError):
    live: int
    context: str | None = None

    def __str__(self) -> str:
        where = f"{self.context} " if self.context else ""
        return f"{where}reset refused: {self.live} instance(s) still live"


@dataclass(eq=False)
class TetherCopyError(TypeError):
    what: str

    def __str__(self) -> str:
        return f"{self.what} is exclusively owned; transfer it with take()"


__all__ = [
    "AliasingViolation",
    "TetherReleasedError",
    "TetherCapacityError",
    "TetherArenaCorruptError",
    "TetherConfigError",
    "TetherGrowthModeError",
    "TetherResetError",
    "TetherCopyError",
]
