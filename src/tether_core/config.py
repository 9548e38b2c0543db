from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import Mapping

from tether_core.errors import TetherConfigError, TetherGrowthModeError

_TRUTHY = ("1", "true", "yes", "on")


def _env_flag(name: str, environ: Mapping[str, str] | None = None) -> bool:
    env = os.environ if environ is None else environ
    return env.get(name, "").strip().lower() in _TRUTHY


class GrowthMode(str, Enum):
    GROW = "grow"
    FIXED = "fixed"


def coerce_growth_mode(
    mode: GrowthMode | str | None, *, context: str | None = None
) -> GrowthMode:
    if mode is None:
        return GrowthMode.GROW
    if isinstance(mode, GrowthMode):
        return mode
    if isinstance(mode, str):
        if mode == GrowthMode.GROW.value:
            return GrowthMode.GROW
        if mode == GrowthMode.FIXED.value:
            return GrowthMode.FIXED
    raise TetherGrowthModeError(
        mode=mode,
        allowed=(GrowthMode.GROW.value, GrowthMode.FIXED.value),
        context=context,
    )


MIN_ARENA_CAPACITY = 2


@dataclass(frozen=True, slots=True)
class ArenaConfig:
    """Link arena DI bundle.

    capacity counts slot 0 (the null link), so a capacity of N holds N - 1
    live links before growing.
    growth:
      - "grow": double the arena when the free stack runs dry
      - "fixed": flag oom and raise TetherCapacityError
    validate: run the ownership scan after every mutation; None defers to
      the TETHER_VALIDATE_ARENA flag.
    """

    capacity: int = 16
    growth: GrowthMode | str = GrowthMode.GROW
    validate: bool | None = None

    def __post_init__(self):
        if isinstance(self.capacity, bool) or not isinstance(self.capacity, int):
            raise TetherConfigError(
                f"arena capacity must be an integer, got {self.capacity!r}",
                context="arena_config",
            )
        if self.capacity < MIN_ARENA_CAPACITY:
            raise TetherConfigError(
                f"arena capacity must be >= {MIN_ARENA_CAPACITY}, got {self.capacity}",
                context="arena_config",
            )
        object.__setattr__(
            self, "growth", coerce_growth_mode(self.growth, context="arena_config")
        )

    def validate_enabled(self) -> bool:
        if self.validate is None:
            return _env_flag("TETHER_VALIDATE_ARENA")
        return bool(self.validate)


DEFAULT_ARENA_CONFIG = ArenaConfig()


def arena_config_from_env(environ: Mapping[str, str] | None = None) -> ArenaConfig:
    """Build an ArenaConfig from TETHER_ARENA_CAPACITY / TETHER_ARENA_GROWTH."""
    env = os.environ if environ is None else environ
    capacity = DEFAULT_ARENA_CONFIG.capacity
    value = env.get("TETHER_ARENA_CAPACITY", "").strip()
    if value:
        if not value.isdigit():
            raise TetherConfigError(
                "TETHER_ARENA_CAPACITY must be an integer",
                context="arena_config_from_env",
            )
        capacity = int(value)
    growth = env.get("TETHER_ARENA_GROWTH", "").strip().lower() or None
    return ArenaConfig(capacity=capacity, growth=coerce_growth_mode(growth))


def log_level_from_env(
    default: str = "INFO", environ: Mapping[str, str] | None = None
) -> str:
    env = os.environ if environ is None else environ
    value = env.get("TETHER_LOG_LEVEL", "").strip().upper()
    return value or default


__all__ = [
    "GrowthMode",
    "coerce_growth_mode",
    "MIN_ARENA_CAPACITY",
    "ArenaConfig",
    "DEFAULT_ARENA_CONFIG",
    "arena_config_from_env",
    "log_level_from_env",
    "_env_flag",
]
