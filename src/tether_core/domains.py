from __future__ import annotations

from dataclasses import dataclass

import jax


@dataclass(frozen=True)
class LinkId:
    i: int

    def __int__(self) -> int:
        return int(self.i)

    def __index__(self) -> int:
        return int(self.i)


@dataclass(frozen=True)
class HostInt:
    v: int

    def __int__(self) -> int:
        return int(self.v)

    def __index__(self) -> int:
        return int(self.v)


def _host_int(value) -> HostInt:
    if isinstance(value, HostInt):
        return value
    if isinstance(value, bool):
        raise TypeError("expected HostInt, got bool")
    return HostInt(int(jax.device_get(value)))


def _host_int_value(value) -> int:
    return int(_host_int(value))


def _link_id(value) -> LinkId:
    if isinstance(value, LinkId):
        return value
    return LinkId(_host_int_value(value))


def _require_link_id(link: LinkId, label: str) -> LinkId:
    if not isinstance(link, LinkId):
        raise TypeError(f"{label} expected LinkId")
    return link


__all__ = [
    "LinkId",
    "HostInt",
    "_host_int",
    "_host_int_value",
    "_link_id",
    "_require_link_id",
]
