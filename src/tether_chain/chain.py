"""Exclusive ownership chains over a LinkArena.

A ChainHead is the single owner of a head link, and through successor
ownership, of the whole chain. Releasing the head (explicitly or by
leaving its `with` block) frees every link exactly once.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional

import jax.numpy as jnp

from tether_chain.arena import (
    ChainState,
    alloc_chain,
    attach_link,
    free_links,
    init_chain_state,
    live_count,
    tail_of,
    validate_state,
    values_of,
    walk_links,
)
from tether_core.borrow import BorrowFlag, Ref
from tether_core.config import DEFAULT_ARENA_CONFIG, ArenaConfig
from tether_core.domains import LinkId, _host_int_value, _require_link_id
from tether_core.errors import TetherCapacityError, TetherCopyError, TetherReleasedError
from tether_core.logging import get_logger
from tether_core.logging_tags import CHAIN
from tether_metrics.counters import DEFAULT_LINK_COUNTERS, LifecycleCounters

logger = get_logger(__name__)


class LinkArena:
    """Host-side owner of a ChainState."""

    def __init__(
        self,
        cfg: ArenaConfig = DEFAULT_ARENA_CONFIG,
        *,
        counters: LifecycleCounters | None = None,
    ):
        self.cfg = cfg
        self.counters = counters if counters is not None else DEFAULT_LINK_COUNTERS
        self.state: ChainState = init_chain_state(cfg.capacity)
        self._validate = cfg.validate_enabled()

    @property
    def live(self) -> int:
        return live_count(self.state)

    @property
    def oom(self) -> bool:
        return bool(self.state.oom)

    def _after_mutation(self) -> None:
        if self._validate:
            validate_state(self.state)

    def alloc_chain(
        self, values: Iterable[int], *, parent: Optional[LinkId] = None
    ) -> List[LinkId]:
        """Allocate a linked run of links; all or nothing."""
        try:
            self.state, links = alloc_chain(
                self.state, values, cfg=self.cfg, parent=parent
            )
        except TetherCapacityError:
            self.state = self.state._replace(oom=jnp.bool_(True))
            raise
        for _ in links:
            self.counters.on_construct()
        if links:
            self._after_mutation()
        return links

    def alloc(self, value: int) -> LinkId:
        return self.alloc_chain([value])[0]

    def attach(self, parent: LinkId, child: LinkId) -> None:
        self.state = attach_link(self.state, parent, child)
        self._after_mutation()

    def value(self, link: LinkId) -> int:
        _require_link_id(link, "LinkArena.value")
        return self.state.value[int(link)]

    def successor(self, link: LinkId) -> Optional[LinkId]:
        _require_link_id(link, "LinkArena.successor")
        nxt = _host_int_value(self.state.successor[int(link)])
        return LinkId(nxt) if nxt else None

    def is_live(self, link: LinkId) -> bool:
        return _host_int_value(self.state.owner[int(link)]) >= 0

    def walk(self, head: LinkId) -> List[LinkId]:
        return [LinkId(s) for s in walk_links(self.state, head)]

    def values(self, head: LinkId) -> List[int]:
        return values_of(self.state, walk_links(self.state, head))

    def tail(self, head: LinkId) -> LinkId:
        return tail_of(self.state, head)

    def release_chain(self, head: LinkId) -> int:
        slots = walk_links(self.state, head)
        self.state = free_links(self.state, slots)
        for _ in slots:
            self.counters.on_release()
        self._after_mutation()
        logger.debug("%s released %d link(s) from slot %d", CHAIN, len(slots), int(head))
        return len(slots)

    def validate(self) -> None:
        validate_state(self.state)


@dataclass(frozen=True)
class LinkRef:
    """Non-owning view of one link."""

    arena: LinkArena
    link: LinkId

    def _check(self) -> None:
        if not self.arena.is_live(self.link):
            raise TetherReleasedError("link view", context=f"slot {int(self.link)}")

    @property
    def value(self) -> int:
        self._check()
        return self.arena.value(self.link)

    def next(self) -> Optional["LinkRef"]:
        self._check()
        nxt = self.arena.successor(self.link)
        return LinkRef(self.arena, nxt) if nxt is not None else None


class ChainHead:
    """Exclusive owner of a chain of links."""

    __slots__ = ("_arena", "_link", "_tail", "_flag")

    def __init__(self, arena: LinkArena, link: LinkId, tail: Optional[LinkId] = None):
        self._arena = arena
        self._link: Optional[LinkId] = link
        # Cached last link; only this head ever extends the chain.
        self._tail: Optional[LinkId] = tail
        self._flag = BorrowFlag()

    @classmethod
    def new(cls, value: int, *, arena: LinkArena | None = None) -> "ChainHead":
        arena = arena if arena is not None else LinkArena()
        link = arena.alloc(value)
        return cls(arena, link, tail=link)

    @property
    def arena(self) -> LinkArena:
        return self._arena

    @property
    def is_empty(self) -> bool:
        return self._link is None

    def __bool__(self) -> bool:
        return self._link is not None

    def _require_link(self, context: str) -> LinkId:
        if self._link is None:
            raise TetherReleasedError("chain head", context=context)
        return self._link

    def _tail_link(self, link: LinkId) -> LinkId:
        if self._tail is None:
            self._tail = self._arena.tail(link)
        return self._tail

    def _clear(self) -> None:
        self._link = None
        self._tail = None

    @property
    def value(self) -> int:
        return self._arena.value(self._require_link("ChainHead.value"))

    def next(self) -> Optional[LinkRef]:
        nxt = self._arena.successor(self._require_link("ChainHead.next"))
        return LinkRef(self._arena, nxt) if nxt is not None else None

    def borrow(self) -> Ref[LinkRef]:
        link = self._require_link("ChainHead.borrow")
        self._flag.acquire_shared(context="ChainHead.borrow")
        return Ref(self._flag, lambda: LinkRef(self._arena, link), "ChainHead.borrow")

    def count(self) -> int:
        if self._link is None:
            return 0
        with self._flag.shared(context="ChainHead.count"):
            return len(walk_links(self._arena.state, self._link))

    def values(self) -> List[int]:
        if self._link is None:
            return []
        with self._flag.shared(context="ChainHead.values"):
            return self._arena.values(self._link)

    def __iter__(self):
        return iter(self.values())

    def __len__(self) -> int:
        return self.count()

    def append(self, value: int) -> None:
        link = self._require_link("ChainHead.append")
        with self._flag.exclusive(context="ChainHead.append"):
            (child,) = self._arena.alloc_chain([value], parent=self._tail_link(link))
            self._tail = child

    def append_chain(self, other: "ChainHead") -> None:
        """Move `other`'s links onto this chain's tail; `other` ends empty.

        Across arenas the values are copied into this arena first and the
        source is released only once the copy is attached, so a failed
        allocation leaves both chains as they were.
        """
        link = self._require_link("ChainHead.append_chain")
        if other is self:
            raise TetherCopyError("chain head")
        with self._flag.exclusive(context="ChainHead.append_chain"):
            incoming = other._require_link("ChainHead.append_chain source")
            with other._flag.exclusive(context="ChainHead.append_chain source"):
                tail = self._tail_link(link)
                if other._arena is self._arena:
                    new_tail = other._tail_link(incoming)
                    self._arena.attach(tail, incoming)
                else:
                    copied = self._arena.alloc_chain(
                        other._arena.values(incoming), parent=tail
                    )
                    new_tail = copied[-1]
                    other._arena.release_chain(incoming)
                other._clear()
                self._tail = new_tail

    def take(self) -> "ChainHead":
        """Transfer ownership to a new head; this one becomes empty."""
        link = self._require_link("ChainHead.take")
        with self._flag.exclusive(context="ChainHead.take"):
            tail = self._tail
            self._clear()
        return ChainHead(self._arena, link, tail=tail)

    def release(self) -> int:
        """Free every owned link; returns how many were freed."""
        if self._link is None:
            return 0
        with self._flag.exclusive(context="ChainHead.release"):
            link = self._link
            self._clear()
            return self._arena.release_chain(link)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False

    def __copy__(self):
        raise TetherCopyError("chain head")

    def __deepcopy__(self, memo):
        raise TetherCopyError("chain head")

    def __repr__(self) -> str:
        if self._link is None:
            return "ChainHead(<empty>)"
        return f"ChainHead(slot={int(self._link)}, len={self.count()})"


def create_chain(
    values: Iterable[int], *, arena: LinkArena | None = None
) -> Optional[ChainHead]:
    """Build a chain in order; None for an empty sequence.

    All links are allocated in one batch, so a build that fails leaves
    nothing behind in the arena.
    """
    values = list(values)
    if not values:
        return None
    arena = arena if arena is not None else LinkArena()
    links = arena.alloc_chain(values)
    logger.debug("%s created chain of %d link(s)", CHAIN, len(links))
    return ChainHead(arena, links[0], tail=links[-1])


def append(head: ChainHead, value: int) -> None:
    head.append(value)


def count(head: Optional[ChainHead]) -> int:
    if head is None:
        return 0
    return head.count()


def chain_values(head: Optional[ChainHead]) -> List[int]:
    if head is None:
        return []
    return head.values()


__all__ = [
    "LinkArena",
    "LinkRef",
    "ChainHead",
    "create_chain",
    "append",
    "count",
    "chain_values",
]
