"""Link arena state + host-side allocator.

The arena is a NamedTuple of parallel arrays; every update returns a new
state via `_replace`. Slot 0 is the null link and is never allocated.

  value[i]      payload of link i (host object array, any Python int)
  successor[i]  slot owned by link i (0 = none)
  owner[i]      unique predecessor of link i; OWNER_ROOT when an external
                head handle owns it, OWNER_FREE when the slot is free
  free_stack    LIFO of free slots, valid below free_top
"""

from __future__ import annotations

import operator
from typing import Iterable, List, NamedTuple, Optional, Tuple

import jax
import jax.numpy as jnp
import numpy as np

from tether_core.config import DEFAULT_ARENA_CONFIG, ArenaConfig, GrowthMode
from tether_core.domains import LinkId, _host_int_value, _link_id, _require_link_id
from tether_core.errors import TetherArenaCorruptError, TetherCapacityError

LINK_NULL = 0
OWNER_ROOT = 0
OWNER_FREE = -1


class ChainState(NamedTuple):
    value: np.ndarray
    successor: jnp.ndarray
    owner: jnp.ndarray
    free_stack: jnp.ndarray
    free_top: jnp.ndarray
    oom: jnp.ndarray


def _free_slots_desc(start: int, stop: int) -> jnp.ndarray:
    # Descending so that pops hand out the lowest slot first.
    return jnp.arange(stop - 1, start - 1, -1, dtype=jnp.int32).astype(jnp.uint32)


def init_chain_state(capacity: int = DEFAULT_ARENA_CONFIG.capacity) -> ChainState:
    cap = int(capacity)
    owner = jnp.full((cap,), OWNER_FREE, dtype=jnp.int32)
    owner = owner.at[LINK_NULL].set(OWNER_ROOT)
    return ChainState(
        value=np.zeros((cap,), dtype=object),
        successor=jnp.zeros((cap,), dtype=jnp.int32),
        owner=owner,
        free_stack=_free_slots_desc(1, cap),
        free_top=jnp.uint32(cap - 1),
        oom=jnp.bool_(False),
    )


def capacity_of(state: ChainState) -> int:
    return int(state.value.shape[0])


def free_count(state: ChainState) -> int:
    return _host_int_value(state.free_top)


def live_count(state: ChainState) -> int:
    return capacity_of(state) - 1 - free_count(state)


def grow_state(state: ChainState) -> ChainState:
    """Double the arena; new slots go under the existing free entries."""
    cap = capacity_of(state)
    new_cap = cap * 2
    top = free_count(state)
    extra_owner = jnp.full((cap,), OWNER_FREE, dtype=jnp.int32)
    fresh = _free_slots_desc(cap, new_cap)
    stack = jnp.concatenate([fresh, state.free_stack[:top]], axis=0)
    pad = jnp.zeros((new_cap - 1 - stack.shape[0],), dtype=jnp.uint32)
    return state._replace(
        value=np.concatenate([state.value, np.zeros((cap,), dtype=object)]),
        successor=jnp.concatenate(
            [state.successor, jnp.zeros((cap,), dtype=jnp.int32)]
        ),
        owner=jnp.concatenate([state.owner, extra_owner]),
        free_stack=jnp.concatenate([stack, pad], axis=0),
        free_top=jnp.uint32(top + cap),
        oom=jnp.bool_(False),
    )


def alloc_chain(
    state: ChainState,
    values: Iterable[int],
    *,
    cfg: ArenaConfig = DEFAULT_ARENA_CONFIG,
    parent: Optional[LinkId] = None,
) -> Tuple[ChainState, List[LinkId]]:
    """Pop one slot per value and link the run in order.

    The first slot is owned by `parent` (the root when None), every later
    slot by its predecessor. One scatter per array; if the run does not fit
    a fixed arena, or a value is not an integer, the state is untouched.
    """
    payloads = [operator.index(v) for v in values]
    n = len(payloads)
    if n == 0:
        return state, []
    if parent is not None:
        _require_link_id(parent, "alloc_chain parent")
        p = int(parent)
        if _host_int_value(state.owner[p]) == OWNER_FREE:
            raise TetherArenaCorruptError("parent is a free slot", slot=p)
        if _host_int_value(state.successor[p]) != LINK_NULL:
            raise TetherArenaCorruptError("parent already owns a successor", slot=p)
    while free_count(state) < n:
        if cfg.growth == GrowthMode.FIXED:
            raise TetherCapacityError(capacity=capacity_of(state), requested=n)
        state = grow_state(state)
    top = free_count(state)
    popped = np.asarray(jax.device_get(state.free_stack[top - n:top]))
    slots = [int(s) for s in popped[::-1]]
    idx = jnp.asarray(slots, dtype=jnp.int32)
    successor = state.successor.at[idx].set(
        jnp.asarray(slots[1:] + [LINK_NULL], dtype=jnp.int32)
    )
    head_owner = OWNER_ROOT
    if parent is not None:
        successor = successor.at[p].set(slots[0])
        head_owner = p
    owner = state.owner.at[idx].set(
        jnp.asarray([head_owner] + slots[:-1], dtype=jnp.int32)
    )
    value = state.value.copy()
    for slot, payload in zip(slots, payloads):
        value[slot] = payload
    state = state._replace(
        value=value,
        successor=successor,
        owner=owner,
        free_top=jnp.uint32(top - n),
    )
    return state, [LinkId(s) for s in slots]


def alloc_link(
    state: ChainState, value: int, *, cfg: ArenaConfig = DEFAULT_ARENA_CONFIG
) -> Tuple[ChainState, LinkId]:
    """Pop one free slot, store `value`, and mark it owned by the root."""
    state, links = alloc_chain(state, [value], cfg=cfg)
    return state, links[0]


def attach_link(state: ChainState, parent: LinkId, child: LinkId) -> ChainState:
    """Hand ownership of `child` (currently a root) to `parent`."""
    _require_link_id(parent, "attach_link parent")
    _require_link_id(child, "attach_link child")
    p, c = int(parent), int(child)
    if _host_int_value(state.successor[p]) != LINK_NULL:
        raise TetherArenaCorruptError("parent already owns a successor", slot=p)
    if _host_int_value(state.owner[c]) != OWNER_ROOT:
        raise TetherArenaCorruptError("child is not a root link", slot=c)
    return state._replace(
        successor=state.successor.at[p].set(c),
        owner=state.owner.at[c].set(p),
    )


def _host_arrays(state: ChainState):
    successor = np.asarray(jax.device_get(state.successor))
    owner = np.asarray(jax.device_get(state.owner))
    return successor, owner


def walk_links(state: ChainState, head: LinkId) -> List[int]:
    """Slots reachable from `head`, head first."""
    _require_link_id(head, "walk_links head")
    successor, owner = _host_arrays(state)
    limit = successor.shape[0]
    slots = []
    slot = int(head)
    while slot != LINK_NULL:
        if owner[slot] == OWNER_FREE:
            raise TetherArenaCorruptError("walk reached a free slot", slot=slot)
        slots.append(slot)
        if len(slots) > limit:
            raise TetherArenaCorruptError("successor cycle detected", slot=slot)
        slot = int(successor[slot])
    return slots


def tail_of(state: ChainState, head: LinkId) -> LinkId:
    return _link_id(walk_links(state, head)[-1])


def values_of(state: ChainState, slots: List[int]) -> List[int]:
    return [state.value[s] for s in slots]


def free_links(state: ChainState, slots: List[int]) -> ChainState:
    """Return `slots` to the free stack (batched, no recursion)."""
    if not slots:
        return state
    idx = jnp.asarray(slots, dtype=jnp.int32)
    top = free_count(state)
    count = len(slots)
    if top + count > int(state.free_stack.shape[0]):
        raise TetherArenaCorruptError("free stack overflow")
    free_stack = state.free_stack.at[top:top + count].set(
        jnp.asarray(slots[::-1], dtype=jnp.uint32)
    )
    value = state.value.copy()
    value[np.asarray(slots, dtype=np.intp)] = 0
    return state._replace(
        value=value,
        successor=state.successor.at[idx].set(LINK_NULL),
        owner=state.owner.at[idx].set(OWNER_FREE),
        free_stack=free_stack,
        free_top=jnp.uint32(top + count),
    )


def validate_state(state: ChainState) -> None:
    """Check the single-owner invariant across the whole arena in one pass."""
    successor, owner = _host_arrays(state)
    cap = successor.shape[0]
    if successor[LINK_NULL] != LINK_NULL:
        raise TetherArenaCorruptError("null link owns a successor", slot=LINK_NULL)
    free = owner == OWNER_FREE
    bad = np.flatnonzero(free & (successor != LINK_NULL))
    if bad.size:
        raise TetherArenaCorruptError("free slot owns a successor", slot=int(bad[0]))
    linked = ~free & (successor != LINK_NULL)
    parents = np.flatnonzero(linked)
    children = successor[parents]
    bad = parents[owner[children] != parents]
    if bad.size:
        raise TetherArenaCorruptError("successor/owner mismatch", slot=int(bad[0]))
    claimed = np.bincount(children, minlength=cap)
    if np.any(claimed > 1):
        raise TetherArenaCorruptError(
            "link owned twice", slot=int(np.argmax(claimed > 1))
        )
    live = int(np.count_nonzero(~free[1:]))
    if live_count(state) != live:
        raise TetherArenaCorruptError("free stack disagrees with owner table")
    # Roots are the only entry points; a cycle among owned links is never reached.
    seen = np.zeros((cap,), dtype=bool)
    reached = 0
    for root in np.flatnonzero(owner[1:] == OWNER_ROOT) + 1:
        slot = int(root)
        while slot != LINK_NULL:
            if seen[slot]:
                raise TetherArenaCorruptError("link reached twice", slot=slot)
            seen[slot] = True
            reached += 1
            slot = int(successor[slot])
    if reached != live:
        raise TetherArenaCorruptError("live links unreachable from any head")


__all__ = [
    "LINK_NULL",
    "OWNER_ROOT",
    "OWNER_FREE",
    "ChainState",
    "init_chain_state",
    "capacity_of",
    "free_count",
    "live_count",
    "grow_state",
    "alloc_chain",
    "alloc_link",
    "attach_link",
    "walk_links",
    "tail_of",
    "values_of",
    "free_links",
    "validate_state",
]
