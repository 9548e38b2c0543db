import copy

import pytest

import tether as tt

pytestmark = pytest.mark.chain


def _walk_values(head):
    out = [head.value]
    node = head.next()
    while node is not None:
        out.append(node.value)
        node = node.next()
    return out


def test_create_chain_empty_is_none(arena):
    assert tt.create_chain([], arena=arena) is None
    assert tt.count(None) == 0
    assert tt.chain_values(None) == []
    assert arena.live == 0


def test_create_chain_single(arena):
    head = tt.create_chain([42], arena=arena)
    assert head.value == 42
    assert head.next() is None
    assert tt.count(head) == 1
    head.release()


def test_create_chain_preserves_order(arena):
    values = [1, 2, 3, 4, 5]
    head = tt.create_chain(values, arena=arena)
    assert tt.count(head) == len(values)
    assert tt.chain_values(head) == values
    assert _walk_values(head) == values
    assert head.next().value == 2
    assert head.next().next().value == 3
    head.release()


def test_count_ten_links(arena):
    head = tt.create_chain(range(1, 11), arena=arena)
    assert tt.count(head) == 10
    assert len(head) == 10
    assert list(head) == list(range(1, 11))
    head.release()


def test_append_walks_to_tail(arena):
    head = tt.create_chain([1], arena=arena)
    tt.append(head, 2)
    tt.append(head, 3)
    assert head.values() == [1, 2, 3]
    assert head.next().next().next() is None
    head.release()


def test_new_head_from_value(arena):
    with tt.ChainHead.new(7, arena=arena) as head:
        assert head.value == 7
        assert head.next() is None
    assert arena.live == 0


def test_take_transfers_ownership(arena):
    head = tt.create_chain([1, 2, 3], arena=arena)
    moved = head.take()
    assert not head
    assert head.is_empty
    assert tt.count(head) == 0
    assert moved.value == 1
    assert tt.count(moved) == 3
    with pytest.raises(tt.TetherReleasedError):
        _ = head.value
    with pytest.raises(tt.TetherReleasedError):
        head.append(4)
    moved.release()


def test_release_frees_every_link_once(arena, counters):
    head = tt.create_chain([1, 2, 3, 4, 5], arena=arena)
    assert counters.constructed.load() == 5
    assert counters.live.load() == 5
    assert head.release() == 5
    assert counters.released.load() == 5
    assert counters.live.load() == 0
    assert arena.live == 0
    assert head.release() == 0
    assert counters.released.load() == 5


def test_scope_exit_releases_on_exception(arena, counters):
    with pytest.raises(RuntimeError):
        with tt.create_chain([1, 2, 3], arena=arena):
            raise RuntimeError("boom")
    assert arena.live == 0
    assert counters.snapshot() == {"live": 0, "constructed": 3, "released": 3}


def test_moved_from_head_release_is_noop(arena, counters):
    with tt.create_chain([1, 2], arena=arena) as head:
        moved = head.take()
    assert counters.released.load() == 0
    assert arena.live == 2
    moved.release()
    assert counters.released.load() == 2


def test_append_while_borrowed_is_rejected(arena):
    head = tt.create_chain([1, 2], arena=arena)
    with head.borrow() as ref:
        assert ref.value.value == 1
        assert tt.count(head) == 2
        with pytest.raises(tt.AliasingViolation):
            tt.append(head, 3)
        with pytest.raises(tt.AliasingViolation):
            head.take()
    assert head.values() == [1, 2]
    tt.append(head, 3)
    assert head.values() == [1, 2, 3]
    head.release()


def test_arena_grows_past_capacity(arena):
    assert int(arena.state.value.shape[0]) == 4
    head = tt.create_chain(range(10), arena=arena)
    assert int(arena.state.value.shape[0]) == 16
    assert head.values() == list(range(10))
    assert arena.live == 10
    arena.validate()
    head.release()
    assert arena.live == 0


def test_fixed_arena_raises_when_full(counters):
    cfg = tt.ArenaConfig(capacity=4, growth="fixed", validate=True)
    arena = tt.LinkArena(cfg, counters=counters)
    head = tt.create_chain([1, 2, 3], arena=arena)
    with pytest.raises(tt.TetherCapacityError):
        tt.append(head, 4)
    assert arena.oom
    assert head.values() == [1, 2, 3]
    head.release()


def test_released_slots_are_reused(arena):
    first = tt.create_chain([1, 2, 3], arena=arena)
    first.release()
    second = tt.create_chain([4, 5, 6], arena=arena)
    assert int(arena.state.value.shape[0]) == 4
    assert second.values() == [4, 5, 6]
    second.release()


def test_chains_share_an_arena(arena):
    a = tt.create_chain([1, 2], arena=arena)
    b = tt.create_chain([3, 4], arena=arena)
    assert arena.live == 4
    b.release()
    assert a.values() == [1, 2]
    assert arena.live == 2
    a.release()


def test_append_chain_same_arena(arena, counters):
    a = tt.create_chain([1, 2], arena=arena)
    b = tt.create_chain([3, 4], arena=arena)
    a.append_chain(b)
    assert a.values() == [1, 2, 3, 4]
    assert not b
    arena.validate()
    assert a.release() == 4
    assert counters.live.load() == 0


def test_append_chain_across_arenas(arena):
    other_counters = tt.LifecycleCounters("other")
    other = tt.LinkArena(tt.ArenaConfig(capacity=8), counters=other_counters)
    a = tt.create_chain([1], arena=arena)
    b = tt.create_chain([2, 3], arena=other)
    a.append_chain(b)
    assert a.values() == [1, 2, 3]
    assert not b
    assert other.live == 0
    assert other_counters.released.load() == 2
    a.release()


def test_append_chain_to_itself_is_rejected(arena):
    head = tt.create_chain([1], arena=arena)
    with pytest.raises(tt.TetherCopyError):
        head.append_chain(head)
    head.release()


def test_chain_head_cannot_be_copied(arena):
    head = tt.create_chain([1], arena=arena)
    with pytest.raises(tt.TetherCopyError):
        copy.copy(head)
    with pytest.raises(tt.TetherCopyError):
        copy.deepcopy(head)
    head.release()


def test_link_view_after_release_raises(arena):
    head = tt.create_chain([1, 2], arena=arena)
    second = head.next()
    head.release()
    with pytest.raises(tt.TetherReleasedError):
        _ = second.value


def test_long_chain_builds_and_releases(counters):
    arena = tt.LinkArena(tt.ArenaConfig(capacity=64, validate=False), counters=counters)
    n = 20000
    head = tt.create_chain(range(n), arena=arena)
    for value in range(n, n + 50):
        tt.append(head, value)
    n += 50
    assert tt.count(head) == n
    assert tt.chain_values(head) == list(range(n))
    assert head.release() == n
    assert counters.snapshot() == {"live": 0, "constructed": n, "released": n}


def test_default_arena_uses_module_counters(clean_defaults):
    links = clean_defaults["links"]
    with tt.create_chain([9, 8, 7]) as head:
        assert tt.count(head) == 3
        assert links.live.load() == 3
    assert links.live.load() == 0
    assert links.released.load() == 3


def test_values_beyond_int32_round_trip(arena):
    values = [2**31, -(2**31) - 1, 10**20, 0, -1]
    head = tt.create_chain(values, arena=arena)
    assert tt.chain_values(head) == values
    assert head.value == 2**31
    tt.append(head, 2**33)
    assert head.values()[-1] == 2**33
    assert head.next().next().value == 10**20
    head.release()


def test_failed_build_leaves_nothing_allocated(counters):
    cfg = tt.ArenaConfig(capacity=3, growth="fixed", validate=True)
    arena = tt.LinkArena(cfg, counters=counters)
    with pytest.raises(tt.TetherCapacityError):
        tt.create_chain([1, 2, 3], arena=arena)
    assert arena.oom
    assert arena.live == 0
    assert counters.snapshot() == {"live": 0, "constructed": 0, "released": 0}
    with pytest.raises(TypeError):
        tt.create_chain([1, "two"], arena=arena)
    assert arena.live == 0
    head = tt.create_chain([1, 2], arena=arena)
    assert head.values() == [1, 2]
    head.release()


def test_failed_cross_arena_append_keeps_both_chains(counters):
    cfg = tt.ArenaConfig(capacity=3, growth="fixed", validate=True)
    arena = tt.LinkArena(cfg, counters=counters)
    other_counters = tt.LifecycleCounters("other")
    other = tt.LinkArena(tt.ArenaConfig(capacity=8), counters=other_counters)
    a = tt.create_chain([1], arena=arena)
    b = tt.create_chain([2, 3, 4], arena=other)
    with pytest.raises(tt.TetherCapacityError):
        a.append_chain(b)
    assert a.values() == [1]
    assert b.values() == [2, 3, 4]
    assert other.live == 3
    assert counters.live.load() == 1
    tt.append(a, 5)
    assert a.values() == [1, 5]
    a.release()
    b.release()
    assert other_counters.live.load() == 0


def test_append_after_moves_extends_the_real_tail(arena):
    a = tt.create_chain([1, 2], arena=arena)
    b = tt.create_chain([3], arena=arena)
    a.append_chain(b)
    tt.append(a, 4)
    moved = a.take()
    tt.append(moved, 5)
    assert moved.values() == [1, 2, 3, 4, 5]
    arena.validate()
    moved.release()
