import threading

import pytest

from tether_core.errors import TetherResetError
from tether_metrics.counters import (
    AtomicCounter,
    LifecycleCounters,
    counters_snapshot,
    default_counters,
)


def test_atomic_counter_under_threads():
    counter = AtomicCounter()
    per_thread = 2000

    def work():
        for _ in range(per_thread):
            counter.add()
            counter.add()
            counter.sub()

    threads = [threading.Thread(target=work) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert counter.load() == 8 * per_thread
    assert int(counter) == 8 * per_thread


def test_lifecycle_snapshot():
    counters = LifecycleCounters("x")
    counters.on_construct()
    counters.on_construct()
    counters.on_release()
    assert counters.snapshot() == {"live": 1, "constructed": 2, "released": 1}


def test_reset_refused_then_forced(caplog):
    counters = LifecycleCounters("x")
    counters.on_construct()
    with pytest.raises(TetherResetError) as info:
        counters.reset()
    assert info.value.live == 1
    assert "x reset refused" in str(info.value)
    counters.reset(force=True)
    assert counters.snapshot() == {"live": 0, "constructed": 0, "released": 0}
    assert "forced reset of x" in caplog.text


def test_default_bundles_are_named(clean_defaults):
    assert set(default_counters()) == {"resources", "links", "guards", "cells", "buffers"}
    snap = counters_snapshot()
    assert snap["links"] == {"live": 0, "constructed": 0, "released": 0}
