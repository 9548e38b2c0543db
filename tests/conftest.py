import os
import sys

import pytest

# Run the arena ownership scan after every mutation unless explicitly overridden.
os.environ.setdefault("TETHER_VALIDATE_ARENA", "1")
os.environ.setdefault("JAX_PLATFORMS", "cpu")

import jax

# Ensure src/ is importable when pytest runs without an editable install.
ROOT = os.path.dirname(os.path.dirname(__file__))
SRC = os.path.join(ROOT, "src")
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from tether_chain.chain import LinkArena
from tether_core.config import ArenaConfig
from tether_metrics.counters import LifecycleCounters, default_counters

_MARKER_DESCRIPTIONS = {
    "chain": "exclusive ownership chains and the link arena",
    "shared": "reference-counted shared resources",
    "scope": "scoped guards",
    "cell": "interior mutability and borrow checking",
    "buffer": "move-by-default buffers",
    "cli": "demo driver",
}


def pytest_configure(config):
    for name, desc in _MARKER_DESCRIPTIONS.items():
        config.addinivalue_line("markers", f"{name}: {desc}")


@pytest.fixture(autouse=True)
def _set_default_device():
    with jax.default_device(jax.devices("cpu")[0]):
        yield


@pytest.fixture
def counters():
    return LifecycleCounters("test")


@pytest.fixture
def arena(counters):
    return LinkArena(ArenaConfig(capacity=4, validate=True), counters=counters)


@pytest.fixture
def clean_defaults():
    """Start from zeroed module-level counters and insist nothing leaks."""
    bundles = default_counters()
    for bundle in bundles.values():
        bundle.reset()
    yield bundles
    leaked = {name: b.live.load() for name, b in bundles.items() if b.live.load()}
    assert not leaked, f"live instances leaked: {leaked}"
