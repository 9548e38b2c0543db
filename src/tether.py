"""Facade over the tether packages.

    import tether as tt

    with tt.create_chain([1, 2, 3]) as chain:
        tt.append(chain, 4)
"""

from tether_chain import chain as _chain
from tether_core import borrow as _borrow
from tether_core import errors as _errors
from tether_metrics import counters as _counters
from tether_scope import guard as _guard
from tether_shared import cell as _cell
from tether_shared import rc as _rc
from tether_shared import resource as _resource
from tether_values import buffer as _buffer
from tether_chain.arena import ChainState, LINK_NULL, OWNER_FREE, OWNER_ROOT
from tether_chain.chain import *
from tether_core.borrow import *
from tether_core.config import ArenaConfig, DEFAULT_ARENA_CONFIG, GrowthMode, arena_config_from_env
from tether_core.domains import LinkId
from tether_core.errors import *
from tether_metrics.counters import *
from tether_scope.guard import *
from tether_shared.cell import *
from tether_shared.rc import *
from tether_shared.resource import *
from tether_values.buffer import *

__all__ = [
    "ChainState",
    "LINK_NULL",
    "OWNER_FREE",
    "OWNER_ROOT",
    "ArenaConfig",
    "DEFAULT_ARENA_CONFIG",
    "GrowthMode",
    "arena_config_from_env",
    "LinkId",
]
__all__ += _chain.__all__
__all__ += _borrow.__all__
__all__ += _errors.__all__
__all__ += _counters.__all__
__all__ += _guard.__all__
__all__ += _cell.__all__
__all__ += _rc.__all__
__all__ += _resource.__all__
__all__ += _buffer.__all__
