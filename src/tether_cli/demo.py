"""Narrated walk through each ownership discipline."""

from __future__ import annotations

import argparse
from typing import Callable, Dict, List, Sequence

from tether_chain.chain import LinkArena, count, create_chain
from tether_core.config import arena_config_from_env, log_level_from_env
from tether_core.errors import AliasingViolation
from tether_core.logging import _coerce_level, configure_logging, get_logger
from tether_core.logging_tags import BUFFER, CELL, CHAIN, CLI, SCOPE, SHARED as SHARED_TAG
from tether_metrics.counters import LifecycleCounters
from tether_scope.guard import open_guard
from tether_shared.cell import create_cell, get, increment, share_cell
from tether_shared.rc import owning
from tether_shared.resource import create_resource, instance_count, share_resource
from tether_values.buffer import (
    LargeBuffer,
    alloc_count,
    create_buffer,
    dealloc_count,
    process_buffer,
)

logger = get_logger(__name__)

SECTIONS = ("chain", "shared", "scope", "cell", "buffer")


def demo_chain(values: Sequence[int], **_) -> None:
    counters = LifecycleCounters("demo-links")
    arena = LinkArena(arena_config_from_env(), counters=counters)
    chain = create_chain(values, arena=arena)
    logger.info("%s created chain with %d link(s)", CHAIN, count(chain))
    if chain is None:
        return
    logger.info("%s first value: %d", CHAIN, chain.value)
    moved = chain.take()
    logger.info("%s after move: source empty=%s, destination owns %d", CHAIN, not chain, count(moved))
    with moved:
        moved.append(len(values) + 1)
        logger.info("%s appended, values now %s", CHAIN, moved.values())
    logger.info(
        "%s leaving scope released %d link(s), %d live",
        CHAIN,
        counters.released.load(),
        counters.live.load(),
    )


def demo_shared(copies: int = 3, **_) -> None:
    counters = LifecycleCounters("demo-resources")
    with create_resource(42, counters=counters) as resource:
        logger.info("%s created resource %d", SHARED_TAG, resource.payload.id)
        logger.info(
            "%s strong=%d alive=%d",
            SHARED_TAG,
            resource.strong_count,
            instance_count(counters),
        )
        with owning(share_resource(resource, copies)):
            logger.info(
                "%s shared with %d more owner(s): strong=%d alive=%d",
                SHARED_TAG,
                copies,
                resource.strong_count,
                instance_count(counters),
            )
        logger.info(
            "%s back in outer scope: strong=%d alive=%d",
            SHARED_TAG,
            resource.strong_count,
            instance_count(counters),
        )
    logger.info("%s after last owner: alive=%d", SHARED_TAG, instance_count(counters))


def demo_scope(**_) -> None:
    counters = LifecycleCounters("demo-guards")
    with open_guard("data.txt", counters=counters) as guard:
        logger.info("%s opened %s, active=%s", SCOPE, guard.label, guard.is_active)
        moved = guard.take()
        logger.info("%s after move: source active=%s, destination active=%s", SCOPE, guard.is_active, moved.is_active)
        with moved:
            pass
        logger.info("%s destination closed at scope exit: active=%s", SCOPE, moved.is_active)
    logger.info("%s closes counted: %d", SCOPE, counters.released.load())


def demo_cell(**_) -> None:
    counters = LifecycleCounters("demo-cells")
    with create_cell(counters=counters) as counter:
        logger.info("%s initial value %d", CELL, get(counter))
        with owning([share_cell(counter), share_cell(counter)]) as (c1, c2):
            increment(c1)
            increment(c2)
            increment(counter)
            logger.info("%s after 3 increments: %d (strong=%d)", CELL, get(counter), counter.strong_count)
        with counter.payload.borrow_mut():
            try:
                increment(counter)
            except AliasingViolation as exc:
                logger.info("%s nested mutation rejected: %s", CELL, exc)
        logger.info("%s value unchanged: %d (borrow state %s)", CELL, get(counter), counter.payload.borrow_state)


def demo_buffer(**_) -> None:
    counters = LifecycleCounters("demo-buffers")
    first = create_buffer(1000, counters=counters)
    second = process_buffer(first)
    logger.info(
        "%s create + process: allocations=%d, source moved=%s",
        BUFFER,
        alloc_count(counters),
        first.is_empty,
    )
    with second, second.clone() as copy:
        logger.info("%s explicit clone: allocations=%d size=%d", BUFFER, alloc_count(counters), copy.size)
    with LargeBuffer(100, counters=counters):
        pass
    logger.info(
        "%s allocations=%d deallocations=%d", BUFFER, alloc_count(counters), dealloc_count(counters)
    )


def _log_level(value: str) -> int:
    try:
        return _coerce_level(value)
    except ValueError as err:
        raise argparse.ArgumentTypeError(str(err)) from err


_DEMOS: Dict[str, Callable[..., None]] = {
    "chain": demo_chain,
    "shared": demo_shared,
    "scope": demo_scope,
    "cell": demo_cell,
    "buffer": demo_buffer,
}


def run_sections(sections: Sequence[str], *, values: Sequence[int], copies: int) -> List[str]:
    ran = []
    for name in sections:
        logger.info("%s === %s ===", CLI, name)
        _DEMOS[name](values=values, copies=copies)
        ran.append(name)
    return ran


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tether-demo",
        description="Narrate exclusive, shared, scoped and interior ownership.",
    )
    parser.add_argument(
        "--section",
        choices=SECTIONS + ("all",),
        default="all",
        help="Which discipline to demonstrate (default: all).",
    )
    parser.add_argument(
        "--values",
        type=int,
        nargs="*",
        default=[1, 2, 3, 4, 5],
        help="Values for the exclusive chain demo.",
    )
    parser.add_argument(
        "--copies",
        type=int,
        default=3,
        help="Extra owners in the shared resource demo.",
    )
    parser.add_argument(
        "--log-level",
        default=log_level_from_env(),
        type=_log_level,
        help="Logging level (default: TETHER_LOG_LEVEL or INFO).",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.copies < 0:
        raise SystemExit("--copies must be >= 0")
    configure_logging(args.log_level)
    sections = SECTIONS if args.section == "all" else (args.section,)
    run_sections(sections, values=args.values, copies=args.copies)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
