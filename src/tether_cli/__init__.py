"""Command-line demo driver for the tether ownership disciplines."""

from tether_cli.demo import (
    SECTIONS,
    build_parser,
    demo_buffer,
    demo_cell,
    demo_chain,
    demo_scope,
    demo_shared,
    main,
    run_sections,
)

__all__ = [
    "SECTIONS",
    "build_parser",
    "demo_buffer",
    "demo_cell",
    "demo_chain",
    "demo_scope",
    "demo_shared",
    "main",
    "run_sections",
]
