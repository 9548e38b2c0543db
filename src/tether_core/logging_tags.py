# tether_core/logging_tags.py
"""
Subsystem tags prefixed to tether log messages.
"""

CHAIN = "[CHAIN]"
SHARED = "[SHARED]"
SCOPE = "[SCOPE]"
CELL = "[CELL]"
BUFFER = "[BUFFER]"
METRICS = "[METRICS]"
CLI = "[CLI]"
