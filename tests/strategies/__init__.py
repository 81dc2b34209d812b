# tests/strategies/__init__.py
"""Hypothesis strategies for property-based tests.

Re-exports commonly used strategies for convenience:
    from tests.strategies import trace_nodes, transaction_records, STANDARD_SETTINGS
"""

from tests.strategies.binary import binary_content, nonempty_binary
from tests.strategies.records import (
    addresses,
    execution_steps,
    failure_messages,
    step_sequences,
    trace_nodes,
    transaction_records,
)
from tests.strategies.settings import DETERMINISM_SETTINGS, SLOW_SETTINGS, STANDARD_SETTINGS

__all__ = [
    "DETERMINISM_SETTINGS",
    "SLOW_SETTINGS",
    "STANDARD_SETTINGS",
    "addresses",
    "binary_content",
    "execution_steps",
    "failure_messages",
    "nonempty_binary",
    "step_sequences",
    "trace_nodes",
    "transaction_records",
]
