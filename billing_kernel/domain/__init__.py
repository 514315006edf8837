"""
Pure domain layer.

No dependencies on I/O, configuration, or the clock. All helpers are
deterministic.
"""

from billing_kernel.domain.amounts import (
    ONE,
    ZERO,
    parse_pct,
    quantize_amount,
    to_amount,
    to_non_negative_amount,
)

__all__ = [
    "ONE",
    "ZERO",
    "parse_pct",
    "quantize_amount",
    "to_amount",
    "to_non_negative_amount",
]
