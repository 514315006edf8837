"""
Module: billing_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines. This is the import surface for callers (service
    forms, invoice and credit-note issuing).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import billing_kernel and sibling engine modules.
    MUST NOT import billing_config.

Invariants enforced:
    - Purity: engines never read files, the environment or the clock.
    - Decimal-only arithmetic: amounts are Decimal, floats are converted
      at the boundary.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from billing_engines import ServiceBillingInput, calculate_breakdown
    from billing_engines import ManualTotalsInput, compute_manual_totals
    from billing_engines import ServiceLine, summarize_by_currency
"""

from billing_engines.breakdown import (
    CARD_INTEREST_VAT_RATE,
    DEFAULT_POLICY,
    VAT_RATE_105,
    VAT_RATE_21,
    BillingBreakdownResult,
    BillingMode,
    BreakdownPolicy,
    CardInterestMode,
    FeeApplication,
    ServiceBillingInput,
    apply_transfer_fee,
    calculate_breakdown,
    compute_non_computable,
    distribute_margin,
    extract_vat,
    reverse_taxable_base,
    split_card_interest,
)
from billing_engines.manual_totals import (
    AFIP_VAT_ID_105,
    AFIP_VAT_ID_21,
    AFIP_VAT_ID_EXEMPT,
    ManualTotalsInput,
    ManualTotalsResult,
    VatEntry,
    compute_manual_totals,
    split_manual_totals,
    split_manual_totals_by_shares,
)
from billing_engines.summary import (
    CurrencyTotals,
    ServiceLine,
    summarize_by_currency,
)
from billing_engines.tracer import traced_engine

__all__ = [
    # Breakdown
    "CARD_INTEREST_VAT_RATE",
    "DEFAULT_POLICY",
    "VAT_RATE_105",
    "VAT_RATE_21",
    "BillingBreakdownResult",
    "BillingMode",
    "BreakdownPolicy",
    "CardInterestMode",
    "FeeApplication",
    "ServiceBillingInput",
    "apply_transfer_fee",
    "calculate_breakdown",
    "compute_non_computable",
    "distribute_margin",
    "extract_vat",
    "reverse_taxable_base",
    "split_card_interest",
    # Manual voucher totals
    "AFIP_VAT_ID_105",
    "AFIP_VAT_ID_21",
    "AFIP_VAT_ID_EXEMPT",
    "ManualTotalsInput",
    "ManualTotalsResult",
    "VatEntry",
    "compute_manual_totals",
    "split_manual_totals",
    "split_manual_totals_by_shares",
    # Service totals
    "CurrencyTotals",
    "ServiceLine",
    "summarize_by_currency",
    # Tracing
    "traced_engine",
]
