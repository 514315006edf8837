"""
Service Totals - Per-currency totals of a booking's services.

Pure functions with no I/O.

A booking can mix services priced in different currencies; totals are
never converted, only grouped by currency code.

Usage:
    from billing_engines.summary import ServiceLine, summarize_by_currency

    totals = summarize_by_currency(lines, agency_transfer_fee_pct=Decimal("0.024"))
    totals["USD"].total_commission_without_vat
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from decimal import Decimal
from typing import Iterable

from billing_engines.breakdown import BillingBreakdownResult, ServiceBillingInput
from billing_kernel.domain.amounts import ZERO, to_amount
from billing_kernel.logging_config import get_logger

logger = get_logger("engines.summary")

DEFAULT_CURRENCY = "ARS"

# Breakdown fields summed as-is (None counts as zero)
_BREAKDOWN_FIELDS = (
    "non_computable",
    "taxable_base_21",
    "taxable_base_105",
    "commission_exempt",
    "commission_21",
    "commission_105",
    "vat_on_commission_21",
    "vat_on_commission_105",
    "total_commission_without_vat",
    "taxable_card_interest",
    "vat_on_card_interest",
    "total_vat",
)


@dataclass(frozen=True)
class ServiceLine:
    """
    One service of a booking with its breakdown.

    ``transfer_fee_pct`` / ``transfer_fee_amount`` are the values stored on
    the service, if any; they win over the agency default.
    """

    currency: str
    billing_input: ServiceBillingInput
    breakdown: BillingBreakdownResult
    transfer_fee_pct: Decimal | None = None
    transfer_fee_amount: Decimal | None = None


@dataclass(frozen=True)
class CurrencyTotals:
    """Summed figures of all services in one currency."""

    currency: str
    service_count: int = 0
    sale_price: Decimal = ZERO
    cost_price: Decimal = ZERO
    vat_21_amount: Decimal = ZERO
    vat_105_amount: Decimal = ZERO
    exempt_amount: Decimal = ZERO
    other_taxes_amount: Decimal = ZERO
    non_computable: Decimal = ZERO
    taxable_base_21: Decimal = ZERO
    taxable_base_105: Decimal = ZERO
    commission_exempt: Decimal = ZERO
    commission_21: Decimal = ZERO
    commission_105: Decimal = ZERO
    vat_on_commission_21: Decimal = ZERO
    vat_on_commission_105: Decimal = ZERO
    total_commission_without_vat: Decimal = ZERO
    taxable_card_interest: Decimal = ZERO
    vat_on_card_interest: Decimal = ZERO
    total_vat: Decimal = ZERO
    transfer_fees: Decimal = ZERO


def normalize_currency(code: str | None) -> str:
    """Upper-cased currency code; blank means the agency's local currency."""
    cleaned = (code or "").strip().upper()
    return cleaned or DEFAULT_CURRENCY


def line_transfer_fee(line: ServiceLine, agency_transfer_fee_pct: Decimal) -> Decimal:
    """
    Transfer fee charged on one service.

    In order: the amount stored on the service, the fee its breakdown
    charged, and for services whose breakdown ran without a fee,
    sale * pct with the service's own pct if it has one and the agency's
    default if not.
    """
    if line.transfer_fee_amount is not None:
        return to_amount(line.transfer_fee_amount, "transfer_fee_amount")
    if line.breakdown.transfer_fee_pct > ZERO:
        return line.breakdown.transfer_fee_amount
    pct = (
        line.transfer_fee_pct
        if line.transfer_fee_pct is not None
        else agency_transfer_fee_pct
    )
    return line.billing_input.sale_price * to_amount(pct, "transfer_fee_pct")


def summarize_by_currency(
    lines: Iterable[ServiceLine],
    agency_transfer_fee_pct: Decimal = ZERO,
) -> dict[str, CurrencyTotals]:
    """
    Sum service figures per currency.

    Returns:
        Mapping of currency code to CurrencyTotals, in first-seen order.
    """
    running: dict[str, dict[str, Decimal | int]] = {}

    for line in lines:
        code = normalize_currency(line.currency)
        acc = running.setdefault(code, _empty_accumulator())
        bi = line.billing_input
        bd = line.breakdown

        acc["service_count"] += 1
        acc["sale_price"] += bi.sale_price
        acc["cost_price"] += bi.cost_price
        acc["vat_21_amount"] += bi.vat_21_amount
        acc["vat_105_amount"] += bi.vat_105_amount
        acc["exempt_amount"] += bi.exempt_amount
        acc["other_taxes_amount"] += bi.other_taxes_amount

        for name in _BREAKDOWN_FIELDS:
            value = getattr(bd, name)
            if value is not None:
                acc[name] += value

        acc["transfer_fees"] += line_transfer_fee(line, agency_transfer_fee_pct)

    totals = {
        code: CurrencyTotals(currency=code, **values)
        for code, values in running.items()
    }
    logger.debug("service_totals_summarized", extra={
        "currencies": list(totals),
        "service_count": sum(t.service_count for t in totals.values()),
    })
    return totals


def _empty_accumulator() -> dict[str, Decimal | int]:
    acc: dict[str, Decimal | int] = {
        f.name: ZERO for f in fields(CurrencyTotals) if f.name != "currency"
    }
    acc["service_count"] = 0
    return acc
