"""
Manual Voucher Totals - AFIP/ARCA totals from manually typed amounts.

Pure functions with no I/O.

When an invoice or credit note is issued with totals typed by hand
instead of derived from the services, the amounts must be checked for
consistency and converted into the voucher totals AFIP expects:
``ImpTotal``, ``ImpNeto``, ``ImpIVA`` and the ``Iva`` array (one entry
per VAT bracket, exempt included).

All amounts are rounded to two decimals before any check, since that
is what the voucher will carry.

Usage:
    from decimal import Decimal
    from billing_engines.manual_totals import ManualTotalsInput, compute_manual_totals

    result = compute_manual_totals(
        ManualTotalsInput(base_21=Decimal("1000"), vat_21=Decimal("210"))
    )
    print(result.total)  # 1210.00
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence

from billing_engines.breakdown import VAT_RATE_105, VAT_RATE_21
from billing_engines.tracer import traced_engine
from billing_kernel.domain.amounts import ZERO, quantize_amount, to_amount
from billing_kernel.exceptions import ManualTotalsError
from billing_kernel.logging_config import get_logger

logger = get_logger("engines.manual_totals")


# ============================================================================
# Constants
# ============================================================================

# AFIP VAT condition ids
AFIP_VAT_ID_21 = 5
AFIP_VAT_ID_105 = 4
AFIP_VAT_ID_EXEMPT = 3

_MATCH_TOLERANCE = Decimal("0.05")
_CENT = Decimal("0.01")

_FIELDS = ("total", "base_21", "vat_21", "base_105", "vat_105", "exempt")


# ============================================================================
# Value Objects
# ============================================================================


@dataclass(frozen=True)
class ManualTotalsInput:
    """
    Amounts typed in the manual voucher form. Any field may be left empty.

    ``total`` is optional: when absent it is the sum of the parts.
    """

    total: Decimal | None = None
    base_21: Decimal | None = None
    vat_21: Decimal | None = None
    base_105: Decimal | None = None
    vat_105: Decimal | None = None
    exempt: Decimal | None = None

    def __post_init__(self) -> None:
        for attr in _FIELDS:
            val = getattr(self, attr)
            if val is not None:
                object.__setattr__(self, attr, to_amount(val, attr))


@dataclass(frozen=True)
class VatEntry:
    """One element of the voucher ``Iva`` array."""

    afip_id: int
    base: Decimal
    amount: Decimal


@dataclass(frozen=True)
class ManualTotalsResult:
    """Voucher totals ready for the AFIP request."""

    total: Decimal
    net: Decimal
    vat: Decimal
    vat_entries: tuple[VatEntry, ...]


# ============================================================================
# Core Functions
# ============================================================================


def _reject(reason: str, message: str) -> ManualTotalsError:
    logger.warning("manual_totals_rejected", extra={"reason": reason})
    return ManualTotalsError(reason, message)


def _round(value: Decimal | None) -> Decimal:
    return quantize_amount(value if value is not None else ZERO)


@traced_engine("manual_totals", "1.0", ("totals_input",))
def compute_manual_totals(totals_input: ManualTotalsInput) -> ManualTotalsResult:
    """
    Validate manual amounts and build the voucher totals.

    Any remainder of the net not covered by the bases or the exempt
    amount is added to the exempt bucket.

    Raises:
        ManualTotalsError: With ``reason`` one of negative_amount, empty,
            bracket_incomplete, vat_mismatch, invalid_total,
            total_mismatch, total_below_vat, bases_exceed_net,
            exempt_exceeds_net.
    """
    raw_total = totals_input.total
    base_21 = _round(totals_input.base_21)
    vat_21 = _round(totals_input.vat_21)
    base_105 = _round(totals_input.base_105)
    vat_105 = _round(totals_input.vat_105)
    exempt_input = _round(totals_input.exempt)

    # The typed total is checked before rounding
    amounts = [base_21, vat_21, base_105, vat_105, exempt_input]
    if raw_total is not None:
        amounts.append(raw_total)

    if any(v < ZERO for v in amounts):
        raise _reject("negative_amount", "Manual amounts cannot be negative.")
    if not any(v > ZERO for v in amounts):
        raise _reject("empty", "Manual amounts are empty.")

    vat_sum = vat_21 + vat_105
    base_sum = base_21 + base_105
    total_from_parts = base_sum + exempt_input + vat_sum
    has_parts = base_sum > ZERO or vat_sum > ZERO or exempt_input > ZERO

    for label, base, vat, rate in (
        ("21%", base_21, vat_21, VAT_RATE_21),
        ("10.5%", base_105, vat_105, VAT_RATE_105),
    ):
        if (base > ZERO) != (vat > ZERO):
            raise _reject(
                "bracket_incomplete",
                f"Base and VAT {label} must be entered together.",
            )
        if base > ZERO and abs(vat - quantize_amount(base * rate)) > _MATCH_TOLERANCE:
            raise _reject(
                "vat_mismatch",
                f"VAT {label} does not match its taxable base.",
            )

    has_explicit_total = raw_total is not None and raw_total > ZERO
    total = quantize_amount(raw_total) if has_explicit_total else total_from_parts

    if total <= ZERO:
        raise _reject("invalid_total", "Manual total is invalid.")

    if (
        has_explicit_total
        and has_parts
        and abs(total - total_from_parts) > _MATCH_TOLERANCE
    ):
        raise _reject(
            "total_mismatch",
            "Total does not match the sum of bases, VAT and exempt.",
        )

    if vat_sum - total > _CENT:
        raise _reject("total_below_vat", "Total is lower than the VAT.")

    net = total - vat_sum
    if net + _CENT < base_sum:
        raise _reject("bases_exceed_net", "Taxable bases exceed the net amount.")

    remainder = net - base_sum - exempt_input
    if remainder < -_CENT:
        raise _reject("exempt_exceeds_net", "Exempt amount exceeds the net amount.")

    exempt = exempt_input + max(remainder, ZERO)

    entries: list[VatEntry] = []
    if base_21 or vat_21:
        entries.append(VatEntry(AFIP_VAT_ID_21, base_21, vat_21))
    if base_105 or vat_105:
        entries.append(VatEntry(AFIP_VAT_ID_105, base_105, vat_105))
    if exempt > ZERO:
        entries.append(VatEntry(AFIP_VAT_ID_EXEMPT, exempt, ZERO))

    logger.info("manual_totals_computed", extra={
        "total": str(total),
        "net": str(net),
        "vat": str(vat_sum),
        "vat_entry_count": len(entries),
    })

    return ManualTotalsResult(
        total=total,
        net=net,
        vat=vat_sum,
        vat_entries=tuple(entries),
    )


def split_manual_totals(
    totals_input: ManualTotalsInput, count: int
) -> list[ManualTotalsInput]:
    """
    Split manual amounts evenly, one voucher per client.

    Each field is divided and rounded; the rounding difference goes to
    the last voucher so the parts add back to the input.
    """
    if count <= 1:
        return [totals_input]
    return split_manual_totals_by_shares(totals_input, [Decimal(1)] * count)


def split_manual_totals_by_shares(
    totals_input: ManualTotalsInput, shares: Sequence[Decimal | int]
) -> list[ManualTotalsInput]:
    """
    Split manual amounts proportionally to ``shares``.

    Non-positive shares count as zero; if every share is zero the split
    is even. The rounding difference goes to the last voucher.
    """
    normalized = _normalize_shares(shares)
    if len(normalized) <= 1:
        return [totals_input]

    parts: list[dict[str, Decimal]] = [{} for _ in normalized]
    for attr in _FIELDS:
        raw = getattr(totals_input, attr)
        if raw is None:
            continue
        for idx, chunk in enumerate(_split_by_shares(raw, normalized)):
            parts[idx][attr] = chunk

    return [ManualTotalsInput(**values) for values in parts]


def _normalize_shares(shares: Sequence[Decimal | int]) -> list[Decimal]:
    if not shares:
        return [Decimal(1)]
    cleaned = []
    for share in shares:
        value = to_amount(share, "share")
        cleaned.append(value if value > ZERO else ZERO)
    total = sum(cleaned, ZERO)
    if total <= ZERO:
        even = Decimal(1) / len(cleaned)
        return [even] * len(cleaned)
    return [s / total for s in cleaned]


def _split_by_shares(value: Decimal, shares: list[Decimal]) -> list[Decimal]:
    chunks = [quantize_amount(value * share) for share in shares]
    diff = quantize_amount(value) - sum(chunks, ZERO)
    if diff:
        chunks[-1] = chunks[-1] + diff
    return chunks
