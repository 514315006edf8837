"""
Billing Breakdown Engine - Tax and commission breakdown for a service.

Pure functions with no I/O. Given what a service was sold for, what it
cost, and the VAT the operator declared on the cost, reconstructs the
AFIP taxable bases and splits the agency's margin into VAT-bracket
commission components with the embedded VAT extracted.

Two modes:
- AUTO: reverse-derive the 21% / 10.5% bases from the declared VAT
  amounts and distribute the margin across brackets in proportion to
  those VAT amounts.
- MANUAL: flat-tax agencies. The whole margin is the commission and
  ``other_taxes_amount`` is the only tax figure; no bracket logic runs.

Card interest (financing charged on a credit-card sale) runs through an
independent 21% pipeline in both modes.

The engine never rounds. Callers round at display or voucher time.

Usage:
    from decimal import Decimal
    from billing_engines.breakdown import ServiceBillingInput, calculate_breakdown

    result = calculate_breakdown(
        ServiceBillingInput(
            sale_price=Decimal("1210"),
            cost_price=Decimal("1000"),
            vat_21_amount=Decimal("210"),
        )
    )
    print(result.taxable_base_21)       # 1000
    print(result.vat_on_commission_21)  # 36.4462...
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from billing_engines.tracer import traced_engine
from billing_kernel.domain.amounts import (
    ONE,
    ZERO,
    to_amount,
    to_non_negative_amount,
)
from billing_kernel.exceptions import (
    InvalidInputError,
    TransferFeeOutOfRangeError,
)
from billing_kernel.logging_config import get_logger

logger = get_logger("engines.breakdown")


# ============================================================================
# Constants
# ============================================================================

VAT_RATE_21 = Decimal("0.21")
VAT_RATE_105 = Decimal("0.105")

# Card interest is always billed at the general rate
CARD_INTEREST_VAT_RATE = VAT_RATE_21


class BillingMode(str, Enum):
    """How the breakdown is derived."""

    AUTO = "auto"  # Reverse-derive bases, split margin across brackets
    MANUAL = "manual"  # Flat-tax policy, margin is the commission


class FeeApplication(str, Enum):
    """Where the transfer fee is charged before the margin is split."""

    MARGIN = "margin"  # fee = margin * pct
    COST = "cost"  # fee = cost * pct, added to the cost side
    SALE = "sale"  # fee = sale * pct


class CardInterestMode(str, Enum):
    """How card interest is split into taxable amount and VAT."""

    PASS_THROUGH = "pass_through"  # Use the amounts as entered
    DECOMPOSE = "decompose"  # Split the combined gross at 21%


@dataclass(frozen=True)
class BreakdownPolicy:
    """
    Agency-level policy choices the engine cannot infer from a service.

    Resolved by the caller (see billing_config) and passed in.
    """

    fee_application: FeeApplication = FeeApplication.MARGIN
    card_interest_mode: CardInterestMode = CardInterestMode.PASS_THROUGH


DEFAULT_POLICY = BreakdownPolicy()


# ============================================================================
# Value Objects
# ============================================================================


@dataclass(frozen=True)
class ServiceBillingInput:
    """
    Billing figures of one service, as typed in the service form.

    Amounts are coerced to Decimal on construction. Prices, VAT and
    exempt amounts must be finite and non-negative; other taxes and card
    interest must be finite and are otherwise passed through.

    Raises:
        InvalidInputError: (or a subclass) on the first rejected field.
    """

    sale_price: Decimal
    cost_price: Decimal
    vat_21_amount: Decimal = ZERO
    vat_105_amount: Decimal = ZERO
    exempt_amount: Decimal = ZERO
    other_taxes_amount: Decimal = ZERO
    card_interest_amount: Decimal = ZERO
    card_interest_vat_amount: Decimal = ZERO
    transfer_fee_pct: Decimal = ZERO
    mode: BillingMode = BillingMode.AUTO

    def __post_init__(self) -> None:
        try:
            for attr in (
                "sale_price",
                "cost_price",
                "vat_21_amount",
                "vat_105_amount",
                "exempt_amount",
            ):
                object.__setattr__(
                    self, attr, to_non_negative_amount(getattr(self, attr), attr)
                )
            for attr in (
                "other_taxes_amount",
                "card_interest_amount",
                "card_interest_vat_amount",
            ):
                object.__setattr__(self, attr, to_amount(getattr(self, attr), attr))

            pct = to_amount(self.transfer_fee_pct, "transfer_fee_pct")
            if not (ZERO <= pct <= ONE):
                raise TransferFeeOutOfRangeError(pct)
            object.__setattr__(self, "transfer_fee_pct", pct)

            try:
                object.__setattr__(self, "mode", BillingMode(self.mode))
            except ValueError as e:
                raise InvalidInputError("mode", self.mode) from e
        except InvalidInputError as exc:
            logger.warning("billing_input_rejected", extra={
                "field_name": exc.field_name,
                "error_code": exc.code,
            })
            raise

    @property
    def margin(self) -> Decimal:
        """Gross margin before the transfer fee."""
        return self.sale_price - self.cost_price


@dataclass(frozen=True)
class BillingBreakdownResult:
    """
    Tax and commission breakdown of one service.

    Immutable value object with no identity: callers copy the fields onto
    the service, invoice or credit note they persist.

    Fields marked auto-only are None in MANUAL mode.

    Attributes:
        mode: Mode the breakdown was computed in
        margin: sale - cost, before the transfer fee
        transfer_fee_pct: Fee fraction applied
        transfer_fee_amount: Fee charged
        commission: Distributable margin after the fee
        other_taxes: Taxes outside VAT, passed through
        non_computable: Cost outside the VAT computation (auto-only, may be negative)
        taxable_base_21: Net base at 21% (auto-only)
        taxable_base_105: Net base at 10.5% (auto-only)
        commission_exempt: Margin allocated with no VAT (auto-only)
        gross_commission_21: VAT-inclusive margin slice at 21% (auto-only)
        gross_commission_105: VAT-inclusive margin slice at 10.5% (auto-only)
        commission_21: Net commission at 21% (auto-only)
        commission_105: Net commission at 10.5% (auto-only)
        vat_on_commission_21: VAT inside the 21% slice (auto-only)
        vat_on_commission_105: VAT inside the 10.5% slice (auto-only)
        total_commission_without_vat: Commission minus VAT extracted
        taxable_card_interest: Card interest net of VAT
        vat_on_card_interest: VAT on card interest
        total_vat: VAT on commission plus VAT on card interest
    """

    mode: BillingMode
    margin: Decimal
    transfer_fee_pct: Decimal
    transfer_fee_amount: Decimal
    commission: Decimal
    other_taxes: Decimal
    total_commission_without_vat: Decimal
    taxable_card_interest: Decimal
    vat_on_card_interest: Decimal
    total_vat: Decimal
    non_computable: Decimal | None = None
    taxable_base_21: Decimal | None = None
    taxable_base_105: Decimal | None = None
    commission_exempt: Decimal | None = None
    gross_commission_21: Decimal | None = None
    gross_commission_105: Decimal | None = None
    commission_21: Decimal | None = None
    commission_105: Decimal | None = None
    vat_on_commission_21: Decimal | None = None
    vat_on_commission_105: Decimal | None = None

    def as_record(self) -> dict[str, Any]:
        """Field names used by the service and invoice records."""
        return {
            "nonComputable": self.non_computable,
            "taxableBase21": self.taxable_base_21,
            "taxableBase10_5": self.taxable_base_105,
            "commissionExempt": self.commission_exempt,
            "commission21": self.commission_21,
            "commission10_5": self.commission_105,
            "vatOnCommission21": self.vat_on_commission_21,
            "vatOnCommission10_5": self.vat_on_commission_105,
            "totalCommissionWithoutVAT": self.total_commission_without_vat,
            "impIVA": self.total_vat,
            "taxableCardInterest": self.taxable_card_interest,
            "vatOnCardInterest": self.vat_on_card_interest,
            "transferFeeAmount": self.transfer_fee_amount,
            "transferFeePct": self.transfer_fee_pct,
        }


# ============================================================================
# Core Functions
# ============================================================================


@traced_engine("billing_breakdown", "1.0", ("billing_input", "policy"))
def calculate_breakdown(
    billing_input: ServiceBillingInput,
    policy: BreakdownPolicy = DEFAULT_POLICY,
) -> BillingBreakdownResult:
    """
    Calculate the billing breakdown of a service.

    Pure function - no side effects, no I/O, deterministic output. Safe
    to call on every keystroke.

    Args:
        billing_input: Validated service figures
        policy: Transfer-fee and card-interest policy of the agency

    Returns:
        BillingBreakdownResult
    """
    t0 = time.monotonic()
    logger.info("billing_breakdown_started", extra={
        "mode": billing_input.mode.value,
        "sale_price": str(billing_input.sale_price),
        "cost_price": str(billing_input.cost_price),
        "transfer_fee_pct": str(billing_input.transfer_fee_pct),
        "fee_application": policy.fee_application.value,
    })

    if billing_input.mode == BillingMode.MANUAL:
        result = _calculate_manual(billing_input, policy)
    else:
        result = _calculate_auto(billing_input, policy)

    duration_ms = round((time.monotonic() - t0) * 1000, 2)
    logger.info("billing_breakdown_completed", extra={
        "mode": result.mode.value,
        "commission": str(result.commission),
        "total_commission_without_vat": str(result.total_commission_without_vat),
        "non_computable": (
            str(result.non_computable) if result.non_computable is not None else None
        ),
        "total_vat": str(result.total_vat),
        "duration_ms": duration_ms,
    })

    return result


def reverse_taxable_base(
    vat_amount: Decimal, rate: Decimal
) -> tuple[Decimal, Decimal]:
    """
    Rebuild the taxable base and its VAT-inclusive gross from a VAT amount.

    Returns:
        (base, gross) where base = vat / rate and gross = base * (1 + rate)
    """
    if vat_amount == ZERO:
        return ZERO, ZERO
    base = vat_amount / rate
    return base, base * (ONE + rate)


def compute_non_computable(
    cost_price: Decimal,
    exempt_amount: Decimal,
    gross_21: Decimal,
    gross_105: Decimal,
) -> Decimal:
    """
    Cost left outside the VAT computation.

    Any exempt amount forces zero. Otherwise the residual of the cost
    after the VAT-inclusive bases, which is negative when the declared VAT
    implies more than the cost. Not clamped.
    """
    if exempt_amount > ZERO:
        return ZERO
    return cost_price - (gross_21 + gross_105)


def apply_transfer_fee(
    sale_price: Decimal,
    cost_price: Decimal,
    transfer_fee_pct: Decimal,
    application: FeeApplication = FeeApplication.MARGIN,
) -> tuple[Decimal, Decimal]:
    """
    Charge the transfer fee and return what is left to distribute.

    A loss-making service (sale below cost) is charged no fee under
    MARGIN; the whole loss is left as commission.

    Returns:
        (distributable_margin, fee_amount)
    """
    margin = sale_price - cost_price
    if application == FeeApplication.MARGIN:
        fee_amount = max(margin * transfer_fee_pct, ZERO)
    elif application == FeeApplication.COST:
        fee_amount = cost_price * transfer_fee_pct
    elif application == FeeApplication.SALE:
        fee_amount = sale_price * transfer_fee_pct
    else:
        raise ValueError(f"Unsupported fee application: {application}")
    return margin - fee_amount, fee_amount


def distribute_margin(
    margin: Decimal,
    vat_21_amount: Decimal,
    vat_105_amount: Decimal,
) -> tuple[Decimal, Decimal, Decimal]:
    """
    Split the margin across brackets by the declared VAT amounts.

    Weights are the VAT amounts, not the bases. With no VAT declared the
    whole margin is exempt, whatever the exempt input says.

    Returns:
        (commission_exempt, gross_commission_21, gross_commission_105)
    """
    vat_total = vat_21_amount + vat_105_amount
    if vat_total <= ZERO:
        return margin, ZERO, ZERO
    if vat_105_amount == ZERO:
        return ZERO, margin, ZERO
    if vat_21_amount == ZERO:
        return ZERO, ZERO, margin

    gross_21 = margin * vat_21_amount / vat_total
    # Remainder keeps the split exact
    return ZERO, gross_21, margin - gross_21


def extract_vat(gross: Decimal, rate: Decimal) -> tuple[Decimal, Decimal]:
    """
    Extract embedded VAT from a VAT-inclusive amount.

    Returns:
        (net, vat) with net + vat == gross
    """
    if gross == ZERO:
        return ZERO, ZERO
    net = gross / (ONE + rate)
    return net, gross - net


def split_card_interest(
    card_interest_amount: Decimal,
    card_interest_vat_amount: Decimal,
    mode: CardInterestMode = CardInterestMode.PASS_THROUGH,
) -> tuple[Decimal, Decimal]:
    """
    Split card interest into its taxable amount and VAT.

    Returns:
        (taxable_card_interest, vat_on_card_interest); their sum always
        equals card_interest_amount + card_interest_vat_amount.
    """
    if mode == CardInterestMode.PASS_THROUGH:
        return card_interest_amount, card_interest_vat_amount
    if mode == CardInterestMode.DECOMPOSE:
        return extract_vat(
            card_interest_amount + card_interest_vat_amount,
            CARD_INTEREST_VAT_RATE,
        )
    raise ValueError(f"Unsupported card interest mode: {mode}")


# ============================================================================
# Mode Calculators
# ============================================================================


def _calculate_auto(
    bi: ServiceBillingInput, policy: BreakdownPolicy
) -> BillingBreakdownResult:
    """Reverse-derive bases and split the margin across VAT brackets."""
    base_21, gross_21 = reverse_taxable_base(bi.vat_21_amount, VAT_RATE_21)
    base_105, gross_105 = reverse_taxable_base(bi.vat_105_amount, VAT_RATE_105)
    non_computable = compute_non_computable(
        bi.cost_price, bi.exempt_amount, gross_21, gross_105
    )

    commission, fee_amount = apply_transfer_fee(
        bi.sale_price, bi.cost_price, bi.transfer_fee_pct, policy.fee_application
    )
    commission_exempt, gross_comm_21, gross_comm_105 = distribute_margin(
        commission, bi.vat_21_amount, bi.vat_105_amount
    )
    net_comm_21, vat_comm_21 = extract_vat(gross_comm_21, VAT_RATE_21)
    net_comm_105, vat_comm_105 = extract_vat(gross_comm_105, VAT_RATE_105)

    taxable_card, vat_card = split_card_interest(
        bi.card_interest_amount,
        bi.card_interest_vat_amount,
        policy.card_interest_mode,
    )

    logger.debug("billing_breakdown_auto_split", extra={
        "taxable_base_21": str(base_21),
        "taxable_base_105": str(base_105),
        "gross_commission_21": str(gross_comm_21),
        "gross_commission_105": str(gross_comm_105),
        "commission_exempt": str(commission_exempt),
    })

    return BillingBreakdownResult(
        mode=BillingMode.AUTO,
        margin=bi.margin,
        transfer_fee_pct=bi.transfer_fee_pct,
        transfer_fee_amount=fee_amount,
        commission=commission,
        other_taxes=bi.other_taxes_amount,
        total_commission_without_vat=commission - vat_comm_21 - vat_comm_105,
        taxable_card_interest=taxable_card,
        vat_on_card_interest=vat_card,
        total_vat=vat_comm_21 + vat_comm_105 + vat_card,
        non_computable=non_computable,
        taxable_base_21=base_21,
        taxable_base_105=base_105,
        commission_exempt=commission_exempt,
        gross_commission_21=gross_comm_21,
        gross_commission_105=gross_comm_105,
        commission_21=net_comm_21,
        commission_105=net_comm_105,
        vat_on_commission_21=vat_comm_21,
        vat_on_commission_105=vat_comm_105,
    )


def _calculate_manual(
    bi: ServiceBillingInput, policy: BreakdownPolicy
) -> BillingBreakdownResult:
    """Flat-tax breakdown: the fee-adjusted margin is the commission."""
    commission, fee_amount = apply_transfer_fee(
        bi.sale_price, bi.cost_price, bi.transfer_fee_pct, policy.fee_application
    )
    taxable_card, vat_card = split_card_interest(
        bi.card_interest_amount,
        bi.card_interest_vat_amount,
        policy.card_interest_mode,
    )

    return BillingBreakdownResult(
        mode=BillingMode.MANUAL,
        margin=bi.margin,
        transfer_fee_pct=bi.transfer_fee_pct,
        transfer_fee_amount=fee_amount,
        commission=commission,
        other_taxes=bi.other_taxes_amount,
        total_commission_without_vat=commission,
        taxable_card_interest=taxable_card,
        vat_on_card_interest=vat_card,
        total_vat=vat_card,
    )
