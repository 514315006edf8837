"""
Tests for per-currency service totals.
"""

from decimal import Decimal

from billing_engines.breakdown import (
    BillingMode,
    ServiceBillingInput,
    calculate_breakdown,
)
from billing_engines.summary import (
    DEFAULT_CURRENCY,
    ServiceLine,
    line_transfer_fee,
    normalize_currency,
    summarize_by_currency,
)


def _line(currency, transfer_fee_pct=None, transfer_fee_amount=None, **amounts):
    billing_input = ServiceBillingInput(**amounts)
    return ServiceLine(
        currency=currency,
        billing_input=billing_input,
        breakdown=calculate_breakdown(billing_input),
        transfer_fee_pct=transfer_fee_pct,
        transfer_fee_amount=transfer_fee_amount,
    )


class TestNormalizeCurrency:
    def test_upper_cased(self):
        assert normalize_currency(" usd ") == "USD"

    def test_blank_is_local_currency(self):
        assert normalize_currency("") == DEFAULT_CURRENCY
        assert normalize_currency(None) == DEFAULT_CURRENCY


class TestLineTransferFee:
    """Transfer fee charged per service."""

    def test_stored_amount_wins(self):
        line = _line(
            "ARS",
            transfer_fee_pct=Decimal("0.5"),
            transfer_fee_amount=Decimal("12.34"),
            sale_price=Decimal("1000"),
            cost_price=Decimal("800"),
        )

        assert line_transfer_fee(line, Decimal("0.024")) == Decimal("12.34")

    def test_line_pct_over_agency_pct(self):
        line = _line(
            "ARS",
            transfer_fee_pct=Decimal("0.01"),
            sale_price=Decimal("1000"),
            cost_price=Decimal("800"),
        )

        assert line_transfer_fee(line, Decimal("0.024")) == Decimal("10")

    def test_agency_pct_fallback(self):
        line = _line("ARS", sale_price=Decimal("1000"), cost_price=Decimal("800"))

        assert line_transfer_fee(line, Decimal("0.024")) == Decimal("24")

    def test_breakdown_fee_used_when_charged(self):
        """The fee the breakdown charged on the margin is the line's fee."""
        billing_input = ServiceBillingInput(
            sale_price=Decimal("1500"),
            cost_price=Decimal("1000"),
            vat_21_amount=Decimal("210"),
            transfer_fee_pct=Decimal("0.1"),
        )
        line = ServiceLine(
            currency="ARS",
            billing_input=billing_input,
            breakdown=calculate_breakdown(billing_input),
        )

        assert line.breakdown.transfer_fee_amount == Decimal("50")
        assert line_transfer_fee(line, Decimal("0.1")) == Decimal("50")

    def test_stored_amount_beats_breakdown_fee(self):
        billing_input = ServiceBillingInput(
            sale_price=Decimal("1500"),
            cost_price=Decimal("1000"),
            transfer_fee_pct=Decimal("0.1"),
        )
        charged = ServiceLine(
            currency="ARS",
            billing_input=billing_input,
            breakdown=calculate_breakdown(billing_input),
            transfer_fee_amount=Decimal("7"),
        )

        assert line_transfer_fee(charged, Decimal("0.1")) == Decimal("7")


class TestSummarizeByCurrency:
    """Grouping and summing services."""

    def setup_method(self):
        self.lines = [
            _line(
                "ars",
                sale_price=Decimal("1210"),
                cost_price=Decimal("1000"),
                vat_21_amount=Decimal("210"),
            ),
            _line(
                "USD",
                sale_price=Decimal("500"),
                cost_price=Decimal("400"),
                exempt_amount=Decimal("400"),
            ),
            _line(
                "ARS",
                sale_price=Decimal("1500"),
                cost_price=Decimal("1000"),
                other_taxes_amount=Decimal("30"),
            ),
        ]

    def test_grouped_in_first_seen_order(self):
        totals = summarize_by_currency(self.lines)

        assert list(totals) == ["ARS", "USD"]
        assert totals["ARS"].service_count == 2
        assert totals["USD"].service_count == 1

    def test_inputs_summed(self):
        totals = summarize_by_currency(self.lines)

        ars = totals["ARS"]
        assert ars.sale_price == Decimal("2710")
        assert ars.cost_price == Decimal("2000")
        assert ars.vat_21_amount == Decimal("210")
        assert ars.other_taxes_amount == Decimal("30")

    def test_breakdowns_summed(self):
        totals = summarize_by_currency(self.lines)

        ars = totals["ARS"]
        expected = sum(
            (line.breakdown.total_commission_without_vat for line in self.lines
             if line.currency.upper() == "ARS"),
            Decimal("0"),
        )
        assert ars.total_commission_without_vat == expected
        assert ars.taxable_base_21 == Decimal("1000")
        assert ars.commission_exempt == Decimal("500")
        assert totals["USD"].commission_exempt == Decimal("100")

    def test_transfer_fees_use_agency_default(self):
        totals = summarize_by_currency(self.lines, Decimal("0.01"))

        assert totals["ARS"].transfer_fees == Decimal("27.10")
        assert totals["USD"].transfer_fees == Decimal("5")

    def test_fees_agree_with_commissions(self):
        """Summed fee plus summed commission is the summed margin."""
        billing_input = ServiceBillingInput(
            sale_price=Decimal("1500"),
            cost_price=Decimal("1000"),
            vat_21_amount=Decimal("210"),
            transfer_fee_pct=Decimal("0.1"),
        )
        line = ServiceLine(
            currency="ARS",
            billing_input=billing_input,
            breakdown=calculate_breakdown(billing_input),
        )

        ars = summarize_by_currency([line], Decimal("0.1"))["ARS"]

        assert ars.transfer_fees == Decimal("50")
        assert line.breakdown.commission == Decimal("450")
        assert ars.transfer_fees + line.breakdown.commission == (
            ars.sale_price - ars.cost_price
        )

    def test_manual_lines_skip_bracket_fields(self):
        line = _line(
            "EUR",
            sale_price=Decimal("100"),
            cost_price=Decimal("60"),
            mode=BillingMode.MANUAL,
        )

        eur = summarize_by_currency([line])["EUR"]
        assert eur.total_commission_without_vat == Decimal("40")
        assert eur.taxable_base_21 == Decimal("0")
        assert eur.non_computable == Decimal("0")

    def test_no_lines(self):
        assert summarize_by_currency([]) == {}
