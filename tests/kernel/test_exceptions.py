"""
Tests for the billing kernel exception hierarchy.

Every exception must carry a machine-readable ``code`` and sit under
``BillingKernelError`` so callers can catch the whole family at once.
"""

import inspect
from decimal import Decimal

import pytest

from billing_kernel import exceptions
from billing_kernel.exceptions import (
    AgencyConfigNotFoundError,
    AmountOutOfRangeError,
    BillingConfigError,
    BillingKernelError,
    InvalidBillingConfigError,
    InvalidInputError,
    ManualTotalsError,
    NegativeAmountError,
    NonFiniteAmountError,
    TransferFeeOutOfRangeError,
)

ALL_ERRORS = [
    obj
    for _, obj in inspect.getmembers(exceptions, inspect.isclass)
    if issubclass(obj, BillingKernelError)
]


class TestHierarchy:
    @pytest.mark.parametrize("error_type", ALL_ERRORS, ids=lambda t: t.__name__)
    def test_has_own_code(self, error_type):
        assert isinstance(error_type.code, str)
        assert error_type.code == error_type.code.upper()

    def test_codes_unique(self):
        codes = [t.code for t in ALL_ERRORS]
        assert len(codes) == len(set(codes))

    def test_input_errors(self):
        for error_type in (
            NonFiniteAmountError,
            NegativeAmountError,
            AmountOutOfRangeError,
            TransferFeeOutOfRangeError,
        ):
            assert issubclass(error_type, InvalidInputError)

    def test_config_errors(self):
        assert issubclass(AgencyConfigNotFoundError, BillingConfigError)
        assert issubclass(InvalidBillingConfigError, BillingConfigError)


class TestStructuredFields:
    def test_invalid_input_fields(self):
        err = InvalidInputError("mode", "flat")

        assert err.field_name == "mode"
        assert err.value == "flat"
        assert "mode" in str(err)

    def test_transfer_fee_field_name(self):
        err = TransferFeeOutOfRangeError(2)

        assert err.field_name == "transfer_fee_pct"
        assert err.code == "TRANSFER_FEE_OUT_OF_RANGE"

    def test_amount_out_of_range_limit(self):
        err = AmountOutOfRangeError("sale_price", Decimal("1e20"), Decimal("1e18"))

        assert err.field_name == "sale_price"
        assert err.limit == Decimal("1e18")
        assert err.code == "AMOUNT_OUT_OF_RANGE"

    def test_manual_totals_reason(self):
        err = ManualTotalsError("vat_mismatch", "VAT 21% does not match its taxable base.")

        assert err.reason == "vat_mismatch"
        assert str(err) == "VAT 21% does not match its taxable base."

    def test_agency_not_found(self):
        err = AgencyConfigNotFoundError(42)

        assert err.agency_id == 42
        assert "42" in str(err)

    def test_invalid_config(self):
        err = InvalidBillingConfigError("billing_mode", "flat")

        assert err.key == "billing_mode"
        assert err.value == "flat"
