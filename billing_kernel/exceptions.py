"""
Typed Exception Hierarchy for the Billing Kernel.

Every error has a TYPED exception class (catch by type, not message), a
``code`` class attribute (machine-readable, API-safe), and carries
structured data as attributes.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    BillingKernelError (base)
    |
    +-- InvalidInputError
    |   +-- NonFiniteAmountError
    |   +-- NegativeAmountError
    |   +-- AmountOutOfRangeError
    |   +-- TransferFeeOutOfRangeError
    |
    +-- ManualTotalsError
    |
    +-- BillingConfigError
        +-- AgencyConfigNotFoundError
        +-- InvalidBillingConfigError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Input           | INVALID_INPUT               | Amount or fee rejected by a form boundary
                | NON_FINITE_AMOUNT           | NaN, Infinity or unparseable amount
                | NEGATIVE_AMOUNT             | VAT/exempt/price below zero
                | AMOUNT_OUT_OF_RANGE         | Magnitude of 1e18 or more
                | TRANSFER_FEE_OUT_OF_RANGE   | Fee fraction outside [0, 1]
----------------|-----------------------------|-----------------------------------------
Voucher         | MANUAL_TOTALS_INVALID       | Manual AFIP totals inconsistent
----------------|-----------------------------|-----------------------------------------
Config          | AGENCY_CONFIG_NOT_FOUND     | No billing config for the agency
                | INVALID_BILLING_CONFIG      | Unknown mode/policy or bad percentage

===============================================================================
HANDLING PATTERNS
===============================================================================

    try:
        billing_input = ServiceBillingInput(**form_amounts)
    except InvalidInputError as e:
        # Form validation error next to the offending field
        return {"error": e.code, "field": e.field_name}

Business-illogical results (a negative non-computable amount, a negative
margin) are values, not errors. Only the categories above are raised.
"""

from typing import Any


class BillingKernelError(Exception):
    """
    Base exception for all billing kernel errors.

    All subclasses must have a `code` class attribute
    for machine-readable error identification.
    """

    code: str = "BILLING_KERNEL_ERROR"


# Input validation exceptions


class InvalidInputError(BillingKernelError):
    """An input amount or fee was rejected at the engine boundary."""

    code: str = "INVALID_INPUT"

    def __init__(self, field_name: str, value: Any, reason: str | None = None):
        self.field_name = field_name
        self.value = value
        super().__init__(
            reason or f"Invalid value for {field_name}: {value!r}"
        )


class NonFiniteAmountError(InvalidInputError):
    """Amount is NaN, infinite, or cannot be read as a number."""

    code: str = "NON_FINITE_AMOUNT"

    def __init__(self, field_name: str, value: Any):
        super().__init__(
            field_name,
            value,
            f"{field_name} must be a finite number, got {value!r}",
        )


class NegativeAmountError(InvalidInputError):
    """Amount that must be non-negative is below zero."""

    code: str = "NEGATIVE_AMOUNT"

    def __init__(self, field_name: str, value: Any):
        super().__init__(
            field_name,
            value,
            f"{field_name} must be non-negative, got {value}",
        )


class AmountOutOfRangeError(InvalidInputError):
    """Amount is too large in magnitude to be a price."""

    code: str = "AMOUNT_OUT_OF_RANGE"

    def __init__(self, field_name: str, value: Any, limit: Any):
        self.limit = limit
        super().__init__(
            field_name,
            value,
            f"{field_name} must be below {limit} in magnitude, got {value}",
        )


class TransferFeeOutOfRangeError(InvalidInputError):
    """Transfer fee fraction is outside [0, 1]."""

    code: str = "TRANSFER_FEE_OUT_OF_RANGE"

    def __init__(self, value: Any):
        super().__init__(
            "transfer_fee_pct",
            value,
            f"transfer_fee_pct must be between 0 and 1, got {value}",
        )


# Voucher exceptions


class ManualTotalsError(BillingKernelError):
    """Manually entered voucher totals are inconsistent."""

    code: str = "MANUAL_TOTALS_INVALID"

    def __init__(self, reason: str, message: str):
        self.reason = reason
        super().__init__(message)


# Configuration exceptions


class BillingConfigError(BillingKernelError):
    """Base exception for agency billing configuration errors."""

    code: str = "BILLING_CONFIG_ERROR"


class AgencyConfigNotFoundError(BillingConfigError):
    """No billing configuration exists for the agency."""

    code: str = "AGENCY_CONFIG_NOT_FOUND"

    def __init__(self, agency_id: int | str):
        self.agency_id = agency_id
        super().__init__(f"No billing configuration for agency {agency_id}")


class InvalidBillingConfigError(BillingConfigError):
    """A configuration value cannot be interpreted."""

    code: str = "INVALID_BILLING_CONFIG"

    def __init__(self, key: str, value: Any):
        self.key = key
        self.value = value
        super().__init__(f"Invalid billing config value for {key}: {value!r}")
