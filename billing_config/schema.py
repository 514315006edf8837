"""
Agency billing configuration schema.

Frozen dataclasses the YAML file is parsed into. These carry already
resolved values: the engines accept them as plain parameters and never
read configuration themselves.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from billing_engines.breakdown import (
    DEFAULT_POLICY,
    BillingBreakdownResult,
    BillingMode,
    BreakdownPolicy,
    ServiceBillingInput,
    calculate_breakdown,
)
from billing_kernel.logging_config import LogContext

# Agencies that never configured a fee are charged 2.4%
DEFAULT_TRANSFER_FEE_PCT = Decimal("0.024")

DEFAULT_AGENCY_ID = "*"


@dataclass(frozen=True)
class AgencyBillingConfig:
    """Billing settings of one agency."""

    agency_id: str
    billing_mode: BillingMode = BillingMode.AUTO
    transfer_fee_pct: Decimal = DEFAULT_TRANSFER_FEE_PCT
    policy: BreakdownPolicy = DEFAULT_POLICY

    def build_input(self, **amounts: Any) -> ServiceBillingInput:
        """
        Build a service input with this agency's mode and fee filled in.

        ``mode`` and ``transfer_fee_pct`` may still be overridden per
        service (a manager forcing manual mode, a service-specific fee).
        """
        amounts.setdefault("mode", self.billing_mode)
        amounts.setdefault("transfer_fee_pct", self.transfer_fee_pct)
        return ServiceBillingInput(**amounts)

    def calculate(
        self, service_id: int | str | None = None, **amounts: Any
    ) -> BillingBreakdownResult:
        """
        Run the breakdown for one of this agency's services.

        The agency and service ids are bound to the log context, so the
        engine's records (rejected input included) carry them.
        """
        with LogContext.bind(agency_id=self.agency_id, service_id=service_id):
            return calculate_breakdown(self.build_input(**amounts), self.policy)


@dataclass(frozen=True)
class BillingConfigSet:
    """
    Every agency's billing settings, as loaded from one file.

    ``defaults`` fills keys an agency entry leaves out and, when
    ``allow_default_agency`` is set, serves agencies with no entry.
    """

    defaults: AgencyBillingConfig
    agencies: tuple[AgencyBillingConfig, ...] = ()
    allow_default_agency: bool = False
    checksum: str = ""

    def find(self, agency_id: int | str) -> AgencyBillingConfig | None:
        """Entry for ``agency_id``, or None."""
        key = str(agency_id)
        for agency in self.agencies:
            if agency.agency_id == key:
                return agency
        return None
