"""
billing_config -- single public entrypoint for agency billing configuration.

Responsibility:
    Resolves, per agency, the settings the billing engines take as plain
    parameters: breakdown mode (auto/manual), default transfer fee and
    the fee / card-interest policy. ``get_agency_config()`` is the only
    runtime entry point; YAML loading is internal.

Architecture position:
    Configuration -- sits above ``billing_engines``. The engines MUST
    NEVER import from ``billing_config``.

Failure modes:
    - ``FileNotFoundError`` -- configuration file missing.
    - ``AgencyConfigNotFoundError`` -- no entry for the agency and the file
      does not allow falling back to ``defaults``.
    - ``InvalidBillingConfigError`` -- unreadable mode, policy or fee.

Audit relevance:
    Every successful ``get_agency_config()`` call emits a
    ``BILLING_CONFIG_TRACE`` log entry with the agency, the resolved
    settings and the file checksum, tying each breakdown to the
    configuration that governed it.
"""

from __future__ import annotations

import logging
from pathlib import Path

from billing_config.loader import load_billing_config
from billing_config.schema import (
    DEFAULT_TRANSFER_FEE_PCT,
    AgencyBillingConfig,
    BillingConfigSet,
)
from billing_kernel.exceptions import AgencyConfigNotFoundError
from billing_kernel.logging_config import LogContext

_logger = logging.getLogger("billing_kernel.config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "agencies.yaml"

__all__ = [
    "DEFAULT_TRANSFER_FEE_PCT",
    "AgencyBillingConfig",
    "BillingConfigSet",
    "get_agency_config",
]


def get_agency_config(
    agency_id: int | str,
    config_path: Path | None = None,
) -> AgencyBillingConfig:
    """The ONLY public configuration entrypoint.

    Args:
        agency_id: Agency identifier.
        config_path: Override path to the configuration file.
            Defaults to billing_config/sets/agencies.yaml.

    Returns:
        AgencyBillingConfig for the agency. Agencies with no entry get
        the file's defaults when ``allow_default_agency`` is set.

    Raises:
        FileNotFoundError: If the configuration file does not exist.
        AgencyConfigNotFoundError: If the agency has no entry and
            fallback to defaults is not allowed.
        InvalidBillingConfigError: If a value cannot be interpreted.
    """
    with LogContext.bind(agency_id=agency_id):
        config_set = load_billing_config(config_path or _DEFAULT_CONFIG_PATH)

        config = config_set.find(agency_id)
        from_defaults = config is None
        if config is None:
            if not config_set.allow_default_agency:
                _logger.warning("billing_config_agency_missing", extra={
                    "checksum": config_set.checksum,
                })
                raise AgencyConfigNotFoundError(agency_id)
            config = AgencyBillingConfig(
                agency_id=str(agency_id),
                billing_mode=config_set.defaults.billing_mode,
                transfer_fee_pct=config_set.defaults.transfer_fee_pct,
                policy=config_set.defaults.policy,
            )

        _logger.info(
            "BILLING_CONFIG_TRACE",
            extra={
                "trace_type": "BILLING_CONFIG_TRACE",
                "billing_mode": config.billing_mode.value,
                "transfer_fee_pct": str(config.transfer_fee_pct),
                "fee_application": config.policy.fee_application.value,
                "card_interest_mode": config.policy.card_interest_mode.value,
                "from_defaults": from_defaults,
                "checksum": config_set.checksum,
            },
        )
    return config
