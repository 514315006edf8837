"""
Configuration Loader (``billing_config.loader``).

Responsibility
--------------
Loads the agency billing YAML file and parses it into the frozen
``billing_config.schema`` dataclasses. The public runtime entry point is
``billing_config.get_agency_config()``.

File layout
-----------
::

    allow_default_agency: false
    defaults:
      billing_breakdown_mode: auto
      transfer_fee_pct: 2.4          # or 0.024
      fee_application: margin        # margin | cost | sale
      card_interest_mode: pass_through  # pass_through | decompose
    agencies:
      - agency_id: 7
        billing_breakdown_mode: manual

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Agency entry without ``agency_id``  -> ``KeyError`` propagates.
* Unknown mode/policy, bad percentage  -> ``InvalidBillingConfigError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, TypeVar

import yaml

from billing_config.schema import (
    DEFAULT_AGENCY_ID,
    DEFAULT_TRANSFER_FEE_PCT,
    AgencyBillingConfig,
    BillingConfigSet,
)
from billing_engines.breakdown import (
    BillingMode,
    BreakdownPolicy,
    CardInterestMode,
    FeeApplication,
)
from billing_kernel.domain.amounts import ONE, parse_pct
from billing_kernel.exceptions import InvalidBillingConfigError

_E = TypeVar("_E", bound=Enum)

_BUILTIN_DEFAULTS: dict[str, Any] = {
    "billing_breakdown_mode": BillingMode.AUTO.value,
    "transfer_fee_pct": str(DEFAULT_TRANSFER_FEE_PCT),
    "fee_application": FeeApplication.MARGIN.value,
    "card_interest_mode": CardInterestMode.PASS_THROUGH.value,
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_enum(enum_type: type[_E], key: str, value: Any) -> _E:
    """Parse an enum member from its YAML string value."""
    try:
        return enum_type(str(value).strip().lower())
    except ValueError as e:
        raise InvalidBillingConfigError(key, value) from e


def parse_transfer_fee_pct(value: Any) -> Decimal:
    """Parse a fee given as a fraction (0.024) or a percentage (2.4)."""
    pct = parse_pct(value)
    if pct is None or pct > ONE:
        raise InvalidBillingConfigError("transfer_fee_pct", value)
    return pct


def parse_agency(
    data: dict[str, Any], defaults: dict[str, Any]
) -> AgencyBillingConfig:
    """
    Parse one agency entry, filling missing keys from ``defaults``.

    Raises:
        KeyError: if ``agency_id`` is missing.
        InvalidBillingConfigError: on an unreadable value.
    """
    merged = {**defaults, **{k: v for k, v in data.items() if v is not None}}
    return AgencyBillingConfig(
        agency_id=str(merged["agency_id"]),
        billing_mode=parse_enum(
            BillingMode, "billing_breakdown_mode", merged["billing_breakdown_mode"]
        ),
        transfer_fee_pct=parse_transfer_fee_pct(merged["transfer_fee_pct"]),
        policy=BreakdownPolicy(
            fee_application=parse_enum(
                FeeApplication, "fee_application", merged["fee_application"]
            ),
            card_interest_mode=parse_enum(
                CardInterestMode, "card_interest_mode", merged["card_interest_mode"]
            ),
        ),
    )


def parse_config_set(data: dict[str, Any]) -> BillingConfigSet:
    """Parse the whole file contents into a BillingConfigSet."""
    default_data = {
        **_BUILTIN_DEFAULTS,
        **{k: v for k, v in (data.get("defaults") or {}).items() if v is not None},
    }
    # agency_id is never inherited from defaults
    default_data.pop("agency_id", None)
    defaults = parse_agency({"agency_id": DEFAULT_AGENCY_ID}, default_data)
    agencies = tuple(
        parse_agency(entry, default_data) for entry in data.get("agencies") or []
    )
    return BillingConfigSet(
        defaults=defaults,
        agencies=agencies,
        allow_default_agency=bool(data.get("allow_default_agency", False)),
        checksum=compute_checksum(data),
    )


def load_billing_config(path: Path) -> BillingConfigSet:
    """Load and parse the agency billing configuration file."""
    return parse_config_set(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
