"""
pushns.config — runtime configuration for a naming deployment.

This module centralizes knobs for:
  • the managed base name (the TLD whose leaves BaseRegistrar hands out)
  • the commit-reveal window (minimum / maximum commitment age)
  • registration policy (minimum duration, grace period after expiry)
  • the price table (per-length tiers, price unit, token decimals)

Configuration may be provided via environment variables. Defaults match the
reference deployment so a local run works out of the box.

Environment variables (all optional):
  PUSHNS_BASE_NAME                   -> managed base name (default: push)
  PUSHNS_MIN_COMMITMENT_AGE          -> e.g. "60", "60s", "1m" (default: 60s)
  PUSHNS_MAX_COMMITMENT_AGE          -> e.g. "24h" (default: 24h)
  PUSHNS_MIN_REGISTRATION_DURATION   -> e.g. "28d" (default: 28d)
  PUSHNS_GRACE_PERIOD                -> e.g. "0", "90d" (default: 0)
  PUSHNS_PRICE_TIERS                 -> comma-separated coin amounts, shortest
                                        names first (default: 1,0.5,0.3,0.1,0.05)
  PUSHNS_PRICE_UNIT_SECONDS          -> seconds covered by one tier price (default: 1d)
  PUSHNS_DECIMALS                    -> base units per coin exponent (default: 18)

Programmatic usage:
    from pushns.config import get_config
    cfg = get_config()
    cfg.commitments.min_age
"""

from __future__ import annotations

import os
import re
from dataclasses import asdict, dataclass
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from typing import Dict, Mapping, Optional, Tuple, Union

# ----------------------------- helpers -------------------------------------

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhdwy]?)\s*$", re.IGNORECASE)

_DURATION_MULT = {
    "": 1,
    "s": 1,
    "m": 60,
    "h": 60 * 60,
    "d": 24 * 60 * 60,
    "w": 7 * 24 * 60 * 60,
    "y": 365 * 24 * 60 * 60,
}

DEFAULT_PRICE_TIERS = ("1", "0.5", "0.3", "0.1", "0.05")


def parse_duration(s: Union[str, int]) -> int:
    """
    Parse human-friendly durations into seconds:
      "60", "60s", "5m", "24h", "28d", "2w", "1y", 60 -> int seconds

    A year is 365 days.
    """
    if isinstance(s, int):
        if s < 0:
            raise ValueError("duration must be non-negative")
        return s
    m = _DURATION_RE.match(str(s))
    if not m:
        raise ValueError(f"invalid duration: {s!r}")
    return int(m.group(1)) * _DURATION_MULT[m.group(2).lower()]


def parse_amount(s: Union[str, int, Decimal], decimals: int) -> int:
    """
    Convert a coin amount ("0.05", "1", Decimal) into integer base units.
    Integers are taken as base units already.
    """
    if isinstance(s, int):
        if s < 0:
            raise ValueError("amount must be non-negative")
        return s
    try:
        d = Decimal(str(s).strip())
    except InvalidOperation as e:
        raise ValueError(f"invalid amount: {s!r}") from e
    if d < 0:
        raise ValueError("amount must be non-negative")
    scaled = d * (Decimal(10) ** decimals)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"amount {s!r} has more than {decimals} decimals")
    return int(scaled)


def format_amount(units: int, decimals: int) -> str:
    """Render base units as a coin amount without trailing zeros ("36.5")."""
    d = Decimal(units) / (Decimal(10) ** decimals)
    text = format(d.normalize(), "f")
    return text


# ------------------------------ dataclasses ---------------------------------


@dataclass(frozen=True)
class CommitmentPolicy:
    min_age: int = 60
    max_age: int = 24 * 60 * 60


@dataclass(frozen=True)
class RegistrationPolicy:
    min_duration: int = 28 * 24 * 60 * 60
    grace_period: int = 0


@dataclass(frozen=True)
class PricingConfig:
    tiers: Tuple[int, ...] = tuple(parse_amount(p, 18) for p in DEFAULT_PRICE_TIERS)
    unit_seconds: int = 24 * 60 * 60
    decimals: int = 18


@dataclass(frozen=True)
class NamingConfig:
    base_name: str
    commitments: CommitmentPolicy
    registration: RegistrationPolicy
    pricing: PricingConfig

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


# ------------------------------ loader --------------------------------------


def _validate(cfg: NamingConfig) -> NamingConfig:
    if not cfg.base_name or "." in cfg.base_name:
        raise ValueError("base_name must be a single non-empty label")
    c = cfg.commitments
    if c.min_age < 0:
        raise ValueError("min_age must be ≥ 0")
    if c.max_age <= c.min_age:
        raise ValueError("max_age must be > min_age")
    r = cfg.registration
    if r.min_duration < 0:
        raise ValueError("min_duration must be ≥ 0")
    if r.grace_period < 0:
        raise ValueError("grace_period must be ≥ 0")
    p = cfg.pricing
    if not p.tiers:
        raise ValueError("at least one price tier is required")
    if p.unit_seconds <= 0:
        raise ValueError("unit_seconds must be > 0")
    if p.decimals < 0:
        raise ValueError("decimals must be ≥ 0")
    return cfg


def load_config(
    env: Optional[Mapping[str, str]] = None,
    *,
    overrides: Optional[Mapping[str, object]] = None,
) -> NamingConfig:
    """
    Build a NamingConfig from environment and optional overrides.

    Args:
        env: mapping to read variables from (default: os.environ)
        overrides: explicit field overrides; keys support:
          'base_name', 'min_commitment_age', 'max_commitment_age',
          'min_registration_duration', 'grace_period', 'price_tiers',
          'price_unit_seconds', 'decimals'
    """
    env = os.environ if env is None else env
    overrides = dict(overrides or {})

    def pick(key: str, var: str, default: object) -> object:
        if key in overrides:
            return overrides[key]
        return env.get(var, default)

    decimals = int(pick("decimals", "PUSHNS_DECIMALS", 18))

    raw_tiers = pick("price_tiers", "PUSHNS_PRICE_TIERS", DEFAULT_PRICE_TIERS)
    if isinstance(raw_tiers, str):
        raw_tiers = [t for t in raw_tiers.split(",") if t.strip()]
    tiers = tuple(parse_amount(t, decimals) for t in raw_tiers)  # type: ignore[union-attr]

    cfg = NamingConfig(
        base_name=str(pick("base_name", "PUSHNS_BASE_NAME", "push")).strip().lower(),
        commitments=CommitmentPolicy(
            min_age=parse_duration(pick("min_commitment_age", "PUSHNS_MIN_COMMITMENT_AGE", 60)),  # type: ignore[arg-type]
            max_age=parse_duration(pick("max_commitment_age", "PUSHNS_MAX_COMMITMENT_AGE", "24h")),  # type: ignore[arg-type]
        ),
        registration=RegistrationPolicy(
            min_duration=parse_duration(
                pick("min_registration_duration", "PUSHNS_MIN_REGISTRATION_DURATION", "28d")  # type: ignore[arg-type]
            ),
            grace_period=parse_duration(pick("grace_period", "PUSHNS_GRACE_PERIOD", 0)),  # type: ignore[arg-type]
        ),
        pricing=PricingConfig(
            tiers=tiers,
            unit_seconds=parse_duration(pick("price_unit_seconds", "PUSHNS_PRICE_UNIT_SECONDS", "1d")),  # type: ignore[arg-type]
            decimals=decimals,
        ),
    )
    return _validate(cfg)


@lru_cache(maxsize=1)
def get_config() -> NamingConfig:
    """Cached global config for application bootstraps and the CLI."""
    return load_config()


def summary(cfg: Optional[NamingConfig] = None) -> str:
    """One-line summary of the most important knobs."""
    cfg = cfg or get_config()
    p = cfg.pricing
    tiers = "/".join(format_amount(t, p.decimals) for t in p.tiers)
    return (
        "pushns{"
        f"base={cfg.base_name}, "
        f"commit=[{cfg.commitments.min_age}s,{cfg.commitments.max_age}s], "
        f"min_duration={cfg.registration.min_duration}s, grace={cfg.registration.grace_period}s, "
        f"tiers={tiers} per {p.unit_seconds}s"
        "}"
    )


__all__ = [
    "CommitmentPolicy",
    "RegistrationPolicy",
    "PricingConfig",
    "NamingConfig",
    "parse_duration",
    "parse_amount",
    "format_amount",
    "load_config",
    "get_config",
    "summary",
]
