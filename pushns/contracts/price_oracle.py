"""
pushns.contracts.price_oracle
=============================

PriceOracle: name length → price per duration unit.

The tier table is fixed at deployment: ``tiers[i]`` is the price for names of
``i + 1`` characters, and the last tier applies to every longer name. With the
reference table ``(1, 0.5, 0.3, 0.1, 0.05)`` coin per day, a 4-character name
costs 0.1 coin per day and every name of 5+ characters 0.05.

A table that is empty, negative or increasing is rejected at construction.
Rent for a duration that is not a whole number of units rounds up to the
next base unit, never down.
"""

from __future__ import annotations

from typing import Sequence, Tuple

from ..runtime.contract import Contract

DAY = 24 * 60 * 60


def validate_tiers(tiers: Sequence[int]) -> Tuple[int, ...]:
    out = tuple(int(t) for t in tiers)
    if not out:
        raise ValueError("price table must have at least one tier")
    if any(t < 0 for t in out):
        raise ValueError("prices must be non-negative")
    for shorter, longer in zip(out, out[1:]):
        if longer > shorter:
            raise ValueError("prices must not increase with name length")
    return out


def tier_price(tiers: Sequence[int], name_length: int) -> int:
    """Entry of `tiers` for a name of `name_length` characters (last tier for longer names)."""
    if name_length < 1:
        raise ValueError("name length must be >= 1")
    return tiers[min(name_length, len(tiers)) - 1]


def rent(unit_price: int, duration: int, unit_seconds: int = DAY) -> int:
    """`unit_price` per `unit_seconds`, charged for `duration` seconds and rounded up."""
    if duration < 0:
        raise ValueError("duration must be >= 0")
    return -(-unit_price * int(duration) // unit_seconds)


class PriceOracle(Contract):
    def __init__(
        self,
        chain,
        address_: bytes,
        deployer: bytes,
        tiers: Sequence[int],
        unit_seconds: int = DAY,
    ) -> None:
        super().__init__(chain, address_, deployer)
        if unit_seconds <= 0:
            raise ValueError("unit_seconds must be > 0")
        self.tiers = validate_tiers(tiers)
        self.unit_seconds = int(unit_seconds)

    def price(self, name_length: int) -> int:
        """Price per `unit_seconds` for a name of `name_length` characters."""
        return tier_price(self.tiers, name_length)

    def rent_price(self, name_length: int, duration: int) -> int:
        """Rent for holding such a name for `duration` seconds."""
        return rent(self.price(name_length), duration, self.unit_seconds)


__all__ = ["PriceOracle", "validate_tiers", "tier_price", "rent", "DAY"]
