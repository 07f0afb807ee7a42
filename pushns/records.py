"""
pushns.records — the resolver record kinds.

Resolver data is a tagged union of fixed record kinds plus an open text map:

    AddrRecord(address)        tag 1   the node's address
    NameRecord(name)           tag 2   the canonical name (reverse lookups)
    TextRecord(key, value)     tag 3   arbitrary text entries, unique per key

`to_obj()` gives the canonical list form used inside commitments:
``[1, address]``, ``[2, name]``, ``[3, key, value]``.

Callers may also pass ``(key, value)`` pairs: key ``"addr"`` becomes an
AddrRecord, key ``"name"`` a NameRecord, any other key a TextRecord. A text
record literally keyed "addr" or "name" must be built with `TextRecord`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Tuple, Union

from .utils.bytes import HexLike, address

TAG_ADDR = 1
TAG_NAME = 2
TAG_TEXT = 3


@dataclass(frozen=True)
class AddrRecord:
    address: bytes

    def __post_init__(self) -> None:
        object.__setattr__(self, "address", address(self.address))

    def to_obj(self) -> list:
        return [TAG_ADDR, self.address]


@dataclass(frozen=True)
class NameRecord:
    name: str

    def to_obj(self) -> list:
        return [TAG_NAME, self.name]


@dataclass(frozen=True)
class TextRecord:
    key: str
    value: str

    def __post_init__(self) -> None:
        if not self.key:
            raise ValueError("text record key must not be empty")

    def to_obj(self) -> list:
        return [TAG_TEXT, self.key, self.value]


Record = Union[AddrRecord, NameRecord, TextRecord]
RecordLike = Union[Record, Tuple[str, Union[str, HexLike]]]


def coerce_record(item: RecordLike) -> Record:
    if isinstance(item, (AddrRecord, NameRecord, TextRecord)):
        return item
    if isinstance(item, (tuple, list)) and len(item) == 2:
        key, value = item
        if key == "addr":
            return AddrRecord(value)  # type: ignore[arg-type]
        if key == "name":
            return NameRecord(str(value))
        if not isinstance(value, str):
            raise TypeError(f"text record {key!r} needs a str value")
        return TextRecord(str(key), value)
    raise TypeError(f"not a resolver record: {item!r}")


def coerce_records(items: Iterable[RecordLike] | None) -> Tuple[Record, ...]:
    """Normalize a record sequence, preserving order."""
    return tuple(coerce_record(i) for i in (items or ()))


def records_to_obj(records: Iterable[Record]) -> List[list]:
    return [r.to_obj() for r in records]


__all__ = [
    "AddrRecord",
    "NameRecord",
    "TextRecord",
    "Record",
    "RecordLike",
    "coerce_record",
    "coerce_records",
    "records_to_obj",
]
