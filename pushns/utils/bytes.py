"""
pushns.utils.bytes
==================

Normalization helpers for the two fixed-width identifiers the protocol uses:

- **addresses**: 20 raw bytes (``0x``-hex strings accepted)
- **nodes / label hashes / secrets**: 32 raw bytes (``0x``-hex strings accepted)

The zero address and the zero node are the "unset" sentinels returned by
lookups; they are never errors.
"""

from __future__ import annotations

from typing import Union

BytesLike = Union[bytes, bytearray, memoryview]
HexLike = Union[str, bytes, bytearray, memoryview]

ADDRESS_LEN = 20
NODE_LEN = 32

ZERO_ADDRESS = b"\x00" * ADDRESS_LEN
ZERO_NODE = b"\x00" * NODE_LEN


def strip0x(s: str) -> str:
    return s[2:] if s.startswith(("0x", "0X")) else s


def to_hex(data: BytesLike, *, prefix: bool = True) -> str:
    """Return lowercase hex string of data."""
    h = bytes(data).hex()
    return f"0x{h}" if prefix else h


def from_hex(h: str) -> bytes:
    """Parse hex string with or without 0x prefix; ignores surrounding whitespace."""
    if not isinstance(h, str):
        raise TypeError("from_hex expects str")
    h = strip0x(h.strip())
    if len(h) % 2 == 1:
        h = "0" + h
    try:
        return bytes.fromhex(h)
    except ValueError as e:
        raise ValueError(f"invalid hex string: {e}") from e


def _fixed(value: HexLike, n: int, name: str) -> bytes:
    if isinstance(value, str):
        out = from_hex(value)
    elif isinstance(value, (bytes, bytearray, memoryview)):
        out = bytes(value)
    else:
        raise TypeError(f"{name} must be bytes or hex string, got {type(value).__name__}")
    if len(out) != n:
        raise ValueError(f"{name} must be {n} bytes, got {len(out)}")
    return out


def address(value: HexLike | None) -> bytes:
    """Normalize an identity to 20 bytes. ``None`` maps to the zero address."""
    if value is None:
        return ZERO_ADDRESS
    return _fixed(value, ADDRESS_LEN, "address")


def node32(value: HexLike, *, name: str = "node") -> bytes:
    """Normalize a node hash, label hash or secret to 32 bytes."""
    return _fixed(value, NODE_LEN, name)


def is_zero(value: bytes) -> bool:
    return not any(value)


__all__ = [
    "ADDRESS_LEN",
    "NODE_LEN",
    "ZERO_ADDRESS",
    "ZERO_NODE",
    "strip0x",
    "to_hex",
    "from_hex",
    "address",
    "node32",
    "is_zero",
]
