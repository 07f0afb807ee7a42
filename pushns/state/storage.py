"""
pushns.state.storage — per-contract storage (key/value)

A minimal, deterministic key/value view keyed by contract address (`bytes`)
and storage key (`bytes`). Values are restricted to the canonical scalar
subset that the snapshot codec can encode: ``int``, ``bool``, ``str`` and
``bytes``.

Design goals
------------
- Pure Python, no I/O; deterministic semantics.
- Canonicalization: addresses and keys are copied to immutable `bytes`.
- ``None`` means absent: storing ``None`` deletes the key.

Typical usage
-------------
    sv = StorageView()
    sv.set(addr, b"own:" + node, owner)
    sv.get(addr, b"own:" + node, default=ZERO_ADDRESS)
    sv.delete(addr, b"own:" + node)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, MutableMapping, Optional, Tuple, Union

Value = Union[int, bool, str, bytes]

_SCALARS = (int, bool, str, bytes)


def _as_bytes(x: bytes | bytearray | memoryview, *, name: str) -> bytes:
    if not isinstance(x, (bytes, bytearray, memoryview)):
        raise TypeError(f"{name} must be bytes-like")
    return bytes(x)


def check_value(value: object) -> Optional[Value]:
    """Reject values the snapshot codec could not round-trip."""
    if value is None:
        return None
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    if not isinstance(value, _SCALARS):
        raise TypeError(f"unsupported storage value type: {type(value).__name__}")
    return value  # type: ignore[return-value]


@dataclass
class StorageView:
    """
    Committed per-contract storage.

    Parameters
    ----------
    backend :
        Optional external mapping to store state, shaped {address: {key: value}}.
        If not provided, an internal dict is used.
    """
    backend: Optional[MutableMapping[bytes, Dict[bytes, Value]]] = None

    _store: MutableMapping[bytes, Dict[bytes, Value]] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._store = self.backend if self.backend is not None else {}

    def get(self, address: bytes, key: bytes, default: object = None) -> object:
        m = self._store.get(_as_bytes(address, name="address"))
        if m is None:
            return default
        return m.get(_as_bytes(key, name="key"), default)

    def has(self, address: bytes, key: bytes) -> bool:
        m = self._store.get(_as_bytes(address, name="address"))
        return m is not None and _as_bytes(key, name="key") in m

    def set(self, address: bytes, key: bytes, value: object) -> None:
        v = check_value(value)
        if v is None:
            self.delete(address, key)
            return
        addr = _as_bytes(address, name="address")
        self._store.setdefault(addr, {})[_as_bytes(key, name="key")] = v

    def delete(self, address: bytes, key: bytes) -> bool:
        addr = _as_bytes(address, name="address")
        m = self._store.get(addr)
        if m is None:
            return False
        existed = m.pop(_as_bytes(key, name="key"), None) is not None
        if not m:
            self._store.pop(addr, None)
        return existed

    def items(self, address: bytes) -> Iterator[Tuple[bytes, Value]]:
        """Stable (sorted by key) iteration over one contract's storage."""
        m = self._store.get(_as_bytes(address, name="address"), {})
        for k in sorted(m):
            yield k, m[k]

    def addresses(self) -> Iterator[bytes]:
        return iter(sorted(self._store))

    def clear(self) -> None:
        self._store.clear()

    def total_keys(self) -> int:
        return sum(len(m) for m in self._store.values())


__all__ = ["StorageView", "Value", "check_value"]
