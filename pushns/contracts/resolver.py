"""
pushns.contracts.resolver
=========================

Resolver: per-node records (address, canonical name, text map).

Tables
------
- ``addr:`` node             → address
- ``name:`` node             → name
- ``txt:``  node ‖ utf8(key) → value

Getters never fail: unset records read as the zero address / empty string.
Setters require the caller to be the node's current NodeRegistry owner or an
operator that owner approved.
"""

from __future__ import annotations

from ..errors import Unauthorized
from ..records import AddrRecord, NameRecord, RecordLike, TextRecord, coerce_record
from ..runtime.contract import Contract, transaction
from ..utils.bytes import ZERO_ADDRESS, HexLike, address, is_zero, node32
from .registry import NodeRegistry

_P_ADDR = b"addr:"
_P_NAME = b"name:"
_P_TEXT = b"txt:"


def _text_key(node: bytes, key: str) -> bytes:
    return _P_TEXT + node + key.encode("utf-8")


class Resolver(Contract):
    def __init__(self, chain, address_: bytes, deployer: bytes, registry: NodeRegistry) -> None:
        super().__init__(chain, address_, deployer)
        self.registry = registry

    def _authorise(self, caller: bytes, node: bytes) -> None:
        owner = self.registry.owner(node)
        if caller == owner or self.registry.is_approved_for_all(owner, caller):
            return
        raise Unauthorized("caller does not control node", caller=caller, node=node)

    # ---- address ---------------------------------------------------------

    def addr(self, node: HexLike) -> bytes:
        return self._get(_P_ADDR + node32(node), ZERO_ADDRESS)

    @transaction
    def set_addr(self, caller: HexLike, node: HexLike, addr: HexLike | None) -> None:
        n, a = node32(node), address(addr)
        self._authorise(address(caller), n)
        self._set(_P_ADDR + n, None if is_zero(a) else a)
        self._emit("AddrChanged", node=n, addr=a)

    # ---- text ------------------------------------------------------------

    def text(self, node: HexLike, key: str) -> str:
        return self._get(_text_key(node32(node), key), "")

    @transaction
    def set_text(self, caller: HexLike, node: HexLike, key: str, value: str) -> None:
        if not key:
            raise ValueError("text key must not be empty")
        n = node32(node)
        self._authorise(address(caller), n)
        self._set(_text_key(n, key), value or None)
        self._emit("TextChanged", node=n, key=key, value=value)

    # ---- name ------------------------------------------------------------

    def name(self, node: HexLike) -> str:
        return self._get(_P_NAME + node32(node), "")

    @transaction
    def set_name(self, caller: HexLike, node: HexLike, name: str) -> None:
        n = node32(node)
        self._authorise(address(caller), n)
        self._set(_P_NAME + n, name or None)
        self._emit("NameChanged", node=n, name=name)

    # ---- records ---------------------------------------------------------

    @transaction
    def apply(self, caller: HexLike, node: HexLike, record: RecordLike) -> None:
        """Write one tagged record through the matching setter."""
        rec = coerce_record(record)
        if isinstance(rec, AddrRecord):
            self.set_addr(caller, node, rec.address)
        elif isinstance(rec, NameRecord):
            self.set_name(caller, node, rec.name)
        elif isinstance(rec, TextRecord):
            self.set_text(caller, node, rec.key, rec.value)


__all__ = ["Resolver"]
