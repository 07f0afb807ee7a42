"""
pushns.contracts.reverse_registrar
==================================

ReverseRegistrar: lets an address claim its node under ``addr.reverse`` so a
resolver can map the address back to a canonical name.

    reverse node(addr) = make_node(namehash("addr.reverse"),
                                   keccak256(lowercase_hex(addr)))

(the hex form carries no ``0x`` prefix). The registrar must own the
``addr.reverse`` node in NodeRegistry; deployment arranges that.
"""

from __future__ import annotations

from typing import Optional

from ..errors import ResolverRequired, Unauthorized
from ..runtime.contract import Contract, Ownable, transaction
from ..utils.bytes import ZERO_ADDRESS, HexLike, address, is_zero
from ..utils.hash import keccak256, make_node, namehash
from .registry import NodeRegistry
from .resolver import Resolver

ADDR_REVERSE_NODE = namehash("addr.reverse")

_K_DEFAULT_RESOLVER = b"rev:default_resolver"


def reverse_label(addr: HexLike) -> bytes:
    return keccak256(address(addr).hex().encode("ascii"))


def reverse_node(addr: HexLike) -> bytes:
    return make_node(ADDR_REVERSE_NODE, reverse_label(addr))


class ReverseRegistrar(Ownable, Contract):
    def __init__(
        self,
        chain,
        address_: bytes,
        deployer: bytes,
        registry: NodeRegistry,
        default_resolver: Optional[HexLike] = None,
    ) -> None:
        super().__init__(chain, address_, deployer)
        self.registry = registry
        self.init_owner(deployer)
        if default_resolver is not None:
            self._set(_K_DEFAULT_RESOLVER, address(default_resolver))

    def default_resolver(self) -> bytes:
        return self._get(_K_DEFAULT_RESOLVER, ZERO_ADDRESS)

    @staticmethod
    def node(addr: HexLike) -> bytes:
        return reverse_node(addr)

    @transaction
    def set_default_resolver(self, caller: HexLike, resolver: HexLike) -> None:
        self.require_owner(address(caller))
        res = address(resolver)
        if is_zero(res):
            raise ValueError("default resolver must be a non-zero address")
        self._set(_K_DEFAULT_RESOLVER, res)
        self._emit("DefaultResolverChanged", resolver=res)

    def _claim(self, addr: bytes, owner: bytes) -> bytes:
        return self.registry.set_subnode_record(
            self.address, ADDR_REVERSE_NODE, reverse_label(addr), owner, self.default_resolver()
        )

    @transaction
    def claim(self, caller: HexLike, addr: Optional[HexLike] = None) -> bytes:
        """Take ownership of the reverse node of `addr` (default: the caller)."""
        who = address(caller)
        target = who if addr is None else address(addr)
        if target != who and not self.registry.is_approved_for_all(target, who):
            raise Unauthorized("caller may not claim this reverse node", caller=who)
        node = self._claim(target, who)
        self.log.debug("reverse node claimed", extra={"node": node, "owner": who})
        return node

    @transaction
    def set_name(self, caller: HexLike, name: str) -> bytes:
        """Point the caller's reverse node at `name` on the default resolver."""
        who = address(caller)
        res = self.default_resolver()
        if is_zero(res):
            raise ResolverRequired("no default resolver configured")
        node = self._claim(who, self.address)
        self.chain.contract_at(res, Resolver).set_name(self.address, node, name)
        self.registry.set_owner(self.address, node, who)
        return node


__all__ = ["ADDR_REVERSE_NODE", "ReverseRegistrar", "reverse_label", "reverse_node"]
