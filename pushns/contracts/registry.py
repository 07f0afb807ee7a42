"""
pushns.contracts.registry
=========================

NodeRegistry: the namespace tree. Every node (a 32-byte hash of its parent
node and label hash) has an owner, a resolver pointer and a ttl.

Tables
------
- ``own:`` node → owner address
- ``res:`` node → resolver address
- ``ttl:`` node → ttl seconds
- ``op:``  owner ‖ operator → True      (approved operators)

Lookups never fail: unset fields read as the zero address / zero ttl.
Writes to a node are allowed for its owner and for operators the owner has
approved; everyone else gets `Unauthorized`.

Events
------
- "Transfer"        {node, owner}
- "NewOwner"        {node, label, owner}
- "NewResolver"     {node, resolver}
- "NewTTL"          {node, ttl}
- "ApprovalForAll"  {owner, operator, approved}
"""

from __future__ import annotations

from ..errors import Unauthorized
from ..runtime.contract import Contract, transaction
from ..utils.bytes import ZERO_ADDRESS, ZERO_NODE, HexLike, address, node32
from ..utils.hash import make_node

_P_OWNER = b"own:"
_P_RESOLVER = b"res:"
_P_TTL = b"ttl:"
_P_OPERATOR = b"op:"


class NodeRegistry(Contract):
    def __init__(self, chain, address_: bytes, deployer: bytes) -> None:
        super().__init__(chain, address_, deployer)
        # Genesis: the deploying authority owns the root.
        self._set(_P_OWNER + ZERO_NODE, deployer)

    # ------------------------------------------------------------------ #
    # Lookups
    # ------------------------------------------------------------------ #

    def owner(self, node: HexLike) -> bytes:
        return self._get(_P_OWNER + node32(node), ZERO_ADDRESS)

    def resolver(self, node: HexLike) -> bytes:
        return self._get(_P_RESOLVER + node32(node), ZERO_ADDRESS)

    def ttl(self, node: HexLike) -> int:
        return self._get(_P_TTL + node32(node), 0)

    def record_exists(self, node: HexLike) -> bool:
        return self._get(_P_OWNER + node32(node)) is not None

    def is_approved_for_all(self, owner: HexLike, operator: HexLike) -> bool:
        return bool(self._get(_P_OPERATOR + address(owner) + address(operator), False))

    # ------------------------------------------------------------------ #
    # Mutations
    # ------------------------------------------------------------------ #

    def _authorise(self, caller: bytes, node: bytes) -> None:
        owner = self.owner(node)
        if caller == owner or self.is_approved_for_all(owner, caller):
            return
        raise Unauthorized("caller does not control node", caller=caller, node=node)

    def _set_owner(self, node: bytes, owner: bytes) -> None:
        self._set(_P_OWNER + node, owner)

    @transaction
    def set_owner(self, caller: HexLike, node: HexLike, owner: HexLike) -> None:
        n, who = node32(node), address(owner)
        self._authorise(address(caller), n)
        self._set_owner(n, who)
        self._emit("Transfer", node=n, owner=who)

    @transaction
    def set_subnode_owner(self, caller: HexLike, node: HexLike, label: HexLike, owner: HexLike) -> bytes:
        """Create or overwrite the child `label` of `node`; returns the child node."""
        n, lh, who = node32(node), node32(label, name="label"), address(owner)
        self._authorise(address(caller), n)
        sub = make_node(n, lh)
        self._set_owner(sub, who)
        self._emit("NewOwner", node=n, label=lh, owner=who)
        self.log.debug("subnode owner set", extra={"node": sub, "owner": who})
        return sub

    @transaction
    def set_resolver(self, caller: HexLike, node: HexLike, resolver: HexLike | None) -> None:
        n, res = node32(node), address(resolver)
        self._authorise(address(caller), n)
        self._set(_P_RESOLVER + n, res)
        self._emit("NewResolver", node=n, resolver=res)

    @transaction
    def set_ttl(self, caller: HexLike, node: HexLike, ttl: int) -> None:
        if ttl < 0:
            raise ValueError("ttl must be >= 0")
        n = node32(node)
        self._authorise(address(caller), n)
        self._set(_P_TTL + n, int(ttl))
        self._emit("NewTTL", node=n, ttl=int(ttl))

    @transaction
    def set_record(
        self, caller: HexLike, node: HexLike, owner: HexLike, resolver: HexLike | None, ttl: int = 0
    ) -> None:
        n = node32(node)
        self.set_owner(caller, n, owner)
        self._set_resolver_and_ttl(n, address(resolver), ttl)

    @transaction
    def set_subnode_record(
        self,
        caller: HexLike,
        node: HexLike,
        label: HexLike,
        owner: HexLike,
        resolver: HexLike | None,
        ttl: int = 0,
    ) -> bytes:
        sub = self.set_subnode_owner(caller, node, label, owner)
        self._set_resolver_and_ttl(sub, address(resolver), ttl)
        return sub

    def _set_resolver_and_ttl(self, node: bytes, resolver: bytes, ttl: int) -> None:
        if ttl < 0:
            raise ValueError("ttl must be >= 0")
        if resolver != self.resolver(node):
            self._set(_P_RESOLVER + node, resolver)
            self._emit("NewResolver", node=node, resolver=resolver)
        if ttl != self.ttl(node):
            self._set(_P_TTL + node, int(ttl))
            self._emit("NewTTL", node=node, ttl=int(ttl))

    @transaction
    def set_approval_for_all(self, caller: HexLike, operator: HexLike, approved: bool) -> None:
        who, op = address(caller), address(operator)
        self._set(_P_OPERATOR + who + op, True if approved else None)
        self._emit("ApprovalForAll", owner=who, operator=op, approved=bool(approved))


__all__ = ["NodeRegistry"]
