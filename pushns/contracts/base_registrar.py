"""
pushns.contracts.base_registrar
===============================

BaseRegistrar: time-bounded ownership certificates for the leaves of one
base node (``namehash("push")`` in the reference deployment).

For every label hash under the base node it keeps the registrant and the
expiry timestamp, and mirrors the registrant into NodeRegistry's owner field
for the leaf node. Registration and renewal are delegated to controllers
that the registrar's authority adds and removes.

Lifecycle of a label
--------------------
- never registered          expiry 0; available
- registered                now <= expiry; `owner_of` returns the registrant
- in grace (if configured)  expiry < now <= expiry + grace; `owner_of` fails,
                            renewal still allowed, not available
- expired                   now > expiry + grace; available to anyone, first
                            registration ordered by the executor wins

The registrar only works while it owns the base node in NodeRegistry
("live"); otherwise every registration-mutating entry point is
`Unauthorized`.

Events
------
- "ControllerAdded" / "ControllerRemoved"   {controller}
- "NameRegistered"                          {id, owner, expires}
- "NameRenewed"                             {id, expires}
- "Transfer"                                {id, from, to}
"""

from __future__ import annotations

from ..errors import InvalidDuration, NameUnavailable, NotFound, Unauthorized
from ..runtime.contract import Contract, Ownable, transaction
from ..utils.bytes import HexLike, address, node32
from ..utils.hash import make_node
from .registry import NodeRegistry

_P_EXPIRY = b"exp:"
_P_REGISTRANT = b"reg:"
_P_CONTROLLER = b"ctl:"


class BaseRegistrar(Ownable, Contract):
    def __init__(
        self,
        chain,
        address_: bytes,
        deployer: bytes,
        registry: NodeRegistry,
        base_node: HexLike,
        grace_period: int = 0,
    ) -> None:
        super().__init__(chain, address_, deployer)
        if grace_period < 0:
            raise ValueError("grace_period must be >= 0")
        self.registry = registry
        self.base_node = node32(base_node, name="base_node")
        self.grace_period = int(grace_period)
        self.init_owner(deployer)

    # ------------------------------------------------------------------ #
    # Views
    # ------------------------------------------------------------------ #

    def live(self) -> bool:
        return self.registry.owner(self.base_node) == self.address

    def is_controller(self, identity: HexLike) -> bool:
        return bool(self._get(_P_CONTROLLER + address(identity), False))

    def name_expires(self, label_hash: HexLike) -> int:
        return self._get(_P_EXPIRY + node32(label_hash, name="label_hash"), 0)

    def available(self, label_hash: HexLike) -> bool:
        """True once `now` is past expiry plus the grace period (or never registered)."""
        return self.name_expires(label_hash) + self.grace_period < self.now()

    def owner_of(self, label_hash: HexLike) -> bytes:
        lh = node32(label_hash, name="label_hash")
        expires = self.name_expires(lh)
        if expires == 0 or self.now() > expires:
            raise NotFound("name expired or never registered", label_hash=lh)
        return self._get(_P_REGISTRANT + lh)

    def node_of(self, label_hash: HexLike) -> bytes:
        return make_node(self.base_node, node32(label_hash, name="label_hash"))

    # ------------------------------------------------------------------ #
    # Administration
    # ------------------------------------------------------------------ #

    @transaction
    def add_controller(self, caller: HexLike, identity: HexLike) -> None:
        self.require_owner(address(caller))
        ctl = address(identity)
        self._set(_P_CONTROLLER + ctl, True)
        self._emit("ControllerAdded", controller=ctl)
        self.log.info("controller added", extra={"controller": ctl})

    @transaction
    def remove_controller(self, caller: HexLike, identity: HexLike) -> None:
        self.require_owner(address(caller))
        ctl = address(identity)
        self._delete(_P_CONTROLLER + ctl)
        self._emit("ControllerRemoved", controller=ctl)
        self.log.info("controller removed", extra={"controller": ctl})

    @transaction
    def set_resolver(self, caller: HexLike, resolver: HexLike | None) -> None:
        """Set the resolver of the base node itself."""
        self.require_owner(address(caller))
        self.registry.set_resolver(self.address, self.base_node, resolver)

    # ------------------------------------------------------------------ #
    # Registration
    # ------------------------------------------------------------------ #

    def _require_live_controller(self, caller: bytes) -> None:
        if not self.live():
            raise Unauthorized("registrar does not own its base node", caller=caller)
        if not self.is_controller(caller):
            raise Unauthorized("caller is not a controller", caller=caller)

    @transaction
    def register(
        self,
        caller: HexLike,
        label_hash: HexLike,
        owner: HexLike,
        duration: int,
        *,
        beneficiary: HexLike | None = None,
    ) -> int:
        """
        Register `label_hash` to `owner` for `duration` seconds; returns the expiry.

        A controller that holds the name only while configuring it passes the
        final registrant as `beneficiary`; the "NameRegistered" event reports
        that account instead of the temporary holder.
        """
        who = address(caller)
        self._require_live_controller(who)
        lh = node32(label_hash, name="label_hash")
        if duration <= 0:
            raise InvalidDuration("duration must be positive", duration=duration)
        if not self.available(lh):
            raise NameUnavailable(label_hash=lh)

        registrant = address(owner)
        expires = self.now() + int(duration)
        self._set(_P_EXPIRY + lh, expires)
        self._set(_P_REGISTRANT + lh, registrant)
        self.registry.set_subnode_owner(self.address, self.base_node, lh, registrant)

        reported = registrant if beneficiary is None else address(beneficiary)
        self._emit("NameRegistered", id=lh, owner=reported, expires=expires)
        self.log.info("label registered", extra={"label_hash": lh, "owner": reported, "expires": expires})
        return expires

    @transaction
    def renew(self, caller: HexLike, label_hash: HexLike, duration: int) -> int:
        """Extend an unexpired (or in-grace) registration; returns the new expiry."""
        self._require_live_controller(address(caller))
        lh = node32(label_hash, name="label_hash")
        if duration <= 0:
            raise InvalidDuration("duration must be positive", duration=duration)
        expires = self.name_expires(lh)
        if expires == 0 or expires + self.grace_period < self.now():
            raise NotFound("cannot renew an expired or unregistered name", label_hash=lh)
        expires += int(duration)
        self._set(_P_EXPIRY + lh, expires)
        self._emit("NameRenewed", id=lh, expires=expires)
        return expires

    @transaction
    def reclaim(self, caller: HexLike, label_hash: HexLike, owner: HexLike) -> None:
        """Registrant re-syncs the NodeRegistry owner of its leaf to `owner`."""
        who = address(caller)
        if not self.live():
            raise Unauthorized("registrar does not own its base node", caller=who)
        lh = node32(label_hash, name="label_hash")
        if self.owner_of(lh) != who:
            raise Unauthorized("caller is not the registrant", caller=who)
        self.registry.set_subnode_owner(self.address, self.base_node, lh, address(owner))

    @transaction
    def transfer(self, caller: HexLike, label_hash: HexLike, new_owner: HexLike) -> None:
        """Move the certificate to `new_owner`; the leaf's registry owner follows."""
        who = address(caller)
        lh = node32(label_hash, name="label_hash")
        if self.owner_of(lh) != who:
            raise Unauthorized("caller is not the registrant", caller=who)
        if not self.live():
            raise Unauthorized("registrar does not own its base node", caller=who)
        to = address(new_owner)
        self._set(_P_REGISTRANT + lh, to)
        self.registry.set_subnode_owner(self.address, self.base_node, lh, to)
        self._emit("Transfer", id=lh, **{"from": who, "to": to})


__all__ = ["BaseRegistrar"]
