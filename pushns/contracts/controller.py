"""
pushns.contracts.controller
===========================

RegistrarController: the public, front-running-resistant registration path.

Registration is a two-phase commit/reveal:

1) ``commit(caller, commitment)`` stores an opaque hash of the intended
   registration together with the current time. Nothing about the name is
   revealed.
2) After at least ``min_age`` and at most ``max_age`` seconds,
   ``register(caller, name, owner, duration, secret, resolver, records,
   payment=...)`` reveals the parameters. The controller recomputes the
   hash, checks the window, availability and payment, registers the label
   through BaseRegistrar, optionally points the node at a resolver and
   writes the initial records, deletes the commitment and refunds the
   excess payment. All of it is one transaction.

Commitment encoding
-------------------
    keccak256(canonical_cbor({1: "pushns/commitment/v1",
                              2: [label_hash, owner, duration, secret,
                                  resolver, [record_obj, ...]]}))

where ``record_obj`` is ``[1, addr]``, ``[2, name]`` or ``[3, key, value]``
and an absent resolver is the zero address. Canonical CBOR (RFC 8949 §4.2)
makes the digest independent of the host.

Per-commitment states: uncommitted → committed → consumed. A fresh duplicate
commit is rejected; one older than ``max_age`` is refreshed in place.

Payments move through the chain's balance ledger; proceeds accumulate on the
controller's own balance until the authority calls ``withdraw``.

Events
------
- "CommitmentRecorded"  {commitment, timestamp}
- "NameRegistered"      {name, label, owner, cost, expires}
- "NameRenewed"         {name, label, cost, expires}
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

import cbor2

from ..errors import (
    CommitmentTooNew,
    CommitmentTooOld,
    InsufficientPayment,
    InvalidDuration,
    InvalidName,
    NameUnavailable,
    ResolverRequired,
    UnexpiredCommitmentExists,
    UnknownCommitment,
)
from ..records import RecordLike, coerce_records, records_to_obj
from ..runtime.contract import Contract, Ownable, transaction
from ..utils.bytes import HexLike, address, is_zero, node32, to_hex
from ..utils.hash import check_label, keccak256, label_hash
from .base_registrar import BaseRegistrar
from .price_oracle import PriceOracle
from .resolver import Resolver

COMMITMENT_DOMAIN = "pushns/commitment/v1"

_P_COMMITMENT = b"cmt:"


def make_commitment(
    name: str,
    owner: HexLike,
    duration: int,
    secret: HexLike,
    resolver: HexLike | None = None,
    records: Iterable[RecordLike] | None = None,
) -> bytes:
    """Deterministic 32-byte hash binding every registration parameter."""
    if not isinstance(duration, int) or isinstance(duration, bool):
        raise TypeError("duration must be an int")
    payload = [
        label_hash(name),
        address(owner),
        duration,
        node32(secret, name="secret"),
        address(resolver),
        records_to_obj(coerce_records(records)),
    ]
    return keccak256(cbor2.dumps({1: COMMITMENT_DOMAIN, 2: payload}, canonical=True))


@dataclass(frozen=True)
class RegistrationReceipt:
    name: str
    node: bytes
    label_hash: bytes
    owner: bytes
    expires: int
    cost: int
    refund: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "node": to_hex(self.node),
            "labelHash": to_hex(self.label_hash),
            "owner": to_hex(self.owner),
            "expires": self.expires,
            "cost": self.cost,
            "refund": self.refund,
        }


class RegistrarController(Ownable, Contract):
    def __init__(
        self,
        chain,
        address_: bytes,
        deployer: bytes,
        registrar: BaseRegistrar,
        oracle: PriceOracle,
        min_commitment_age: int,
        max_commitment_age: int,
        min_registration_duration: int = 0,
    ) -> None:
        super().__init__(chain, address_, deployer)
        if min_commitment_age < 0:
            raise ValueError("min_commitment_age must be >= 0")
        # ages are whole seconds, so the window must span at least one tick
        if max_commitment_age <= min_commitment_age:
            raise ValueError("max_commitment_age must be greater than min_commitment_age")
        if min_registration_duration < 0:
            raise ValueError("min_registration_duration must be >= 0")
        self.registrar = registrar
        self.registry = registrar.registry
        self.oracle = oracle
        self.min_commitment_age = int(min_commitment_age)
        self.max_commitment_age = int(max_commitment_age)
        self.min_registration_duration = int(min_registration_duration)
        self.init_owner(deployer)

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    @staticmethod
    def valid(name: str) -> bool:
        try:
            check_label(name)
        except InvalidName:
            return False
        return True

    def available(self, name: str) -> bool:
        return self.valid(name) and self.registrar.available(label_hash(name))

    def rent_price(self, name: str, duration: int) -> int:
        return self.oracle.rent_price(len(check_label(name)), duration)

    def _committed_at(self, commitment: bytes) -> Optional[int]:
        return self._get(_P_COMMITMENT + commitment)

    def commitment_timestamp(self, commitment: HexLike) -> int:
        """Submission time of `commitment`, 0 when unknown or consumed."""
        ts = self._committed_at(node32(commitment, name="commitment"))
        return 0 if ts is None else ts

    make_commitment = staticmethod(make_commitment)

    # ------------------------------------------------------------------ #
    # Commit / reveal
    # ------------------------------------------------------------------ #

    @transaction
    def commit(self, caller: HexLike, commitment: HexLike) -> None:
        c = node32(commitment, name="commitment")
        now = self.now()
        previous = self._committed_at(c)
        if previous is not None and now - previous <= self.max_commitment_age:
            raise UnexpiredCommitmentExists(commitment=c)
        self._set(_P_COMMITMENT + c, now)
        self._emit("CommitmentRecorded", commitment=c, timestamp=now)
        self.log.debug("commitment recorded", extra={"commitment": c, "caller": address(caller)})

    def _consume_commitment(self, commitment: bytes) -> None:
        ts = self._committed_at(commitment)
        if ts is None:
            raise UnknownCommitment(commitment=commitment)
        age = self.now() - ts
        if age < self.min_commitment_age:
            raise CommitmentTooNew(commitment=commitment, age=age, min_age=self.min_commitment_age)
        if age > self.max_commitment_age:
            raise CommitmentTooOld(commitment=commitment, age=age, max_age=self.max_commitment_age)
        self._delete(_P_COMMITMENT + commitment)

    def _collect(self, payer: bytes, cost: int, payment: int) -> int:
        """Move `payment` into the controller and hand back the excess."""
        if payment < cost:
            raise InsufficientPayment(required=cost, paid=payment)
        self.chain.transfer(payer, self.address, payment)
        refund = payment - cost
        if refund:
            self.chain.transfer(self.address, payer, refund)
        return refund

    @transaction
    def register(
        self,
        caller: HexLike,
        name: str,
        owner: HexLike,
        duration: int,
        secret: HexLike,
        resolver: HexLike | None = None,
        records: Iterable[RecordLike] | None = None,
        *,
        payment: int,
    ) -> RegistrationReceipt:
        who = address(caller)
        recs = coerce_records(records)
        commitment = make_commitment(name, owner, duration, secret, resolver, recs)
        self._consume_commitment(commitment)

        lh = label_hash(name)
        if not self.registrar.available(lh):
            raise NameUnavailable(name=name, label_hash=lh)
        if duration <= 0 or duration < self.min_registration_duration:
            raise InvalidDuration(
                "duration below the minimum registration period",
                duration=duration,
                minimum=self.min_registration_duration,
            )
        res = address(resolver)
        if recs and is_zero(res):
            raise ResolverRequired()

        cost = self.rent_price(name, duration)
        refund = self._collect(who, cost, payment)

        registrant = address(owner)
        node = self.registrar.node_of(lh)
        if is_zero(res):
            expires = self.registrar.register(self.address, lh, registrant, duration)
        else:
            # hold the node until the resolver is configured, then hand it over
            expires = self.registrar.register(self.address, lh, self.address, duration, beneficiary=registrant)
            self.registry.set_resolver(self.address, node, res)
            if recs:
                target = self.chain.contract_at(res, Resolver)
                for rec in recs:
                    target.apply(self.address, node, rec)
            self.registrar.transfer(self.address, lh, registrant)

        self._emit("NameRegistered", name=name, label=lh, owner=registrant, cost=cost, expires=expires)
        self.log.info(
            "name registered",
            extra={"label": name, "node": node, "owner": registrant, "cost": cost, "expires": expires},
        )
        return RegistrationReceipt(
            name=name, node=node, label_hash=lh, owner=registrant, expires=expires, cost=cost, refund=refund
        )

    @transaction
    def renew(self, caller: HexLike, name: str, duration: int, *, payment: int) -> int:
        """Extend `name` by `duration` seconds; returns the new expiry."""
        lh = label_hash(name)
        if duration <= 0:
            raise InvalidDuration("duration must be positive", duration=duration)
        cost = self.rent_price(name, duration)
        self._collect(address(caller), cost, payment)
        expires = self.registrar.renew(self.address, lh, duration)
        self._emit("NameRenewed", name=name, label=lh, cost=cost, expires=expires)
        self.log.info("name renewed", extra={"label": name, "expires": expires})
        return expires

    @transaction
    def withdraw(self, caller: HexLike) -> int:
        """Send the accumulated proceeds to the authority; returns the amount."""
        who = address(caller)
        self.require_owner(who)
        amount = self.chain.balance_of(self.address)
        if amount:
            self.chain.transfer(self.address, who, amount)
        return amount


__all__ = ["COMMITMENT_DOMAIN", "make_commitment", "RegistrationReceipt", "RegistrarController"]
