"""
pushns.runtime.contract — base class for contracts hosted by a `Chain`.

A contract is a plain Python object with an address. All persistent state
lives in the chain's journal under that address; the object itself only
holds immutable wiring (collaborator references, constants fixed at
deployment).

Conventions
-----------
- Mutating entry points take the acting identity as their first argument
  (``caller``) and are decorated with `@transaction`, which makes every call
  all-or-nothing and lets contract-to-contract calls nest.
- Cross-contract calls pass ``self.address`` as the caller.
- Storage keys are ``prefix || id`` byte strings, one prefix per table.
"""

from __future__ import annotations

import functools
from typing import Any, Callable, Optional, TypeVar

from ..errors import Unauthorized
from ..logging import get_logger, with_fields
from ..state.events import Event
from ..utils.bytes import address, is_zero

F = TypeVar("F", bound=Callable[..., Any])

#: Shared key for the Ownable authority of a contract.
OWNER_KEY = b"access:owner"


def transaction(fn: F) -> F:
    """Run the decorated method as one atomic step on ``self.chain``."""

    @functools.wraps(fn)
    def wrapper(self: "Contract", *args: Any, **kwargs: Any) -> Any:
        with self.chain.transaction(label=f"{type(self).__name__}.{fn.__name__}"):
            return fn(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


class Contract:
    def __init__(self, chain: Any, address: bytes, deployer: bytes) -> None:
        self.chain = chain
        self.address = address
        self.deployer = deployer
        self.log = with_fields(get_logger(f"pushns.contracts.{type(self).__name__}"), contract=address)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(0x{self.address.hex()})"

    # --- storage ---------------------------------------------------------

    def _get(self, key: bytes, default: Any = None) -> Any:
        return self.chain.read(self.address, key, default)

    def _set(self, key: bytes, value: Any) -> None:
        self.chain.journal.storage_set(self.address, key, value)

    def _delete(self, key: bytes) -> None:
        self.chain.journal.storage_delete(self.address, key)

    # --- environment -----------------------------------------------------

    def _emit(self, event: str, /, **args: Any) -> None:
        # `event` is positional-only so "name" stays usable as an event field
        self.chain.journal.emit(Event(emitter=self.address, name=event, args=args))

    def now(self) -> int:
        return self.chain.now()


class Ownable:
    """
    Single-authority access control for contract administration.

    - the deployer becomes the owner (`init_owner`, idempotent)
    - `require_owner(caller)` raises `Unauthorized` for anyone else
    - `transfer_ownership` emits "OwnershipTransferred"
    """

    def init_owner(self: Any, owner: bytes) -> None:
        if not self._get(OWNER_KEY):
            self._set(OWNER_KEY, owner)

    def owner(self: Any) -> Optional[bytes]:
        v = self._get(OWNER_KEY)
        return v if v else None

    def require_owner(self: Any, caller: bytes) -> None:
        owner = self.owner()
        if owner is None or owner != caller:
            raise Unauthorized("caller is not the contract owner", caller=caller)

    @transaction
    def transfer_ownership(self: Any, caller: bytes, new_owner: bytes) -> None:
        self.require_owner(address(caller))
        new = address(new_owner)
        if is_zero(new):
            raise ValueError("new owner must be a non-zero address")
        previous = self.owner() or b""
        self._set(OWNER_KEY, new)
        self._emit("OwnershipTransferred", previous=previous, new=new)


__all__ = ["Contract", "Ownable", "transaction", "OWNER_KEY"]
