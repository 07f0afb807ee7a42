"""
pushns.runtime.chain — the linearizing executor that hosts the contracts.

`Chain` stands in for the external execution substrate: it totally orders
state transitions and applies each one atomically.

Responsibilities
- transaction(): one indivisible step. Opens a journal checkpoint, runs the
  body, commits on success. Any exception reverts the checkpoint (staged
  writes and buffered events) and propagates unchanged. Nested transactions
  (contract → contract calls) nest checkpoints; only the outermost commit
  touches committed state and publishes events to the sink.
- time: the clock is sampled once per outermost transaction.
- deploy(): deterministic contract addresses from (deployer, nonce).
- ledger: native balances used for registration payments and refunds.

A reentrant lock serializes outermost transactions and every read, so
concurrent callers in one process observe the same total order a real
substrate would impose and never see another thread's uncommitted writes.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Optional, Type, TypeVar

import cbor2

from ..errors import InsufficientBalance, NamingError, NotFound
from ..logging import get_logger
from ..state.events import EventSink, InMemoryEventSink
from ..state.journal import Journal
from ..state.snapshot import dump_state, load_state
from ..state.storage import StorageView
from ..utils.bytes import HexLike, address, to_hex
from ..utils.hash import keccak256
from .clock import Clock, SystemClock

log = get_logger(__name__)

C = TypeVar("C")

#: Pseudo-address whose storage holds balances and deploy nonces.
SYSTEM_ADDRESS = b"\xff" * 20

_P_BAL = b"bal:"
_P_NONCE = b"nonce:"


def contract_address(deployer: bytes, nonce: int) -> bytes:
    """keccak256(canonical-cbor([deployer, nonce]))[-20:]"""
    return keccak256(cbor2.dumps([bytes(deployer), int(nonce)], canonical=True))[-20:]


class Chain:
    def __init__(
        self,
        *,
        clock: Optional[Clock] = None,
        sink: Optional[EventSink] = None,
        storage: Optional[StorageView] = None,
    ) -> None:
        self.clock: Clock = clock if clock is not None else SystemClock()
        self.sink: EventSink = sink if sink is not None else InMemoryEventSink()
        self.journal = Journal(storage)
        self._lock = threading.RLock()
        self._contracts: Dict[bytes, object] = {}
        self._tx_time: Optional[int] = None

    # ------------------------------------------------------------------ #
    # Time & transactions
    # ------------------------------------------------------------------ #

    def now(self) -> int:
        with self._lock:
            if self._tx_time is not None:
                return self._tx_time
            return self.clock.now()

    def read(self, account: bytes, key: bytes, default: object = None) -> object:
        """
        Read one storage slot. Waits for a transaction open on another thread
        to finish, so readers only ever see committed state or their own writes.
        """
        with self._lock:
            return self.journal.storage_get(account, key, default)

    @contextmanager
    def transaction(self, label: str = "tx") -> Iterator[None]:
        with self._lock:
            outermost = self.journal.depth() == 0
            if outermost:
                self._tx_time = self.clock.now()
            self.journal.begin()
            try:
                yield
            except Exception as exc:
                self.journal.revert()
                if outermost:
                    code = exc.code if isinstance(exc, NamingError) else type(exc).__name__
                    log.debug("transaction reverted", extra={"tx": label, "code": code})
                raise
            else:
                events = self.journal.commit()
                if outermost and events:
                    self.sink.append(events, timestamp=self._tx_time or 0)
                if outermost:
                    log.debug("transaction committed", extra={"tx": label, "events": len(events)})
            finally:
                if outermost:
                    self._tx_time = None

    # ------------------------------------------------------------------ #
    # Contracts
    # ------------------------------------------------------------------ #

    def deploy(self, cls: Type[C], deployer: HexLike, *args, **kwargs) -> C:
        """
        Instantiate `cls` at the next deterministic address of `deployer`.
        The constructor runs inside its own transaction.
        """
        who = address(deployer)
        with self.transaction(label=f"deploy:{cls.__name__}"):
            nonce = int(self.journal.storage_get(SYSTEM_ADDRESS, _P_NONCE + who, 0))
            self.journal.storage_set(SYSTEM_ADDRESS, _P_NONCE + who, nonce + 1)
            addr = contract_address(who, nonce)
            contract = cls(self, addr, who, *args, **kwargs)  # type: ignore[call-arg]
        self._contracts[addr] = contract
        log.info("contract deployed", extra={"contract": cls.__name__, "address": to_hex(addr)})
        return contract

    def contract_at(self, addr: HexLike, kind: Optional[Type[C]] = None) -> C:
        a = address(addr)
        c = self._contracts.get(a)
        if c is None or (kind is not None and not isinstance(c, kind)):
            raise NotFound(f"no {kind.__name__ if kind else 'contract'} at {to_hex(a)}")
        return c  # type: ignore[return-value]

    # ------------------------------------------------------------------ #
    # Ledger
    # ------------------------------------------------------------------ #

    def balance_of(self, account: HexLike) -> int:
        return int(self.read(SYSTEM_ADDRESS, _P_BAL + address(account), 0))

    def _set_balance(self, account: bytes, amount: int) -> None:
        self.journal.storage_set(SYSTEM_ADDRESS, _P_BAL + account, amount or None)

    def fund(self, account: HexLike, amount: int) -> int:
        """Credit `amount` out of thin air (genesis allocations, tests, demo)."""
        if amount < 0:
            raise ValueError("amount must be >= 0")
        who = address(account)
        with self.transaction(label="fund"):
            bal = self.balance_of(who) + amount
            self._set_balance(who, bal)
        return bal

    def transfer(self, src: HexLike, dst: HexLike, amount: int) -> None:
        if amount < 0:
            raise ValueError("amount must be >= 0")
        s, d = address(src), address(dst)
        with self.transaction(label="transfer"):
            bal = self.balance_of(s)
            if bal < amount:
                raise InsufficientBalance(account=s, balance=bal, amount=amount)
            if s != d:
                self._set_balance(s, bal - amount)
                self._set_balance(d, self.balance_of(d) + amount)

    # ------------------------------------------------------------------ #
    # Persistence
    # ------------------------------------------------------------------ #

    def snapshot(self) -> bytes:
        with self._lock:
            return dump_state(self.journal)

    def restore(self, data: bytes) -> int:
        with self._lock:
            return load_state(self.journal, data)


__all__ = ["Chain", "SYSTEM_ADDRESS", "contract_address"]
