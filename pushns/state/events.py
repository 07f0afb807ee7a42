"""
pushns.state.events — contract events and pluggable sinks.

Contracts emit `Event`s while a transaction runs. The journal buffers them
per checkpoint; only events of the outermost *committed* checkpoint reach the
sink, so a reverted transaction never leaves notifications behind.

Backends
--------
- InMemoryEventSink: keeps all records in RAM; tests, demo and the CLI.

Ordering: `EventRecord.seq` strictly increases in emission order across
transactions, matching the executor's total order.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, runtime_checkable


@dataclass(frozen=True)
class Event:
    """
    A single notification emitted by a contract.

    Attributes:
        emitter: bytes — address of the emitting contract
        name:    str   — event name, e.g. "NameRegistered"
        args:    dict  — event fields (bytes, ints, strings)
    """
    emitter: bytes
    name: str
    args: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "emitter": "0x" + self.emitter.hex(),
            "name": self.name,
            "args": {k: ("0x" + v.hex() if isinstance(v, (bytes, bytearray)) else v) for k, v in self.args.items()},
        }


@dataclass(frozen=True)
class EventRecord:
    """An event plus its position in the executor's total order."""
    seq: int
    timestamp: int
    event: Event

    @property
    def name(self) -> str:
        return self.event.name

    @property
    def emitter(self) -> bytes:
        return self.event.emitter

    @property
    def args(self) -> Mapping[str, Any]:
        return self.event.args


@runtime_checkable
class EventSink(Protocol):
    def append(self, events: Sequence[Event], *, timestamp: int) -> List[EventRecord]:
        """Append the events of one committed transaction. Returns stored records."""

    def get_logs(
        self,
        *,
        emitter: Optional[bytes] = None,
        name: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> Iterable[EventRecord]:
        """Iterate matching records in ascending `seq` order."""


def _matches(rec: EventRecord, emitter: Optional[bytes], name: Optional[str]) -> bool:
    if emitter is not None and rec.emitter != emitter:
        return False
    if name is not None and rec.name != name:
        return False
    return True


class InMemoryEventSink(EventSink):
    """
    A simple, thread-safe in-memory sink.

    Keeps all records in RAM; suited to tests and short-lived processes.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._records: List[EventRecord] = []

    def append(self, events: Sequence[Event], *, timestamp: int) -> List[EventRecord]:
        with self._lock:
            out: List[EventRecord] = []
            for ev in events:
                rec = EventRecord(seq=len(self._records), timestamp=timestamp, event=ev)
                self._records.append(rec)
                out.append(rec)
            return out

    def get_logs(
        self,
        *,
        emitter: Optional[bytes] = None,
        name: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> Iterable[EventRecord]:
        with self._lock:
            matched = [r for r in self._records if _matches(r, emitter, name)]
        return matched if limit is None else matched[:limit]

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


__all__ = ["Event", "EventRecord", "EventSink", "InMemoryEventSink"]
