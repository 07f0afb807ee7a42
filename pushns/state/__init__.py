"""
Journaled world state for the naming contracts.

- ``storage``  committed per-contract key/value tables
- ``journal``  nested copy-on-write checkpoints (all-or-nothing transactions)
- ``events``   contract events and sinks
- ``snapshot`` canonical CBOR save/restore of committed state
"""

from .events import Event, EventRecord, EventSink, InMemoryEventSink
from .journal import Journal
from .storage import StorageView

__all__ = [
    "Event",
    "EventRecord",
    "EventSink",
    "InMemoryEventSink",
    "Journal",
    "StorageView",
]
