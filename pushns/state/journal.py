"""
pushns.state.journal — journaling writes, checkpoints, revert/commit.

A deterministic, in-memory write journal layered over a `StorageView`. It
supports nested checkpoints via a stack of overlays. Writes go to the top
overlay; reads consult overlays from top → base. `commit()` merges the top
overlay into the next layer, or into the base state when it is the last
one. `revert()` discards the top overlay.

Every overlay also buffers the contract events emitted while it was on top.
Merging carries them down; committing the outermost overlay hands them back
to the caller (the executor appends them to its sink). Reverting drops them
together with the staged writes.

Intended usage
--------------
    j = Journal(StorageView())
    j.begin()
    j.storage_set(addr, b"own:" + node, owner)
    j.emit(Event(addr, "Transfer", {"node": node, "owner": owner}))
    events = j.commit()         # applied to base; events returned

Notes
-----
- Reads outside any checkpoint see the committed base state.
- Writes outside any checkpoint are rejected; state only changes inside a
  transaction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .events import Event
from .storage import StorageView, check_value


def _b(x: bytes | bytearray | memoryview, *, name: str) -> bytes:
    if not isinstance(x, (bytes, bytearray, memoryview)):
        raise TypeError(f"{name} must be bytes-like")
    return bytes(x)


_DELETED = object()


@dataclass
class _Overlay:
    """
    A single journal layer.

    - `storage`: staged writes; `_DELETED` marks a deletion for that key.
    - `events`:  events emitted while this layer was on top, in order.
    """

    storage: Dict[bytes, Dict[bytes, object]] = field(default_factory=dict)
    events: List[Event] = field(default_factory=list)

    def get_local(self, addr: bytes, key: bytes) -> object:
        m = self.storage.get(addr)
        if m is None:
            return None
        return m.get(key)

    def set_local(self, addr: bytes, key: bytes, value: object) -> None:
        self.storage.setdefault(addr, {})[key] = value


class Journal:
    """
    A copy-on-write write journal with nested checkpoints.

    API highlights
    --------------
    - begin() / commit() / revert() / depth()
    - storage_get(), storage_set(), storage_delete()
    - emit()
    """

    def __init__(self, storage: Optional[StorageView] = None) -> None:
        self._base = storage if storage is not None else StorageView()
        self._layers: List[_Overlay] = []

    @property
    def base(self) -> StorageView:
        return self._base

    # --------------------------------------------------------------------- #
    # Checkpointing
    # --------------------------------------------------------------------- #

    def depth(self) -> int:
        """Number of open checkpoints (0 when idle)."""
        return len(self._layers)

    def begin(self) -> int:
        """Start a new checkpoint. Returns the new depth."""
        self._layers.append(_Overlay())
        return len(self._layers)

    def commit(self) -> List[Event]:
        """
        Commit the top overlay into its parent, or into the base state if it
        is the outermost one. Returns the events that became final (only
        non-empty for the outermost commit).
        """
        if not self._layers:
            raise RuntimeError("commit without an open checkpoint")
        top = self._layers.pop()
        if self._layers:
            self._merge_layers(self._layers[-1], top)
            return []
        self._apply_to_base(top)
        return list(top.events)

    def revert(self) -> None:
        """Discard the top overlay with its staged writes and events."""
        if not self._layers:
            raise RuntimeError("revert without an open checkpoint")
        self._layers.pop()

    # --------------------------------------------------------------------- #
    # Storage API
    # --------------------------------------------------------------------- #

    def storage_get(self, address: bytes, key: bytes, default: object = None) -> object:
        """Read storage with overlay precedence. Returns `default` if absent."""
        addr = _b(address, name="address")
        key_b = _b(key, name="key")
        for layer in reversed(self._layers):
            local = layer.get_local(addr, key_b)
            if local is _DELETED:
                return default
            if local is not None:
                return local
        return self._base.get(addr, key_b, default)

    def storage_set(self, address: bytes, key: bytes, value: object) -> None:
        """Stage a storage write in the top overlay. ``None`` is a deletion."""
        v = check_value(value)
        self._top().set_local(_b(address, name="address"), _b(key, name="key"), _DELETED if v is None else v)

    def storage_delete(self, address: bytes, key: bytes) -> None:
        self._top().set_local(_b(address, name="address"), _b(key, name="key"), _DELETED)

    def emit(self, event: Event) -> None:
        self._top().events.append(event)

    # --------------------------------------------------------------------- #
    # Internal merge/apply
    # --------------------------------------------------------------------- #

    def _top(self) -> _Overlay:
        if not self._layers:
            raise RuntimeError("state writes require an open checkpoint")
        return self._layers[-1]

    @staticmethod
    def _merge_layers(dst: _Overlay, src: _Overlay) -> None:
        for addr, writes in src.storage.items():
            dm = dst.storage.setdefault(addr, {})
            dm.update(writes)
        dst.events.extend(src.events)

    def _apply_to_base(self, layer: _Overlay) -> None:
        for addr, writes in layer.storage.items():
            for k, v in writes.items():
                if v is _DELETED:
                    self._base.delete(addr, k)
                else:
                    self._base.set(addr, k, v)


__all__ = ["Journal"]
