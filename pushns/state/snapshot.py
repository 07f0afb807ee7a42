"""
pushns.state.snapshot — canonical CBOR snapshots of committed state.

The committed world state is a two-level table ``{address: {key: value}}``
covering every contract's storage (node table, label table, commitment table,
resolver record table) plus the balance ledger. A snapshot is the
deterministic CBOR (RFC 8949 §4.2) encoding of:

    {
      1: "pushns/state/v1",     # format tag
      2: {address: {key: value, ...}, ...}
    }

Identical state always produces identical bytes, so snapshots can be
hashed and compared.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict

import cbor2

from .journal import Journal
from .storage import Value

STATE_FORMAT = "pushns/state/v1"


class SnapshotError(ValueError):
    pass


def _require_idle(journal: Journal) -> None:
    if journal.depth():
        raise SnapshotError("cannot snapshot while a transaction is open")


def dump_state(journal: Journal) -> bytes:
    """Encode the committed state of `journal` to canonical CBOR."""
    _require_idle(journal)
    base = journal.base
    tables: Dict[bytes, Dict[bytes, Value]] = {addr: dict(base.items(addr)) for addr in base.addresses()}
    return cbor2.dumps({1: STATE_FORMAT, 2: tables}, canonical=True)


def load_state(journal: Journal, data: bytes) -> int:
    """
    Replace the committed state of `journal` with the decoded snapshot.
    Returns the number of keys loaded.
    """
    _require_idle(journal)
    try:
        doc = cbor2.loads(data)
    except cbor2.CBORDecodeError as e:
        raise SnapshotError(f"malformed snapshot: {e}") from e
    if not isinstance(doc, dict) or doc.get(1) != STATE_FORMAT or not isinstance(doc.get(2), dict):
        raise SnapshotError("not a pushns state snapshot")

    base = journal.base
    base.clear()
    n = 0
    for addr, table in doc[2].items():
        for key, value in table.items():
            base.set(addr, key, value)
            n += 1
    return n


def write_snapshot(journal: Journal, path: Path | str) -> Path:
    p = Path(path).expanduser()
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_bytes(dump_state(journal))
    return p


def read_snapshot(journal: Journal, path: Path | str) -> int:
    return load_state(journal, Path(path).expanduser().read_bytes())


__all__ = ["STATE_FORMAT", "SnapshotError", "dump_state", "load_state", "write_snapshot", "read_snapshot"]
