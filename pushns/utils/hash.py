"""
pushns.utils.hash — Keccak-256 and the name hashing scheme.

Strictly bytes-in, bytes-out. Keccak-256 (the pre-SHA3 padding used by
Ethereum-style naming systems) comes from PyCryptodome.

Naming scheme
-------------
    label_hash(label)          = keccak256(utf8(label))
    make_node(parent, lh)      = keccak256(parent || lh)
    namehash("")               = 0x00 * 32
    namehash("a.b")            = make_node(namehash("b"), label_hash("a"))

The empty name is the root node. Labels are split on '.'; an empty label
inside a dotted name (``"a..b"``) is rejected.
"""

from __future__ import annotations

from Crypto.Hash import keccak as _keccak

from ..errors import InvalidName
from .bytes import BytesLike, ZERO_NODE, node32


def _new_keccak256():
    return _keccak.new(digest_bits=256)


def _ensure_bytes(buf: object, name: str) -> bytes:
    if isinstance(buf, (bytes, bytearray, memoryview)):
        return bytes(buf)
    raise TypeError(f"{name} must be bytes-like (got {type(buf).__name__})")


def keccak256(data: BytesLike) -> bytes:
    """Keccak-256 digest."""
    h = _new_keccak256()
    h.update(_ensure_bytes(data, "data"))
    return h.digest()


def dev_address(tag: str) -> bytes:
    """Deterministic 20-byte address for demos and tests (never a real key)."""
    return keccak256(b"pushns/dev/" + tag.encode("utf-8"))[-20:]


def hash_concat_keccak256(*chunks: BytesLike) -> bytes:
    """Keccak-256 over the concatenation of ``chunks`` (no separators)."""
    h = _new_keccak256()
    for i, c in enumerate(chunks):
        h.update(_ensure_bytes(c, f"chunk[{i}]"))
    return h.digest()


# ------------------------------ names ----------------------------------------


def check_label(label: str) -> str:
    if not isinstance(label, str):
        raise InvalidName("label must be a string")
    if label == "":
        raise InvalidName("label must not be empty", name=label)
    if "." in label:
        raise InvalidName("label must not contain '.'", name=label)
    return label


def label_hash(label: str) -> bytes:
    """keccak256 of the UTF-8 label."""
    return keccak256(check_label(label).encode("utf-8"))


def make_node(parent: BytesLike | str, lh: BytesLike | str) -> bytes:
    """Child node hash from a parent node and a label hash."""
    return hash_concat_keccak256(node32(parent, name="parent"), node32(lh, name="label_hash"))


def split_name(name: str) -> list[str]:
    if name == "":
        return []
    return [check_label(part) for part in name.split(".")]


def namehash(name: str) -> bytes:
    """Recursive node hash of a dotted name; ``""`` is the root."""
    node = ZERO_NODE
    for label in reversed(split_name(name)):
        node = make_node(node, label_hash(label))
    return node


__all__ = [
    "keccak256",
    "dev_address",
    "hash_concat_keccak256",
    "check_label",
    "label_hash",
    "make_node",
    "split_name",
    "namehash",
]
