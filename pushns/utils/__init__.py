"""Byte, address and hash helpers shared by the contracts."""

from .bytes import ZERO_ADDRESS, ZERO_NODE, address, node32, to_hex
from .hash import keccak256, label_hash, make_node, namehash

__all__ = [
    "ZERO_ADDRESS",
    "ZERO_NODE",
    "address",
    "node32",
    "to_hex",
    "keccak256",
    "label_hash",
    "make_node",
    "namehash",
]
