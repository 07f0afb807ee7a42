"""
pushns.contracts — the naming protocol contracts.

NodeRegistry       the namespace tree (owner / resolver / ttl per node)
PriceOracle        name length → rent per day
BaseRegistrar      expiring registrations under one base node
RegistrarController commit/reveal registration, payment, renewal
Resolver           address / name / text records per node
ReverseRegistrar   address → name under ``addr.reverse``
"""

from .base_registrar import BaseRegistrar
from .controller import COMMITMENT_DOMAIN, RegistrarController, RegistrationReceipt, make_commitment
from .price_oracle import PriceOracle
from .registry import NodeRegistry
from .resolver import Resolver
from .reverse_registrar import ADDR_REVERSE_NODE, ReverseRegistrar, reverse_node

__all__ = [
    "NodeRegistry",
    "PriceOracle",
    "BaseRegistrar",
    "RegistrarController",
    "RegistrationReceipt",
    "make_commitment",
    "COMMITMENT_DOMAIN",
    "Resolver",
    "ReverseRegistrar",
    "ADDR_REVERSE_NODE",
    "reverse_node",
]
