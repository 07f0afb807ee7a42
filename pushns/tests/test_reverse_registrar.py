"""
ReverseRegistrar tests
- deployment wiring of ``reverse`` / ``addr.reverse``
- reverse node derivation
- claim (self / operator), set_name, default resolver administration
"""

from __future__ import annotations

import pytest

from pushns.contracts.reverse_registrar import ADDR_REVERSE_NODE, reverse_node
from pushns.errors import Unauthorized
from pushns.utils.hash import keccak256, make_node, namehash


def test_deployment_wiring(deployment, accounts):
    reg, rev = deployment.registry, deployment.reverse_registrar
    assert ADDR_REVERSE_NODE == namehash("addr.reverse")
    assert reg.owner(namehash("reverse")) == accounts["deployer"]
    assert reg.owner(ADDR_REVERSE_NODE) == rev.address
    assert rev.default_resolver() == deployment.resolver.address


def test_reverse_node_uses_lowercase_hex_without_prefix(accounts):
    alice = accounts["alice"]
    expected = make_node(namehash("addr.reverse"), keccak256(alice.hex().encode()))
    assert reverse_node(alice) == expected
    assert reverse_node("0x" + alice.hex().upper()) == expected


def test_claim_for_self(deployment, accounts):
    rev, alice = deployment.reverse_registrar, accounts["alice"]
    node = rev.claim(alice)
    assert node == rev.node(alice)
    assert deployment.registry.owner(node) == alice
    assert deployment.registry.resolver(node) == deployment.resolver.address


def test_claim_for_another_requires_approval(deployment, accounts):
    rev, alice, bob = deployment.reverse_registrar, accounts["alice"], accounts["bob"]
    with pytest.raises(Unauthorized):
        rev.claim(bob, alice)
    deployment.registry.set_approval_for_all(alice, bob, True)
    node = rev.claim(bob, alice)
    assert node == rev.node(alice)
    assert deployment.registry.owner(node) == bob


def test_set_name(deployment, accounts, register):
    rev, alice = deployment.reverse_registrar, accounts["alice"]
    register("tess", alice, resolver=deployment.resolver.address)
    node = rev.set_name(alice, "tess.push")
    assert deployment.resolver.name(node) == "tess.push"
    assert deployment.registry.owner(node) == alice
    # alice now controls her reverse record directly
    deployment.resolver.set_name(alice, node, "other.push")
    assert deployment.resolver.name(node) == "other.push"


def test_default_resolver_is_authority_only(deployment, accounts):
    rev = deployment.reverse_registrar
    with pytest.raises(Unauthorized):
        rev.set_default_resolver(accounts["mallory"], accounts["mallory"])
    rev.set_default_resolver(accounts["deployer"], accounts["bob"])
    assert rev.default_resolver() == accounts["bob"]
