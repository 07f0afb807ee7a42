# -*- coding: utf-8 -*-
"""
pushns.tests.conftest
=====================

Fixtures for the naming contracts:

- ``clock``       a ManualClock starting at a fixed timestamp
- ``chain``       a fresh in-memory Chain driven by that clock
- ``accounts``    stable, deterministic addresses by role
- ``config``      the default configuration, independent of the environment
- ``deployment``  a fully wired deployment (registry, oracle, registrar,
                  resolver, controller, reverse registrar)
- ``register``    helper running commit → wait → register for a label

Usage (inside a test file):
    def test_flow(deployment, accounts, register):
        receipt = register("tess", accounts["alice"])
        assert deployment.registrar.owner_of(receipt.label_hash) == accounts["alice"]
"""
from __future__ import annotations

import os
from typing import Callable, Dict, Iterable, Optional

import pytest

from pushns.config import NamingConfig, load_config
from pushns.contracts.controller import RegistrationReceipt, make_commitment
from pushns.deploy import Deployment, deploy
from pushns.runtime.chain import Chain
from pushns.runtime.clock import ManualClock
from pushns.utils.hash import dev_address, keccak256

# Prefer UTC everywhere.
os.environ.setdefault("TZ", "UTC")

GENESIS = 1_700_000_000
DAY = 24 * 60 * 60
YEAR = 365 * DAY
COIN = 10**18

SECRET = keccak256(b"mysecret")


def _det_address(tag: str) -> bytes:
    return dev_address(tag)


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock(GENESIS)


@pytest.fixture()
def chain(clock: ManualClock) -> Chain:
    return Chain(clock=clock)


@pytest.fixture(scope="session")
def accounts() -> Dict[str, bytes]:
    return {tag: _det_address(tag) for tag in ("deployer", "alice", "bob", "carol", "mallory")}


@pytest.fixture()
def config() -> NamingConfig:
    # empty env so a developer's PUSHNS_* variables never leak into tests
    return load_config(env={})


@pytest.fixture()
def deployment(chain: Chain, accounts: Dict[str, bytes], config: NamingConfig) -> Deployment:
    dep = deploy(chain, accounts["deployer"], config)
    for tag in ("alice", "bob", "carol", "mallory"):
        chain.fund(accounts[tag], 1_000 * COIN)
    return dep


@pytest.fixture()
def register(deployment: Deployment, clock: ManualClock) -> Callable[..., RegistrationReceipt]:
    """Commit, wait past the minimum age and register `name` for `owner`."""

    def _register(
        name: str,
        owner: bytes,
        *,
        duration: int = YEAR,
        resolver: Optional[bytes] = None,
        records: Iterable = (),
        payment: Optional[int] = None,
        caller: Optional[bytes] = None,
    ) -> RegistrationReceipt:
        ctl = deployment.controller
        who = caller or owner
        recs = list(records)
        ctl.commit(who, make_commitment(name, owner, duration, SECRET, resolver, recs))
        clock.advance(ctl.min_commitment_age + 10)
        pay = ctl.rent_price(name, duration) if payment is None else payment
        return ctl.register(who, name, owner, duration, SECRET, resolver, recs, payment=pay)

    return _register
