"""
RegistrarController tests
- the "tess" scenario: commit, too-new reveal, reveal after 70s, verify
- commitment window boundaries, duplicate/stale commits, wrong secret
- payment, refunds, balances, proceeds withdrawal
- initial records through the resolver, all-or-nothing failure
- renewals, expiry seen through the controller
- event fields and a chain whose clock starts at zero
"""

from __future__ import annotations

import threading
from contextlib import suppress

import pytest
from hypothesis import HealthCheck, given, settings, strategies as st

from pushns.config import load_config
from pushns.contracts.controller import RegistrarController, make_commitment
from pushns.deploy import deploy
from pushns.errors import (
    CommitmentTooNew,
    CommitmentTooOld,
    InsufficientBalance,
    InsufficientPayment,
    InvalidDuration,
    InvalidName,
    NameUnavailable,
    NotFound,
    ResolverRequired,
    UnexpiredCommitmentExists,
    UnknownCommitment,
    Unauthorized,
)
from pushns.contracts.resolver import Resolver
from pushns.records import AddrRecord, NameRecord, TextRecord
from pushns.runtime.chain import Chain
from pushns.runtime.clock import ManualClock
from pushns.utils.hash import dev_address, keccak256, label_hash, namehash

DAY = 24 * 60 * 60
YEAR = 365 * DAY
COIN = 10**18
SECRET = keccak256(b"mysecret")


# ----------------------------- the reference flow ----------------------------


def test_tess_registration_flow(deployment, accounts, clock, chain):
    ctl, alice = deployment.controller, accounts["alice"]
    resolver = deployment.resolver.address

    assert ctl.available("tess")
    price = ctl.rent_price("tess", YEAR)
    assert price == 365 * COIN // 10  # 36.5 coin

    commitment = make_commitment("tess", alice, YEAR, SECRET, resolver, [])
    ctl.commit(alice, commitment)
    assert ctl.commitment_timestamp(commitment) == clock.now()

    with pytest.raises(CommitmentTooNew):
        ctl.register(alice, "tess", alice, YEAR, SECRET, resolver, [], payment=price)

    clock.advance(70)
    balance = chain.balance_of(alice)
    receipt = ctl.register(alice, "tess", alice, YEAR, SECRET, resolver, [], payment=price)

    assert receipt.node == namehash("tess.push")
    assert receipt.label_hash == label_hash("tess")
    assert receipt.expires == clock.now() + YEAR
    assert receipt.cost == price and receipt.refund == 0
    assert not ctl.available("tess")
    assert deployment.registrar.owner_of(label_hash("tess")) == alice
    assert deployment.registry.owner(receipt.node) == alice
    assert deployment.registry.resolver(receipt.node) == resolver
    assert ctl.commitment_timestamp(commitment) == 0
    assert chain.balance_of(alice) == balance - price
    assert chain.balance_of(ctl.address) == price

    # the owner configures records afterwards, as the reference script does
    r = deployment.resolver
    r.set_addr(alice, receipt.node, alice)
    r.set_text(alice, receipt.node, "description", "My PUSH name")
    r.set_name(alice, receipt.node, "tess")
    assert r.addr(receipt.node) == alice
    assert r.text(receipt.node, "description") == "My PUSH name"
    assert r.name(receipt.node) == "tess"

    ev = list(chain.sink.get_logs(emitter=ctl.address, name="NameRegistered"))
    assert len(ev) == 1 and ev[0].args["owner"] == alice and ev[0].args["cost"] == price


def test_wrong_secret_is_unknown_commitment(deployment, accounts, clock):
    ctl, alice = deployment.controller, accounts["alice"]
    ctl.commit(alice, make_commitment("tess", alice, YEAR, SECRET))
    clock.advance(70)
    with pytest.raises(UnknownCommitment):
        ctl.register(alice, "tess", alice, YEAR, keccak256(b"other"), payment=10 * COIN)
    assert ctl.available("tess")


def test_commitment_too_old(deployment, accounts, clock, config):
    ctl, alice = deployment.controller, accounts["alice"]
    ctl.commit(alice, make_commitment("tess", alice, YEAR, SECRET))
    clock.advance(config.commitments.max_age + 1)
    with pytest.raises(CommitmentTooOld):
        ctl.register(alice, "tess", alice, YEAR, SECRET, payment=10 * COIN)


@pytest.mark.parametrize("offset", ["min", "max"])
def test_window_boundaries_are_inclusive(deployment, accounts, clock, offset):
    ctl, alice = deployment.controller, accounts["alice"]
    ctl.commit(alice, make_commitment("tess", alice, YEAR, SECRET))
    clock.advance(ctl.min_commitment_age if offset == "min" else ctl.max_commitment_age)
    ctl.register(alice, "tess", alice, YEAR, SECRET, payment=ctl.rent_price("tess", YEAR))
    assert not ctl.available("tess")


# ----------------------------- commits ----------------------------------------


def test_duplicate_fresh_commit_rejected(deployment, accounts, clock):
    ctl, alice = deployment.controller, accounts["alice"]
    c = make_commitment("tess", alice, YEAR, SECRET)
    ctl.commit(alice, c)
    clock.advance(ctl.max_commitment_age)
    with pytest.raises(UnexpiredCommitmentExists):
        ctl.commit(accounts["bob"], c)


def test_stale_commit_is_refreshed(deployment, accounts, clock):
    ctl, alice = deployment.controller, accounts["alice"]
    c = make_commitment("tess", alice, YEAR, SECRET)
    ctl.commit(alice, c)
    clock.advance(ctl.max_commitment_age + 1)
    ctl.commit(alice, c)
    assert ctl.commitment_timestamp(c) == clock.now()
    with pytest.raises(CommitmentTooNew):
        ctl.register(alice, "tess", alice, YEAR, SECRET, payment=10 * COIN)


def test_make_commitment_binds_every_parameter(deployment, accounts):
    alice, bob = accounts["alice"], accounts["bob"]
    res = deployment.resolver.address
    base = make_commitment("tess", alice, YEAR, SECRET, res, [("addr", alice)])
    assert base == make_commitment("tess", alice, YEAR, SECRET, res, [AddrRecord(alice)])
    variants = [
        make_commitment("tesx", alice, YEAR, SECRET, res, [("addr", alice)]),
        make_commitment("tess", bob, YEAR, SECRET, res, [("addr", alice)]),
        make_commitment("tess", alice, YEAR + 1, SECRET, res, [("addr", alice)]),
        make_commitment("tess", alice, YEAR, keccak256(b"x"), res, [("addr", alice)]),
        make_commitment("tess", alice, YEAR, SECRET, None, [("addr", alice)]),
        make_commitment("tess", alice, YEAR, SECRET, res, [("addr", bob)]),
        make_commitment("tess", alice, YEAR, SECRET, res, []),
    ]
    assert len({base, *variants}) == len(variants) + 1
    assert RegistrarController.make_commitment("tess", alice, YEAR, SECRET) == make_commitment(
        "tess", alice, YEAR, SECRET
    )


@given(
    st.text(min_size=1, max_size=20).filter(lambda s: "." not in s),
    st.integers(min_value=1, max_value=10 * YEAR),
    st.binary(min_size=32, max_size=32),
)
def test_make_commitment_is_deterministic(name, duration, secret):
    owner = dev_address("alice")
    a = make_commitment(name, owner, duration, secret, None, [("description", "x")])
    b = make_commitment(name, "0x" + owner.hex(), duration, "0x" + secret.hex(), None, [TextRecord("description", "x")])
    assert a == b and len(a) == 32


@settings(max_examples=25, deadline=None, suppress_health_check=[HealthCheck.too_slow])
@given(st.integers(min_value=0, max_value=2 * 24 * 60 * 60))
def test_reveal_window_property(age):
    cfg = load_config(env={})
    clock = ManualClock(1_700_000_000)
    chain = Chain(clock=clock)
    dep = deploy(chain, dev_address("deployer"), cfg)
    alice = dev_address("alice")
    chain.fund(alice, 100 * COIN)
    ctl = dep.controller

    ctl.commit(alice, make_commitment("tess", alice, YEAR, SECRET))
    clock.advance(age)
    call = lambda: ctl.register(alice, "tess", alice, YEAR, SECRET, payment=ctl.rent_price("tess", YEAR))  # noqa: E731
    if age < cfg.commitments.min_age:
        with pytest.raises(CommitmentTooNew):
            call()
    elif age > cfg.commitments.max_age:
        with pytest.raises(CommitmentTooOld):
            call()
    else:
        call()
        assert dep.registrar.owner_of(label_hash("tess")) == alice


# ----------------------------- registration checks ---------------------------


def test_name_already_registered(deployment, accounts, register):
    register("tess", accounts["alice"])
    with pytest.raises(NameUnavailable):
        register("tess", accounts["bob"])


def test_invalid_name(deployment, accounts):
    ctl = deployment.controller
    assert not ctl.valid("")
    assert not ctl.valid("a.b")
    assert ctl.valid("tess")
    assert not ctl.available("a.b")
    with pytest.raises(InvalidName):
        make_commitment("a.b", accounts["alice"], YEAR, SECRET)


def test_duration_below_minimum(deployment, accounts, register, config):
    with pytest.raises(InvalidDuration):
        register("tess", accounts["alice"], duration=config.registration.min_duration - 1)


def test_insufficient_payment(deployment, accounts, register, chain):
    price = deployment.controller.rent_price("tess", YEAR)
    before = chain.balance_of(accounts["alice"])
    with pytest.raises(InsufficientPayment):
        register("tess", accounts["alice"], payment=price - 1)
    assert chain.balance_of(accounts["alice"]) == before
    assert deployment.controller.available("tess")


def test_excess_payment_refunded(deployment, accounts, register, chain):
    alice = accounts["alice"]
    price = deployment.controller.rent_price("tess", YEAR)
    before = chain.balance_of(alice)
    receipt = register("tess", alice, payment=price + 5 * COIN)
    assert receipt.refund == 5 * COIN
    assert chain.balance_of(alice) == before - price
    assert chain.balance_of(deployment.controller.address) == price


def test_caller_must_cover_payment(deployment, clock, chain):
    poor = dev_address("poor")
    ctl = deployment.controller
    ctl.commit(poor, make_commitment("tess", poor, YEAR, SECRET))
    clock.advance(70)
    with pytest.raises(InsufficientBalance):
        ctl.register(poor, "tess", poor, YEAR, SECRET, payment=ctl.rent_price("tess", YEAR))
    assert ctl.available("tess")


def test_register_on_behalf_of_another_owner(deployment, accounts, register):
    receipt = register("tess", accounts["bob"], caller=accounts["alice"])
    assert deployment.registrar.owner_of(receipt.label_hash) == accounts["bob"]


# ----------------------------- records ----------------------------------------


def test_initial_records_are_applied(deployment, accounts, register):
    alice = accounts["alice"]
    r = deployment.resolver
    receipt = register(
        "tess",
        alice,
        resolver=r.address,
        records=[("addr", alice), ("description", "My PUSH name"), NameRecord("tess")],
    )
    assert r.addr(receipt.node) == alice
    assert r.text(receipt.node, "description") == "My PUSH name"
    assert r.name(receipt.node) == "tess"
    # the controller handed the node over after writing records
    assert deployment.registry.owner(receipt.node) == alice
    assert deployment.registrar.owner_of(receipt.label_hash) == alice


def test_records_without_resolver(deployment, accounts, register):
    with pytest.raises(ResolverRequired):
        register("tess", accounts["alice"], records=[("description", "x")])


def test_failed_register_is_all_or_nothing(deployment, accounts, clock, chain):
    ctl, alice = deployment.controller, accounts["alice"]
    bogus_resolver = deployment.registry.address  # not a Resolver
    records = [("description", "x")]
    c = make_commitment("tess", alice, YEAR, SECRET, bogus_resolver, records)
    ctl.commit(alice, c)
    clock.advance(70)

    before_balance, before_events = chain.balance_of(alice), len(chain.sink)
    # enough payment, so the failure happens while wiring the resolver
    with pytest.raises(NotFound):
        ctl.register(
            alice, "tess", alice, YEAR, SECRET, bogus_resolver, records, payment=ctl.rent_price("tess", YEAR)
        )

    assert ctl.available("tess")
    assert ctl.commitment_timestamp(c) != 0
    assert chain.balance_of(alice) == before_balance
    assert len(chain.sink) == before_events
    assert deployment.registry.owner(namehash("tess.push")) == b"\x00" * 20


# ----------------------------- renew / withdraw ------------------------------


def test_renew_extends_and_charges(deployment, accounts, register, chain):
    alice, bob = accounts["alice"], accounts["bob"]
    receipt = register("tess", alice)
    ctl = deployment.controller
    price = ctl.rent_price("tess", 30 * DAY)
    bob_before = chain.balance_of(bob)

    expires = ctl.renew(bob, "tess", 30 * DAY, payment=price + 1)
    assert expires == receipt.expires + 30 * DAY
    assert deployment.registrar.name_expires(receipt.label_hash) == expires
    assert chain.balance_of(bob) == bob_before - price

    with pytest.raises(InsufficientPayment):
        ctl.renew(bob, "tess", 30 * DAY, payment=price - 1)
    with pytest.raises(InvalidDuration):
        ctl.renew(bob, "tess", 0, payment=price)


def test_withdraw_is_authority_only(deployment, accounts, register, chain):
    register("tess", accounts["alice"])
    ctl = deployment.controller
    proceeds = chain.balance_of(ctl.address)
    assert proceeds > 0

    with pytest.raises(Unauthorized):
        ctl.withdraw(accounts["mallory"])
    before = chain.balance_of(accounts["deployer"])
    assert ctl.withdraw(accounts["deployer"]) == proceeds
    assert chain.balance_of(accounts["deployer"]) == before + proceeds
    assert chain.balance_of(ctl.address) == 0


def test_constructor_rejects_inverted_window(chain, deployment, accounts):
    with pytest.raises(ValueError):
        chain.deploy(
            RegistrarController, accounts["deployer"], deployment.registrar, deployment.oracle, 60, 60
        )


# ----------------------------- expiry ----------------------------------------


def test_controller_sees_expiry_and_next_registration_wins(deployment, accounts, clock, chain):
    alice, bob, carol = accounts["alice"], accounts["bob"], accounts["carol"]
    ctl = deployment.controller
    price = ctl.rent_price("tess", YEAR)
    ctl.commit(alice, make_commitment("tess", alice, YEAR, SECRET))
    clock.advance(70)
    receipt = ctl.register(alice, "tess", alice, YEAR, SECRET, payment=price)

    clock.set(receipt.expires)
    assert not ctl.available("tess")

    # two fresh contenders commit once the name has lapsed
    clock.advance(1)
    assert ctl.available("tess")
    bob_secret, carol_secret = keccak256(b"bob"), keccak256(b"carol")
    ctl.commit(bob, make_commitment("tess", bob, YEAR, bob_secret))
    ctl.commit(carol, make_commitment("tess", carol, YEAR, carol_secret))
    clock.advance(70)

    ctl.register(bob, "tess", bob, YEAR, bob_secret, payment=price)
    assert deployment.registrar.owner_of(label_hash("tess")) == bob
    assert deployment.registry.owner(namehash("tess.push")) == bob
    with pytest.raises(NameUnavailable):
        ctl.register(carol, "tess", carol, YEAR, carol_secret, payment=price)
    assert deployment.registrar.name_expires(label_hash("tess")) == clock.now() + YEAR


# ----------------------------- atomicity --------------------------------------


class _PickyResolver(Resolver):
    """Rejects one text key, after earlier records in the same call were written."""

    def set_text(self, caller, node, key, value):
        if key == "forbidden":
            raise ValueError("key not accepted")
        return super().set_text(caller, node, key, value)


def test_record_failure_after_registration_steps_rolls_back(deployment, accounts, clock, chain):
    ctl, alice = deployment.controller, accounts["alice"]
    picky = chain.deploy(_PickyResolver, accounts["deployer"], deployment.registry)
    records = [("addr", alice), ("description", "ok"), ("forbidden", "x")]
    c = make_commitment("tess", alice, YEAR, SECRET, picky.address, records)
    ctl.commit(alice, c)
    clock.advance(70)

    price = ctl.rent_price("tess", YEAR)
    before = (chain.balance_of(alice), chain.balance_of(ctl.address), len(chain.sink))
    with pytest.raises(ValueError):
        ctl.register(alice, "tess", alice, YEAR, SECRET, picky.address, records, payment=price + COIN)

    node = namehash("tess.push")
    assert ctl.available("tess")
    assert deployment.registrar.name_expires(label_hash("tess")) == 0
    assert deployment.registry.owner(node) == b"\x00" * 20
    assert deployment.registry.resolver(node) == b"\x00" * 20
    assert picky.addr(node) == b"\x00" * 20
    assert picky.text(node, "description") == ""
    assert ctl.commitment_timestamp(c) != 0
    assert (chain.balance_of(alice), chain.balance_of(ctl.address), len(chain.sink)) == before


# ----------------------------- events -----------------------------------------


def test_events_carry_name_fields(deployment, accounts, register, chain):
    alice = accounts["alice"]
    ctl, r = deployment.controller, deployment.resolver
    receipt = register("tess", alice, resolver=r.address, records=[NameRecord("tess")])
    ctl.renew(alice, "tess", 30 * DAY, payment=ctl.rent_price("tess", 30 * DAY))

    registered = list(chain.sink.get_logs(emitter=ctl.address, name="NameRegistered"))
    renewed = list(chain.sink.get_logs(emitter=ctl.address, name="NameRenewed"))
    changed = list(chain.sink.get_logs(emitter=r.address, name="NameChanged"))
    assert registered[-1].args["name"] == "tess" and registered[-1].args["label"] == receipt.label_hash
    assert renewed[-1].args["name"] == "tess"
    assert changed[-1].args["name"] == "tess" and changed[-1].args["node"] == receipt.node


def test_registrar_event_reports_final_registrant(deployment, accounts, register, chain):
    alice = accounts["alice"]
    receipt = register("tess", alice, resolver=deployment.resolver.address, records=[("addr", alice)])
    ev = list(chain.sink.get_logs(emitter=deployment.registrar.address, name="NameRegistered"))
    assert ev[-1].args["owner"] == alice
    assert ev[-1].args["id"] == receipt.label_hash


def test_commit_at_time_zero_is_known(accounts, config):
    clock = ManualClock(0)
    chain = Chain(clock=clock)
    dep = deploy(chain, accounts["deployer"], config)
    alice = accounts["alice"]
    chain.fund(alice, 100 * COIN)
    ctl = dep.controller

    c = make_commitment("tess", alice, YEAR, SECRET)
    ctl.commit(alice, c)
    assert ctl.commitment_timestamp(c) == 0
    with pytest.raises(UnexpiredCommitmentExists):
        ctl.commit(alice, c)

    clock.advance(70)
    receipt = ctl.register(alice, "tess", alice, YEAR, SECRET, payment=ctl.rent_price("tess", YEAR))
    assert receipt.expires == 70 + YEAR
    assert dep.registrar.owner_of(label_hash("tess")) == alice
    with pytest.raises(UnknownCommitment):
        ctl.register(alice, "tess", alice, YEAR, SECRET, payment=ctl.rent_price("tess", YEAR))


def test_concurrent_reader_never_sees_uncommitted_registration(deployment, chain, clock):
    registrar, lh = deployment.registrar, label_hash("tess")
    staged, release = threading.Event(), threading.Event()
    seen = []

    def writer():
        with suppress(RuntimeError):
            with chain.transaction("half-registration"):
                chain.journal.storage_set(registrar.address, b"exp:" + lh, chain.now() + YEAR)
                staged.set()
                release.wait(5)
                raise RuntimeError("abandon")

    w = threading.Thread(target=writer)
    w.start()
    assert staged.wait(5)
    r = threading.Thread(target=lambda: seen.append(deployment.controller.available("tess")))
    r.start()
    r.join(0.2)
    assert r.is_alive()

    release.set()
    w.join(5)
    r.join(5)
    assert seen == [True]
    assert registrar.name_expires(lh) == 0
