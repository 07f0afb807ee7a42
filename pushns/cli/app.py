"""
pushns.cli.app
==============

Command-line entrypoint for local experiments with the naming protocol.

Commands
--------
config       Print the effective configuration (env + defaults)
price        Rent quote for a label and a number of days
commitment   Compute the commitment hash for a registration
demo         Deploy onto an in-memory chain with a manual clock and run the
             whole commit → wait → register → set records → verify flow

Usage
-----
pushns config --json
pushns price tess --days 365
pushns commitment tess --owner 0x… --secret mysecret --resolver 0x…
pushns --log-level DEBUG demo --name tess --snapshot state.cbor

Secrets: a ``0x``-prefixed 32-byte hex string is used as is; anything else is
hashed with keccak256 (so ``--secret mysecret`` equals ``id("mysecret")``).
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..config import NamingConfig, format_amount, load_config, parse_duration, summary
from ..contracts.controller import make_commitment
from ..contracts.price_oracle import rent, tier_price
from ..deploy import deploy
from ..errors import NamingError, error_to_receipt_fields
from ..logging import configure as configure_logging
from ..records import TextRecord
from ..runtime.chain import Chain
from ..runtime.clock import ManualClock
from ..state.snapshot import write_snapshot
from ..utils.bytes import from_hex, strip0x, to_hex
from ..utils.hash import check_label, dev_address, keccak256
from ..version import __version__

app = typer.Typer(
    name="pushns",
    add_completion=False,
    no_args_is_help=True,
    help="Hierarchical name service: pricing, commitments and a local end-to-end demo.",
)

DAY = 24 * 60 * 60


# ----------------- helpers -----------------


def _secret(value: str) -> bytes:
    if value.startswith("0x") and len(strip0x(value)) == 64:
        return from_hex(value)
    return keccak256(value.encode("utf-8"))


def _label(name: str) -> str:
    try:
        return check_label(name)
    except NamingError as e:
        raise typer.BadParameter(e.message) from e


def _load() -> NamingConfig:
    try:
        return load_config()
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e


def _fail(err: NamingError) -> None:
    typer.echo(json.dumps(error_to_receipt_fields(err), sort_keys=True), err=True)
    raise typer.Exit(1)


def _table(title: str, rows: dict) -> Table:
    t = Table(title=title, box=box.SIMPLE)
    t.add_column("Field")
    t.add_column("Value", overflow="fold")
    for k, v in rows.items():
        t.add_row(k, str(v))
    return t


# ----------------- CLI -----------------


def _version(value: bool) -> None:
    if value:
        typer.echo(f"pushns {__version__}")
        raise typer.Exit(0)


@app.callback()
def _meta(
    log_level: str = typer.Option("WARNING", "--log-level", help="Minimum log level (DEBUG, INFO, ...)"),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit logs as JSON lines"),
    version: bool = typer.Option(
        False, "--version", "-V", help="Print version and exit", callback=_version, is_eager=True
    ),
) -> None:
    configure_logging(json=True if json_logs else None, level=log_level.upper())


@app.command("config")
def config_cmd(
    as_json: bool = typer.Option(False, "--json", help="Print the configuration as JSON"),
) -> None:
    """Print the effective configuration."""
    cfg = _load()
    if as_json:
        typer.echo(json.dumps(cfg.to_dict(), indent=2, sort_keys=True))
        return
    p = cfg.pricing
    rows = {
        "base name": cfg.base_name,
        "min commitment age": f"{cfg.commitments.min_age}s",
        "max commitment age": f"{cfg.commitments.max_age}s",
        "min registration": f"{cfg.registration.min_duration}s",
        "grace period": f"{cfg.registration.grace_period}s",
        "price unit": f"{p.unit_seconds}s",
    }
    for i, tier in enumerate(p.tiers, start=1):
        suffix = "+" if i == len(p.tiers) else ""
        rows[f"price {i}{suffix} chars"] = format_amount(tier, p.decimals)
    Console().print(_table("pushns configuration", rows))
    typer.echo(summary(cfg))


@app.command("price")
def price_cmd(
    name: str = typer.Argument(..., help="Label to price (without the base name)"),
    days: int = typer.Option(365, "--days", "-d", min=1, help="Registration length in days"),
) -> None:
    """Quote the rent for a label."""
    label = _label(name)
    cfg = _load()
    p = cfg.pricing
    tier = tier_price(p.tiers, len(label))
    cost = rent(tier, days * DAY, p.unit_seconds)
    Console().print(
        _table(
            f"{label}.{cfg.base_name}",
            {
                "length": len(label),
                "price per day": format_amount(rent(tier, DAY, p.unit_seconds), p.decimals),
                "days": days,
                "rent": format_amount(cost, p.decimals),
                "rent (base units)": cost,
            },
        )
    )


@app.command("commitment")
def commitment_cmd(
    name: str = typer.Argument(..., help="Label to register"),
    owner: str = typer.Option(..., "--owner", help="Registrant address (0x…)"),
    secret: str = typer.Option(..., "--secret", help="32-byte hex secret or a passphrase"),
    resolver: Optional[str] = typer.Option(None, "--resolver", help="Resolver address (0x…)"),
    duration: str = typer.Option("365d", "--duration", help="Registration length (e.g. 365d, 1y)"),
) -> None:
    """Print the commitment hash to submit before registering."""
    label = _label(name)
    try:
        c = make_commitment(label, owner, parse_duration(duration), _secret(secret), resolver)
    except (TypeError, ValueError) as e:
        raise typer.BadParameter(str(e)) from e
    typer.echo(to_hex(c))


@app.command("demo")
def demo_cmd(
    name: str = typer.Option("tess", "--name", "-n", help="Label to register"),
    days: int = typer.Option(365, "--days", "-d", min=1, help="Registration length in days"),
    snapshot: Optional[Path] = typer.Option(None, "--snapshot", help="Write the final state (CBOR) here"),
) -> None:
    """Run the full registration flow against an in-memory chain."""
    label = _label(name)
    cfg = _load()
    clock = ManualClock()
    chain = Chain(clock=clock)
    deployer, user = dev_address("deployer"), dev_address("user")

    try:
        dep = deploy(chain, deployer, cfg)
        controller, resolver = dep.controller, dep.resolver

        duration = days * DAY
        price = controller.rent_price(label, duration)
        chain.fund(user, price)
        if not controller.available(label):
            raise typer.BadParameter(f"{label} is not available")

        secret = keccak256(b"mysecret")
        commitment = make_commitment(label, user, duration, secret, resolver.address)
        controller.commit(user, commitment)
        clock.advance(cfg.commitments.min_age + 10)

        receipt = controller.register(
            user, label, user, duration, secret, resolver.address, payment=price
        )
        node = receipt.node
        resolver.set_addr(user, node, user)
        resolver.apply(user, node, TextRecord("description", "My PUSH name"))
        resolver.set_name(user, node, label)
        dep.reverse_registrar.set_name(user, f"{label}.{cfg.base_name}")
    except NamingError as e:
        _fail(e)
        return

    registered = dep.registrar.owner_of(receipt.label_hash)
    rows = {
        "name": f"{label}.{cfg.base_name}",
        "owner": to_hex(registered),
        "owner matches": registered == user,
        "expires": receipt.expires,
        "cost": format_amount(receipt.cost, cfg.pricing.decimals),
        "resolved addr": to_hex(resolver.addr(node)),
        "description": resolver.text(node, "description"),
        "resolved name": resolver.name(node),
        "reverse name": resolver.name(dep.reverse_registrar.node(user)),
        "events": len(chain.sink),
    }
    Console().print(Panel(_table("registration", rows), title="pushns demo", expand=False))

    if snapshot is not None:
        path = write_snapshot(chain.journal, snapshot)
        typer.echo(f"snapshot written to {path}")


def main() -> None:  # pragma: no cover
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
