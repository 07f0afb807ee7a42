"""
pushns.deploy — wire a complete naming deployment onto a Chain.

Steps (in order, all by `deployer`):

  1. NodeRegistry (deployer owns the root)
  2. PriceOracle with the configured tier table
  3. BaseRegistrar for ``namehash(base_name)``
  4. Resolver
  5. RegistrarController with the configured commitment window
  6. ReverseRegistrar

then the setup transactions:

  - register the controller with the registrar
  - delegate ``base_name`` from the root to the registrar
  - point the base node at the resolver
  - create ``reverse`` (owned by the deployer) and ``addr.reverse`` (owned by
    the ReverseRegistrar)
  - make the resolver the reverse default

Addresses depend only on the deployer and its nonce, so deploying the same
configuration with the same deployer onto a fresh chain reproduces the same
addresses. `restore` relies on that to load a snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from .config import NamingConfig, get_config
from .contracts import (
    BaseRegistrar,
    NodeRegistry,
    PriceOracle,
    RegistrarController,
    Resolver,
    ReverseRegistrar,
)
from .logging import bind, get_logger, trace_scope
from .runtime.chain import Chain
from .utils.bytes import ZERO_NODE, HexLike, address, to_hex
from .utils.hash import label_hash, namehash

log = get_logger(__name__)


@dataclass
class Deployment:
    chain: Chain
    deployer: bytes
    config: NamingConfig
    registry: NodeRegistry
    oracle: PriceOracle
    registrar: BaseRegistrar
    resolver: Resolver
    controller: RegistrarController
    reverse_registrar: ReverseRegistrar

    @property
    def base_node(self) -> bytes:
        return self.registrar.base_node

    def addresses(self) -> Dict[str, str]:
        return {
            "registry": to_hex(self.registry.address),
            "priceOracle": to_hex(self.oracle.address),
            "baseRegistrar": to_hex(self.registrar.address),
            "resolver": to_hex(self.resolver.address),
            "controller": to_hex(self.controller.address),
            "reverseRegistrar": to_hex(self.reverse_registrar.address),
        }

    def snapshot(self) -> bytes:
        return self.chain.snapshot()


def deploy(chain: Chain, deployer: HexLike, config: Optional[NamingConfig] = None) -> Deployment:
    cfg = config or get_config()
    who = address(deployer)

    with trace_scope():
        bind(component="deploy")
        registry = chain.deploy(NodeRegistry, who)
        oracle = chain.deploy(PriceOracle, who, cfg.pricing.tiers, cfg.pricing.unit_seconds)
        registrar = chain.deploy(
            BaseRegistrar, who, registry, namehash(cfg.base_name), cfg.registration.grace_period
        )
        resolver = chain.deploy(Resolver, who, registry)
        controller = chain.deploy(
            RegistrarController,
            who,
            registrar,
            oracle,
            cfg.commitments.min_age,
            cfg.commitments.max_age,
            cfg.registration.min_duration,
        )
        reverse = chain.deploy(ReverseRegistrar, who, registry)

        with chain.transaction(label="deploy:setup"):
            registrar.add_controller(who, controller.address)
            registry.set_subnode_owner(who, ZERO_NODE, label_hash(cfg.base_name), registrar.address)
            registrar.set_resolver(who, resolver.address)
            reverse_node = registry.set_subnode_owner(who, ZERO_NODE, label_hash("reverse"), who)
            registry.set_subnode_owner(who, reverse_node, label_hash("addr"), reverse.address)
            reverse.set_default_resolver(who, resolver.address)

    dep = Deployment(
        chain=chain,
        deployer=who,
        config=cfg,
        registry=registry,
        oracle=oracle,
        registrar=registrar,
        resolver=resolver,
        controller=controller,
        reverse_registrar=reverse,
    )
    log.info("deployment complete", extra={"base_name": cfg.base_name, **dep.addresses()})
    return dep


def restore(chain: Chain, deployer: HexLike, data: bytes, config: Optional[NamingConfig] = None) -> Deployment:
    """Redeploy `config` on an empty `chain` and load a snapshot over it."""
    dep = deploy(chain, deployer, config)
    chain.restore(data)
    return dep


__all__ = ["Deployment", "deploy", "restore"]
