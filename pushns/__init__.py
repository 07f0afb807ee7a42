"""
pushns — a hierarchical name service with commit-reveal registration.

The package is split the same way the protocol is:

- ``pushns.contracts``  NodeRegistry, PriceOracle, BaseRegistrar, Resolver,
                        RegistrarController, ReverseRegistrar
- ``pushns.runtime``    the linearizing executor (Chain) and contract base
- ``pushns.state``      journaled world state, event sinks, snapshots
- ``pushns.deploy``     wires a complete deployment together

Only lightweight metadata is exported at import time.
"""

try:
    from .version import __version__  # type: ignore
except Exception:  # pragma: no cover - fallback for fresh checkouts
    __version__ = "0.0.0+local"

__all__ = ["__version__"]
