"""Executor (Chain), clocks and the contract base class."""

from .chain import SYSTEM_ADDRESS, Chain, contract_address
from .clock import Clock, ManualClock, SystemClock
from .contract import Contract, Ownable, transaction

__all__ = [
    "Chain",
    "SYSTEM_ADDRESS",
    "contract_address",
    "Clock",
    "ManualClock",
    "SystemClock",
    "Contract",
    "Ownable",
    "transaction",
]
