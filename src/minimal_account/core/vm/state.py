"""
World state: native balances, deployed contracts and the event log.

Call frames take a snapshot before running and restore it on failure,
which gives every frame all-or-nothing semantics.
"""

from __future__ import annotations

import copy
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List

from .contract import Contract


@dataclass
class LogEntry:
    """An event emitted by a contract."""

    address: str
    event: str
    fields: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)


@dataclass
class StateSnapshot:
    balances: Dict[str, int]
    contracts: Dict[str, Contract]
    storage: Dict[str, Dict[str, Any]]
    log_length: int


class WorldState:
    """Mutable chain state shared by every call frame."""

    def __init__(self) -> None:
        self.balances: Dict[str, int] = {}
        self.contracts: Dict[str, Contract] = {}
        self.logs: List[LogEntry] = []

    def balance_of(self, address: str) -> int:
        return self.balances.get(address, 0)

    def snapshot(self) -> StateSnapshot:
        return StateSnapshot(
            balances=dict(self.balances),
            contracts=dict(self.contracts),
            storage={
                address: copy.deepcopy(vars(contract))
                for address, contract in self.contracts.items()
            },
            log_length=len(self.logs),
        )

    def restore(self, snapshot: StateSnapshot) -> None:
        self.balances = dict(snapshot.balances)
        self.contracts = dict(snapshot.contracts)
        for address, contract in self.contracts.items():
            storage = vars(contract)
            storage.clear()
            storage.update(copy.deepcopy(snapshot.storage[address]))
        del self.logs[snapshot.log_length:]
