"""
Rabbit metabolism: stored food (the ledger) is converted into energy by
metabolic processes every simulation tick, while a fixed homeostasis cost is
paid. The engine reports the rabbit's death once, when energy drops below 0.
"""
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping

from rabbitforage.rllib.foraging_rabbits.consumable import ConsumableType


@dataclass(frozen=True)
class MetabolicProcess:
    """A reaction consuming food types at fixed rates (units/s) to produce energy (energy/s)."""

    requirements: Mapping[ConsumableType, float]
    energy_rate: float
    name: str = ""

    def __post_init__(self):
        requirements = {ConsumableType(k): float(v) for k, v in dict(self.requirements).items()}
        for consumable_type, rate in requirements.items():
            if rate < 0:
                raise ValueError(f"Process '{self.name}' has negative requirement for {consumable_type.name}")
        object.__setattr__(self, "requirements", MappingProxyType(requirements))

    @classmethod
    def from_config(cls, entry: dict, name: str = ""):
        """
        Build a process from parallel arrays, e.g.
        {"energy_produced": 3.0, "components_required": ["type_a"], "quantities_required": [2.0]}.
        """
        components = list(entry["components_required"])
        quantities = list(entry["quantities_required"])
        name = entry.get("name", name)
        if len(components) != len(quantities):
            raise ValueError(
                f"Metabolic process '{name}': `components_required` and `quantities_required` "
                f"must have the same length ({len(components)} != {len(quantities)})"
            )
        requirements = {}
        for component, quantity in zip(components, quantities):
            consumable_type = ConsumableType.from_name(component)
            if consumable_type in requirements:
                raise ValueError(f"Metabolic process '{name}' lists {consumable_type.name} more than once")
            requirements[consumable_type] = float(quantity)
        return cls(requirements=requirements, energy_rate=float(entry["energy_produced"]), name=name)


def load_process_profile(entries) -> List[MetabolicProcess]:
    """Convert a list of config entries into immutable processes named "Process 1", "Process 2", ..."""
    return [MetabolicProcess.from_config(entry, name=f"Process {i + 1}") for i, entry in enumerate(entries)]


class ResourceLedger:
    """Per-type food stored in a rabbit's stomach. Entries never go negative."""

    def __init__(self):
        self._quantities: Dict[ConsumableType, float] = {t: 0.0 for t in ConsumableType}

    def __getitem__(self, consumable_type):
        return self._quantities[ConsumableType(consumable_type)]

    def __repr__(self):
        body = ", ".join(f"{t.name}={q:.3f}" for t, q in self._quantities.items())
        return f"ResourceLedger({body})"

    def deposit(self, consumable_type, amount):
        if amount < 0:
            raise ValueError(f"Cannot deposit a negative amount ({amount})")
        self._quantities[ConsumableType(consumable_type)] += amount

    def withdraw(self, consumable_type, amount):
        consumable_type = ConsumableType(consumable_type)
        if amount > self._quantities[consumable_type]:
            raise ValueError(
                f"Ledger underflow for {consumable_type.name}: "
                f"requested {amount}, available {self._quantities[consumable_type]}"
            )
        # guard against float residue below zero
        self._quantities[consumable_type] = max(0.0, self._quantities[consumable_type] - amount)

    def snapshot(self) -> Dict[ConsumableType, float]:
        return dict(self._quantities)

    def as_list(self) -> List[float]:
        """Quantities in ConsumableType order."""
        return [self._quantities[t] for t in ConsumableType]

    def clear(self):
        for consumable_type in self._quantities:
            self._quantities[consumable_type] = 0.0


@dataclass
class MetabolismEngine:
    processes: List[MetabolicProcess]
    starting_energy: float
    homeostasis_energy_loss: float
    consumption_rate: float
    ledger: ResourceLedger = field(default_factory=ResourceLedger)
    energy: float = 0.0
    alive: bool = False
    energy_produced_total: float = 0.0
    _death_listeners: list = field(default_factory=list, init=False, repr=False)

    def subscribe_death(self, listener):
        """Register `listener()`, called once per life when energy drops below zero."""
        self._death_listeners.append(listener)

    def respawn(self):
        self.ledger.clear()
        self.energy = float(self.starting_energy)
        self.energy_produced_total = 0.0
        self.alive = True

    def feed(self, consumable, delta_time):
        """Drain up to consumption_rate * dt from the consumable into the ledger. Returns the amount eaten."""
        desired = self.consumption_rate * delta_time
        eaten = consumable.drain(desired)
        self.ledger.deposit(consumable.consumable_type, eaten)
        return eaten

    def process_fractions(self, delta_time) -> List[float]:
        """
        Fraction of a full tick each process runs at, computed from one ledger snapshot.

        A process is eligible only if the snapshot holds requirement * dt of every
        type it needs. Eligible processes competing for the same type are rationed
        by the ratio available / total demand, and each process runs at the
        smallest ratio among its required types.
        """
        snapshot = self.ledger.snapshot()
        eligible = [
            all(snapshot[t] >= rate * delta_time for t, rate in process.requirements.items())
            for process in self.processes
        ]

        demand = {t: 0.0 for t in ConsumableType}
        for process, ok in zip(self.processes, eligible):
            if ok:
                for t, rate in process.requirements.items():
                    demand[t] += rate * delta_time
        ratio = {t: (1.0 if demand[t] <= snapshot[t] else snapshot[t] / demand[t]) for t in ConsumableType}

        fractions = []
        for process, ok in zip(self.processes, eligible):
            if not ok:
                fractions.append(0.0)
                continue
            fractions.append(min((ratio[t] for t in process.requirements), default=1.0))
        return fractions

    def tick(self, delta_time):
        """Advance metabolism by dt. Returns True if the rabbit died during this tick."""
        if not self.alive:
            return False

        fractions = self.process_fractions(delta_time)
        debits = {t: 0.0 for t in ConsumableType}
        energy_gain = 0.0
        for process, fraction in zip(self.processes, fractions):
            if fraction <= 0.0:
                continue
            for t, rate in process.requirements.items():
                debits[t] += rate * delta_time * fraction
            energy_gain += process.energy_rate * delta_time * fraction

        for t, amount in debits.items():
            if amount > 0.0:
                self.ledger.withdraw(t, min(amount, self.ledger[t]))
        self.energy += energy_gain
        self.energy_produced_total += energy_gain

        self.energy -= self.homeostasis_energy_loss * delta_time
        if self.energy < 0:
            self.alive = False
            for listener in list(self._death_listeners):
                listener()
            return True
        return False


__all__ = ["MetabolicProcess", "load_process_profile", "ResourceLedger", "MetabolismEngine"]
