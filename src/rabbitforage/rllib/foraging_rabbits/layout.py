"""
Procedural layout of consumables inside a bounding box.

Positions are rejection-sampled so every pair is at least `min_distance_between`
apart. A single failed-attempt budget is shared by the whole layout; when it
runs out the generation call is abandoned and the previous layout stays put.
"""
from dataclasses import dataclass
from typing import List, Optional, Tuple

import gymnasium
import numpy as np

from rabbitforage.rllib.foraging_rabbits.consumable import Consumable, ConsumableType

# Prevents an endless loop when too many items are packed into too little space.
MAX_FAILED_ATTEMPTS = 1000


class LayoutPackingError(RuntimeError):
    """Raised when an episode cannot start because no layout could be packed."""


@dataclass(frozen=True)
class SpawnKind:
    consumable_type: ConsumableType
    quantity_range: Tuple[int, int]
    unit_range: Tuple[float, float]

    def __post_init__(self):
        lo, hi = self.quantity_range
        if lo < 0 or hi < lo:
            raise ValueError(f"Invalid spawn quantity range {self.quantity_range} for {self.consumable_type.name}")
        min_units, max_units = self.unit_range
        if min_units <= 0 or max_units < min_units:
            raise ValueError(f"Invalid unit range {self.unit_range} for {self.consumable_type.name}")


def spawn_kinds_from_config(config):
    """
    Build SpawnKinds from the parallel arrays `spawnable_kinds`, `spawn_quantity_ranges`
    and `spawn_unit_ranges`. Mismatched lengths are a configuration error.
    """
    kinds = list(config["spawnable_kinds"])
    quantity_ranges = list(config["spawn_quantity_ranges"])
    unit_ranges = list(config["spawn_unit_ranges"])
    if len(kinds) != len(quantity_ranges):
        raise ValueError(
            "Fields `spawnable_kinds` and `spawn_quantity_ranges` must have the same length "
            f"({len(kinds)} != {len(quantity_ranges)})"
        )
    if len(kinds) != len(unit_ranges):
        raise ValueError(
            "Fields `spawnable_kinds` and `spawn_unit_ranges` must have the same length "
            f"({len(kinds)} != {len(unit_ranges)})"
        )
    return [
        SpawnKind(
            consumable_type=ConsumableType.from_name(kind),
            quantity_range=(int(q[0]), int(q[1])),
            unit_range=(float(u[0]), float(u[1])),
        )
        for kind, q, u in zip(kinds, quantity_ranges, unit_ranges)
    ]


class LayoutGenerator:
    def __init__(self, spawn_min, spawn_max, spawn_kinds: List[SpawnKind], min_distance_between, rng=None):
        self.spawn_min = np.asarray(spawn_min, dtype=np.float64)
        self.spawn_max = np.asarray(spawn_max, dtype=np.float64)
        if self.spawn_min.shape != (3,) or self.spawn_max.shape != (3,):
            raise ValueError("Spawn box corners must be 3D points")
        if min_distance_between < 0:
            raise ValueError("min_distance_between must be non-negative")
        self.spawn_kinds = list(spawn_kinds)
        self.min_distance_between = float(min_distance_between)
        self.rng = rng if rng is not None else np.random.default_rng()
        # live consumables of the current layout; exhausted ones drop out via callback
        self.spawned_consumables: List[Consumable] = []
        self.last_quantities: List[int] = []
        self.layouts_generated = 0
        self._next_consumable_id = 0

    def sample_quantities(self) -> List[int]:
        """One integer per kind, drawn uniformly from its inclusive range."""
        return [int(self.rng.integers(kind.quantity_range[0], kind.quantity_range[1] + 1)) for kind in self.spawn_kinds]

    def sample_positions(self, count) -> Optional[np.ndarray]:
        """
        Rejection-sample `count` points in the box with pairwise spacing >= min_distance_between.

        Returns None once the shared failure counter exceeds MAX_FAILED_ATTEMPTS.
        """
        positions = np.zeros((count, 3), dtype=np.float64)
        failed_attempts = 0
        i = 0
        while i < count:
            candidate = self.spawn_min + (self.spawn_max - self.spawn_min) * self.rng.random(3)
            if i > 0:
                distances = np.linalg.norm(positions[:i] - candidate, axis=1)
                if np.any(distances < self.min_distance_between):
                    if failed_attempts > MAX_FAILED_ATTEMPTS:
                        return None
                    failed_attempts += 1
                    continue
            positions[i] = candidate
            i += 1
        return positions

    def generate(self, drawer_factory=None) -> Optional[List[Consumable]]:
        """
        Clear the previous consumables and spawn a fresh layout.

        Returns the new consumables, or None (with a warning) when the layout
        could not be packed; in that case the previous layout is left untouched.
        """
        quantities = self.sample_quantities()
        positions = self.sample_positions(sum(quantities))
        if positions is None:
            gymnasium.logger.warn(
                "Environment failed to pack generated objects. "
                "Consider lowering spawn quantities, or reducing spacing requirements."
            )
            return None

        self.clear()
        object_index = 0
        for kind, quantity in zip(self.spawn_kinds, quantities):
            for _ in range(quantity):
                min_units, max_units = kind.unit_range
                initial_units = min_units + (max_units - min_units) * self.rng.random()
                consumable = Consumable(
                    kind.consumable_type,
                    initial_units,
                    positions[object_index],
                    drawer=drawer_factory(kind.consumable_type) if drawer_factory else None,
                    consumable_id=f"{kind.consumable_type.name.lower()}_{self._next_consumable_id}",
                )
                self._next_consumable_id += 1
                consumable.subscribe_consumed(self._on_consumed_completely)
                self.spawned_consumables.append(consumable)
                object_index += 1

        self.last_quantities = quantities
        self.layouts_generated += 1
        return list(self.spawned_consumables)

    def clear(self):
        for consumable in self.spawned_consumables:
            consumable.unsubscribe_consumed(self._on_consumed_completely)
        self.spawned_consumables = []

    def active_consumables(self) -> List[Consumable]:
        """Snapshot of the live consumables, safe to iterate while items get exhausted."""
        return list(self.spawned_consumables)

    def _on_consumed_completely(self, consumable):
        if consumable in self.spawned_consumables:
            self.spawned_consumables.remove(consumable)


__all__ = [
    "MAX_FAILED_ATTEMPTS",
    "LayoutPackingError",
    "SpawnKind",
    "spawn_kinds_from_config",
    "LayoutGenerator",
]
