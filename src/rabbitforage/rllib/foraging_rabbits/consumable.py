"""
Consumable food items placed in the rabbit environment.

A consumable holds a number of food units of one ConsumableType. Rabbits drain
units from it while touching it; once the last unit is gone the item becomes
non-interactive and notifies its listeners exactly once.
"""
from enum import IntEnum

import numpy as np


class ConsumableType(IntEnum):
    TYPE_A = 0
    TYPE_B = 1
    TYPE_C = 2

    @classmethod
    def from_name(cls, name):
        """Parse a config name such as "type_a" (case-insensitive)."""
        if isinstance(name, cls):
            return name
        try:
            return cls[str(name).upper()]
        except KeyError:
            valid = ", ".join(t.name.lower() for t in cls)
            raise ValueError(f"Unknown consumable type '{name}'. Expected one of: {valid}") from None


class Consumable:
    def __init__(self, consumable_type, initial_units, position, drawer=None, consumable_id=None):
        if initial_units <= 0:
            raise ValueError(f"initial_units must be positive, got {initial_units}")
        self.consumable_type = ConsumableType(consumable_type)
        self.initial_units = float(initial_units)
        self.remaining_units = float(initial_units)
        self.position = np.asarray(position, dtype=np.float64)
        self.consumable_id = consumable_id
        # cosmetic collaborator exposing redraw(interpolant); never required
        self.drawer = drawer
        self.interactable = True
        self._exhausted = False
        self._on_consumed_completely = []

    def __repr__(self):
        return (
            f"Consumable(id={self.consumable_id}, type={self.consumable_type.name}, "
            f"remaining={self.remaining_units:.3f}/{self.initial_units:.3f})"
        )

    @property
    def exhausted(self):
        return self._exhausted

    @property
    def interpolant(self):
        """Fraction of the initial units still remaining, in [0, 1]."""
        return self.remaining_units / self.initial_units

    def subscribe_consumed(self, listener):
        """Register `listener(consumable)`, called once when the last unit is drained."""
        self._on_consumed_completely.append(listener)

    def unsubscribe_consumed(self, listener):
        if listener in self._on_consumed_completely:
            self._on_consumed_completely.remove(listener)

    def drain(self, amount):
        """
        Remove up to `amount` units and return the amount actually removed.

        The request is clamped to what is left. When the remaining units reach
        zero the consumable stops being interactable and fires its exhaustion
        listeners. Draining an exhausted consumable returns 0.
        """
        if amount < 0:
            raise ValueError(f"Cannot drain a negative amount ({amount})")
        if self._exhausted:
            return 0.0

        drained = min(float(amount), self.remaining_units)
        self.remaining_units -= drained
        if self.remaining_units <= 0:
            self.remaining_units = 0.0

        if self.drawer is not None:
            self.drawer.redraw(self.interpolant)

        if self.remaining_units <= 0:
            self._exhaust()
        return drained

    def _exhaust(self):
        self._exhausted = True
        self.interactable = False
        # listeners may detach themselves while being notified
        for listener in list(self._on_consumed_completely):
            listener(self)


__all__ = ["ConsumableType", "Consumable"]
