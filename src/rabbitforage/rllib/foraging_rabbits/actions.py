"""
Action decoding and deferred hops.

Action space (requested each time a rabbit becomes grounded):
    actions[0]: heading change, -1 -> -180 deg, +1 -> +180 deg (applied immediately)
    actions[1]: wait before hopping, -1 -> min_hop_delay, +1 -> max_hop_delay
    actions[2]: hop impulse, -1 -> min_hop_velocity, +1 -> max_hop_velocity
"""
from dataclasses import dataclass
from typing import Dict, List, Tuple

import numpy as np

# tolerance for accumulated tick times when comparing against due times
TIME_EPSILON = 1e-9


def inverse_lerp(a, b, value):
    if a == b:
        return 0.0
    return float(np.clip((value - a) / (b - a), 0.0, 1.0))


def lerp(a, b, t):
    return a + (b - a) * t


@dataclass(frozen=True)
class HopDecision:
    heading_change_deg: float
    delay: float
    impulse: float


class ActionDecoder:
    def __init__(self, min_hop_delay, max_hop_delay, min_hop_velocity, max_hop_velocity):
        if min_hop_delay < 0 or max_hop_delay < min_hop_delay:
            raise ValueError(f"Invalid hop delay range [{min_hop_delay}, {max_hop_delay}]")
        if max_hop_velocity < min_hop_velocity:
            raise ValueError(f"Invalid hop velocity range [{min_hop_velocity}, {max_hop_velocity}]")
        self.min_hop_delay = float(min_hop_delay)
        self.max_hop_delay = float(max_hop_delay)
        self.min_hop_velocity = float(min_hop_velocity)
        self.max_hop_velocity = float(max_hop_velocity)

    def decode(self, action) -> HopDecision:
        action = np.asarray(action, dtype=np.float64).reshape(-1)
        if action.shape != (3,):
            raise ValueError(f"Expected an action with 3 components, got shape {action.shape}")
        if not np.all(np.isfinite(action)):
            raise ValueError(f"Action must be finite, got {action}")
        action = np.clip(action, -1.0, 1.0)
        return HopDecision(
            heading_change_deg=float(action[0]) * 180.0,
            delay=lerp(self.min_hop_delay, self.max_hop_delay, inverse_lerp(-1.0, 1.0, action[1])),
            impulse=lerp(self.min_hop_velocity, self.max_hop_velocity, inverse_lerp(-1.0, 1.0, action[2])),
        )


@dataclass(frozen=True)
class ScheduledHop:
    due_time: float
    impulse: float


class HopScheduler:
    """One pending hop per agent; scheduling a new one replaces the old one."""

    def __init__(self):
        self._pending: Dict[str, ScheduledHop] = {}

    def __len__(self):
        return len(self._pending)

    def __contains__(self, agent_id):
        return agent_id in self._pending

    def schedule(self, agent_id, now, delay, impulse):
        self._pending[agent_id] = ScheduledHop(due_time=now + delay, impulse=impulse)

    def cancel(self, agent_id):
        return self._pending.pop(agent_id, None)

    def cancel_all(self):
        self._pending.clear()

    def pop_due(self, now) -> List[Tuple[str, ScheduledHop]]:
        due = [(agent_id, hop) for agent_id, hop in self._pending.items() if hop.due_time <= now + TIME_EPSILON]
        for agent_id, _ in due:
            del self._pending[agent_id]
        return due


__all__ = ["inverse_lerp", "lerp", "HopDecision", "ActionDecoder", "ScheduledHop", "HopScheduler"]
