"""
Episode lifecycle for a population of rabbits.

Rabbits die independently; once every rabbit has died the controller builds a
new layout, places all rabbits at fresh random points in the spawn box,
respawns them and closes their episodes.
"""
from enum import Enum

import numpy as np

from rabbitforage.rllib.foraging_rabbits.layout import LayoutPackingError


class EpisodePhase(Enum):
    RUNNING = "running"
    REGENERATING = "regenerating"


class EpisodeController:
    def __init__(self, layout_generator, rabbits, arena, spawn_min, spawn_max, hop_scheduler=None, rng=None):
        if not rabbits:
            raise ValueError("EpisodeController needs at least one rabbit")
        self.layout_generator = layout_generator
        self.rabbits = list(rabbits)
        self.arena = arena
        self.spawn_min = np.asarray(spawn_min, dtype=np.float64)
        self.spawn_max = np.asarray(spawn_max, dtype=np.float64)
        self.hop_scheduler = hop_scheduler
        self.rng = rng if rng is not None else np.random.default_rng()

        self.phase = EpisodePhase.RUNNING
        self.episodes_started = 0
        self._deceased = set()
        self._on_episode_started = []

    @property
    def deceased_count(self):
        return len(self._deceased)

    def subscribe_episode_started(self, listener):
        """Register `listener(controller)`, called after a new layout and respawn are complete."""
        self._on_episode_started.append(listener)

    def on_agent_deceased(self, rabbit):
        if rabbit.agent_id in self._deceased:
            raise RuntimeError(f"Death of {rabbit.agent_id} reported twice in one episode")
        self._deceased.add(rabbit.agent_id)
        if len(self._deceased) == len(self.rabbits):
            self.start_next_episode()

    def start_next_episode(self):
        """Generate a new layout and reset every rabbit. Raises LayoutPackingError if no layout fits."""
        previous_phase = self.phase
        self.phase = EpisodePhase.REGENERATING
        consumables = self.layout_generator.generate()
        if consumables is None:
            # deaths and pending hops stay as they were
            self.phase = previous_phase
            raise LayoutPackingError(
                "Could not pack the consumable layout for a new episode; "
                "lower spawn quantities or the minimum spacing."
            )

        self._deceased.clear()
        if self.hop_scheduler is not None:
            self.hop_scheduler.cancel_all()

        for rabbit in self.rabbits:
            position = self.spawn_min + (self.spawn_max - self.spawn_min) * self.rng.random(3)
            heading = float(self.rng.random() * 360.0)
            rabbit.body.place(position, self.arena, heading_deg=heading)
            rabbit.respawn()
            rabbit.end_episode()

        self.episodes_started += 1
        self.phase = EpisodePhase.RUNNING
        for listener in list(self._on_episode_started):
            listener(self)


__all__ = ["EpisodePhase", "EpisodeController"]
