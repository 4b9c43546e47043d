"""
A rabbit: a kinematic body plus its metabolism, eating state and reward account.
"""
import numpy as np

from rabbitforage.rllib.foraging_rabbits.actions import inverse_lerp, lerp
from rabbitforage.rllib.foraging_rabbits.kinematics import touching, yaw_to_world


class RabbitAgent:
    def __init__(
        self,
        agent_id,
        body,
        metabolism,
        hop_trajectory=(0.0, 1.0, 1.0),
        consumption_reward=0.1,
        proximity_reward=0.1,
        proximity_range=1.0,
    ):
        self.agent_id = agent_id
        self.body = body
        self.metabolism = metabolism
        hop_trajectory = np.asarray(hop_trajectory, dtype=np.float64)
        if np.linalg.norm(hop_trajectory) == 0.0:
            raise ValueError("hop_trajectory must be a non-zero vector")
        self.hop_trajectory = hop_trajectory / np.linalg.norm(hop_trajectory)
        self.consumption_reward = consumption_reward
        self.proximity_reward = proximity_reward
        self.proximity_range = proximity_range

        self.is_eating = False
        self.current_consumable = None
        self.decision_requested = False
        self.pending_reward = 0.0
        self.units_eaten = 0.0
        self.hops = 0
        self.episodes_completed = 0

        self._on_deceased = []
        self._on_episode_end = []
        self.metabolism.subscribe_death(self._notify_deceased)

    def __repr__(self):
        return f"RabbitAgent({self.agent_id}, alive={self.alive}, energy={self.energy:.2f})"

    @property
    def alive(self):
        return self.metabolism.alive

    @property
    def energy(self):
        return self.metabolism.energy

    @property
    def ledger(self):
        return self.metabolism.ledger

    def subscribe_deceased(self, listener):
        """Register `listener(rabbit)`, called once when this rabbit runs out of energy."""
        self._on_deceased.append(listener)

    def subscribe_episode_end(self, listener):
        """Register `listener(rabbit)`, called when the trainer closes this rabbit's episode."""
        self._on_episode_end.append(listener)

    def respawn(self):
        """Restore a healthy rabbit: empty stomach, starting energy, no eating target."""
        self.metabolism.respawn()
        self.is_eating = False
        self.current_consumable = None
        self.pending_reward = 0.0
        self.units_eaten = 0.0
        self.hops = 0
        # a rabbit placed on the ground asks for its first action right away
        self.decision_requested = self.body.grounded

    def end_episode(self):
        self.episodes_completed += 1
        for listener in list(self._on_episode_end):
            listener(self)

    def add_reward(self, reward):
        self.pending_reward += reward

    def take_reward(self):
        reward, self.pending_reward = self.pending_reward, 0.0
        return reward

    def take_decision_request(self):
        requested, self.decision_requested = self.decision_requested, False
        return requested

    def hop_velocity_change(self, impulse):
        return yaw_to_world(self.hop_trajectory, self.body.heading_deg) * impulse

    def update_contact(self, active_consumables, consumable_radius):
        """Start eating the nearest touched consumable, or stop eating when none is touched."""
        nearest, nearest_distance = None, np.inf
        for consumable in active_consumables:
            if not consumable.interactable or not touching(self.body, consumable, consumable_radius):
                continue
            distance = float(np.linalg.norm(self.body.position - consumable.position))
            if distance < nearest_distance:
                nearest, nearest_distance = consumable, distance
        self.current_consumable = nearest
        self.is_eating = nearest is not None

    def eat(self, delta_time):
        """Feed from the current consumable for one tick. Returns the units eaten."""
        consumable = self.current_consumable
        if consumable is None:
            return 0.0
        eaten = self.metabolism.feed(consumable, delta_time)
        self.units_eaten += eaten
        if consumable.exhausted:
            self.is_eating = False
            self.current_consumable = None
        self.add_reward(delta_time * self.consumption_reward)
        return eaten

    def proximity_reward_for(self, active_consumables):
        """Reward for landing near food, scaled by how much food is there."""
        reward = 0.0
        for consumable in active_consumables:
            distance = float(np.linalg.norm(consumable.position - self.body.position))
            if distance < self.proximity_range:
                falloff = lerp(self.proximity_reward, 0.0, inverse_lerp(0.0, self.proximity_range, distance))
                reward += falloff * consumable.remaining_units
        return reward

    def on_grounded(self, active_consumables):
        """Landing: grant proximity reward and request the next decision."""
        if not self.alive:
            return
        self.add_reward(self.proximity_reward_for(active_consumables))
        self.decision_requested = True

    def metabolize(self, delta_time):
        """Returns True if the rabbit died this tick."""
        return self.metabolism.tick(delta_time)

    def _notify_deceased(self):
        self.decision_requested = False
        for listener in list(self._on_deceased):
            listener(self)


__all__ = ["RabbitAgent"]
