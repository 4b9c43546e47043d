"""
Ray-based perception for rabbits.

Observation layout (a fixed protocol for the learning client):
    [0, 1]      is eating (one-hot: not eating, eating)
    [2, 3, 4]   ledger quantities (TYPE_A, TYPE_B, TYPE_C)
    per ray n, starting at 5 + 9n:
        [+0 .. +5]  hit category (one-hot over PerceptionCategory)
        [+6]        remaining units of the hit consumable (0 otherwise)
        [+7]        hit distance / max vision distance
        [+8]        signed angle to the hit point / 180
A ray that hits nothing encodes NONE, 0, 1, 1.
"""
from enum import IntEnum

import numpy as np

from rabbitforage.rllib.foraging_rabbits.consumable import ConsumableType
from rabbitforage.rllib.foraging_rabbits.kinematics import (
    TAG_AGENT,
    TAG_CONSUMABLE,
    TAG_GROUND,
    TAG_OTHER,
    world_to_yaw,
    yaw_to_world,
)

NUM_EATING_CATEGORIES = 2
PREFIX_SIZE = NUM_EATING_CATEGORIES + len(ConsumableType)


class PerceptionCategory(IntEnum):
    NONE = 0
    GROUND = 1
    AGENT = 2
    TYPE_A = 3
    TYPE_B = 4
    # poison kind; also any obstacle tagged "other" (arena walls)
    TYPE_C_OR_OTHER = 5


NUM_CATEGORIES = len(PerceptionCategory)
RAY_BLOCK_SIZE = NUM_CATEGORIES + 3

CONSUMABLE_CATEGORY = {
    ConsumableType.TYPE_A: PerceptionCategory.TYPE_A,
    ConsumableType.TYPE_B: PerceptionCategory.TYPE_B,
    ConsumableType.TYPE_C: PerceptionCategory.TYPE_C_OR_OTHER,
}
TAG_CATEGORY = {
    TAG_GROUND: PerceptionCategory.GROUND,
    TAG_AGENT: PerceptionCategory.AGENT,
    TAG_OTHER: PerceptionCategory.TYPE_C_OR_OTHER,
}


def signed_angle_deg(local_vector):
    """Signed angle between body forward (+z) and a body-local vector; positive to the right."""
    norm = np.linalg.norm(local_vector)
    if norm == 0.0:
        return 0.0
    cos_angle = np.clip(local_vector[2] / norm, -1.0, 1.0)
    angle = float(np.degrees(np.arccos(cos_angle)))
    return -angle if local_vector[0] < 0.0 else angle


class PerceptionEncoder:
    def __init__(self, ray_directions, max_vision_distance):
        if len(ray_directions) == 0:
            raise ValueError("At least one vision ray direction is required")
        if max_vision_distance <= 0:
            raise ValueError("max_vision_distance must be positive")
        self.ray_directions = []
        for direction in ray_directions:
            direction = np.asarray(direction, dtype=np.float64)
            norm = np.linalg.norm(direction)
            if direction.shape != (3,) or norm == 0.0:
                raise ValueError(f"Vision ray direction must be a non-zero 3D vector, got {direction}")
            self.ray_directions.append(direction / norm)
        self.max_vision_distance = float(max_vision_distance)

    @property
    def num_rays(self):
        return len(self.ray_directions)

    @property
    def observation_size(self):
        return PREFIX_SIZE + RAY_BLOCK_SIZE * self.num_rays

    def cast_all(self, body, cast):
        """Run `cast(origin, world_direction, max_distance)` for every ray; returns the hits (or None)."""
        return [
            cast(body.position, yaw_to_world(direction, body.heading_deg), self.max_vision_distance)
            for direction in self.ray_directions
        ]

    def classify(self, hit):
        if hit is None:
            return PerceptionCategory.NONE
        if hit.tag == TAG_CONSUMABLE:
            return CONSUMABLE_CATEGORY[hit.target.consumable_type]
        return TAG_CATEGORY.get(hit.tag, PerceptionCategory.TYPE_C_OR_OTHER)

    def encode(self, is_eating, ledger_quantities, body, hits):
        if len(hits) != self.num_rays:
            raise ValueError(f"Expected {self.num_rays} ray hits, got {len(hits)}")
        obs = np.zeros(self.observation_size, dtype=np.float32)
        obs[1 if is_eating else 0] = 1.0
        obs[NUM_EATING_CATEGORIES:PREFIX_SIZE] = ledger_quantities

        for n, hit in enumerate(hits):
            base = PREFIX_SIZE + RAY_BLOCK_SIZE * n
            obs[base + int(self.classify(hit))] = 1.0
            if hit is None:
                obs[base + NUM_CATEGORIES + 1] = 1.0
                obs[base + NUM_CATEGORIES + 2] = 1.0
                continue
            if hit.tag == TAG_CONSUMABLE:
                obs[base + NUM_CATEGORIES] = hit.target.remaining_units
            obs[base + NUM_CATEGORIES + 1] = hit.distance / self.max_vision_distance
            relative = world_to_yaw(hit.point - body.position, body.heading_deg)
            obs[base + NUM_CATEGORIES + 2] = signed_angle_deg(relative) / 180.0
        return obs

    def observe(self, is_eating, ledger_quantities, body, cast):
        return self.encode(is_eating, ledger_quantities, body, self.cast_all(body, cast))


__all__ = [
    "PerceptionCategory",
    "NUM_CATEGORIES",
    "PREFIX_SIZE",
    "RAY_BLOCK_SIZE",
    "signed_angle_deg",
    "PerceptionEncoder",
]
