"""
Minimal kinematics standing in for a physics engine.

Rabbits are spheres that hop ballistically under gravity over a flat ground
plane inside a walled arena; consumables are static spheres. The only
services the simulation needs from it are: apply an impulse, advance a body
and report landings, detect contact, and cast rays.

Coordinates: y is up, a heading of 0 degrees faces +z and positive headings
turn toward +x.
"""
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

TAG_GROUND = "ground"
TAG_AGENT = "agent"
TAG_CONSUMABLE = "consumable"
TAG_OTHER = "other"


def yaw_to_world(local_vector, heading_deg):
    """Rotate a body-local vector about the up axis by the body heading."""
    x, y, z = local_vector
    theta = np.deg2rad(heading_deg)
    c, s = np.cos(theta), np.sin(theta)
    return np.array([x * c + z * s, y, -x * s + z * c], dtype=np.float64)


def world_to_yaw(world_vector, heading_deg):
    x, y, z = world_vector
    theta = np.deg2rad(heading_deg)
    c, s = np.cos(theta), np.sin(theta)
    return np.array([x * c - z * s, y, x * s + z * c], dtype=np.float64)


@dataclass
class Arena:
    arena_min: np.ndarray
    arena_max: np.ndarray
    ground_height: float = 0.0
    gravity: float = 9.81

    def __post_init__(self):
        self.arena_min = np.asarray(self.arena_min, dtype=np.float64)
        self.arena_max = np.asarray(self.arena_max, dtype=np.float64)
        if np.any(self.arena_max[[0, 2]] <= self.arena_min[[0, 2]]):
            raise ValueError("Arena max corner must exceed min corner on x and z")


@dataclass
class RabbitBody:
    radius: float
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    velocity: np.ndarray = field(default_factory=lambda: np.zeros(3))
    heading_deg: float = 0.0
    grounded: bool = False

    def place(self, position, arena: Arena, heading_deg=0.0):
        self.position = np.asarray(position, dtype=np.float64).copy()
        self.position[1] = max(self.position[1], arena.ground_height + self.radius)
        self.velocity = np.zeros(3)
        self.heading_deg = float(heading_deg)
        self.grounded = self.position[1] <= arena.ground_height + self.radius

    def rotate(self, degrees):
        self.heading_deg = (self.heading_deg + degrees) % 360.0

    def forward(self):
        return yaw_to_world((0.0, 0.0, 1.0), self.heading_deg)

    def apply_velocity_change(self, delta_v):
        self.velocity = self.velocity + np.asarray(delta_v, dtype=np.float64)
        if self.velocity[1] > 0.0:
            self.grounded = False

    def step(self, dt, arena: Arena):
        """Advance the body. Returns True when it touches down (a grounding event)."""
        if self.grounded:
            if not np.any(self.velocity):
                return False
            # an impulse without lift slides the body for one tick, then friction stops it
            self.position[[0, 2]] += self.velocity[[0, 2]] * dt
            self.velocity = np.zeros(3)
            self._clamp_to_walls(arena)
            return True

        self.velocity[1] -= arena.gravity * dt
        self.position += self.velocity * dt
        self._clamp_to_walls(arena)
        floor = arena.ground_height + self.radius
        if self.position[1] <= floor:
            self.position[1] = floor
            self.velocity = np.zeros(3)
            self.grounded = True
            return True
        return False

    def _clamp_to_walls(self, arena: Arena):
        for axis in (0, 2):
            lo = arena.arena_min[axis] + self.radius
            hi = arena.arena_max[axis] - self.radius
            if self.position[axis] < lo or self.position[axis] > hi:
                self.position[axis] = min(max(self.position[axis], lo), hi)
                self.velocity[axis] = 0.0


@dataclass
class RayHit:
    tag: str
    distance: float
    point: np.ndarray
    target: object = None


def _ray_sphere(origin, direction, center, radius):
    oc = origin - center
    c = float(np.dot(oc, oc)) - radius * radius
    if c <= 0.0:
        # origin inside the sphere; line casts do not report the collider they start in
        return None
    b = float(np.dot(oc, direction))
    disc = b * b - c
    if disc < 0.0:
        return None
    t = -b - np.sqrt(disc)
    return t if t >= 0.0 else None


def cast_ray(origin, direction, max_distance, arena: Arena, bodies=(), consumables=(), consumable_radius=0.5,
             ignore=None) -> Optional[RayHit]:
    """
    Closest hit along origin + t * direction for t in [0, max_distance].

    `bodies` is an iterable of (agent_id, RabbitBody); `ignore` is an agent id to skip.
    """
    origin = np.asarray(origin, dtype=np.float64)
    direction = np.asarray(direction, dtype=np.float64)
    norm = np.linalg.norm(direction)
    if norm == 0.0:
        return None
    direction = direction / norm

    best_t = max_distance
    best = None

    if direction[1] < 0.0:
        t = (arena.ground_height - origin[1]) / direction[1]
        if 0.0 <= t <= best_t:
            best_t, best = t, (TAG_GROUND, None)

    for axis in (0, 2):
        if direction[axis] > 0.0:
            t = (arena.arena_max[axis] - origin[axis]) / direction[axis]
        elif direction[axis] < 0.0:
            t = (arena.arena_min[axis] - origin[axis]) / direction[axis]
        else:
            continue
        if 0.0 <= t <= best_t:
            best_t, best = t, (TAG_OTHER, None)

    for agent_id, body in bodies:
        if agent_id == ignore:
            continue
        t = _ray_sphere(origin, direction, body.position, body.radius)
        if t is not None and t <= best_t:
            best_t, best = t, (TAG_AGENT, agent_id)

    for consumable in consumables:
        if not consumable.interactable:
            continue
        t = _ray_sphere(origin, direction, consumable.position, consumable_radius)
        if t is not None and t <= best_t:
            best_t, best = t, (TAG_CONSUMABLE, consumable)

    if best is None:
        return None
    tag, target = best
    return RayHit(tag=tag, distance=float(best_t), point=origin + direction * best_t, target=target)


def touching(body: RabbitBody, consumable, consumable_radius):
    return float(np.linalg.norm(body.position - consumable.position)) <= body.radius + consumable_radius


__all__ = [
    "TAG_GROUND",
    "TAG_AGENT",
    "TAG_CONSUMABLE",
    "TAG_OTHER",
    "yaw_to_world",
    "world_to_yaw",
    "Arena",
    "RabbitBody",
    "RayHit",
    "cast_ray",
    "touching",
]
