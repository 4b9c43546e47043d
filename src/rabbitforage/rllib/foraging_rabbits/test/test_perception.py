import numpy as np
import pytest

from rabbitforage.rllib.foraging_rabbits.consumable import Consumable, ConsumableType
from rabbitforage.rllib.foraging_rabbits.kinematics import Arena, RabbitBody, cast_ray
from rabbitforage.rllib.foraging_rabbits.perception import (
    PREFIX_SIZE,
    RAY_BLOCK_SIZE,
    PerceptionCategory,
    PerceptionEncoder,
    signed_angle_deg,
)

ARENA = Arena(arena_min=(-10.0, 0.0, -10.0), arena_max=(10.0, 5.0, 10.0))


def _body(position=(0.0, 1.0, 0.0), heading=0.0):
    body = RabbitBody(radius=0.25)
    body.position = np.asarray(position, dtype=np.float64)
    body.heading_deg = heading
    return body


def _observe(directions, body, consumables=(), bodies=(), max_distance=10.0, is_eating=False, ledger=(0.0, 0.0, 0.0)):
    encoder = PerceptionEncoder(directions, max_distance)

    def cast(origin, direction, max_dist):
        return cast_ray(origin, direction, max_dist, ARENA, bodies=bodies, consumables=consumables,
                        consumable_radius=0.5, ignore="self")

    return encoder.observe(is_eating, list(ledger), body, cast)


def _ray_block(obs, n):
    start = PREFIX_SIZE + RAY_BLOCK_SIZE * n
    return obs[start:start + RAY_BLOCK_SIZE]


def test_observation_length_and_prefix():
    obs = _observe([[0.0, 1.0, 0.0]] * 4, _body(), is_eating=True, ledger=(1.5, 0.0, 2.0))

    assert obs.shape == (5 + 9 * 4,)
    assert obs.dtype == np.float32
    np.testing.assert_allclose(obs[:5], [0.0, 1.0, 1.5, 0.0, 2.0])


def test_ray_that_hits_nothing_encodes_none_zero_one_one():
    obs = _observe([[0.0, 1.0, 0.0]], _body())
    block = _ray_block(obs, 0)

    assert block[PerceptionCategory.NONE] == 1.0
    assert block[:6].sum() == 1.0
    np.testing.assert_allclose(block[6:], [0.0, 1.0, 1.0])


def test_ground_hit_distance_is_normalized():
    obs = _observe([[0.0, -1.0, 0.0]], _body(position=(0.0, 2.0, 0.0)))
    block = _ray_block(obs, 0)

    assert block[PerceptionCategory.GROUND] == 1.0
    assert block[6] == 0.0
    assert block[7] == pytest.approx(0.2)


def test_consumable_hit_reports_type_and_remaining_units():
    food = Consumable(ConsumableType.TYPE_A, 1.25, (0.0, 1.0, 5.0))
    obs = _observe([[0.0, 0.0, 1.0]], _body(), consumables=[food])
    block = _ray_block(obs, 0)

    assert block[PerceptionCategory.TYPE_A] == 1.0
    assert block[6] == pytest.approx(1.25)
    assert block[7] == pytest.approx(0.45)
    assert block[8] == pytest.approx(0.0)


def test_poison_and_walls_share_a_category():
    poison = Consumable(ConsumableType.TYPE_C, 1.0, (0.0, 1.0, 3.0))
    obs = _observe([[0.0, 0.0, 1.0], [1.0, 0.0, 0.0]], _body(), consumables=[poison], max_distance=20.0)

    assert _ray_block(obs, 0)[PerceptionCategory.TYPE_C_OR_OTHER] == 1.0
    wall = _ray_block(obs, 1)
    assert wall[PerceptionCategory.TYPE_C_OR_OTHER] == 1.0
    assert wall[7] == pytest.approx(0.5)
    assert wall[8] == pytest.approx(0.5)  # 90 degrees to the right


def test_rays_follow_body_heading_and_see_other_rabbits():
    other = _body(position=(5.0, 1.0, 0.0))
    obs = _observe([[0.0, 0.0, 1.0]], _body(heading=90.0), bodies=[("self", _body()), ("rabbit_1", other)])
    block = _ray_block(obs, 0)

    assert block[PerceptionCategory.AGENT] == 1.0
    assert block[7] == pytest.approx(0.475)


def test_exhausted_consumables_are_invisible():
    food = Consumable(ConsumableType.TYPE_B, 0.1, (0.0, 1.0, 2.0))
    food.drain(0.1)
    obs = _observe([[0.0, 0.0, 1.0]], _body(), consumables=[food])

    assert _ray_block(obs, 0)[PerceptionCategory.TYPE_B] == 0.0


def test_signed_angle_is_negative_to_the_left():
    assert signed_angle_deg(np.array([-1.0, 0.0, 0.0])) == pytest.approx(-90.0)
    assert signed_angle_deg(np.array([1.0, 0.0, 1.0])) == pytest.approx(45.0)


def test_invalid_ray_configuration_is_rejected():
    with pytest.raises(ValueError):
        PerceptionEncoder([], 10.0)
    with pytest.raises(ValueError):
        PerceptionEncoder([[0.0, 0.0, 0.0]], 10.0)
