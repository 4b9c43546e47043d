import numpy as np
import pytest

from rabbitforage.rllib.foraging_rabbits.consumable import Consumable, ConsumableType
from rabbitforage.rllib.foraging_rabbits.kinematics import Arena, RabbitBody
from rabbitforage.rllib.foraging_rabbits.metabolism import MetabolicProcess, MetabolismEngine
from rabbitforage.rllib.foraging_rabbits.rabbit_agent import RabbitAgent

ARENA = Arena(arena_min=(-10.0, 0.0, -10.0), arena_max=(10.0, 5.0, 10.0), ground_height=0.0, gravity=10.0)


def _make_rabbit(starting_energy=50.0, upkeep=1.0, position=(0.0, 0.0, 0.0), processes=()):
    metabolism = MetabolismEngine(
        processes=list(processes),
        starting_energy=starting_energy,
        homeostasis_energy_loss=upkeep,
        consumption_rate=1.0,
    )
    rabbit = RabbitAgent(
        "rabbit_0",
        RabbitBody(radius=0.25),
        metabolism,
        hop_trajectory=(0.0, 1.0, 1.0),
        consumption_reward=0.1,
        proximity_reward=0.1,
        proximity_range=1.0,
    )
    rabbit.body.place(position, ARENA)
    rabbit.respawn()
    return rabbit


def test_respawn_on_ground_requests_first_decision():
    rabbit = _make_rabbit()

    assert rabbit.alive
    assert rabbit.energy == 50.0
    assert rabbit.body.grounded
    assert rabbit.take_decision_request()
    assert not rabbit.take_decision_request()


def test_hop_leaves_ground_and_landing_requests_decision():
    rabbit = _make_rabbit()
    rabbit.take_decision_request()

    rabbit.body.apply_velocity_change(rabbit.hop_velocity_change(2.0))
    assert not rabbit.body.grounded

    landed = False
    start_z = rabbit.body.position[2]
    for _ in range(200):
        if rabbit.body.step(0.01, ARENA):
            landed = True
            rabbit.on_grounded([])
            break

    assert landed
    assert rabbit.body.position[2] > start_z  # heading 0 hops toward +z
    assert rabbit.take_decision_request()


def test_contact_picks_nearest_consumable_and_eating_rewards():
    rabbit = _make_rabbit()
    near = Consumable(ConsumableType.TYPE_A, 1.0, (0.2, 0.25, 0.0))
    far = Consumable(ConsumableType.TYPE_B, 1.0, (0.4, 0.25, 0.0))

    rabbit.update_contact([far, near], consumable_radius=0.3)
    assert rabbit.is_eating
    assert rabbit.current_consumable is near

    eaten = rabbit.eat(0.5)
    assert eaten == pytest.approx(0.5)
    assert rabbit.ledger[ConsumableType.TYPE_A] == pytest.approx(0.5)
    assert rabbit.take_reward() == pytest.approx(0.05)


def test_eating_stops_when_consumable_is_exhausted():
    rabbit = _make_rabbit()
    food = Consumable(ConsumableType.TYPE_A, 0.3, (0.0, 0.25, 0.0))

    rabbit.update_contact([food], consumable_radius=0.3)
    rabbit.eat(1.0)

    assert food.exhausted
    assert not rabbit.is_eating
    assert rabbit.current_consumable is None
    rabbit.update_contact([food], consumable_radius=0.3)
    assert not rabbit.is_eating


def test_proximity_reward_falls_off_and_scales_with_units():
    rabbit = _make_rabbit()
    inside = Consumable(ConsumableType.TYPE_A, 1.2, (0.5, 0.25, 0.0))
    outside = Consumable(ConsumableType.TYPE_A, 1.2, (1.0, 0.25, 0.0))

    assert rabbit.proximity_reward_for([inside, outside]) == pytest.approx(0.05 * 1.2)


def test_death_is_announced_to_listeners():
    rabbit = _make_rabbit(starting_energy=0.5, upkeep=1.0)
    deaths = []
    rabbit.subscribe_deceased(deaths.append)

    assert not rabbit.metabolize(0.5)
    assert rabbit.metabolize(0.5)
    assert deaths == [rabbit]
    assert not rabbit.alive

    # a dead rabbit neither earns landing rewards nor asks for decisions
    rabbit.on_grounded([Consumable(ConsumableType.TYPE_A, 1.0, rabbit.body.position)])
    assert rabbit.take_reward() == 0.0
    assert not rabbit.take_decision_request()


def test_metabolism_turns_food_into_energy():
    rabbit = _make_rabbit(upkeep=0.0, processes=[MetabolicProcess({ConsumableType.TYPE_A: 1.0}, energy_rate=4.0)])
    rabbit.ledger.deposit(ConsumableType.TYPE_A, 1.0)

    rabbit.metabolize(0.5)

    assert rabbit.energy == pytest.approx(52.0)
    assert rabbit.ledger[ConsumableType.TYPE_A] == pytest.approx(0.5)


def test_zero_hop_trajectory_is_rejected():
    metabolism = MetabolismEngine(processes=[], starting_energy=1.0, homeostasis_energy_loss=0.0, consumption_rate=1.0)
    with pytest.raises(ValueError):
        RabbitAgent("rabbit_0", RabbitBody(radius=0.25), metabolism, hop_trajectory=np.zeros(3))
