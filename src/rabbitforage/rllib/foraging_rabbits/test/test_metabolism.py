import itertools

import pytest

from rabbitforage.rllib.foraging_rabbits.consumable import Consumable, ConsumableType
from rabbitforage.rllib.foraging_rabbits.metabolism import (
    MetabolicProcess,
    MetabolismEngine,
    ResourceLedger,
    load_process_profile,
)

A, B, C = ConsumableType.TYPE_A, ConsumableType.TYPE_B, ConsumableType.TYPE_C


def _make_engine(processes, starting_energy=50.0, upkeep=1.0, consumption_rate=1.0):
    engine = MetabolismEngine(
        processes=list(processes),
        starting_energy=starting_energy,
        homeostasis_energy_loss=upkeep,
        consumption_rate=consumption_rate,
    )
    engine.respawn()
    return engine


def test_single_process_tick_matches_worked_example():
    engine = _make_engine([MetabolicProcess({A: 2.0}, energy_rate=3.0)])
    engine.ledger.deposit(A, 10.0)

    died = engine.tick(1.0)

    assert not died
    assert engine.ledger[A] == pytest.approx(8.0)
    assert engine.energy == pytest.approx(52.0)


def test_process_not_run_without_enough_stock():
    engine = _make_engine([MetabolicProcess({A: 2.0}, energy_rate=3.0)])
    engine.ledger.deposit(A, 1.0)

    engine.tick(1.0)

    assert engine.ledger[A] == pytest.approx(1.0)
    assert engine.energy == pytest.approx(49.0)


def test_competing_processes_are_order_independent_and_never_overdraw():
    processes = [
        MetabolicProcess({A: 2.0}, energy_rate=3.0, name="a"),
        MetabolicProcess({A: 2.0, B: 1.0}, energy_rate=5.0, name="ab"),
        MetabolicProcess({B: 1.0}, energy_rate=1.0, name="b"),
    ]
    results = set()
    for permutation in itertools.permutations(processes):
        engine = _make_engine(permutation)
        engine.ledger.deposit(A, 3.0)
        engine.ledger.deposit(B, 5.0)
        engine.tick(1.0)
        assert all(q >= 0.0 for q in engine.ledger.as_list())
        results.add((round(engine.ledger[A], 9), round(engine.ledger[B], 9), round(engine.energy, 9)))

    assert len(results) == 1
    ledger_a, ledger_b, energy = results.pop()
    # demand for A (4) exceeds stock (3), so both A consumers run at 75%
    assert ledger_a == pytest.approx(0.0)
    assert ledger_b == pytest.approx(3.25)
    assert energy == pytest.approx(50.0 + 0.75 * 3.0 + 0.75 * 5.0 + 1.0 - 1.0)


def test_death_fires_once_when_energy_drops_below_zero():
    engine = _make_engine([], starting_energy=1.0, upkeep=1.0)
    deaths = []
    engine.subscribe_death(lambda: deaths.append(True))

    assert not engine.tick(0.5)
    assert not engine.tick(0.5)  # energy exactly 0 is still alive
    assert engine.tick(0.5)
    assert not engine.alive
    assert not engine.tick(0.5)
    assert deaths == [True]


def test_poison_process_costs_energy():
    engine = _make_engine([MetabolicProcess({C: 1.0}, energy_rate=-4.0)], upkeep=0.0)
    engine.ledger.deposit(C, 2.0)

    engine.tick(1.0)

    assert engine.energy == pytest.approx(46.0)
    assert engine.ledger[C] == pytest.approx(1.0)


def test_feed_moves_units_into_ledger():
    engine = _make_engine([], consumption_rate=2.0)
    consumable = Consumable(B, 1.0, (0.0, 0.0, 0.0))

    eaten = engine.feed(consumable, 0.25)

    assert eaten == pytest.approx(0.5)
    assert engine.ledger[B] == pytest.approx(0.5)
    assert consumable.remaining_units == pytest.approx(0.5)


def test_respawn_clears_ledger_and_restores_energy():
    engine = _make_engine([], starting_energy=10.0)
    engine.ledger.deposit(A, 3.0)
    engine.energy = -1.0
    engine.alive = False

    engine.respawn()

    assert engine.ledger.as_list() == [0.0, 0.0, 0.0]
    assert engine.energy == 10.0
    assert engine.alive


def test_ledger_rejects_underflow():
    ledger = ResourceLedger()
    ledger.deposit(A, 1.0)
    with pytest.raises(ValueError):
        ledger.withdraw(A, 2.0)


def test_process_profile_from_config():
    processes = load_process_profile(
        [
            {"energy_produced": 3.0, "components_required": ["type_a"], "quantities_required": [2.0]},
            {"energy_produced": 6.0, "components_required": ["type_a", "type_b"], "quantities_required": [1.0, 1.0]},
        ]
    )
    assert [p.name for p in processes] == ["Process 1", "Process 2"]
    assert dict(processes[1].requirements) == {A: 1.0, B: 1.0}
    with pytest.raises(TypeError):
        processes[0].requirements[A] = 5.0


def test_process_profile_rejects_mismatched_arrays():
    with pytest.raises(ValueError):
        load_process_profile(
            [{"energy_produced": 1.0, "components_required": ["type_a", "type_b"], "quantities_required": [1.0]}]
        )
