import numpy as np
import pytest

from rabbitforage.rllib.foraging_rabbits.actions import ActionDecoder, HopScheduler, inverse_lerp, lerp


def _decoder():
    return ActionDecoder(min_hop_delay=1.0, max_hop_delay=2.0, min_hop_velocity=1.0, max_hop_velocity=3.0)


def test_decode_maps_extremes_and_midpoint():
    decoder = _decoder()

    low = decoder.decode([-1.0, -1.0, -1.0])
    mid = decoder.decode([0.0, 0.0, 0.0])
    high = decoder.decode(np.array([1.0, 1.0, 1.0], dtype=np.float32))

    assert (low.heading_change_deg, low.delay, low.impulse) == pytest.approx((-180.0, 1.0, 1.0))
    assert (mid.heading_change_deg, mid.delay, mid.impulse) == pytest.approx((0.0, 1.5, 2.0))
    assert (high.heading_change_deg, high.delay, high.impulse) == pytest.approx((180.0, 2.0, 3.0))


def test_decode_clips_out_of_range_actions():
    decision = _decoder().decode([4.0, -7.0, 2.0])

    assert decision.heading_change_deg == pytest.approx(180.0)
    assert decision.delay == pytest.approx(1.0)
    assert decision.impulse == pytest.approx(3.0)


def test_decode_rejects_wrong_action_size():
    with pytest.raises(ValueError):
        _decoder().decode([0.0, 0.0])


def test_decode_rejects_non_finite_actions():
    decoder = _decoder()
    with pytest.raises(ValueError):
        decoder.decode([np.nan, 0.0, 0.0])
    with pytest.raises(ValueError):
        decoder.decode([0.0, np.inf, 0.0])


def test_invalid_ranges_are_rejected():
    with pytest.raises(ValueError):
        ActionDecoder(2.0, 1.0, 1.0, 2.0)
    with pytest.raises(ValueError):
        ActionDecoder(1.0, 2.0, 3.0, 2.0)


def test_lerp_helpers():
    assert inverse_lerp(0.0, 2.0, 3.0) == 1.0
    assert inverse_lerp(1.0, 1.0, 5.0) == 0.0
    assert lerp(2.0, 4.0, 0.25) == pytest.approx(2.5)


def test_scheduler_fires_hop_once_when_due():
    scheduler = HopScheduler()
    scheduler.schedule("rabbit_0", now=1.0, delay=0.5, impulse=2.0)

    assert scheduler.pop_due(1.4) == []
    due = scheduler.pop_due(1.5)
    assert [agent_id for agent_id, _ in due] == ["rabbit_0"]
    assert due[0][1].impulse == 2.0
    assert "rabbit_0" not in scheduler
    assert scheduler.pop_due(10.0) == []


def test_scheduler_replaces_pending_hop():
    scheduler = HopScheduler()
    scheduler.schedule("rabbit_0", now=0.0, delay=1.0, impulse=1.0)
    scheduler.schedule("rabbit_0", now=0.0, delay=2.0, impulse=3.0)

    assert len(scheduler) == 1
    assert scheduler.pop_due(1.0) == []
    assert scheduler.pop_due(2.0)[0][1].impulse == 3.0


def test_scheduler_cancellation():
    scheduler = HopScheduler()
    scheduler.schedule("rabbit_0", now=0.0, delay=1.0, impulse=1.0)
    scheduler.schedule("rabbit_1", now=0.0, delay=1.0, impulse=1.0)

    scheduler.cancel("rabbit_0")
    assert "rabbit_0" not in scheduler
    assert "rabbit_1" in scheduler

    scheduler.cancel_all()
    assert len(scheduler) == 0
    assert scheduler.pop_due(5.0) == []
