import json

import pytest

from config import ConfigurationError, SimulationConfig, load_simulation_config
from rng import SequenceRandomSource
from simulation import SimulationEngine, SimulationSnapshot, load_snapshot
from sim_clock import Quarter


def _engine(**config_overrides) -> SimulationEngine:
    cfg = load_simulation_config(config_overrides) if config_overrides else SimulationConfig()
    # 0.5 never triggers random/economic events and keeps pricing noise at zero.
    return SimulationEngine(cfg, rng=SequenceRandomSource([0.5]))


def test_initial_snapshot_reflects_configured_start() -> None:
    engine = _engine()
    snapshot = engine.snapshot

    assert isinstance(snapshot, SimulationSnapshot)
    assert (snapshot.year, snapshot.quarter, snapshot.hour) == (2024, Quarter.Q1, 9)
    assert snapshot.active_events == ()
    assert len(snapshot.goods) == 8
    assert snapshot.cycle == 0


def test_advance_runs_events_then_pricing() -> None:
    engine = _engine()

    snapshot = engine.advance(60)

    assert snapshot.hour == 10
    assert {e.id for e in snapshot.active_events} == {"q1-tax-season", "new-year-lull"}
    assert snapshot.effect_bundle.demand_multiplier == pytest.approx(1.3 * 0.85)
    assert snapshot.effect_bundle.price_multiplier == pytest.approx(1.1)
    assert len(snapshot.price_changes) == len(snapshot.goods)
    assert snapshot.cycle == 1
    assert engine.snapshot is snapshot


def test_advance_zero_is_a_no_op() -> None:
    engine = _engine()
    received: list[SimulationSnapshot] = []
    engine.subscribe(received.append)
    before = engine.snapshot

    assert engine.advance(0) is before
    assert received == []
    assert engine.cycle == 0


@pytest.mark.parametrize("bad", [-1, float("nan"), float("inf")])
def test_advance_rejects_invalid_minutes(bad: float) -> None:
    with pytest.raises(ValueError):
        _engine().advance(bad)


def test_observers_receive_every_published_snapshot() -> None:
    engine = _engine()
    received: list[SimulationSnapshot] = []
    unsubscribe = engine.subscribe(received.append)

    engine.advance(1)
    engine.set_speed(5)
    engine.pause()
    unsubscribe()
    engine.resume()

    assert len(received) == 3
    assert received[1].speed_multiplier == 5
    assert received[2].paused is True


def test_failing_observer_does_not_break_the_tick() -> None:
    engine = _engine()
    received: list[SimulationSnapshot] = []

    def broken(snapshot: SimulationSnapshot) -> None:
        raise RuntimeError("boom")

    engine.subscribe(broken)
    engine.subscribe(received.append)

    engine.advance(5)

    assert len(received) == 1
    assert engine.calendar_state.minute == 5


def test_published_snapshots_are_never_modified() -> None:
    engine = _engine()
    first = engine.advance(1)
    first_prices = [g.current_price for g in first.goods]
    first_minute = first.minute

    engine.advance(1440 * 40)

    assert first.minute == first_minute
    assert [g.current_price for g in first.goods] == first_prices


def test_invalid_speed_is_rejected_without_publishing() -> None:
    engine = _engine()
    received: list[SimulationSnapshot] = []
    engine.subscribe(received.append)

    with pytest.raises(ValueError):
        engine.set_speed(7)
    assert received == []


def test_reset_restores_calendar_events_and_goods() -> None:
    engine = _engine()
    initial_goods = engine.goods
    engine.advance(1440 * 10)
    engine.add_event("port-strike")

    snapshot = engine.reset()

    assert (snapshot.month, snapshot.day, snapshot.hour) == (1, 1, 9)
    assert snapshot.total_days_played == 0.0
    assert snapshot.active_events == ()
    assert snapshot.event_history == ()
    assert engine.goods == initial_goods
    assert engine.price_history.rows() == []


def test_quarter_change_expires_seasonal_event_into_history() -> None:
    engine = _engine()
    engine.advance(60)

    engine.advance(1440 * 31)
    snapshot = engine.snapshot

    assert "q1-tax-season" not in {e.id for e in snapshot.active_events}
    ids = [h.id for h in snapshot.event_history]
    assert "q1-tax-season" in ids
    assert snapshot.event_history[0].start_marker == "Year 2024, Q1 (Jan 1 10:00)"


def test_manual_event_commands() -> None:
    engine = _engine()

    snapshot = engine.add_event("economic-boom")
    assert [e.id for e in snapshot.active_events] == ["economic-boom"]
    assert snapshot.active_events[0].remaining_days == 90

    snapshot = engine.remove_event("economic-boom")
    assert snapshot.active_events == ()
    assert snapshot.event_history[-1].id == "economic-boom"


def test_market_trend_follows_recorded_prices() -> None:
    engine = _engine()
    engine.advance(1)
    engine.advance(1)

    trend = engine.market_trend("iron-ore")

    assert trend.trend in {"up", "down", "stable"}
    assert len(engine.price_history.history("iron-ore")) == 2


def test_persistence_round_trip_keeps_remaining_days(tmp_path) -> None:
    engine = _engine()
    engine.advance(60)
    engine.advance(1440 * 5)
    expected = {e.id: e.remaining_days for e in engine.snapshot.active_events}
    path = engine.save(tmp_path / "snapshot.json")

    restored = _engine()
    snapshot = restored.load(path)

    assert {e.id: e.remaining_days for e in snapshot.active_events} == pytest.approx(expected)
    assert snapshot.total_days_played == pytest.approx(engine.snapshot.total_days_played)
    assert (snapshot.month, snapshot.day, snapshot.hour) == (
        engine.snapshot.month,
        engine.snapshot.day,
        engine.snapshot.hour,
    )
    assert restored.goods == engine.goods
    assert restored.cycle == engine.cycle


def test_restore_rebuilds_start_from_remaining_days() -> None:
    engine = _engine()
    data = engine.to_persisted()
    data["total_days_played"] = 100.0
    data["active_events"] = [{"id": "q1-tax-season", "remaining_days": 12.0}]

    snapshot = engine.restore(data)

    (event,) = snapshot.active_events
    assert event.remaining_days == pytest.approx(12.0)
    assert engine.scheduler.active_events[0].started_at_total_days == pytest.approx(82.0)


def test_restore_drops_unknown_events() -> None:
    engine = _engine()
    data = engine.to_persisted()
    data["active_events"] = [{"id": "alien-invasion", "remaining_days": 3}]

    assert engine.restore(data).active_events == ()


def test_saved_snapshot_carries_format_version(tmp_path) -> None:
    engine = _engine()
    path = engine.save(tmp_path / "snap.json")

    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw["format_version"] == 1
    assert "format_version" not in load_snapshot(path)


def test_invalid_goods_fail_at_construction() -> None:
    cfg = SimulationConfig()
    cfg.market.goods[0].production_cost_modifier = 0.0

    with pytest.raises(ConfigurationError):
        SimulationEngine(cfg, rng=SequenceRandomSource([0.5]))


def test_unknown_manual_event_is_rejected() -> None:
    with pytest.raises(KeyError):
        _engine().add_event("alien-invasion")


def test_snapshot_views_and_queries() -> None:
    engine = _engine()
    snapshot = engine.advance(60)

    assert snapshot.good("coal") == engine.goods[1]
    assert snapshot.good("unobtainium") is None
    assert engine.last_price_changes == snapshot.price_changes
    assert engine.effect_bundle == snapshot.effect_bundle

    data = snapshot.to_dict()
    assert data["quarter"] == "Q1"
    assert {e["id"] for e in data["active_events"]} == {"q1-tax-season", "new-year-lull"}
    assert set(data["prices"][0]) == {
        "id",
        "new_price",
        "new_supply",
        "new_demand",
        "percentage_change",
    }
    json.dumps(data)


def test_half_minute_advances_add_up_to_whole_minutes() -> None:
    engine = _engine()

    engine.advance(0.5)
    assert engine.calendar_state.minute == 0
    engine.advance(0.5)

    assert engine.calendar_state.minute == 1
    assert engine.calendar_state.minute_fraction == 0.0
    assert engine.cycle == 2


def test_minute_fraction_is_persisted() -> None:
    engine = _engine()
    engine.advance(0.75)
    data = engine.to_persisted()
    assert data["minute_fraction"] == 0.75

    restored = _engine()
    restored.restore(data)
    restored.advance(0.25)

    assert restored.calendar_state.minute == 1


def test_rejected_restore_leaves_engine_untouched() -> None:
    engine = _engine()
    received: list[SimulationSnapshot] = []
    engine.subscribe(received.append)
    before = engine.snapshot
    data = engine.to_persisted()
    data["year"] = 2031
    data["active_events"] = [
        {"id": "q1-tax-season", "remaining_days": 5.0},
        {"id": "q1-tax-season", "remaining_days": 3.0},
    ]

    with pytest.raises(ConfigurationError):
        engine.restore(data)

    assert engine.calendar_state.year == 2024
    assert engine.snapshot is before
    assert engine.scheduler.active_events == ()
    assert received == []


def test_price_shock_updates_listed_goods_and_publishes() -> None:
    engine = _engine()
    received: list[SimulationSnapshot] = []
    engine.subscribe(received.append)
    coal_before = engine.snapshot.good("coal")

    snapshot = engine.apply_price_shock(["coal", "unobtainium"], 1.5, message="Mine collapse")

    assert [c.id for c in snapshot.price_changes] == ["coal"]
    assert snapshot.good("coal").current_price == 45.0
    assert snapshot.good("wood") == engine.goods[2]
    assert snapshot.good("wood").current_price == 20.0
    assert coal_before.current_price == 30.0
    assert snapshot.cycle == 0
    assert received == [snapshot]
    assert engine.price_history.history("coal")[-1]["price"] == 45.0


def test_price_shock_below_one_stops_at_cost_floor() -> None:
    engine = _engine()

    snapshot = engine.apply_price_shock(["coal", "wood"], 0.1)

    for good_id in ("coal", "wood"):
        good = snapshot.good(good_id)
        assert good.current_price == pytest.approx(good.cost_floor)
        assert good.current_price >= round(good.cost_floor, 2)


def test_invalid_price_shock_changes_nothing() -> None:
    engine = _engine()
    before = engine.snapshot

    with pytest.raises(ValueError):
        engine.apply_price_shock(["coal"], 0.0)

    assert engine.snapshot is before
    assert engine.goods == before.goods
