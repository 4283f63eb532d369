import pytest

from config import EventConfig
from events import (
    EffectBundle,
    EventCatalog,
    EventEffects,
    EventKind,
    EventScheduler,
    TimeEvent,
    reconcile,
)
from rng import SequenceRandomSource
from sim_clock import Quarter

NO_RANDOM = SequenceRandomSource([0.99])


def _seasonal(event_id: str, quarter: Quarter, duration: float, **effects) -> TimeEvent:
    return TimeEvent(
        id=event_id,
        kind=EventKind.SEASONAL,
        name=event_id,
        duration_days=duration,
        effects=EventEffects(**effects),
        trigger_quarter=quarter,
    )


def test_overlapping_effects_compose_multiplicatively() -> None:
    catalog = EventCatalog(
        [
            _seasonal("a", Quarter.Q1, 10, price_multiplier=1.3),
            _seasonal("b", Quarter.Q1, 10, price_multiplier=1.1, demand_multiplier=0.5),
        ]
    )

    result = reconcile(catalog, Quarter.Q1, 0.0, [], NO_RANDOM)

    assert [e.id for e in result.active_events] == ["a", "b"]
    assert result.effect_bundle.price_multiplier == pytest.approx(1.43)
    assert result.effect_bundle.demand_multiplier == pytest.approx(0.5)
    assert result.effect_bundle.cost_multiplier == 1.0


def test_empty_active_set_gives_identity_bundle() -> None:
    assert EffectBundle.compose([]) == EffectBundle(1.0, 1.0, 1.0)


def test_seasonal_event_only_activates_in_its_quarter() -> None:
    catalog = EventCatalog([_seasonal("summer", Quarter.Q2, 45, demand_multiplier=0.8)])

    assert reconcile(catalog, Quarter.Q1, 0.0, [], NO_RANDOM).active_events == ()
    active = reconcile(catalog, Quarter.Q2, 91.0, [], NO_RANDOM).active_events
    assert active[0].started_at_total_days == 91.0


def test_event_expires_exactly_at_duration_boundary() -> None:
    catalog = EventCatalog([_seasonal("short", Quarter.Q1, 3, demand_multiplier=1.2)])
    active = reconcile(catalog, Quarter.Q1, 0.0, [], NO_RANDOM).active_events

    just_before = reconcile(catalog, Quarter.Q1, 2.999, active, NO_RANDOM)
    assert [e.id for e in just_before.active_events] == ["short"]

    at_boundary = reconcile(catalog, Quarter.Q1, 3.0, active, NO_RANDOM)
    assert at_boundary.active_events == ()
    assert [e.id for e in at_boundary.expired_events] == ["short"]
    assert at_boundary.effect_bundle == EffectBundle()


def test_remaining_days_strictly_decrease_while_active() -> None:
    catalog = EventCatalog([_seasonal("long", Quarter.Q1, 30)])
    active = reconcile(catalog, Quarter.Q1, 0.0, [], NO_RANDOM).active_events

    remaining = []
    for day in (1.0, 2.5, 10.0, 29.0):
        active = reconcile(catalog, Quarter.Q1, day, active, NO_RANDOM).active_events
        remaining.append(active[0].remaining_days(day))

    assert remaining == sorted(remaining, reverse=True)
    assert len(set(remaining)) == len(remaining)


def test_active_event_is_not_duplicated() -> None:
    catalog = EventCatalog([_seasonal("a", Quarter.Q1, 10)])
    active = reconcile(catalog, Quarter.Q1, 0.0, [], NO_RANDOM).active_events

    again = reconcile(catalog, Quarter.Q1, 1.0, active, NO_RANDOM).active_events

    assert len(again) == 1
    assert again[0].started_at_total_days == 0.0


def test_random_events_draw_once_per_template_and_call() -> None:
    catalog = EventCatalog(
        [
            TimeEvent(id="storm", kind=EventKind.RANDOM, name="Storm", duration_days=3),
            TimeEvent(id="boom", kind=EventKind.ECONOMIC, name="Boom", duration_days=90),
        ]
    )
    rng = SequenceRandomSource([0.005, 0.5], cycle=False)

    result = reconcile(catalog, Quarter.Q3, 10.0, [], rng)

    assert [e.id for e in result.active_events] == ["storm"]
    assert rng.draws == 2


def test_economic_event_uses_its_own_probability() -> None:
    catalog = EventCatalog(
        [TimeEvent(id="boom", kind=EventKind.ECONOMIC, name="Boom", duration_days=90)]
    )

    result = reconcile(
        catalog, Quarter.Q1, 0.0, [], SequenceRandomSource([0.0015]), economic_probability=0.002
    )

    assert [e.id for e in result.active_events] == ["boom"]


def test_holiday_requires_trigger_month() -> None:
    catalog = EventCatalog(
        [
            TimeEvent(
                id="xmas",
                kind=EventKind.HOLIDAY,
                name="Xmas",
                duration_days=10,
                trigger_quarter=Quarter.Q4,
                trigger_month=12,
            )
        ]
    )

    assert reconcile(catalog, Quarter.Q4, 0.0, [], NO_RANDOM, current_month=11).active_events == ()
    assert reconcile(catalog, Quarter.Q4, 0.0, [], NO_RANDOM, current_month=12).active_events


def test_scheduler_records_history_with_markers() -> None:
    catalog = EventCatalog([_seasonal("a", Quarter.Q1, 2, demand_multiplier=1.3)])
    scheduler = EventScheduler(catalog, NO_RANDOM)

    scheduler.reconcile(Quarter.Q1, 0.0, marker="start")
    assert scheduler.is_active("a")
    assert scheduler.effect_bundle.demand_multiplier == pytest.approx(1.3)

    scheduler.reconcile(Quarter.Q2, 2.0, marker="end")

    assert scheduler.active_events == ()
    (entry,) = scheduler.history
    assert (entry.id, entry.start_marker, entry.end_marker, entry.reason) == (
        "a",
        "start",
        "end",
        "expired",
    )


def test_history_retention_is_bounded() -> None:
    catalog = EventCatalog([_seasonal("a", Quarter.Q1, 1)])
    scheduler = EventScheduler(catalog, NO_RANDOM, EventConfig(history_retention=3))

    # Activates on even days, expires on odd days: four expiries in total.
    for day in range(8):
        scheduler.reconcile(Quarter.Q1, float(day))

    assert len(scheduler.history) == 3
    assert [entry.ended_at_total_days for entry in scheduler.history] == [3.0, 5.0, 7.0]


def test_manual_add_and_remove() -> None:
    scheduler = EventScheduler(EventCatalog(), NO_RANDOM)

    scheduler.add_event("port-strike", 4.0, "now")
    assert scheduler.effect_bundle.cost_multiplier == pytest.approx(1.3)
    with pytest.raises(ValueError):
        scheduler.add_event("port-strike", 4.0)
    with pytest.raises(KeyError):
        scheduler.add_event("does-not-exist", 4.0)

    assert scheduler.remove_event("port-strike", 5.0, "later") is True
    assert scheduler.remove_event("port-strike", 5.0) is False
    assert scheduler.history[-1].reason == "removed"
    assert scheduler.effect_bundle == EffectBundle()


def test_restore_rejects_unstamped_events() -> None:
    catalog = EventCatalog()
    scheduler = EventScheduler(catalog, NO_RANDOM)

    with pytest.raises(ValueError):
        scheduler.restore([catalog.get("economic-boom")])


def test_scheduler_remaining_days_tracks_elapsed_time() -> None:
    scheduler = EventScheduler(EventCatalog(), NO_RANDOM)
    event = scheduler.add_event("economic-boom", 10.0)

    assert scheduler.remaining_days(event, 40.0) == pytest.approx(60.0)
    assert scheduler.remaining_days(event, 200.0) == 0.0
