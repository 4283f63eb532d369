from __future__ import annotations

import math
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any

from config import CONFIG_MODEL, ConfigurationError, GoodDefinition, SimulationConfig
from events.catalog import EventCatalog, TimeEvent
from events.scheduler import EffectBundle, EventHistoryEntry, EventScheduler
from logger import log
from logging_utils import create_system_logger, timed
from market.goods import MarketGood, initialize_goods
from market.pricing import MarketDynamics, PriceChange, PricingEngine
from metrics.base import MarketTrend
from metrics.collector import PriceHistoryCollector
from protocols import RandomSource, SnapshotObserver
from rng import make_random_source
from sim_clock import Calendar, CalendarState, calendar_marker

from .snapshot import SimulationSnapshot, load_snapshot, save_snapshot


class SimulationEngine:
    """
    State holder for calendar, events and market.

    All mutation goes through the command methods (``advance``,
    ``set_speed``, ``pause``, ``resume``, ``reset``, ``add_event``,
    ``remove_event``, ``apply_price_shock``, ``restore``). Each command runs
    to completion, then a new immutable ``SimulationSnapshot`` replaces the
    previous one in a single assignment and is handed to every subscribed
    observer.
    """

    def __init__(
        self,
        config: SimulationConfig | None = None,
        *,
        rng: RandomSource | None = None,
        catalog: EventCatalog | None = None,
        goods: Iterable[GoodDefinition | MarketGood] | None = None,
    ) -> None:
        self.config: SimulationConfig = config or CONFIG_MODEL
        self.rng: RandomSource = rng or make_random_source(self.config.time.seed)

        # Configuration errors surface here, before the first tick.
        self.catalog = catalog or EventCatalog.from_definitions(self.config.events.catalog)
        self._initial_goods = initialize_goods(
            goods if goods is not None else self.config.market.goods
        )

        self.calendar = Calendar(self.config.time)
        self.scheduler = EventScheduler(self.catalog, self.rng, self.config.events)
        self.pricing = PricingEngine.from_config(self.rng, self.config.market)
        self.dynamics = MarketDynamics.from_config(self.config.market)
        self.price_history = PriceHistoryCollector(self.config)

        self._goods: tuple[MarketGood, ...] = self._initial_goods
        self._last_changes: tuple[PriceChange, ...] = ()
        self._cycle = 0
        self._observers: list[SnapshotObserver] = []
        self._logger = create_system_logger("SimulationEngine", self._marker)
        self.scheduler.logger.attach_marker_source(self._marker)
        self._snapshot = self._build_snapshot()

        self._logger.info(
            f"Engine ready: {len(self._goods)} goods, {len(self.catalog)} event templates "
            f"(catalog {self.catalog.version})"
        )

    # --- Queries ---
    @property
    def snapshot(self) -> SimulationSnapshot:
        return self._snapshot

    @property
    def calendar_state(self) -> CalendarState:
        return self.calendar.state

    @property
    def goods(self) -> tuple[MarketGood, ...]:
        return self._goods

    @property
    def effect_bundle(self) -> EffectBundle:
        return self.scheduler.effect_bundle

    @property
    def last_price_changes(self) -> tuple[PriceChange, ...]:
        return self._last_changes

    @property
    def cycle(self) -> int:
        return self._cycle

    def market_trend(self, good_id: str) -> MarketTrend:
        return self.price_history.get_market_trend(good_id)

    # --- Observers ---
    def subscribe(self, observer: SnapshotObserver) -> Callable[[], None]:
        """Register ``observer``; returns a callable that unsubscribes it."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    # --- Commands ---
    def advance(self, minutes: float) -> SimulationSnapshot:
        """Advance game time, reconcile events and run one pricing cycle."""
        if not isinstance(minutes, (int, float)) or math.isnan(minutes) or math.isinf(minutes):
            raise ValueError(f"minutes must be a finite number, got {minutes!r}")
        if minutes < 0:
            raise ValueError(f"minutes must be >= 0, got {minutes}")
        if minutes == 0:
            return self._snapshot

        with timed(self._logger, "advance") as timer:
            state = self.calendar.advance(minutes)
            result = self.scheduler.reconcile(
                state.quarter,
                state.total_days_played,
                current_month=state.month,
                marker=calendar_marker(state),
            )
            priced = self.pricing.cycle(self._goods, result.effect_bundle, self.dynamics)

            self._goods = priced.goods
            self._last_changes = priced.changes
            self._cycle += 1
            self.price_history.record_cycle(priced.changes, self._cycle, state.total_days_played)
            timer.details.update(
                minutes=minutes, cycle=self._cycle, active_events=len(result.active_events)
            )
        return self._publish()

    def set_speed(self, value: int) -> SimulationSnapshot:
        self.calendar.set_speed(value)
        log(f"SimulationEngine: speed set to {value}", level="INFO")
        return self._publish()

    def pause(self) -> SimulationSnapshot:
        self.calendar.pause()
        log("SimulationEngine: paused", level="INFO")
        return self._publish()

    def resume(self) -> SimulationSnapshot:
        self.calendar.resume()
        log("SimulationEngine: resumed", level="INFO")
        return self._publish()

    def reset(self) -> SimulationSnapshot:
        """Back to the configured start: calendar, events, history and goods."""
        self.calendar.reset()
        self.scheduler.clear()
        self._goods = self._initial_goods
        self._last_changes = ()
        self._cycle = 0
        self.price_history.clear()
        self._logger.log_event("engine_reset", {"goods": len(self._goods)})
        return self._publish()

    def add_event(self, event_id: str) -> SimulationSnapshot:
        state = self.calendar.state
        self.scheduler.add_event(event_id, state.total_days_played, calendar_marker(state))
        return self._publish()

    def remove_event(self, event_id: str) -> SimulationSnapshot:
        state = self.calendar.state
        if not self.scheduler.remove_event(event_id, state.total_days_played, calendar_marker(state)):
            log(f"SimulationEngine: remove_event ignored, {event_id} not active", level="WARNING")
        return self._publish()

    def apply_price_shock(
        self, good_ids: Iterable[str], impact: float, message: str | None = None
    ) -> SimulationSnapshot:
        """Scale the current price of ``good_ids`` by ``impact`` (e.g. after a disaster).

        Prices keep the cent rounding and cost floor of a regular pricing
        cycle. Unknown ids are skipped with a warning.
        """
        ids = list(good_ids)
        known = {good.id for good in self._goods}
        for good_id in ids:
            if good_id not in known:
                log(f"SimulationEngine: price shock skips unknown good {good_id!r}", level="WARNING")

        shocked = self.pricing.apply_shock(self._goods, ids, impact, self.scheduler.effect_bundle)
        self._goods = shocked.goods
        self._last_changes = shocked.changes
        self.price_history.record_cycle(
            shocked.changes, self._cycle, self.calendar.state.total_days_played
        )
        self._logger.log_event(
            "price_shock",
            {"goods": [c.id for c in shocked.changes], "impact": impact, "message": message},
        )
        if message:
            log(f"MARKET ALERT: {message}", level="WARNING")
        return self._publish()

    # --- Persistence ---
    def to_persisted(self) -> dict[str, Any]:
        """Serializable state: calendar fields, active events, history and goods."""
        state = self.calendar.state
        return {
            **state.to_dict(),
            "active_events": [
                {
                    "id": event.id,
                    "remaining_days": event.remaining_days(state.total_days_played),
                    "started_at_total_days": event.started_at_total_days,
                    "start_marker": event.start_marker,
                }
                for event in self.scheduler.active_events
            ],
            "event_history": [entry.to_dict() for entry in self.scheduler.history],
            "goods": [good.to_dict() for good in self._goods],
            "cycle": self._cycle,
        }

    def restore(self, data: dict[str, Any]) -> SimulationSnapshot:
        """Load a persisted state produced by ``to_persisted`` (or a snapshot dict).

        Start stamps of active events are rebuilt from ``remaining_days`` so
        remaining durations stay correct against the restored
        ``total_days_played``. Everything is parsed and validated before any
        component changes, so a rejected payload leaves the engine untouched.
        """
        state = CalendarState.from_dict(data)
        active = self._restore_active_events(data.get("active_events", []), state.total_days_played)
        history = [EventHistoryEntry.from_dict(item) for item in data.get("event_history", [])]
        if "goods" in data:
            goods = initialize_goods(MarketGood.from_dict(item) for item in data["goods"])
        else:
            goods = self._initial_goods
        cycle = int(data.get("cycle", 0))

        self.scheduler.restore(active, history)
        self.calendar.restore(state)
        self._goods = goods
        self._last_changes = ()
        self._cycle = cycle
        self.price_history.clear()
        self._logger.log_event(
            "engine_restored",
            {"total_days_played": state.total_days_played, "active_events": len(active)},
        )
        return self._publish()

    def save(self, path: str | Path | None = None) -> Path:
        target = save_snapshot(
            self.to_persisted(), path or self.config.snapshot_file, indent=self.config.json_indent
        )
        log(f"SimulationEngine: snapshot stored in {target}", level="INFO")
        return target

    def load(self, path: str | Path | None = None) -> SimulationSnapshot:
        return self.restore(load_snapshot(path or self.config.snapshot_file))

    # --- Internals ---
    def _marker(self) -> str:
        return calendar_marker(self.calendar.state)

    def _restore_active_events(
        self, items: Iterable[dict[str, Any]], total_days_played: float
    ) -> list[TimeEvent]:
        restored: list[TimeEvent] = []
        seen: set[str] = set()
        for item in items:
            event_id = str(item["id"])
            if event_id in seen:
                raise ConfigurationError(f"Active event {event_id!r} appears twice in snapshot")
            seen.add(event_id)
            template = self.catalog.get(event_id)
            if template is None:
                log(
                    f"SimulationEngine: dropping unknown active event {item['id']!r} from snapshot",
                    level="WARNING",
                )
                continue
            if "remaining_days" in item:
                remaining = min(max(float(item["remaining_days"]), 0.0), template.duration_days)
                started = total_days_played - (template.duration_days - remaining)
            elif item.get("started_at_total_days") is not None:
                started = float(item["started_at_total_days"])
            else:
                raise ConfigurationError(
                    f"Active event {item['id']!r} has neither remaining_days nor a start stamp"
                )
            restored.append(template.activate(started, str(item.get("start_marker", ""))))
        return restored

    def _build_snapshot(self) -> SimulationSnapshot:
        return SimulationSnapshot.build(
            self.calendar.state,
            self.scheduler.active_events,
            self.scheduler.history,
            self._goods,
            self._last_changes,
            self.scheduler.effect_bundle,
            self._cycle,
        )

    def _publish(self) -> SimulationSnapshot:
        snapshot = self._build_snapshot()
        self._snapshot = snapshot
        for observer in list(self._observers):
            try:
                observer(snapshot)
            except Exception as exc:
                log(f"SimulationEngine: snapshot observer failed: {exc!r}", level="ERROR")
        return snapshot
