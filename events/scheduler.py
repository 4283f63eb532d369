"""Event scheduler: activation, expiry and effect composition."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, NamedTuple

from config import EventConfig
from logging_utils import create_system_logger
from protocols import RandomSource
from sim_clock import Quarter

from .catalog import EventCatalog, EventKind, TimeEvent

RANDOM_EVENT_PROBABILITY = 0.01
ECONOMIC_EVENT_PROBABILITY = 0.002


@dataclass(frozen=True)
class EffectBundle:
    """Multiplicative composition of the active events' effects."""

    demand_multiplier: float = 1.0
    price_multiplier: float = 1.0
    cost_multiplier: float = 1.0

    @classmethod
    def compose(cls, events: Iterable[TimeEvent]) -> EffectBundle:
        demand = price = cost = 1.0
        for event in events:
            effects = event.effects
            if effects.demand_multiplier is not None:
                demand *= effects.demand_multiplier
            if effects.price_multiplier is not None:
                price *= effects.price_multiplier
            if effects.cost_multiplier is not None:
                cost *= effects.cost_multiplier
        return cls(demand_multiplier=demand, price_multiplier=price, cost_multiplier=cost)

    def to_dict(self) -> dict[str, float]:
        return {
            "demand_multiplier": self.demand_multiplier,
            "price_multiplier": self.price_multiplier,
            "cost_multiplier": self.cost_multiplier,
        }


IDENTITY_BUNDLE = EffectBundle()


@dataclass(frozen=True)
class EventHistoryEntry:
    id: str
    kind: EventKind
    name: str
    start_marker: str
    end_marker: str
    started_at_total_days: float
    ended_at_total_days: float
    reason: str = "expired"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "name": self.name,
            "start_marker": self.start_marker,
            "end_marker": self.end_marker,
            "started_at_total_days": self.started_at_total_days,
            "ended_at_total_days": self.ended_at_total_days,
            "reason": self.reason,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EventHistoryEntry:
        return cls(
            id=str(data["id"]),
            kind=EventKind(data["kind"]),
            name=str(data.get("name", data["id"])),
            start_marker=str(data.get("start_marker", "")),
            end_marker=str(data.get("end_marker", "")),
            started_at_total_days=float(data.get("started_at_total_days", 0.0)),
            ended_at_total_days=float(data.get("ended_at_total_days", 0.0)),
            reason=str(data.get("reason", "expired")),
        )


class ReconcileResult(NamedTuple):
    active_events: tuple[TimeEvent, ...]
    expired_events: tuple[TimeEvent, ...]
    effect_bundle: EffectBundle


def _should_activate(
    template: TimeEvent,
    current_quarter: Quarter,
    current_month: int | None,
    rng: RandomSource,
    random_probability: float,
    economic_probability: float,
) -> bool:
    match template.kind:
        case EventKind.SEASONAL:
            return template.trigger_quarter == current_quarter
        case EventKind.HOLIDAY:
            if template.trigger_quarter != current_quarter:
                return False
            return template.trigger_month is None or template.trigger_month == current_month
        case EventKind.RANDOM:
            return rng.random() < random_probability
        case EventKind.ECONOMIC:
            return rng.random() < economic_probability
    return False


def reconcile(
    catalog: EventCatalog,
    current_quarter: Quarter,
    total_days_played: float,
    active_events: Iterable[TimeEvent],
    rng: RandomSource,
    *,
    current_month: int | None = None,
    marker: str = "",
    random_probability: float = RANDOM_EVENT_PROBABILITY,
    economic_probability: float = ECONOMIC_EVENT_PROBABILITY,
) -> ReconcileResult:
    """Activate due events, expire elapsed ones and compose the effect bundle.

    Random and economic templates get exactly one draw per call, so their
    activation rate depends on how often this is called, not on elapsed
    game time. Both passes see the same snapshot: an event expiring here
    was in ``active_events`` during activation and cannot come back in the
    same call.
    """
    current = list(active_events)
    active_ids = {event.id for event in current}

    for template in catalog:
        if template.id in active_ids:
            continue
        if _should_activate(
            template, current_quarter, current_month, rng, random_probability, economic_probability
        ):
            current.append(template.activate(total_days_played, marker))
            active_ids.add(template.id)

    still_active: list[TimeEvent] = []
    expired: list[TimeEvent] = []
    for event in current:
        if event.is_expired(total_days_played):
            expired.append(event)
        else:
            still_active.append(event)

    return ReconcileResult(
        active_events=tuple(still_active),
        expired_events=tuple(expired),
        effect_bundle=EffectBundle.compose(still_active),
    )


class EventScheduler:
    """
    Holds the active event set and a bounded history of finished events.

    Handles:
    - Per-advance reconciliation against the catalog
    - Manual activation and removal of catalog events
    - Restoring active events and history from a persisted snapshot
    """

    def __init__(
        self,
        catalog: EventCatalog,
        rng: RandomSource,
        config: EventConfig | None = None,
    ) -> None:
        self.catalog = catalog
        self.rng = rng
        self.config: EventConfig = config or EventConfig()
        self._active: tuple[TimeEvent, ...] = ()
        self._history: deque[EventHistoryEntry] = deque(maxlen=self.config.history_retention)
        self._effect_bundle = IDENTITY_BUNDLE
        self.logger = create_system_logger("EventScheduler")

    @property
    def active_events(self) -> tuple[TimeEvent, ...]:
        return self._active

    @property
    def history(self) -> tuple[EventHistoryEntry, ...]:
        return tuple(self._history)

    @property
    def effect_bundle(self) -> EffectBundle:
        return self._effect_bundle

    def is_active(self, event_id: str) -> bool:
        return any(event.id == event_id for event in self._active)

    def reconcile(
        self,
        current_quarter: Quarter,
        total_days_played: float,
        *,
        current_month: int | None = None,
        marker: str = "",
    ) -> ReconcileResult:
        previous_ids = {event.id for event in self._active}
        result = reconcile(
            self.catalog,
            current_quarter,
            total_days_played,
            self._active,
            self.rng,
            current_month=current_month,
            marker=marker,
            random_probability=self.config.random_event_probability,
            economic_probability=self.config.economic_event_probability,
        )

        for event in result.active_events:
            if event.id not in previous_ids:
                self.logger.log_event(
                    "event_activated",
                    {"id": event.id, "kind": event.kind.value, "at_total_days": total_days_played},
                )
        for event in result.expired_events:
            self._record(event, total_days_played, marker, reason="expired")

        self._active = result.active_events
        self._effect_bundle = result.effect_bundle
        return result

    def add_event(self, event_id: str, total_days_played: float, marker: str = "") -> TimeEvent:
        """Activate a catalog event immediately, regardless of its trigger rule."""
        template = self.catalog.get(event_id)
        if template is None:
            raise KeyError(f"Unknown event id: {event_id!r}")
        if self.is_active(event_id):
            raise ValueError(f"Event {event_id!r} is already active")
        event = template.activate(total_days_played, marker)
        self._active = self._active + (event,)
        self._effect_bundle = EffectBundle.compose(self._active)
        self.logger.log_event(
            "event_activated",
            {"id": event.id, "kind": event.kind.value, "at_total_days": total_days_played, "manual": True},
        )
        return event

    def remove_event(self, event_id: str, total_days_played: float, marker: str = "") -> bool:
        """Move an active event to history early. Returns False if it was not active."""
        event = next((e for e in self._active if e.id == event_id), None)
        if event is None:
            return False
        self._active = tuple(e for e in self._active if e.id != event_id)
        self._effect_bundle = EffectBundle.compose(self._active)
        self._record(event, total_days_played, marker, reason="removed")
        return True

    def remaining_days(self, event: TimeEvent, total_days_played: float) -> float:
        return event.remaining_days(total_days_played)

    def restore(
        self,
        active_events: Iterable[TimeEvent],
        history: Iterable[EventHistoryEntry] = (),
    ) -> None:
        restored: list[TimeEvent] = []
        seen: set[str] = set()
        for event in active_events:
            if event.id in seen:
                raise ValueError(f"Duplicate active event {event.id!r} in snapshot")
            if not event.is_active:
                raise ValueError(f"Active event {event.id!r} has no start stamp")
            seen.add(event.id)
            restored.append(event)
        self._active = tuple(restored)
        self._history = deque(history, maxlen=self.config.history_retention)
        self._effect_bundle = EffectBundle.compose(self._active)

    def clear(self) -> None:
        self._active = ()
        self._history.clear()
        self._effect_bundle = IDENTITY_BUNDLE

    def _record(self, event: TimeEvent, total_days_played: float, marker: str, reason: str) -> None:
        started = event.started_at_total_days if event.started_at_total_days is not None else 0.0
        self._history.append(
            EventHistoryEntry(
                id=event.id,
                kind=event.kind,
                name=event.name,
                start_marker=event.start_marker,
                end_marker=marker,
                started_at_total_days=started,
                ended_at_total_days=total_days_played,
                reason=reason,
            )
        )
        self.logger.log_event(
            f"event_{reason}",
            {"id": event.id, "started": started, "ended": total_days_played},
        )
