"""Immutable snapshots published after every engine mutation, plus JSON I/O."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from events.catalog import EventEffects, TimeEvent
from events.scheduler import IDENTITY_BUNDLE, EffectBundle, EventHistoryEntry
from market.goods import MarketGood
from market.pricing import PriceChange
from sim_clock import CalendarState, Quarter

SNAPSHOT_FORMAT_VERSION = 1


@dataclass(frozen=True)
class ActiveEventView:
    id: str
    kind: str
    name: str
    effects: EventEffects
    remaining_days: float

    @classmethod
    def from_event(cls, event: TimeEvent, total_days_played: float) -> ActiveEventView:
        return cls(
            id=event.id,
            kind=event.kind.value,
            name=event.name,
            effects=event.effects,
            remaining_days=event.remaining_days(total_days_played),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            "name": self.name,
            "effects": self.effects.to_dict(),
            "remaining_days": self.remaining_days,
        }


@dataclass(frozen=True)
class HistoryView:
    id: str
    start_marker: str
    end_marker: str

    @classmethod
    def from_entry(cls, entry: EventHistoryEntry) -> HistoryView:
        return cls(id=entry.id, start_marker=entry.start_marker, end_marker=entry.end_marker)

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "start_marker": self.start_marker, "end_marker": self.end_marker}


@dataclass(frozen=True)
class SimulationSnapshot:
    """Flat, read-only view of calendar, events and market at one instant."""

    year: int
    quarter: Quarter
    month: int
    day: int
    hour: int
    minute: int
    total_days_played: float
    speed_multiplier: int
    paused: bool
    active_events: tuple[ActiveEventView, ...] = ()
    event_history: tuple[HistoryView, ...] = ()
    goods: tuple[MarketGood, ...] = ()
    price_changes: tuple[PriceChange, ...] = ()
    effect_bundle: EffectBundle = IDENTITY_BUNDLE
    cycle: int = 0

    @classmethod
    def build(
        cls,
        calendar: CalendarState,
        active_events: tuple[TimeEvent, ...],
        history: tuple[EventHistoryEntry, ...],
        goods: tuple[MarketGood, ...],
        price_changes: tuple[PriceChange, ...],
        effect_bundle: EffectBundle,
        cycle: int,
    ) -> SimulationSnapshot:
        return cls(
            year=calendar.year,
            quarter=calendar.quarter,
            month=calendar.month,
            day=calendar.day,
            hour=calendar.hour,
            minute=calendar.minute,
            total_days_played=calendar.total_days_played,
            speed_multiplier=calendar.speed_multiplier,
            paused=calendar.paused,
            active_events=tuple(
                ActiveEventView.from_event(e, calendar.total_days_played) for e in active_events
            ),
            event_history=tuple(HistoryView.from_entry(h) for h in history),
            goods=goods,
            price_changes=price_changes,
            effect_bundle=effect_bundle,
            cycle=cycle,
        )

    def good(self, good_id: str) -> MarketGood | None:
        return next((g for g in self.goods if g.id == good_id), None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "year": self.year,
            "quarter": self.quarter.value,
            "month": self.month,
            "day": self.day,
            "hour": self.hour,
            "minute": self.minute,
            "total_days_played": self.total_days_played,
            "speed_multiplier": self.speed_multiplier,
            "paused": self.paused,
            "active_events": [e.to_dict() for e in self.active_events],
            "event_history": [h.to_dict() for h in self.event_history],
            "prices": [c.to_dict() for c in self.price_changes],
        }


def save_snapshot(data: dict[str, Any], path: str | Path, indent: int = 4) -> Path:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    payload = {"format_version": SNAPSHOT_FORMAT_VERSION, **data}
    with open(target, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=indent)
    return target


def load_snapshot(path: str | Path) -> dict[str, Any]:
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    version = data.pop("format_version", SNAPSHOT_FORMAT_VERSION)
    if version != SNAPSHOT_FORMAT_VERSION:
        raise ValueError(f"Unsupported snapshot format version: {version}")
    return data
