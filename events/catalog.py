"""Static catalog of time-bound market modifier events."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import Any

from config import ConfigurationError, EventDefinition
from sim_clock import Quarter, quarter_for_month

CATALOG_VERSION = "2024.2"


class EventKind(str, Enum):
    SEASONAL = "seasonal"
    HOLIDAY = "holiday"
    RANDOM = "random"
    ECONOMIC = "economic"


QUARTER_BOUND_KINDS = frozenset({EventKind.SEASONAL, EventKind.HOLIDAY})


@dataclass(frozen=True)
class EventEffects:
    demand_multiplier: float | None = None
    price_multiplier: float | None = None
    cost_multiplier: float | None = None

    def to_dict(self) -> dict[str, float]:
        return {key: value for key, value in asdict(self).items() if value is not None}


@dataclass(frozen=True)
class TimeEvent:
    """A catalog template, or an active instance once stamped with a start time."""

    id: str
    kind: EventKind
    name: str
    duration_days: float
    effects: EventEffects = EventEffects()
    trigger_quarter: Quarter | None = None
    trigger_month: int | None = None
    description: str = ""
    started_at_total_days: float | None = None
    start_marker: str = ""

    @property
    def is_active(self) -> bool:
        return self.started_at_total_days is not None

    def activate(self, total_days_played: float, marker: str = "") -> TimeEvent:
        return replace(self, started_at_total_days=total_days_played, start_marker=marker)

    def elapsed_days(self, total_days_played: float) -> float:
        if self.started_at_total_days is None:
            return 0.0
        return total_days_played - self.started_at_total_days

    def remaining_days(self, total_days_played: float) -> float:
        return max(0.0, self.duration_days - self.elapsed_days(total_days_played))

    def is_expired(self, total_days_played: float) -> bool:
        return self.is_active and self.elapsed_days(total_days_played) >= self.duration_days

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "name": self.name,
            "description": self.description,
            "trigger_quarter": self.trigger_quarter.value if self.trigger_quarter else None,
            "trigger_month": self.trigger_month,
            "duration_days": self.duration_days,
            "effects": self.effects.to_dict(),
            "started_at_total_days": self.started_at_total_days,
            "start_marker": self.start_marker,
        }

    @classmethod
    def from_definition(cls, definition: EventDefinition) -> TimeEvent:
        return cls(
            id=definition.id,
            kind=EventKind(definition.kind),
            name=definition.name or definition.id,
            description=definition.description,
            trigger_quarter=Quarter(definition.trigger_quarter) if definition.trigger_quarter else None,
            trigger_month=definition.trigger_month,
            duration_days=definition.duration_days,
            effects=EventEffects(
                demand_multiplier=definition.effects.demand_multiplier,
                price_multiplier=definition.effects.price_multiplier,
                cost_multiplier=definition.effects.cost_multiplier,
            ),
        )


SEASONAL_EVENTS: tuple[TimeEvent, ...] = (
    TimeEvent(
        id="q1-tax-season",
        kind=EventKind.SEASONAL,
        name="Tax Season Rush",
        description="Increased demand for business supplies and shipping",
        trigger_quarter=Quarter.Q1,
        duration_days=30,
        effects=EventEffects(demand_multiplier=1.3, price_multiplier=1.1),
    ),
    TimeEvent(
        id="q2-summer-slowdown",
        kind=EventKind.SEASONAL,
        name="Summer Slowdown",
        description="Reduced business activity during vacation season",
        trigger_quarter=Quarter.Q2,
        duration_days=45,
        effects=EventEffects(demand_multiplier=0.8, price_multiplier=0.95),
    ),
    TimeEvent(
        id="q3-back-to-business",
        kind=EventKind.SEASONAL,
        name="Back to Business",
        description="Increased activity as businesses ramp up",
        trigger_quarter=Quarter.Q3,
        duration_days=30,
        effects=EventEffects(demand_multiplier=1.2, price_multiplier=1.05),
    ),
    TimeEvent(
        id="q4-holiday-rush",
        kind=EventKind.SEASONAL,
        name="Holiday Rush",
        description="Peak shipping season with extreme demand",
        trigger_quarter=Quarter.Q4,
        duration_days=45,
        effects=EventEffects(demand_multiplier=1.8, price_multiplier=1.3, cost_multiplier=1.2),
    ),
)

HOLIDAY_EVENTS: tuple[TimeEvent, ...] = (
    TimeEvent(
        id="new-year-lull",
        kind=EventKind.HOLIDAY,
        name="New Year Lull",
        description="Offices reopen slowly after the New Year",
        trigger_quarter=Quarter.Q1,
        trigger_month=1,
        duration_days=7,
        effects=EventEffects(demand_multiplier=0.85),
    ),
    TimeEvent(
        id="year-end-holidays",
        kind=EventKind.HOLIDAY,
        name="Year-End Holidays",
        description="Last-minute gift shipping before Christmas",
        trigger_quarter=Quarter.Q4,
        trigger_month=12,
        duration_days=10,
        effects=EventEffects(demand_multiplier=1.5, price_multiplier=1.15),
    ),
)

RANDOM_EVENTS: tuple[TimeEvent, ...] = (
    TimeEvent(
        id="weather-disruption",
        kind=EventKind.RANDOM,
        name="Severe Weather",
        description="Major storm disrupts shipping routes",
        duration_days=3,
        effects=EventEffects(demand_multiplier=0.7, cost_multiplier=1.5),
    ),
    TimeEvent(
        id="port-strike",
        kind=EventKind.RANDOM,
        name="Port Strike",
        description="Labor disputes slow down shipping",
        duration_days=7,
        effects=EventEffects(demand_multiplier=0.9, cost_multiplier=1.3),
    ),
)

ECONOMIC_EVENTS: tuple[TimeEvent, ...] = (
    TimeEvent(
        id="economic-boom",
        kind=EventKind.ECONOMIC,
        name="Economic Boom",
        description="Strong economy drives increased shipping demand",
        duration_days=90,
        effects=EventEffects(demand_multiplier=1.4, price_multiplier=1.2),
    ),
    TimeEvent(
        id="economic-downturn",
        kind=EventKind.ECONOMIC,
        name="Economic Downturn",
        description="Tight credit and weak consumer spending",
        duration_days=60,
        effects=EventEffects(demand_multiplier=0.75, price_multiplier=0.9),
    ),
)

DEFAULT_TEMPLATES: tuple[TimeEvent, ...] = (
    SEASONAL_EVENTS + HOLIDAY_EVENTS + RANDOM_EVENTS + ECONOMIC_EVENTS
)


def validate_template(template: TimeEvent) -> None:
    """Raise ``ConfigurationError`` if a template cannot be scheduled."""
    if not template.id:
        raise ConfigurationError("Event template without id")
    if template.duration_days <= 0:
        raise ConfigurationError(
            f"Event {template.id!r} has non-positive duration {template.duration_days}"
        )
    for field_name, value in template.effects.to_dict().items():
        if value <= 0:
            raise ConfigurationError(f"Event {template.id!r}: {field_name} must be > 0, got {value}")
    if template.kind in QUARTER_BOUND_KINDS and template.trigger_quarter is None:
        raise ConfigurationError(
            f"{template.kind.value} event {template.id!r} needs a trigger_quarter"
        )
    if template.trigger_month is not None:
        if template.kind is not EventKind.HOLIDAY:
            raise ConfigurationError(f"Only holiday events may set trigger_month ({template.id!r})")
        if quarter_for_month(template.trigger_month) != template.trigger_quarter:
            raise ConfigurationError(
                f"Holiday {template.id!r}: month {template.trigger_month} is not in "
                f"{template.trigger_quarter.value if template.trigger_quarter else None}"
            )
    if template.is_active:
        raise ConfigurationError(f"Catalog template {template.id!r} must not carry a start stamp")


class EventCatalog:
    """Read-only, validated collection of event templates in a fixed order."""

    def __init__(self, templates: Iterable[TimeEvent] = DEFAULT_TEMPLATES, version: str = CATALOG_VERSION):
        self.version = version
        self._templates: tuple[TimeEvent, ...] = tuple(templates)
        seen: set[str] = set()
        for template in self._templates:
            validate_template(template)
            if template.id in seen:
                raise ConfigurationError(f"Duplicate event id in catalog: {template.id!r}")
            seen.add(template.id)
        self._by_id = {template.id: template for template in self._templates}

    @classmethod
    def from_definitions(cls, definitions: Iterable[EventDefinition]) -> EventCatalog:
        definitions = list(definitions)
        if not definitions:
            return cls()
        return cls((TimeEvent.from_definition(d) for d in definitions), version="custom")

    def __iter__(self) -> Iterator[TimeEvent]:
        return iter(self._templates)

    def __len__(self) -> int:
        return len(self._templates)

    def __contains__(self, event_id: object) -> bool:
        return event_id in self._by_id

    def get(self, event_id: str) -> TimeEvent | None:
        return self._by_id.get(event_id)

    def by_kind(self, kind: EventKind) -> tuple[TimeEvent, ...]:
        return tuple(t for t in self._templates if t.kind is kind)
