"""Time-bound market modifier events."""

from .catalog import (
    CATALOG_VERSION,
    DEFAULT_TEMPLATES,
    ECONOMIC_EVENTS,
    HOLIDAY_EVENTS,
    RANDOM_EVENTS,
    SEASONAL_EVENTS,
    EventCatalog,
    EventEffects,
    EventKind,
    TimeEvent,
    validate_template,
)
from .scheduler import (
    IDENTITY_BUNDLE,
    EffectBundle,
    EventHistoryEntry,
    EventScheduler,
    ReconcileResult,
    reconcile,
)

__all__ = [
    "CATALOG_VERSION",
    "DEFAULT_TEMPLATES",
    "ECONOMIC_EVENTS",
    "HOLIDAY_EVENTS",
    "RANDOM_EVENTS",
    "SEASONAL_EVENTS",
    "EventCatalog",
    "EventEffects",
    "EventKind",
    "TimeEvent",
    "validate_template",
    "IDENTITY_BUNDLE",
    "EffectBundle",
    "EventHistoryEntry",
    "EventScheduler",
    "ReconcileResult",
    "reconcile",
]
