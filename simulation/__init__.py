from .clock import SimulationClock
from .engine import SimulationEngine
from .snapshot import (
    SNAPSHOT_FORMAT_VERSION,
    ActiveEventView,
    HistoryView,
    SimulationSnapshot,
    load_snapshot,
    save_snapshot,
)

__all__ = [
    "SNAPSHOT_FORMAT_VERSION",
    "ActiveEventView",
    "HistoryView",
    "SimulationClock",
    "SimulationEngine",
    "SimulationSnapshot",
    "load_snapshot",
    "save_snapshot",
]
