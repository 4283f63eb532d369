"""Component-tagged logging for the time and market simulation."""

import json
import time
from typing import Any, Callable, Dict, Literal, Optional

from logger import log

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
MarkerSource = Callable[[], str]


class SimulationLogger:
    """
    Logger bound to one simulation component (calendar, scheduler, pricing, ...).

    Messages are prefixed with the component name and, when a marker source
    is attached, with the current game-time marker, so a single log file can
    be filtered per subsystem and lined up with the in-game calendar.
    Structured payloads follow the message as one JSON line.
    """

    def __init__(self, component_name: str, marker_source: Optional[MarkerSource] = None):
        self.component_name = component_name
        self.marker_source = marker_source
        self.messages_logged = 0

    def attach_marker_source(self, marker_source: MarkerSource) -> None:
        self.marker_source = marker_source

    def _prefix(self, level: LogLevel) -> str:
        if self.marker_source is None:
            return f"[{self.component_name}] [{level}]"
        return f"[{self.component_name} @ {self.marker_source()}] [{level}]"

    def debug(self, message: str, data: Optional[Dict] = None) -> None:
        self._log("DEBUG", message, data)

    def info(self, message: str, data: Optional[Dict] = None) -> None:
        self._log("INFO", message, data)

    def warning(self, message: str, data: Optional[Dict] = None) -> None:
        self._log("WARNING", message, data)

    def error(self, message: str, data: Optional[Dict] = None) -> None:
        self._log("ERROR", message, data)

    def _log(self, level: LogLevel, message: str, data: Optional[Dict] = None) -> None:
        log(f"{self._prefix(level)} {message}", level=level)
        self.messages_logged += 1
        if data:
            # default=str covers enums, paths and dataclass reprs in payloads
            log(f"DATA: {json.dumps(data, default=str, sort_keys=True)}", level=level)

    def log_event(self, event_type: str, data: Dict[str, Any]) -> None:
        """
        Log a structured simulation event (activation, expiry, reset, ...).

        Args:
            event_type: Short event tag, e.g. "event_activated"
            data: Event payload
        """
        self.info(f"EVENT: {event_type}", {"event_type": event_type, "data": data})

    def log_performance(
        self, operation: str, duration: float, details: Optional[Dict] = None
    ) -> None:
        perf_data: Dict[str, Any] = {"operation": operation, "duration_ms": duration * 1000}
        if details:
            perf_data.update(details)
        self.debug(f"PERF: {operation} took {duration * 1000:.3f}ms", perf_data)


class SystemLogger(SimulationLogger):
    """Logger for engine-level systems (scheduler, engine, clock)."""

    def log_system_metric(self, metric_name: str, value: Any, unit: Optional[str] = None) -> None:
        label = f"{value} {unit}" if unit else f"{value}"
        self.info(f"METRIC: {metric_name} = {label}", {"metric": metric_name, "value": value})


def create_system_logger(
    system_name: str, marker_source: Optional[MarkerSource] = None
) -> SystemLogger:
    """Create a logger tagged with a system component name."""
    return SystemLogger(system_name, marker_source)


def timed(logger: SimulationLogger, operation: str) -> "_Timer":
    """Context manager logging the wall time of ``operation`` at DEBUG level."""
    return _Timer(logger, operation)


class _Timer:
    def __init__(self, logger: SimulationLogger, operation: str):
        self.logger = logger
        self.operation = operation
        self.details: Dict[str, Any] = {}
        self._started = 0.0

    def __enter__(self) -> "_Timer":
        self._started = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.logger.log_performance(
                self.operation, time.perf_counter() - self._started, self.details
            )
