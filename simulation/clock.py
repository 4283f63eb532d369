"""Real-time driver that turns wall-clock ticks into engine advances."""

from __future__ import annotations

import math
import time
from collections.abc import Callable
from typing import Optional

from logging_utils import create_system_logger

from .engine import SimulationEngine

MS_PER_SECOND = 1000


class SimulationClock:
    """
    Converts elapsed real milliseconds into game-minutes.

    One real second at speed multiplier ``s`` is ``s`` game-minutes. Only
    whole game-minutes trigger an engine advance; while they are still zero
    the reference timestamp stays put so sub-minute real time accumulates
    across ticks. A paused calendar only moves the reference timestamp.
    """

    def __init__(
        self,
        engine: SimulationEngine,
        *,
        tick_interval_ms: Optional[int] = None,
        start_ms: Optional[float] = None,
    ):
        self.engine = engine
        self.tick_interval_ms = tick_interval_ms or engine.config.time.tick_interval_ms
        if self.tick_interval_ms <= 0:
            raise ValueError("tick_interval_ms must be positive")
        self.last_tick_ms: Optional[float] = start_ms
        self.now_ms: Optional[float] = start_ms
        self.ticks = 0
        self.advances = 0
        self._logger = create_system_logger("SimulationClock")

    def tick(self, now_ms: float) -> None:
        if self.now_ms is not None and now_ms < self.now_ms:
            raise ValueError(f"clock went backwards: {now_ms} < {self.now_ms}")
        self.now_ms = now_ms
        self.ticks += 1

        if self.last_tick_ms is None:
            self.last_tick_ms = now_ms
            return

        state = self.engine.calendar_state
        if state.paused or state.speed_multiplier == 0:
            self.last_tick_ms = now_ms
            return

        elapsed_ms = now_ms - self.last_tick_ms
        game_minutes = math.floor(elapsed_ms / MS_PER_SECOND * state.speed_multiplier)
        if game_minutes > 0:
            self.engine.advance(game_minutes)
            self.last_tick_ms = now_ms
            self.advances += 1

    def fast_forward(self, ticks: int) -> None:
        """Feed ``ticks`` synthetic ticks spaced ``tick_interval_ms`` apart."""
        if ticks < 0:
            raise ValueError("ticks must be >= 0")
        now = self.now_ms if self.now_ms is not None else 0.0
        if self.last_tick_ms is None:
            self.tick(now)
        for _ in range(ticks):
            now += self.tick_interval_ms
            self.tick(now)

    def run(
        self,
        duration_s: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Tick against a real clock for ``duration_s`` seconds."""
        start = clock()
        deadline = start + duration_s
        self.tick(start * MS_PER_SECOND)
        self._logger.info(f"running for {duration_s}s at {self.tick_interval_ms}ms per tick")
        while True:
            sleep(self.tick_interval_ms / MS_PER_SECOND)
            now = clock()
            self.tick(now * MS_PER_SECOND)
            if now >= deadline:
                break
        self._logger.log_system_metric("ticks", self.ticks)
        self._logger.log_system_metric("advances", self.advances)
        self._logger.log_system_metric("wall_time", round(now - start, 3), "s")
