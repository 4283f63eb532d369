"""PriceHistoryCollector - per-good price series and market trends."""

from collections import deque
from pathlib import Path
from typing import Deque, Dict, Iterable, List, Optional

from config import CONFIG_MODEL, SimulationConfig
from logger import log
from market.pricing import PriceChange

from .base import MIN_TREND_POINTS, MarketTrend, MetricDict, TimeStep


class PriceHistoryCollector:
    """
    Records the outcome of every pricing cycle for later analysis.

    Each good keeps a bounded window of the most recent points
    (``market.price_history_length``); older points are dropped.
    """

    def __init__(self, config: Optional[SimulationConfig] = None):
        self.config = config or CONFIG_MODEL
        self.max_points = self.config.market.price_history_length
        self.trend_threshold_pct = self.config.market.trend_threshold_pct
        self.price_history: Dict[str, Deque[MetricDict]] = {}
        self.export_path = Path(self.config.metrics_export_path)
        self.cycles_recorded = 0
        self.price_history_df = None

    def record_cycle(
        self,
        changes: Iterable[PriceChange],
        time_step: TimeStep,
        total_days_played: float,
    ) -> None:
        for change in changes:
            series = self.price_history.setdefault(change.id, deque(maxlen=self.max_points))
            series.append(
                {
                    "time_step": time_step,
                    "total_days_played": total_days_played,
                    "price": change.new_price,
                    "supply": change.new_supply,
                    "demand": change.new_demand,
                    "percentage_change": change.percentage_change,
                }
            )
        self.cycles_recorded += 1

    def history(self, good_id: str) -> List[MetricDict]:
        return list(self.price_history.get(good_id, ()))

    def get_market_trend(self, good_id: str) -> MarketTrend:
        """Compare the last two recorded prices of ``good_id``.

        Moves beyond +/- ``trend_threshold_pct`` percent are "up"/"down",
        anything smaller (or too little data) is "stable".
        """
        series = self.price_history.get(good_id)
        if series is None or len(series) < MIN_TREND_POINTS:
            return MarketTrend("stable", 0.0)

        recent = series[-1]["price"]
        previous = series[-2]["price"]
        if not previous:
            log(
                f"PriceHistoryCollector: previous price of {good_id} is zero, trend undefined",
                level="WARNING",
            )
            return MarketTrend("stable", 0.0)

        percentage_change = (recent - previous) / previous * 100
        if percentage_change > self.trend_threshold_pct:
            return MarketTrend("up", percentage_change)
        if percentage_change < -self.trend_threshold_pct:
            return MarketTrend("down", percentage_change)
        return MarketTrend("stable", percentage_change)

    def rows(self) -> List[MetricDict]:
        """Flatten all series into export rows sorted by time step and good."""
        flat: List[MetricDict] = []
        for good_id, series in self.price_history.items():
            for point in series:
                row: MetricDict = {"good_id": good_id}
                row.update(point)
                flat.append(row)
        flat.sort(key=lambda row: (row["time_step"], row["good_id"]))
        return flat

    def clear(self) -> None:
        self.price_history.clear()
        self.cycles_recorded = 0
        self.price_history_df = None

    def export(self) -> Optional[Path]:
        from .exporter import export_price_history

        return export_price_history(self)
