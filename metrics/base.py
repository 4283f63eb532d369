"""Base types and constants for the metrics package."""

from typing import Any, Dict, Literal, NamedTuple

# Type aliases
TimeStep = int
MetricDict = Dict[str, Any]
TrendDirection = Literal["up", "down", "stable"]

# Constants
MIN_TREND_POINTS = 2
PRICE_HISTORY_COLUMNS = (
    "time_step",
    "good_id",
    "total_days_played",
    "price",
    "supply",
    "demand",
    "percentage_change",
)


class MarketTrend(NamedTuple):
    trend: TrendDirection
    percentage_change: float
