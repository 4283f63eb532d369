"""Metrics package: price history, market trends and CSV export."""

from .base import (
    MIN_TREND_POINTS,
    PRICE_HISTORY_COLUMNS,
    MarketTrend,
    MetricDict,
    TimeStep,
    TrendDirection,
)
from .collector import PriceHistoryCollector
from .exporter import export_price_history

__all__ = [
    "MIN_TREND_POINTS",
    "PRICE_HISTORY_COLUMNS",
    "MarketTrend",
    "MetricDict",
    "TimeStep",
    "TrendDirection",
    "PriceHistoryCollector",
    "export_price_history",
]
