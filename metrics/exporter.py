"""Exporter module - CSV export of recorded price history."""

from datetime import datetime
from pathlib import Path
from typing import Optional, Protocol

from .base import PRICE_HISTORY_COLUMNS


class PriceHistoryCollectorProtocol(Protocol):
    """Protocol for the collector to allow duck typing"""

    export_path: Path
    price_history_df: object

    def rows(self) -> list: ...


def export_price_history(
    collector: PriceHistoryCollectorProtocol,
    timestamp: Optional[str] = None,
) -> Optional[Path]:
    """Write ``price_history_<timestamp>.csv`` using pandas.

    Returns the written path, or None when nothing has been recorded.
    """
    from logger import log

    rows = collector.rows()
    if not rows:
        log("PriceHistoryCollector: No price history available for CSV export", level="WARNING")
        return None

    import pandas as pd

    timestamp = timestamp or datetime.now().strftime("%Y%m%d_%H%M%S")
    df = pd.DataFrame.from_records(rows, columns=list(PRICE_HISTORY_COLUMNS))
    df = df.sort_values(["time_step", "good_id"])

    export_dir = Path(collector.export_path)
    export_dir.mkdir(parents=True, exist_ok=True)
    output_file = export_dir / f"price_history_{timestamp}.csv"

    import warnings

    with warnings.catch_warnings():
        warnings.simplefilter("ignore", RuntimeWarning)
        df.to_csv(output_file, index=False)
    collector.price_history_df = df

    log(f"PriceHistoryCollector: Exported CSV price history: {output_file.name}", level="INFO")
    return output_file
