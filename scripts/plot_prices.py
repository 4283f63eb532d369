"""Generate Matplotlib plots for the latest price history export."""
from __future__ import annotations

import argparse
import shutil
from collections.abc import Callable, Iterable
from pathlib import Path

import matplotlib.pyplot as plt
import pandas as pd

REPO_ROOT = Path(__file__).resolve().parents[1]
METRICS_DIR = REPO_ROOT / "output" / "metrics"
PLOTS_DIR = REPO_ROOT / "output" / "plots"
EXPORT_PREFIX = "price_history_"

PlotFunc = Callable[[pd.DataFrame], tuple[plt.Figure, str]]


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Render plots for the most recent price history export using Matplotlib."
    )
    parser.add_argument(
        "--run-id",
        help="Timestamp suffix of the export (e.g. 20250101_120000)."
        " Uses the newest export automatically when omitted.",
    )
    parser.add_argument(
        "--metrics-dir",
        default=str(METRICS_DIR),
        help="Directory containing price_history_*.csv exports (default: output/metrics).",
    )
    parser.add_argument(
        "--plots-dir",
        default=str(PLOTS_DIR),
        help="Directory where rendered plots will be written (default: output/plots).",
    )
    parser.add_argument(
        "--goods",
        nargs="*",
        default=None,
        help="Restrict the plots to these good ids.",
    )
    parser.add_argument(
        "--show",
        action="store_true",
        help="Display the figures in an interactive window after saving them.",
    )
    return parser.parse_args(argv)


def detect_latest_run_id(metrics_dir: Path) -> str:
    candidates = sorted(metrics_dir.glob(f"{EXPORT_PREFIX}*.csv"))
    if not candidates:
        raise FileNotFoundError(f"No {EXPORT_PREFIX}*.csv files were found in {metrics_dir}.")
    latest = max(candidates, key=lambda path: path.stat().st_mtime)
    suffix = latest.stem.split(EXPORT_PREFIX)[-1]
    if not suffix:
        raise ValueError(f"Unable to parse run identifier from file name: {latest.name}.")
    return suffix


def load_price_history(path: Path, goods: Iterable[str] | None = None) -> pd.DataFrame:
    """Read an export; numeric columns are coerced, blanks become NaN."""
    df = pd.read_csv(path, dtype={"good_id": str})
    for column in ("total_days_played", "price", "supply", "demand", "percentage_change"):
        if column in df.columns:
            df[column] = pd.to_numeric(df[column], errors="coerce")
    df["time_step"] = df["time_step"].astype("int64")
    if goods:
        df = df[df["good_id"].isin(list(goods))]
    return df.sort_values(["time_step", "good_id"]).reset_index(drop=True)


def pivot_series(df: pd.DataFrame, column: str) -> pd.DataFrame:
    """One column per good, indexed by time step."""
    return df.pivot_table(index="time_step", columns="good_id", values=column, aggfunc="last")


def price_index(df: pd.DataFrame) -> pd.DataFrame:
    """Prices relative to each good's first recorded price (first row = 100)."""
    prices = pivot_series(df, "price")
    first = prices.bfill().iloc[0]
    return prices.divide(first) * 100


def ensure_dirs(run_dir: Path) -> Path:
    run_dir.mkdir(parents=True, exist_ok=True)
    latest_dir = run_dir.parent / "latest"
    latest_dir.mkdir(parents=True, exist_ok=True)
    return latest_dir


def save_figure(fig: plt.Figure, filename: str, run_dir: Path, latest_dir: Path) -> Path:
    target = run_dir / filename
    fig.savefig(target, dpi=150, bbox_inches="tight")
    shutil.copy2(target, latest_dir / filename)
    return target


def plot_prices(df: pd.DataFrame) -> tuple[plt.Figure, str]:
    prices = pivot_series(df, "price")
    fig, ax = plt.subplots(figsize=(10, 6))
    for good_id in prices.columns:
        ax.plot(prices.index, prices[good_id], label=good_id)
    ax.set_title("Market Prices")
    ax.set_xlabel("Pricing Cycle")
    ax.set_ylabel("Price")
    ax.grid(True, alpha=0.3)
    ax.legend(fontsize="small")
    return fig, "market_prices.png"


def plot_price_index(df: pd.DataFrame) -> tuple[plt.Figure, str]:
    index = price_index(df)
    fig, ax = plt.subplots(figsize=(10, 6))
    for good_id in index.columns:
        ax.plot(index.index, index[good_id], label=good_id)
    ax.axhline(100, color="gray", lw=0.8, ls="--")
    ax.set_title("Price Index (first cycle = 100)")
    ax.set_xlabel("Pricing Cycle")
    ax.set_ylabel("Index")
    ax.grid(True, alpha=0.3)
    ax.legend(fontsize="small")
    return fig, "price_index.png"


def plot_supply_demand(df: pd.DataFrame) -> tuple[plt.Figure, str]:
    totals = df.groupby("time_step")[["supply", "demand"]].sum()
    fig, ax = plt.subplots(figsize=(10, 6))
    ax.plot(totals.index, totals["supply"], label="Total Supply")
    ax.plot(totals.index, totals["demand"], label="Total Demand")
    ax.set_title("Aggregate Supply & Demand")
    ax.set_xlabel("Pricing Cycle")
    ax.set_ylabel("Units")
    ax.set_ylim(bottom=0)
    ax.grid(True, alpha=0.3)
    ax.legend()
    return fig, "supply_demand.png"


def plot_change_distribution(df: pd.DataFrame) -> tuple[plt.Figure, str]:
    changes = df["percentage_change"].dropna()
    fig, ax = plt.subplots(figsize=(10, 6))
    ax.hist(changes, bins=40, color="tab:blue", alpha=0.8)
    ax.set_title("Distribution of Per-Cycle Price Changes")
    ax.set_xlabel("Change (%)")
    ax.set_ylabel("Count")
    ax.grid(True, alpha=0.3)
    return fig, "price_change_distribution.png"


PLOT_SPECS: list[PlotFunc] = [
    plot_prices,
    plot_price_index,
    plot_supply_demand,
    plot_change_distribution,
]


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    metrics_dir = Path(args.metrics_dir)
    plots_dir = Path(args.plots_dir)

    run_id = args.run_id or detect_latest_run_id(metrics_dir)

    run_dir = plots_dir / run_id
    latest_dir = ensure_dirs(run_dir)

    df = load_price_history(metrics_dir / f"{EXPORT_PREFIX}{run_id}.csv", goods=args.goods)
    if df.empty:
        raise ValueError(f"Price history for run {run_id} contains no rows to plot.")

    figures: list[plt.Figure] = []
    for plot_func in PLOT_SPECS:
        fig, filename = plot_func(df)
        save_figure(fig, filename, run_dir, latest_dir)
        figures.append(fig)

    if args.show:
        plt.show(block=True)
    for fig in figures:
        plt.close(fig)


if __name__ == "__main__":
    main()
