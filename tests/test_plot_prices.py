"""Tests for scripts/plot_prices.py."""

import os

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import pandas as pd
import pytest

from scripts.plot_prices import (
    PLOT_SPECS,
    detect_latest_run_id,
    load_price_history,
    main,
    parse_args,
    pivot_series,
    price_index,
)


@pytest.fixture
def export_file(tmp_path):
    rows = [
        {"time_step": 1, "good_id": "coal", "total_days_played": 0.1, "price": 30.0,
         "supply": 1530, "demand": 1200, "percentage_change": 0.0},
        {"time_step": 1, "good_id": "wood", "total_days_played": 0.1, "price": 20.0,
         "supply": 2040, "demand": 1800, "percentage_change": None},
        {"time_step": 2, "good_id": "coal", "total_days_played": 0.2, "price": 33.0,
         "supply": 1561, "demand": 1250, "percentage_change": 10.0},
        {"time_step": 2, "good_id": "wood", "total_days_played": 0.2, "price": 19.0,
         "supply": 2081, "demand": 1700, "percentage_change": -5.0},
    ]
    path = tmp_path / "price_history_20240101_120000.csv"
    pd.DataFrame(rows).to_csv(path, index=False)
    return path


def test_load_price_history_parses_types(export_file) -> None:
    df = load_price_history(export_file)

    assert isinstance(df, pd.DataFrame)
    assert len(df) == 4
    assert df["time_step"].dtype == "int64"
    assert df["price"].dtype == "float64"
    assert df["percentage_change"].isna().sum() == 1


def test_load_price_history_filters_goods(export_file) -> None:
    df = load_price_history(export_file, goods=["wood"])

    assert df["good_id"].unique().tolist() == ["wood"]


def test_pivot_and_price_index(export_file) -> None:
    df = load_price_history(export_file)

    prices = pivot_series(df, "price")
    index = price_index(df)

    assert prices.loc[2, "coal"] == 33.0
    assert index.loc[1].tolist() == [100.0, 100.0]
    assert index.loc[2, "coal"] == pytest.approx(110.0)
    assert index.loc[2, "wood"] == pytest.approx(95.0)


def test_detect_latest_run_id(tmp_path, export_file) -> None:
    newer = tmp_path / "price_history_20250101_000000.csv"
    newer.write_text(export_file.read_text())
    os.utime(newer, (export_file.stat().st_mtime + 10, export_file.stat().st_mtime + 10))

    assert detect_latest_run_id(tmp_path) == "20250101_000000"


def test_detect_latest_run_id_without_exports(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        detect_latest_run_id(tmp_path)


def test_plot_functions_return_figures(export_file) -> None:
    df = load_price_history(export_file)

    for plot_func in PLOT_SPECS:
        fig, filename = plot_func(df)
        assert filename.endswith(".png")
        assert fig.axes
        plt.close(fig)


def test_parse_args_defaults() -> None:
    args = parse_args([])

    assert args.run_id is None
    assert args.goods is None
    assert args.show is False


def test_main_renders_all_plots(tmp_path, export_file) -> None:
    plots_dir = tmp_path / "plots"

    main(["--metrics-dir", str(tmp_path), "--plots-dir", str(plots_dir)])

    rendered = sorted(p.name for p in (plots_dir / "20240101_120000").glob("*.png"))
    assert len(rendered) == len(PLOT_SPECS)
    assert sorted(p.name for p in (plots_dir / "latest").glob("*.png")) == rendered
