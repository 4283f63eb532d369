# main.py
import argparse
import json
import os
from pathlib import Path
from typing import Any, Optional, Sequence

from config import (
    CONFIG_MODEL,
    SimulationConfig,
    load_simulation_config_from_yaml,
)
from logger import log, setup_logger
from protocols import RandomSource
from sim_clock import calendar_marker, format_duration
from simulation import SimulationClock, SimulationEngine

DEFAULT_CONFIG_FILE = "config.yaml"
CONFIG_ENV_VAR = "SIM_CONFIG"


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run the calendar, event and market price simulation."
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"YAML config file (falls back to ${CONFIG_ENV_VAR}, then ./{DEFAULT_CONFIG_FILE}).",
    )
    parser.add_argument(
        "--ticks",
        type=int,
        default=None,
        help="Number of clock ticks to simulate (defaults to simulation_ticks).",
    )
    parser.add_argument(
        "--speed",
        type=int,
        default=None,
        help="Speed multiplier to start with (0, 1, 2, 5 or 10).",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for the random source (overrides time.seed).",
    )
    parser.add_argument(
        "--realtime",
        type=float,
        default=None,
        metavar="SECONDS",
        help="Tick against the wall clock for SECONDS instead of fast-forwarding.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Mirror log records to stderr.",
    )
    return parser.parse_args(argv)


def load_config(path: Optional[str | Path] = None) -> SimulationConfig:
    """Load a YAML config, or return the built-in defaults when ``path`` is None."""
    if path is None:
        return CONFIG_MODEL
    return load_simulation_config_from_yaml(path)


def _resolve_config_from_args_or_env(
    args: Optional[argparse.Namespace] = None,
) -> SimulationConfig:
    """Pick the config source: ``--config``, then $SIM_CONFIG, then ./config.yaml."""
    if args is None:
        args = parse_args()

    if args.config is not None:
        return load_config(args.config)

    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return load_config(env_path)

    default_path = Path(DEFAULT_CONFIG_FILE)
    if default_path.exists():
        return load_config(default_path)

    return load_config()


def run_simulation(
    config: SimulationConfig,
    ticks: Optional[int] = None,
    *,
    rng: Optional[RandomSource] = None,
    speed: Optional[int] = None,
) -> SimulationEngine:
    """Build an engine and fast-forward it by ``ticks`` synthetic clock ticks."""
    engine = SimulationEngine(config, rng=rng)
    if speed is not None:
        engine.set_speed(speed)

    num_ticks = config.simulation_ticks if ticks is None else ticks
    clock = SimulationClock(engine)
    clock.fast_forward(num_ticks)

    log(
        f"Simulation finished after {num_ticks} ticks: {calendar_marker(engine.calendar_state)}",
        level="INFO",
    )
    return engine


def summarize_simulation(
    engine: SimulationEngine, path: Optional[str | Path] = None
) -> dict[str, Any]:
    """Generate and save a simulation summary to a JSON file."""
    snapshot = engine.snapshot
    summary: dict[str, Any] = {
        "Calendar": {
            "marker": calendar_marker(engine.calendar_state),
            "total_days_played": snapshot.total_days_played,
            "played": format_duration(snapshot.total_days_played),
            "speed_multiplier": snapshot.speed_multiplier,
            "paused": snapshot.paused,
            "cycles": snapshot.cycle,
        },
        "ActiveEvents": {
            event.id: {"kind": event.kind, "remaining_days": event.remaining_days}
            for event in snapshot.active_events
        },
        "EventHistory": [entry.to_dict() for entry in snapshot.event_history],
        "EffectBundle": snapshot.effect_bundle.to_dict(),
        "Goods": {
            good.id: {
                "current_price": good.current_price,
                "base_price": good.base_price,
                "supply": good.supply,
                "demand": good.demand,
                "trend": engine.market_trend(good.id).trend,
            }
            for good in snapshot.goods
        },
    }

    target = Path(path or engine.config.summary_file)
    target.parent.mkdir(parents=True, exist_ok=True)
    with open(target, "w", encoding="utf-8") as f:
        json.dump(summary, f, indent=engine.config.json_indent)

    log(f"Simulation summary stored in {target}", level="INFO")
    return summary


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Main simulation execution function."""
    args = parse_args(argv)
    config = _resolve_config_from_args_or_env(args)
    if args.seed is not None:
        config = config.model_copy(deep=True)
        config.time.seed = args.seed

    setup_logger(config.logging_level, config.log_file, config.log_format, console=args.verbose)
    log("Starting calendar and market simulation...", level="INFO")

    if args.realtime is not None:
        engine = SimulationEngine(config)
        if args.speed is not None:
            engine.set_speed(args.speed)
        SimulationClock(engine).run(args.realtime)
    else:
        engine = run_simulation(config, args.ticks, speed=args.speed)

    log("Simulation complete.", level="INFO")
    engine.save()
    summarize_simulation(engine)
    engine.price_history.export()


if __name__ == "__main__":
    main()
