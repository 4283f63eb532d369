from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Literal, cast

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PositiveInt,
    field_validator,
    model_validator,
)

output_dir = "output/"

QuarterName = Literal["Q1", "Q2", "Q3", "Q4"]
EventKindName = Literal["seasonal", "random", "economic", "holiday"]

ALLOWED_SPEEDS: tuple[int, ...] = (0, 1, 2, 5, 10)


class ConfigurationError(ValueError):
    """Raised when goods or event definitions cannot be used to start the engine."""


def _default_goods() -> list[dict[str, object]]:
    return [
        {"id": "iron-ore", "name": "Iron Ore", "category": "RAW_MATERIALS",
         "base_price": 50, "supply": 1000, "demand": 800, "volatility": 0.2,
         "production_cost_modifier": 1.0},
        {"id": "coal", "name": "Coal", "category": "RAW_MATERIALS",
         "base_price": 30, "supply": 1500, "demand": 1200, "volatility": 0.15,
         "production_cost_modifier": 0.8},
        {"id": "wood", "name": "Wood", "category": "RAW_MATERIALS",
         "base_price": 20, "supply": 2000, "demand": 1800, "volatility": 0.1,
         "production_cost_modifier": 0.7},
        {"id": "steel-beams", "name": "Steel Beams", "category": "MANUFACTURED",
         "base_price": 150, "supply": 500, "demand": 600, "volatility": 0.25,
         "production_cost_modifier": 1.5},
        {"id": "textiles", "name": "Textiles", "category": "MANUFACTURED",
         "base_price": 80, "supply": 800, "demand": 900, "volatility": 0.2,
         "production_cost_modifier": 1.2},
        {"id": "food-supplies", "name": "Food Supplies", "category": "PERISHABLE",
         "base_price": 40, "supply": 1200, "demand": 1500, "volatility": 0.3,
         "production_cost_modifier": 0.9},
        {"id": "medicine", "name": "Medicine", "category": "PERISHABLE",
         "base_price": 200, "supply": 300, "demand": 400, "volatility": 0.35,
         "production_cost_modifier": 2.0},
        {"id": "electronics", "name": "Electronics", "category": "LUXURY",
         "base_price": 500, "supply": 200, "demand": 250, "volatility": 0.4,
         "production_cost_modifier": 1.8},
    ]


ConfigScalar = bool | int | float | str | None
ConfigValue = ConfigScalar | list["ConfigValue"] | dict[str, "ConfigValue"]


def _coerce_value(value: object) -> ConfigValue:
    if isinstance(value, (bool, int, float, str)) or value is None:
        return value
    if isinstance(value, list):
        return [_coerce_value(item) for item in value]
    if isinstance(value, tuple):
        return [_coerce_value(item) for item in value]
    if isinstance(value, Mapping):
        coerced: dict[str, ConfigValue] = {}
        for key, item in value.items():
            if not isinstance(key, str):
                msg = "CONFIG keys must be strings"
                raise TypeError(msg)
            coerced[key] = _coerce_value(item)
        return coerced
    msg = f"Unsupported CONFIG value type: {type(value)!r}"
    raise TypeError(msg)


def _coerce_config_dict(data: Mapping[str, object]) -> dict[str, ConfigValue]:
    return {key: _coerce_value(value) for key, value in data.items()}


class BaseConfigModel(BaseModel):
    model_config = ConfigDict(validate_default=True, frozen=False)


class TimeConfig(BaseConfigModel):
    start_year: int = Field(2024, ge=0)
    start_month: int = Field(1, ge=1, le=12)
    start_day: int = Field(1, ge=1, le=30)
    start_hour: int = Field(9, ge=0, le=23)
    start_minute: int = Field(0, ge=0, le=59)
    initial_speed: int = 1
    tick_interval_ms: PositiveInt = 100
    seed: int | None = None

    @field_validator("initial_speed")
    @classmethod
    def _validate_initial_speed(cls, value: int) -> int:
        if value not in ALLOWED_SPEEDS:
            msg = f"initial_speed must be one of {ALLOWED_SPEEDS}"
            raise ValueError(msg)
        return value


class EventEffectsConfig(BaseConfigModel):
    demand_multiplier: float | None = Field(None, gt=0)
    price_multiplier: float | None = Field(None, gt=0)
    cost_multiplier: float | None = Field(None, gt=0)


class EventDefinition(BaseConfigModel):
    id: str = Field(min_length=1)
    kind: EventKindName
    name: str = ""
    description: str = ""
    trigger_quarter: QuarterName | None = None
    trigger_month: int | None = Field(None, ge=1, le=12)
    duration_days: float = Field(gt=0)
    effects: EventEffectsConfig = Field(default_factory=EventEffectsConfig)


class EventConfig(BaseConfigModel):
    random_event_probability: float = Field(0.01, ge=0, le=1)
    economic_event_probability: float = Field(0.002, ge=0, le=1)
    history_retention: PositiveInt = 50
    # Empty list -> built-in catalog.
    catalog: list[EventDefinition] = Field(default_factory=list)


class GoodDefinition(BaseConfigModel):
    id: str = Field(min_length=1)
    name: str = ""
    category: str | None = None
    base_price: float = Field(gt=0)
    current_price: float | None = Field(None, gt=0)
    supply: float = Field(ge=0)
    demand: float = Field(ge=0)
    volatility: float = Field(0.1, ge=0, le=1)
    production_cost_modifier: float = Field(1.0, gt=0)


class MarketConfig(BaseConfigModel):
    supply_growth_rate: float = Field(0.02, gt=-1)
    demand_volatility: float = Field(0.15, ge=0, le=1)
    scarcity_ratio: float = Field(2.0, gt=0)
    # Can only raise the goods' own 0.5 x cost floor.
    price_floor_ratio: float = Field(0.5, ge=0.5, le=1)
    trend_threshold_pct: float = Field(1.0, ge=0)
    price_history_length: PositiveInt = 100
    goods: list[GoodDefinition] = Field(default_factory=_default_goods)

    @field_validator("goods")
    @classmethod
    def _validate_unique_goods(cls, value: list[GoodDefinition]) -> list[GoodDefinition]:
        ids = [good.id for good in value]
        if len(ids) != len(set(ids)):
            msg = "Market good ids must be unique"
            raise ValueError(msg)
        return value


class SimulationConfig(BaseConfigModel):
    simulation_ticks: PositiveInt = 600
    time: TimeConfig = Field(default_factory=TimeConfig)
    events: EventConfig = Field(default_factory=EventConfig)
    market: MarketConfig = Field(default_factory=MarketConfig)
    logging_level: str = "INFO"
    log_file: str = output_dir + "simulation.log"
    log_format: str = "%(asctime)s - %(levelname)s - %(message)s"
    SNAPSHOT_FILE: str = output_dir + "snapshot.json"
    SUMMARY_FILE: str = output_dir + "simulation_summary.json"
    JSON_INDENT: PositiveInt = 4
    metrics_export_path: str = output_dir + "metrics"

    @model_validator(mode="after")
    def _validate_logging_level(self) -> SimulationConfig:
        if self.logging_level.upper() not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            msg = f"Unknown logging_level: {self.logging_level!r}"
            raise ValueError(msg)
        return self

    @property
    def snapshot_file(self) -> str:
        return self.SNAPSHOT_FILE

    @property
    def summary_file(self) -> str:
        return self.SUMMARY_FILE

    @property
    def json_indent(self) -> PositiveInt:
        return self.JSON_INDENT


def load_simulation_config(data: Mapping[str, ConfigValue] | None = None) -> SimulationConfig:
    if data is not None:
        coerced = _coerce_config_dict(cast(Mapping[str, object], data))
        return SimulationConfig(**coerced)
    return SimulationConfig()


def load_simulation_config_from_yaml(path: str | Path) -> SimulationConfig:
    """Load and validate a YAML configuration file.

    An empty file yields the default configuration. Validation errors surface
    as ``pydantic.ValidationError``.
    """
    with open(path, encoding="utf-8") as handle:
        raw = yaml.safe_load(handle)
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        msg = f"Configuration file {path} must contain a mapping at the top level"
        raise ConfigurationError(msg)
    return load_simulation_config(cast(Mapping[str, ConfigValue], raw))


CONFIG_MODEL: SimulationConfig = load_simulation_config()
