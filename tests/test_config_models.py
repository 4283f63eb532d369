import pytest
from pydantic import ValidationError

import config


def test_simulation_config_structure_defaults() -> None:
    """SimulationConfig initializes with the documented defaults."""
    cfg = config.SimulationConfig()

    assert cfg.simulation_ticks == 600
    assert (cfg.time.start_year, cfg.time.start_month, cfg.time.start_hour) == (2024, 1, 9)
    assert cfg.time.initial_speed == 1
    assert cfg.events.random_event_probability == 0.01
    assert cfg.events.economic_event_probability == 0.002
    assert cfg.events.history_retention == 50
    assert cfg.market.supply_growth_rate == 0.02
    assert cfg.market.demand_volatility == 0.15
    assert len(cfg.market.goods) == 8
    assert cfg.json_indent == 4


def test_simulation_config_enforces_reasonable_bounds() -> None:
    with pytest.raises(ValidationError):
        config.SimulationConfig(simulation_ticks=-10)

    with pytest.raises(ValidationError):
        config.SimulationConfig(time={"initial_speed": 3})

    with pytest.raises(ValidationError):
        config.SimulationConfig(time={"start_day": 31})

    with pytest.raises(ValidationError):
        config.SimulationConfig(events={"random_event_probability": 1.5})

    with pytest.raises(ValidationError):
        config.SimulationConfig(logging_level="LOUD")


def test_market_goods_must_be_unique_and_positive() -> None:
    good = {"id": "salt", "base_price": 2, "supply": 10, "demand": 10}

    with pytest.raises(ValidationError):
        config.MarketConfig(goods=[good, good])

    with pytest.raises(ValidationError):
        config.MarketConfig(goods=[{**good, "base_price": 0}])


def test_event_definitions_validate_effects_and_duration() -> None:
    with pytest.raises(ValidationError):
        config.EventDefinition(id="x", kind="seasonal", duration_days=0)

    with pytest.raises(ValidationError):
        config.EventDefinition(
            id="x", kind="random", duration_days=1, effects={"price_multiplier": -1}
        )

    with pytest.raises(ValidationError):
        config.EventDefinition(id="x", kind="festival", duration_days=1)


def test_load_simulation_config_casts_types() -> None:
    payload = {
        "simulation_ticks": "250",
        "time": {"seed": "42", "initial_speed": "5"},
        "market": {"goods": [{"id": "salt", "base_price": "2.5", "supply": 10, "demand": "8"}]},
    }

    cfg = config.load_simulation_config(payload)

    assert cfg.simulation_ticks == 250
    assert cfg.time.seed == 42
    assert cfg.time.initial_speed == 5
    assert cfg.market.goods[0].base_price == pytest.approx(2.5)


def test_load_simulation_config_rejects_non_string_keys() -> None:
    with pytest.raises(TypeError):
        config.load_simulation_config({"time": {1: "bad"}})


def test_configuration_error_is_a_value_error() -> None:
    assert issubclass(config.ConfigurationError, ValueError)
