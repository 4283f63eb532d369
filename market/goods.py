# goods.py
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import asdict, dataclass
from typing import Any, TypeAlias

from config import ConfigurationError, GoodDefinition

GoodID: TypeAlias = str
Price: TypeAlias = float

COST_FLOOR_RATIO = 0.5


@dataclass(frozen=True)
class MarketGood:
    """A tradable good. Replaced, never mutated, by each pricing cycle."""

    id: GoodID
    name: str
    base_price: Price
    current_price: Price
    supply: float
    demand: float
    volatility: float
    production_cost_modifier: float
    category: str | None = None

    @property
    def cost_floor(self) -> Price:
        """Lowest price the engine may ever quote for this good."""
        return COST_FLOOR_RATIO * self.base_price * self.production_cost_modifier

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MarketGood:
        good = cls(
            id=str(data["id"]),
            name=str(data.get("name", data["id"])),
            base_price=float(data["base_price"]),
            current_price=float(data.get("current_price", data["base_price"])),
            supply=float(data["supply"]),
            demand=float(data["demand"]),
            volatility=float(data.get("volatility", 0.0)),
            production_cost_modifier=float(data.get("production_cost_modifier", 1.0)),
            category=data.get("category"),
        )
        validate_good(good)
        return good

    @classmethod
    def from_definition(cls, definition: GoodDefinition) -> MarketGood:
        return cls(
            id=definition.id,
            name=definition.name or definition.id,
            base_price=definition.base_price,
            current_price=definition.current_price or definition.base_price,
            supply=definition.supply,
            demand=definition.demand,
            volatility=definition.volatility,
            production_cost_modifier=definition.production_cost_modifier,
            category=definition.category,
        )


def validate_good(good: MarketGood) -> None:
    """
    Reject goods the pricing engine cannot price safely.

    Raises:
        ConfigurationError: on non-positive base price or cost modifier,
            volatility outside [0, 1], or negative supply/demand/price.
    """
    if good.base_price <= 0:
        raise ConfigurationError(f"Good {good.id!r}: base_price must be > 0, got {good.base_price}")
    if good.production_cost_modifier <= 0:
        raise ConfigurationError(
            f"Good {good.id!r}: production_cost_modifier must be > 0, "
            f"got {good.production_cost_modifier}"
        )
    if not 0.0 <= good.volatility <= 1.0:
        raise ConfigurationError(f"Good {good.id!r}: volatility must be within [0, 1]")
    if good.supply < 0 or good.demand < 0:
        raise ConfigurationError(f"Good {good.id!r}: supply and demand must be >= 0")
    if good.current_price <= 0:
        raise ConfigurationError(f"Good {good.id!r}: current_price must be > 0")


def initialize_goods(definitions: Iterable[GoodDefinition | MarketGood]) -> tuple[MarketGood, ...]:
    """Build and validate the market's goods at economy start-up."""
    goods: list[MarketGood] = []
    seen: set[GoodID] = set()
    for item in definitions:
        good = item if isinstance(item, MarketGood) else MarketGood.from_definition(item)
        validate_good(good)
        if good.id in seen:
            raise ConfigurationError(f"Duplicate good id: {good.id!r}")
        seen.add(good.id)
        goods.append(good)
    return tuple(goods)
