"""Supply/demand pricing model applied once per simulation cycle."""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass, replace
from typing import Any, NamedTuple

from config import MarketConfig
from events.scheduler import IDENTITY_BUNDLE, EffectBundle
from protocols import RandomSource

from .goods import COST_FLOOR_RATIO, GoodID, MarketGood, Price


@dataclass(frozen=True)
class MarketDynamics:
    supply_growth_rate: float = 0.02
    demand_volatility: float = 0.15

    @classmethod
    def from_config(cls, config: MarketConfig) -> MarketDynamics:
        return cls(
            supply_growth_rate=config.supply_growth_rate,
            demand_volatility=config.demand_volatility,
        )


@dataclass(frozen=True)
class PriceChange:
    id: GoodID
    old_price: Price
    new_price: Price
    new_supply: float
    new_demand: float
    # None when the old price was zero.
    percentage_change: float | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "new_price": self.new_price,
            "new_supply": self.new_supply,
            "new_demand": self.new_demand,
            "percentage_change": self.percentage_change,
        }


class PricingResult(NamedTuple):
    goods: tuple[MarketGood, ...]
    changes: tuple[PriceChange, ...]


def _round_price(value: float, floor: float) -> Price:
    """Round to cents without ever dropping below ``floor``."""
    price = round(value, 2)
    if price < floor:
        # Strip float noise such as 5000.000000001 cents before the ceiling.
        price = math.ceil(round(floor * 100, 6)) / 100
    return price


def _percentage_change(old_price: Price, new_price: Price) -> float | None:
    if not old_price:
        return None
    return round((new_price - old_price) / old_price * 100, 4)


class PricingEngine:
    """
    Recomputes price, supply and demand for every good.

    Per good the random source is drawn exactly twice, demand variation
    first and price volatility second, so a fixed draw sequence reproduces a
    cycle exactly. Goods are validated at construction time elsewhere
    (``market.goods.initialize_goods``); ``cycle`` itself never raises.
    """

    def __init__(
        self,
        rng: RandomSource,
        *,
        scarcity_ratio: float = 2.0,
        price_floor_ratio: float = 0.5,
    ) -> None:
        if not COST_FLOOR_RATIO <= price_floor_ratio <= 1:
            raise ValueError(
                f"price_floor_ratio must be within [{COST_FLOOR_RATIO}, 1], got {price_floor_ratio}"
            )
        self.rng = rng
        self.scarcity_ratio = scarcity_ratio
        self.price_floor_ratio = price_floor_ratio

    @classmethod
    def from_config(cls, rng: RandomSource, config: MarketConfig) -> PricingEngine:
        return cls(
            rng,
            scarcity_ratio=config.scarcity_ratio,
            price_floor_ratio=config.price_floor_ratio,
        )

    def cycle(
        self,
        goods: Iterable[MarketGood],
        bundle: EffectBundle = IDENTITY_BUNDLE,
        dynamics: MarketDynamics = MarketDynamics(),
    ) -> PricingResult:
        new_goods: list[MarketGood] = []
        changes: list[PriceChange] = []
        for good in goods:
            updated, change = self.price_good(good, bundle, dynamics)
            new_goods.append(updated)
            changes.append(change)
        return PricingResult(goods=tuple(new_goods), changes=tuple(changes))

    def floor_for(self, good: MarketGood, cost_base: float) -> Price:
        """Lowest price this engine may quote for ``good`` at ``cost_base``."""
        return max(
            cost_base * self.price_floor_ratio,
            self.price_floor_ratio * good.base_price * good.production_cost_modifier,
            good.cost_floor,
        )

    def apply_shock(
        self,
        goods: Iterable[MarketGood],
        good_ids: Iterable[GoodID],
        impact: float,
        bundle: EffectBundle = IDENTITY_BUNDLE,
    ) -> PricingResult:
        """
        Multiply the current price of the listed goods by ``impact``.

        Supply and demand stay as they are and no random numbers are drawn.
        The result carries every good but only the changes of the affected
        ones; ids that match no good are ignored.

        Raises:
            ValueError: if ``impact`` is not a finite number > 0.
        """
        if not math.isfinite(impact) or impact <= 0:
            raise ValueError(f"impact must be a finite number > 0, got {impact!r}")
        affected = set(good_ids)

        new_goods: list[MarketGood] = []
        changes: list[PriceChange] = []
        for good in goods:
            if good.id not in affected:
                new_goods.append(good)
                continue
            cost_base = good.base_price * good.production_cost_modifier * bundle.cost_multiplier
            floor = self.floor_for(good, cost_base)
            new_price = _round_price(max(floor, good.current_price * impact), floor)

            new_goods.append(replace(good, current_price=new_price))
            changes.append(
                PriceChange(
                    id=good.id,
                    old_price=good.current_price,
                    new_price=new_price,
                    new_supply=good.supply,
                    new_demand=good.demand,
                    percentage_change=_percentage_change(good.current_price, new_price),
                )
            )
        return PricingResult(goods=tuple(new_goods), changes=tuple(changes))

    def price_good(
        self,
        good: MarketGood,
        bundle: EffectBundle,
        dynamics: MarketDynamics,
    ) -> tuple[MarketGood, PriceChange]:
        new_supply = good.supply * (1 + dynamics.supply_growth_rate)

        demand_variation = (self.rng.random() - 0.5) * dynamics.demand_volatility
        new_demand = max(0.0, good.demand * (1 + demand_variation) * bundle.demand_multiplier)

        cost_base = good.base_price * good.production_cost_modifier * bundle.cost_multiplier

        if new_supply > 0:
            supply_demand_ratio = new_demand / new_supply
        else:
            supply_demand_ratio = self.scarcity_ratio

        volatility_factor = 1 + (self.rng.random() - 0.5) * good.volatility

        raw_price = cost_base * supply_demand_ratio * volatility_factor * bundle.price_multiplier

        floor = self.floor_for(good, cost_base)
        new_price = _round_price(max(floor, raw_price), floor)

        old_price = good.current_price
        percentage_change = _percentage_change(old_price, new_price)

        rounded_supply = float(round(new_supply))
        rounded_demand = float(round(new_demand))

        updated = replace(
            good,
            current_price=new_price,
            supply=rounded_supply,
            demand=rounded_demand,
        )
        change = PriceChange(
            id=good.id,
            old_price=old_price,
            new_price=new_price,
            new_supply=rounded_supply,
            new_demand=rounded_demand,
            percentage_change=percentage_change,
        )
        return updated, change
