"""Market goods and the pricing engine."""

from .goods import GoodID, MarketGood, Price, initialize_goods, validate_good
from .pricing import MarketDynamics, PriceChange, PricingEngine, PricingResult

__all__ = [
    "GoodID",
    "MarketGood",
    "Price",
    "initialize_goods",
    "validate_good",
    "MarketDynamics",
    "PriceChange",
    "PricingEngine",
    "PricingResult",
]
