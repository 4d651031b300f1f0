r"""backend\salesy\services\inventory_service.py

Inventory recommendation built on top of the selected demand forecast."""

from __future__ import annotations

import logging
from typing import Tuple

from ..core.config import DecisionSettings
from ..models.schemas import ForecastResult, InventoryRecommendation, RiskLevel
from .forecasting_service import round_half_up

LOGGER = logging.getLogger(__name__)

OVERSTOCK_REASONING = "Overstock detected. Consider reducing orders or promotional discounts."
STOCKOUT_REASONING = "Critical stock level. Immediate restocking recommended to avoid stockouts."
OPTIMAL_REASONING = "Stock levels are optimal. Monitor for seasonal changes."


def safety_stock_percent(confidence: float, settings: DecisionSettings | None = None) -> float:
    """Return the safety stock share for a model confidence (in percent).

    Lower confidence never yields a smaller buffer.
    """

    settings = settings or DecisionSettings()
    for band in settings.sorted_bands():
        if confidence > band.min_confidence:
            return band.percent
    return settings.default_safety_stock_percent


def classify_risk(
    stock: float,
    recommended_stock: float,
    forecasted_demand: float,
    settings: DecisionSettings | None = None,
) -> Tuple[RiskLevel, str]:
    """Classify stock adequacy; the first matching rule wins.

    Overstock is checked before stockout and is reported as Medium risk at
    most, however large the excess.
    """

    settings = settings or DecisionSettings()
    if stock >= recommended_stock * settings.overstock_multiplier:
        return "Medium", OVERSTOCK_REASONING
    if stock < forecasted_demand * settings.stockout_multiplier:
        return "High", STOCKOUT_REASONING
    return "Low", OPTIMAL_REASONING


class InventoryService:
    """Turn a forecast and the on-hand stock into a stocking recommendation."""

    def __init__(self, settings: DecisionSettings | None = None) -> None:
        self.settings = settings or DecisionSettings()

    def recommend(self, forecast: ForecastResult, current_stock: int) -> InventoryRecommendation:
        if current_stock < 0:
            raise ValueError("current_stock must be non-negative")

        forecasted_demand = int(forecast.forward.value)
        percent = safety_stock_percent(forecast.confidence, self.settings)
        safety_stock = round_half_up(forecasted_demand * percent)
        recommended_stock = forecasted_demand + safety_stock

        risk_level, reasoning = classify_risk(
            current_stock, recommended_stock, forecasted_demand, self.settings
        )

        LOGGER.info(
            "Recommendation: demand=%d safety=%d (%.0f%%) recommended=%d stock=%d risk=%s",
            forecasted_demand,
            safety_stock,
            percent * 100,
            recommended_stock,
            current_stock,
            risk_level,
        )

        return InventoryRecommendation(
            forecasted_demand=forecasted_demand,
            recommended_stock=recommended_stock,
            safety_stock=safety_stock,
            risk_level=risk_level,
            reasoning=reasoning,
        )
