"""Run the full forecast -> recommendation -> insights -> impact pipeline."""

from __future__ import annotations

import logging
from datetime import date
from typing import Sequence

from ..core.config import DecisionSettings
from ..models.schemas import Evaluation, InventoryRecommendation, SalesDataPoint, WhatIfResult
from .forecasting_service import ForecastingService
from .impact_service import calculate_business_impact, simulate_what_if
from .insight_service import InsightService
from .inventory_service import InventoryService

LOGGER = logging.getLogger(__name__)


class DecisionService:
    """Stateless facade over the forecasting and inventory services."""

    def __init__(self, settings: DecisionSettings | None = None) -> None:
        self.settings = settings or DecisionSettings()
        self.forecasting = ForecastingService(self.settings)
        self.inventory = InventoryService(self.settings)
        self.insights = InsightService(self.settings)

    # ------------------------------------------------------------------
    def evaluate(
        self,
        history: Sequence[SalesDataPoint],
        current_stock: int,
        unit_price: float,
        as_of: date | None = None,
    ) -> Evaluation:
        forecast = self.forecasting.forecast(history, as_of=as_of)
        recommendation = self.inventory.recommend(forecast, current_stock)
        insights = self.insights.generate(history, forecast)
        impact = calculate_business_impact(
            current_stock,
            recommendation.recommended_stock,
            recommendation.forecasted_demand,
            unit_price,
            self.settings,
        )
        return Evaluation(
            forecast=forecast,
            recommendation=recommendation,
            insights=insights,
            impact=impact,
        )

    # ------------------------------------------------------------------
    def what_if(
        self,
        recommendation: InventoryRecommendation,
        stock: int,
        discount_percent: float,
        unit_price: float,
    ) -> WhatIfResult:
        return simulate_what_if(recommendation, stock, discount_percent, unit_price, self.settings)
