r"""backend\salesy\services\impact_service.py

Monetary impact of a stocking decision and the what-if simulator.

Both calculations are fixed heuristics rather than fitted models: a flat
holding cost on stock beyond tolerance, a flat recovery rate on unmet demand
and a linear demand response to discounts.  The rates live in
``DecisionSettings`` so they can be tuned without touching this module.
"""

from __future__ import annotations

import logging

from ..core.config import DecisionSettings
from ..models.schemas import BusinessImpact, InventoryRecommendation, WhatIfResult
from .forecasting_service import round_half_up
from .inventory_service import classify_risk

LOGGER = logging.getLogger(__name__)


def calculate_business_impact(
    current_stock: float,
    recommended_stock: float,
    forecasted_demand: float,
    unit_price: float,
    settings: DecisionSettings | None = None,
) -> BusinessImpact:
    """Estimate savings from trimming excess stock and revenue from restocking.

    ``forecasted_demand`` is accepted for interface symmetry with the
    recommendation; the estimate depends on stock levels and price only.
    """

    settings = settings or DecisionSettings()

    overstock_amount = max(0.0, current_stock - recommended_stock * settings.overstock_tolerance)
    understock_risk = max(0.0, recommended_stock - current_stock)

    overstock_reduction = round_half_up(overstock_amount / max(current_stock, 1) * 100)
    stockout_reduction = (
        settings.stockout_reduction_at_risk if understock_risk > 0 else settings.stockout_reduction_covered
    )
    cost_savings = round_half_up(overstock_amount * unit_price * settings.holding_cost_rate)

    revenue_increase = 0
    if understock_risk > 0:
        revenue_increase = round_half_up(understock_risk * settings.lost_sale_recovery_rate * unit_price)

    return BusinessImpact(
        overstock_reduction=overstock_reduction,
        stockout_reduction=stockout_reduction,
        cost_savings=cost_savings,
        revenue_increase=revenue_increase,
    )


def simulate_what_if(
    recommendation: InventoryRecommendation,
    stock: int,
    discount_percent: float,
    unit_price: float,
    settings: DecisionSettings | None = None,
) -> WhatIfResult:
    """Re-evaluate a recommendation under a hypothetical stock and discount.

    The forecast is not refitted: demand is scaled by the elasticity factor
    and the original safety stock is reused as is.
    """

    settings = settings or DecisionSettings()
    if stock < 0:
        raise ValueError("stock must be non-negative")
    if not 0 <= discount_percent <= settings.max_discount_percent:
        raise ValueError(
            f"discount_percent must be between 0 and {settings.max_discount_percent:g}"
        )

    discount = discount_percent / 100.0
    adjusted_demand = recommendation.forecasted_demand * (1 + discount * settings.demand_elasticity)
    adjusted_recommended_stock = round_half_up(adjusted_demand + recommendation.safety_stock)

    risk_level, _ = classify_risk(stock, adjusted_recommended_stock, adjusted_demand, settings)
    impact = calculate_business_impact(
        stock,
        adjusted_recommended_stock,
        adjusted_demand,
        unit_price * (1 - discount),
        settings,
    )

    LOGGER.debug(
        "What-if stock=%d discount=%.1f%%: demand=%.2f recommended=%d risk=%s",
        stock,
        discount_percent,
        adjusted_demand,
        adjusted_recommended_stock,
        risk_level,
    )

    return WhatIfResult(
        adjusted_demand=round_half_up(adjusted_demand),
        adjusted_recommended_stock=adjusted_recommended_stock,
        risk_level=risk_level,
        impact=impact,
    )
