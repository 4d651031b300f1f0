r"""backend\salesy\models\schemas.py

Pydantic models used throughout the API.

These models serve as both request payload validators and response
serialisation schemas.  Results produced by the decision engine are frozen:
every evaluation builds fresh objects and nothing mutates them afterwards.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Literal, Optional

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field

RiskLevel = Literal["Low", "Medium", "High"]
InsightType = Literal["trend", "festival", "anomaly", "seasonal"]
InsightImpact = Literal["positive", "negative", "neutral"]


class SalesDataPoint(BaseModel):
    """One day of sales for a single product."""

    model_config = ConfigDict(frozen=True)

    date: date
    quantity_sold: int = Field(..., ge=0, description="Units sold on the date")
    is_festival: bool = Field(False, description="Whether the date fell on a festival")


class PredictionPoint(BaseModel):
    """A fitted or forward predicted value."""

    model_config = ConfigDict(frozen=True)

    date: date
    value: int = Field(..., description="Predicted units, rounded half-up")


class ForecastMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    mae: float
    rmse: float
    mape: float = Field(..., description="Mean absolute percentage error, in percent")


class ForecastResult(BaseModel):
    """Output of one forecasting model over a sales history.

    ``predictions`` holds the fitted values followed by exactly one forward
    prediction for the day after evaluation.
    """

    model_config = ConfigDict(frozen=True)

    model: str
    predictions: List[PredictionPoint]
    metrics: ForecastMetrics
    confidence: float = Field(..., ge=0.0, le=100.0, description="max(0, 100 - mape)")

    @property
    def forward(self) -> PredictionPoint:
        return self.predictions[-1]

    @property
    def fitted(self) -> List[PredictionPoint]:
        return self.predictions[:-1]

    @property
    def yhat(self) -> pd.DataFrame:
        """Return the predictions as a ``pd.DataFrame`` flagged fitted/forward."""
        return pd.DataFrame(
            [
                {"date": point.date, "value": point.value, "forward": index == len(self.predictions) - 1}
                for index, point in enumerate(self.predictions)
            ],
            columns=["date", "value", "forward"],
        )


class InventoryRecommendation(BaseModel):
    model_config = ConfigDict(frozen=True)

    forecasted_demand: int = Field(..., ge=0)
    recommended_stock: int = Field(..., ge=0, description="forecasted_demand + safety_stock")
    safety_stock: int = Field(..., ge=0)
    risk_level: RiskLevel
    reasoning: str


class Insight(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: InsightType
    title: str
    description: str
    actionable: str
    impact: InsightImpact


class BusinessImpact(BaseModel):
    model_config = ConfigDict(frozen=True)

    overstock_reduction: int = Field(..., description="Share of stock that is excess, in percent")
    stockout_reduction: int = Field(..., description="Expected stockout reduction, in percent")
    cost_savings: int = Field(..., description="Holding cost avoided on excess stock")
    revenue_increase: int = Field(..., description="Lost sales recovered by restocking")


class WhatIfResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    adjusted_demand: int
    adjusted_recommended_stock: int
    risk_level: RiskLevel
    impact: BusinessImpact


class Evaluation(BaseModel):
    """Everything the "generate forecast" action produces for one product."""

    model_config = ConfigDict(frozen=True)

    forecast: ForecastResult
    recommendation: InventoryRecommendation
    insights: List[Insight]
    impact: BusinessImpact


class ProductRecord(BaseModel):
    product_id: str
    shop_id: str
    name: str
    category: Optional[str] = None
    brand: Optional[str] = None
    current_stock: int = Field(0, ge=0)
    unit_price: float = Field(0.0, ge=0.0)


class ForecastRecord(BaseModel):
    """Row appended to the forecast log after each generated forecast."""

    product_id: str
    shop_id: str
    forecast_date: date
    predicted_demand: float
    recommended_stock: int
    safety_stock: int
    risk_level: RiskLevel
    model_used: str
    confidence_score: float
    created_at: datetime


# ---------------------------------------------------------------------------
# Request bodies


class EvaluateRequest(BaseModel):
    history: List[SalesDataPoint] = Field(..., description="Sales history sorted by date")
    current_stock: int = Field(..., ge=0)
    unit_price: float = Field(..., ge=0.0)


class WhatIfRequest(BaseModel):
    recommendation: InventoryRecommendation
    stock: int = Field(..., ge=0, description="Hypothetical stock level")
    discount_percent: float = Field(0.0, ge=0.0)
    unit_price: float = Field(..., ge=0.0)
