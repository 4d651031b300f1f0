r"""backend\salesy\services\insight_service.py

Rule based explanations of a product's sales history and forecast."""

from __future__ import annotations

import logging
from typing import List, Sequence

import pandas as pd

from ..core.config import DecisionSettings
from ..models.schemas import ForecastResult, Insight, SalesDataPoint
from .forecasting_service import round_half_up

LOGGER = logging.getLogger(__name__)


def history_frame(history: Sequence[SalesDataPoint]) -> pd.DataFrame:
    """Return the history as a frame with ``quantity_sold`` and ``is_festival`` columns."""

    return pd.DataFrame(
        {
            "date": [point.date for point in history],
            "quantity_sold": pd.Series([point.quantity_sold for point in history], dtype=float),
            "is_festival": pd.Series([point.is_festival for point in history], dtype=bool),
        }
    )


class InsightService:
    """Emit independent trend, festival, volatility and confidence insights."""

    def __init__(self, settings: DecisionSettings | None = None) -> None:
        self.settings = settings or DecisionSettings()

    # ------------------------------------------------------------------
    def _trend(self, sales: pd.Series) -> Insight | None:
        window = self.settings.recent_window
        recent_avg = float(sales.tail(window).sum()) / window
        overall_avg = float(sales.mean())
        if overall_avg <= 0:
            return None

        change = (recent_avg - overall_avg) / overall_avg
        if abs(change) <= self.settings.trend_threshold:
            return None

        increasing = recent_avg > overall_avg
        trend = "increasing" if increasing else "decreasing"
        return Insight(
            type="trend",
            title=f"Demand is {trend}",
            description=(
                f"Recent sales ({round_half_up(recent_avg)} units/day) are "
                f"{abs(round_half_up(change * 100))}% {'higher' if increasing else 'lower'} than average."
            ),
            actionable=(
                "Increase inventory levels to meet growing demand"
                if increasing
                else "Consider promotional activities to boost sales"
            ),
            impact="positive" if increasing else "negative",
        )

    # ------------------------------------------------------------------
    def _festival(self, frame: pd.DataFrame) -> Insight | None:
        festival = frame.loc[frame["is_festival"], "quantity_sold"]
        regular = frame.loc[~frame["is_festival"], "quantity_sold"]
        if festival.empty or regular.empty:
            return None

        festival_avg = float(festival.mean())
        regular_avg = float(regular.mean())
        if festival_avg <= regular_avg * (1 + self.settings.festival_uplift_threshold):
            return None

        if regular_avg > 0:
            uplift = round_half_up((festival_avg - regular_avg) / regular_avg * 100)
            description = (
                f"Sales increase by {uplift}% during festivals "
                f"({round_half_up(festival_avg)} vs {round_half_up(regular_avg)} units/day)."
            )
        else:
            description = (
                f"Sales during festivals average {round_half_up(festival_avg)} units/day "
                "vs 0 otherwise."
            )
        return Insight(
            type="festival",
            title="Festival Impact Detected",
            description=description,
            actionable="Stock up 2-3 days before festivals. Plan promotional bundles.",
            impact="positive",
        )

    # ------------------------------------------------------------------
    def _volatility(self, sales: pd.Series) -> Insight | None:
        overall_avg = float(sales.mean())
        high = int(sales.max())
        low = int(sales.min())
        if not (
            high > overall_avg * self.settings.volatility_high_multiplier
            or low < overall_avg * self.settings.volatility_low_multiplier
        ):
            return None

        return Insight(
            type="anomaly",
            title="Sales Volatility Detected",
            description=f"Sales vary significantly ({low} to {high} units). High demand variability observed.",
            actionable="Maintain higher safety stock to buffer against unpredictable demand.",
            impact="neutral",
        )

    # ------------------------------------------------------------------
    def _confidence(self, forecast: ForecastResult) -> Insight | None:
        if forecast.confidence >= self.settings.low_confidence_threshold:
            return None

        return Insight(
            type="seasonal",
            title="Limited Forecast Confidence",
            description=(
                f"Model confidence is {round_half_up(forecast.confidence)}%. "
                "More historical data would improve accuracy."
            ),
            actionable="Continue collecting sales data. Review forecast weekly.",
            impact="neutral",
        )

    # ------------------------------------------------------------------
    def generate(self, history: Sequence[SalesDataPoint], forecast: ForecastResult) -> List[Insight]:
        if not history:
            raise ValueError("history must contain at least one observation")

        frame = history_frame(history)
        sales = frame["quantity_sold"]

        candidates = [
            self._trend(sales),
            self._festival(frame),
            self._volatility(sales),
            self._confidence(forecast),
        ]
        insights = [insight for insight in candidates if insight is not None]
        LOGGER.debug("Generated %d insights: %s", len(insights), [i.type for i in insights])
        return insights
