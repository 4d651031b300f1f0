r"""backend\salesy\services\forecasting_service.py

Short-horizon demand forecasting over a single product's daily sales.

Three elementary models compete on the same history: a trailing moving
average, simple exponential smoothing and an ordinary least squares trend.
Each model scores its fitted values against the actual history and the one
with the lowest MAPE wins.  The models form a closed set; selection always
considers every applicable member.
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from datetime import date, timedelta
from typing import ClassVar, List, Sequence, Tuple

import numpy as np

from ..core.config import DecisionSettings
from ..models.schemas import ForecastMetrics, ForecastResult, PredictionPoint, SalesDataPoint

LOGGER = logging.getLogger(__name__)


class InsufficientHistoryError(ValueError):
    """Raised when a history is too short to produce a meaningful forecast."""

    def __init__(self, available: int, required: int) -> None:
        self.available = available
        self.required = required
        super().__init__(
            f"Need at least {required} days of sales data to generate a forecast; got {available}."
        )


# ---------------------------------------------------------------------------
# Helper utilities (kept top-level for straightforward unit testing)


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3, -2.5 -> -2)."""

    return int(math.floor(value + 0.5))


def calculate_metrics(actual: Sequence[float], predicted: Sequence[float]) -> ForecastMetrics:
    """Return MAE, RMSE and MAPE over the overlapping prefix of both sequences.

    Days with zero actual demand add nothing to the MAPE sum but still count
    in its denominator.
    """

    n = min(len(actual), len(predicted))
    if n == 0:
        raise ValueError("metrics require at least one actual/predicted pair")

    y = np.asarray(actual[:n], dtype=float)
    yhat = np.asarray(predicted[:n], dtype=float)
    errors = np.abs(y - yhat)

    ratios = np.divide(errors, np.abs(y), out=np.zeros_like(errors), where=y != 0)

    return ForecastMetrics(
        mae=float(errors.sum() / n),
        rmse=float(math.sqrt(float((errors**2).sum()) / n)),
        mape=float(ratios.sum() / n * 100.0),
    )


def confidence_from_mape(mape: float) -> float:
    return max(0.0, 100.0 - mape)


def _values(history: Sequence[SalesDataPoint]) -> np.ndarray:
    return np.array([point.quantity_sold for point in history], dtype=float)


# ---------------------------------------------------------------------------
# Models


class ForecastModel(ABC):
    """A forecasting strategy producing fitted values and one forward value."""

    name: ClassVar[str]

    def min_history(self) -> int:
        return 2

    def applicable(self, history: Sequence[SalesDataPoint]) -> bool:
        return len(history) >= self.min_history()

    @abstractmethod
    def _fit(self, values: np.ndarray) -> Tuple[List[int], int, int]:
        """Return ``(fitted, forward, first_scored_index)`` for the history values."""

    def forecast(self, history: Sequence[SalesDataPoint], as_of: date | None = None) -> ForecastResult:
        if not self.applicable(history):
            raise InsufficientHistoryError(len(history), self.min_history())

        values = _values(history)
        fitted, forward, start = self._fit(values)
        tomorrow = (as_of or date.today()) + timedelta(days=1)

        predictions = [
            PredictionPoint(date=point.date, value=value)
            for point, value in zip(history[start:], fitted)
        ]
        predictions.append(PredictionPoint(date=tomorrow, value=forward))

        metrics = calculate_metrics(values[start:].tolist(), fitted)
        return ForecastResult(
            model=self.name,
            predictions=predictions,
            metrics=metrics,
            confidence=confidence_from_mape(metrics.mape),
        )


class MovingAverageModel(ForecastModel):
    name = "Moving Average"

    def __init__(self, window: int = 7) -> None:
        if window <= 0:
            raise ValueError("moving average window must be a positive integer")
        self.window = int(window)

    def min_history(self) -> int:
        # At least one fitted point is needed to score the model.
        return self.window + 1

    def _fit(self, values: np.ndarray) -> Tuple[List[int], int, int]:
        w = self.window
        fitted = [round_half_up(values[i - w : i].sum() / w) for i in range(w, len(values))]
        forward = round_half_up(values[-w:].sum() / w)
        return fitted, forward, w


class ExponentialSmoothingModel(ForecastModel):
    name = "Exponential Smoothing"

    def __init__(self, alpha: float = 0.3) -> None:
        if not 0.0 < alpha <= 1.0:
            raise ValueError("smoothing alpha must be in (0, 1]")
        self.alpha = float(alpha)

    def min_history(self) -> int:
        return 1

    def _fit(self, values: np.ndarray) -> Tuple[List[int], int, int]:
        level = float(values[0])
        fitted = [round_half_up(level)]
        for value in values[1:]:
            level = self.alpha * float(value) + (1.0 - self.alpha) * level
            fitted.append(round_half_up(level))
        return fitted, round_half_up(level), 0


class LinearRegressionModel(ForecastModel):
    """Least squares trend of quantity against index position (not calendar date)."""

    name = "Linear Regression"

    @staticmethod
    def coefficients(values: np.ndarray) -> Tuple[float, float]:
        n = len(values)
        x = np.arange(n, dtype=float)
        sum_x = float(x.sum())
        sum_y = float(values.sum())
        sum_xy = float((x * values).sum())
        sum_xx = float((x * x).sum())

        denominator = n * sum_xx - sum_x * sum_x
        if n <= 1 or denominator == 0:
            raise ValueError("linear regression requires at least two observations")

        slope = (n * sum_xy - sum_x * sum_y) / denominator
        intercept = (sum_y - slope * sum_x) / n
        return slope, intercept

    def _fit(self, values: np.ndarray) -> Tuple[List[int], int, int]:
        slope, intercept = self.coefficients(values)
        n = len(values)
        fitted = [max(0, round_half_up(slope * i + intercept)) for i in range(n)]
        forward = max(0, round_half_up(slope * n + intercept))
        return fitted, forward, 0


def build_models(settings: DecisionSettings | None = None) -> Tuple[ForecastModel, ...]:
    """Return the candidate models in tie-break order."""

    settings = settings or DecisionSettings()
    return (
        MovingAverageModel(window=settings.moving_average_window),
        ExponentialSmoothingModel(alpha=settings.smoothing_alpha),
        LinearRegressionModel(),
    )


def select_best_model(
    history: Sequence[SalesDataPoint],
    settings: DecisionSettings | None = None,
    as_of: date | None = None,
) -> ForecastResult:
    """Run every applicable model and return the result with the lowest MAPE.

    Ties keep evaluation order: Moving Average, Exponential Smoothing, then
    Linear Regression.
    """

    results: List[ForecastResult] = []
    for model in build_models(settings):
        if not model.applicable(history):
            LOGGER.debug(
                "Skipping %s: %d points available, %d required",
                model.name,
                len(history),
                model.min_history(),
            )
            continue
        results.append(model.forecast(history, as_of=as_of))

    if not results:
        raise InsufficientHistoryError(len(history), 2)

    results.sort(key=lambda result: result.metrics.mape)
    return results[0]


# ---------------------------------------------------------------------------
# Core service implementation


class ForecastingService:
    """Guard the history length and pick the best model for a product."""

    def __init__(self, settings: DecisionSettings | None = None) -> None:
        self.settings = settings or DecisionSettings()

    def forecast(self, history: Sequence[SalesDataPoint], as_of: date | None = None) -> ForecastResult:
        required = self.settings.min_history_days
        if len(history) < required:
            raise InsufficientHistoryError(len(history), required)

        best = select_best_model(history, self.settings, as_of=as_of)
        LOGGER.info(
            "Selected %s over %d days: mape=%.2f confidence=%.2f forward=%d",
            best.model,
            len(history),
            best.metrics.mape,
            best.confidence,
            best.forward.value,
        )
        return best
