from __future__ import annotations

import math
from datetime import date, timedelta
from pathlib import Path
import sys
from typing import Sequence

import pytest

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from backend.salesy.core.config import DecisionSettings
from backend.salesy.models.schemas import SalesDataPoint
from backend.salesy.services.forecasting_service import (
    ExponentialSmoothingModel,
    ForecastingService,
    InsufficientHistoryError,
    LinearRegressionModel,
    MovingAverageModel,
    calculate_metrics,
    round_half_up,
    select_best_model,
)

AS_OF = date(2026, 10, 18)


def _history(values: Sequence[int], start: date = date(2026, 9, 1)) -> list[SalesDataPoint]:
    return [
        SalesDataPoint(date=start + timedelta(days=offset), quantity_sold=value)
        for offset, value in enumerate(values)
    ]


def test_round_half_up_rounds_halves_up() -> None:
    assert round_half_up(0.5) == 1
    assert round_half_up(2.5) == 3
    assert round_half_up(1.49) == 1
    assert round_half_up(12.67) == 13


def test_metrics_are_zero_for_identical_sequences() -> None:
    metrics = calculate_metrics([3, 0, 7, 12], [3, 0, 7, 12])

    assert metrics.mae == 0
    assert metrics.rmse == 0
    assert metrics.mape == 0


def test_metrics_compare_only_the_overlapping_prefix() -> None:
    metrics = calculate_metrics([10, 20, 30], [10, 20])

    assert metrics.mae == 0
    assert metrics.mape == 0


def test_zero_actuals_add_nothing_to_mape_but_count_in_denominator() -> None:
    metrics = calculate_metrics([0, 10], [5, 5])

    assert metrics.mae == pytest.approx(5.0)
    assert metrics.rmse == pytest.approx(5.0)
    # Only the second day contributes (5 / 10), averaged over both days.
    assert metrics.mape == pytest.approx(25.0)


def test_metrics_require_at_least_one_pair() -> None:
    with pytest.raises(ValueError):
        calculate_metrics([], [1, 2])


def test_moving_average_worked_example() -> None:
    history = _history([10, 12, 11, 13, 14, 12, 15, 16])

    result = MovingAverageModel(window=3).forecast(history, as_of=AS_OF)

    assert result.model == "Moving Average"
    assert [point.value for point in result.fitted] == [11, 12, 13, 13, 14]
    assert [point.date for point in result.fitted] == [point.date for point in history[3:]]
    assert result.forward.value == 14
    assert result.forward.date == AS_OF + timedelta(days=1)
    assert result.metrics.mae == pytest.approx(1.8)
    assert result.metrics.rmse == pytest.approx(math.sqrt(3.4))
    assert result.metrics.mape == pytest.approx(12.767, abs=1e-3)
    assert result.confidence == pytest.approx(87.233, abs=1e-3)


def test_moving_average_needs_more_points_than_its_window() -> None:
    with pytest.raises(InsufficientHistoryError):
        MovingAverageModel(window=7).forecast(_history([5] * 7), as_of=AS_OF)


def test_exponential_smoothing_seeds_with_first_value() -> None:
    result = ExponentialSmoothingModel(alpha=0.3).forecast(_history([10, 20, 10]), as_of=AS_OF)

    # 10 -> 0.3*20 + 0.7*10 = 13 -> 0.3*10 + 0.7*13 = 12.1
    assert [point.value for point in result.predictions] == [10, 13, 12, 12]
    assert len(result.fitted) == 3


def test_linear_regression_fits_a_perfect_trend() -> None:
    result = LinearRegressionModel().forecast(_history([2, 4, 6, 8, 10, 12, 14]), as_of=AS_OF)

    assert [point.value for point in result.fitted] == [2, 4, 6, 8, 10, 12, 14]
    assert result.forward.value == 16
    assert result.metrics.mape == 0
    assert result.confidence == 100


def test_linear_regression_never_predicts_negative_demand() -> None:
    result = LinearRegressionModel().forecast(_history([6, 4, 2, 0]), as_of=AS_OF)

    assert [point.value for point in result.fitted] == [6, 4, 2, 0]
    assert result.forward.value == 0


def test_linear_regression_rejects_single_observation() -> None:
    import numpy as np

    with pytest.raises(ValueError):
        LinearRegressionModel.coefficients(np.array([4.0]))


def test_selector_breaks_exact_ties_in_evaluation_order() -> None:
    result = select_best_model(_history([5] * 10), as_of=AS_OF)

    assert result.metrics.mape == 0
    assert result.model == "Moving Average"


def test_selector_skips_moving_average_without_enough_history() -> None:
    result = select_best_model(_history([5] * 7), as_of=AS_OF)

    assert result.model == "Exponential Smoothing"


def test_selector_returns_lowest_mape() -> None:
    history = _history([10 * day for day in range(1, 15)])

    result = select_best_model(history, as_of=AS_OF)

    assert result.model == "Linear Regression"
    assert result.forward.value == 150
    for model in (MovingAverageModel(7), ExponentialSmoothingModel(0.3)):
        assert model.forecast(history, as_of=AS_OF).metrics.mape > result.metrics.mape


def test_service_refuses_short_histories() -> None:
    service = ForecastingService(DecisionSettings())

    with pytest.raises(InsufficientHistoryError) as excinfo:
        service.forecast(_history([4, 5, 6, 5, 4, 5]), as_of=AS_OF)

    assert excinfo.value.available == 6
    assert excinfo.value.required == 7


def test_service_uses_configured_window() -> None:
    service = ForecastingService(DecisionSettings(moving_average_window=3, min_history_days=4))

    result = service.forecast(_history([7, 7, 7, 7]), as_of=AS_OF)

    assert result.model == "Moving Average"
    assert len(result.fitted) == 1


def test_yhat_frame_flags_the_forward_point() -> None:
    result = ExponentialSmoothingModel().forecast(_history([3, 4, 5]), as_of=AS_OF)

    frame = result.yhat

    assert list(frame.columns) == ["date", "value", "forward"]
    assert frame["forward"].tolist() == [False, False, False, True]
