"""
Forecasting and confidence intervals derived from a fitted trend.
"""

import math
from collections.abc import Sequence
from datetime import timedelta

import structlog

from core.domain.models import (
    ConfidenceInterval,
    ExponentialTrend,
    ForecastPoint,
    LinearTrend,
    PreparedPoint,
    TrendResult,
)
from core.services.descriptive_stats import population_variance
from core.services.trend_models import fit_linear

logger = structlog.get_logger(__name__)

DEFAULT_FORECAST_PERIODS = 4
DEFAULT_FORECAST_INTERVAL = timedelta(days=7)
INITIAL_FORECAST_CONFIDENCE = 0.9
CONFIDENCE_DECAY_PER_PERIOD = 0.1
MIN_FORECAST_CONFIDENCE = 0.1

# Two-sided z-scores; anything else falls back to the 90% value
Z_SCORES = {0.95: 1.96, 0.99: 2.58}
DEFAULT_Z_SCORE = 1.64


def forecast_confidence(period: int) -> float:
    return max(
        MIN_FORECAST_CONFIDENCE,
        INITIAL_FORECAST_CONFIDENCE - CONFIDENCE_DECAY_PER_PERIOD * period,
    )


def projection_model(
    data_points: Sequence[PreparedPoint],
    trend: TrendResult,
) -> LinearTrend | ExponentialTrend:
    """
    Closed-form model used to project future periods.

    A moving-average result is projected with a plain linear fit of the
    observed series; the smoothed series does not take part.
    """
    if isinstance(trend, LinearTrend | ExponentialTrend):
        return trend
    return fit_linear([p.value for p in data_points])


class Forecaster:
    """Projects future periods from a fitted trend."""

    def __init__(self, periods: int = DEFAULT_FORECAST_PERIODS) -> None:
        self.periods = periods
        self.logger = logger.bind(component="forecaster")

    def forecast(
        self,
        data_points: Sequence[PreparedPoint],
        trend: TrendResult,
        periods: int | None = None,
    ) -> list[ForecastPoint]:
        horizon = self.periods if periods is None else periods
        model = projection_model(data_points, trend)

        last_index = len(data_points) - 1
        last_timestamp = data_points[last_index].timestamp
        interval = (
            last_timestamp - data_points[last_index - 1].timestamp
            if len(data_points) > 1
            else DEFAULT_FORECAST_INTERVAL
        )

        forecast = [
            ForecastPoint(
                period=i,
                timestamp=last_timestamp + i * interval,
                predicted_value=max(0.0, model.predict(last_index + i)),
                confidence=forecast_confidence(i),
            )
            for i in range(1, horizon + 1)
        ]

        self.logger.debug(
            "forecast_generated",
            periods=horizon,
            model=model.type,
            projected_from=trend.type,
        )
        return forecast


def z_score(confidence_level: float) -> float:
    return Z_SCORES.get(confidence_level, DEFAULT_Z_SCORE)


def calculate_residuals(data_points: Sequence[PreparedPoint], trend: TrendResult) -> list[float]:
    """Observed minus predicted, per period index."""
    residuals = []
    for index, point in enumerate(data_points):
        if isinstance(trend, LinearTrend | ExponentialTrend):
            predicted = trend.predict(index)
        else:
            # Moving averages have no per-index closed form
            predicted = point.value
        residuals.append(point.value - predicted)
    return residuals


def calculate_confidence_intervals(
    data_points: Sequence[PreparedPoint],
    trend: TrendResult,
    confidence_level: float,
) -> ConfidenceInterval:
    residuals = calculate_residuals(data_points, trend)
    standard_error = math.sqrt(population_variance(residuals))

    return ConfidenceInterval(
        confidence_level=confidence_level,
        standard_error=standard_error,
        margin_of_error=z_score(confidence_level) * standard_error,
    )

