"""
Trend model fitting over a prepared series.

Three models are supported:
- Linear: ordinary least squares over the period index
- Exponential: least squares on ln(y), keeping only positive values
- Moving average: simple smoothing followed by a linear fit of the smoothed series

Fits that cannot be produced from the data at hand are returned as
`Result.err(AnalysisError)` rather than raised.
"""

import math
from collections.abc import Sequence
from typing import Literal

import structlog

from core.domain.models import (
    AnalysisType,
    ExponentialTrend,
    LinearTrend,
    MovingAveragePoint,
    MovingAverageTrend,
    PreparedPoint,
    SmoothingEffect,
    TrendResult,
    TrendSignificance,
)
from core.services.pattern_detection import calculate_volatility
from core.services.result import AnalysisError, Result

logger = structlog.get_logger(__name__)

DIRECTION_THRESHOLD = 0.01
DEFAULT_MOVING_AVERAGE_WINDOW = 3

TrendFit = Result[TrendResult, AnalysisError]


def least_squares(xs: Sequence[float], ys: Sequence[float]) -> tuple[float, float, float]:
    """Return (slope, intercept, r_squared) of y on x."""
    n = len(xs)
    sum_x = sum(xs)
    sum_y = sum(ys)
    sum_xy = sum(x * y for x, y in zip(xs, ys, strict=True))
    sum_xx = sum(x * x for x in xs)

    denominator = n * sum_xx - sum_x * sum_x
    # A single point has no slope; the fit collapses to its mean
    slope = (n * sum_xy - sum_x * sum_y) / denominator if denominator != 0 else 0.0
    intercept = (sum_y - slope * sum_x) / n

    y_mean = sum_y / n
    total_sum_squares = sum((y - y_mean) ** 2 for y in ys)
    residual_sum_squares = sum(
        (y - (slope * x + intercept)) ** 2 for x, y in zip(xs, ys, strict=True)
    )
    # Constant series: nothing to explain, and the fit reproduces it exactly
    r_squared = 1 - residual_sum_squares / total_sum_squares if total_sum_squares != 0 else 1.0

    return slope, intercept, r_squared


def categorize_trend_strength(r_squared: float) -> Literal["weak", "moderate", "strong"]:
    if r_squared < 0.3:
        return "weak"
    if r_squared < 0.7:
        return "moderate"
    return "strong"


def calculate_trend_significance(r_squared: float, sample_size: int) -> TrendSignificance:
    """Simplified significance from goodness of fit and sample size."""
    if r_squared > 0.8:
        confidence_level: Literal["low", "medium", "high"] = "high"
    elif r_squared > 0.5:
        confidence_level = "medium"
    else:
        confidence_level = "low"

    return TrendSignificance(
        is_significant=r_squared > 0.5 and sample_size > 5,
        confidence_level=confidence_level,
        r_squared=r_squared,
        sample_size=sample_size,
    )


def fit_linear(values: Sequence[float]) -> LinearTrend:
    n = len(values)
    slope, intercept, r_squared = least_squares(range(n), values)

    if slope > DIRECTION_THRESHOLD:
        direction: Literal["increasing", "decreasing", "stable"] = "increasing"
    elif slope < -DIRECTION_THRESHOLD:
        direction = "decreasing"
    else:
        direction = "stable"

    return LinearTrend(
        slope=slope,
        intercept=intercept,
        r_squared=r_squared,
        trend_direction=direction,
        trend_strength=categorize_trend_strength(r_squared),
        equation=f"y = {slope:.4f}x + {intercept:.4f}",
        significance=calculate_trend_significance(r_squared, n),
    )


def fit_exponential(values: Sequence[float]) -> Result[ExponentialTrend, AnalysisError]:
    positive = [v for v in values if v > 0]
    if len(positive) < 3:
        return Result.err(
            AnalysisError(
                AnalysisType.EXPONENTIAL.value,
                "Insufficient positive values for exponential analysis",
            )
        )

    # Positive values are re-indexed 0..m-1
    ln_values = [math.log(v) for v in positive]
    b, ln_a, r_squared = least_squares(range(len(ln_values)), ln_values)
    a = math.exp(ln_a)

    if b > DIRECTION_THRESHOLD:
        direction: Literal["exponential_growth", "exponential_decay", "stable"] = (
            "exponential_growth"
        )
    elif b < -DIRECTION_THRESHOLD:
        direction = "exponential_decay"
    else:
        direction = "stable"

    return Result.ok(
        ExponentialTrend(
            a=a,
            b=b,
            growth_rate=(math.exp(b) - 1) * 100,
            r_squared=r_squared,
            trend_direction=direction,
            equation=f"y = {a:.4f} * e^({b:.4f}x)",
            significance=calculate_trend_significance(r_squared, len(positive)),
        )
    )


def fit_moving_average(
    data_points: Sequence[PreparedPoint], window: int = DEFAULT_MOVING_AVERAGE_WINDOW
) -> Result[MovingAverageTrend, AnalysisError]:
    if len(data_points) < window:
        return Result.err(
            AnalysisError(
                AnalysisType.MOVING_AVERAGE.value, "Insufficient data for moving average"
            )
        )

    moving_averages = [
        MovingAveragePoint(
            period=data_points[i].period,
            value=sum(p.value for p in data_points[i - window + 1 : i + 1]) / window,
            original_value=data_points[i].value,
        )
        for i in range(window - 1, len(data_points))
    ]
    smoothed_values = [ma.value for ma in moving_averages]

    original_volatility = calculate_volatility([p.value for p in data_points]).volatility
    smoothed_volatility = calculate_volatility(smoothed_values).volatility

    return Result.ok(
        MovingAverageTrend(
            window=window,
            moving_averages=moving_averages,
            trend=fit_linear(smoothed_values),
            smoothing_effect=SmoothingEffect(
                original_volatility=original_volatility,
                smoothed_volatility=smoothed_volatility,
                reduction_ratio=(
                    (original_volatility - smoothed_volatility) / original_volatility
                    if original_volatility > 0
                    else 0.0
                ),
            ),
        )
    )


class TrendModelFitter:
    """Dispatches a prepared series to the requested trend model."""

    def __init__(self, moving_average_window: int = DEFAULT_MOVING_AVERAGE_WINDOW) -> None:
        self.moving_average_window = moving_average_window
        self.logger = logger.bind(component="trend_model_fitter")

    def fit(
        self, data_points: Sequence[PreparedPoint], analysis_type: AnalysisType | str
    ) -> TrendFit:
        """
        Fit the requested model.

        Unknown or unsupported analysis types (including "seasonal") fall back
        to a linear fit.
        """
        values = [p.value for p in data_points]

        result: TrendFit
        if analysis_type == AnalysisType.EXPONENTIAL:
            result = fit_exponential(values)  # type: ignore[assignment]
        elif analysis_type == AnalysisType.MOVING_AVERAGE:
            result = fit_moving_average(data_points, self.moving_average_window)  # type: ignore[assignment]
        else:
            result = Result.ok(fit_linear(values))

        if result.is_err():
            error = result.unwrap_err()
            self.logger.warning(
                "trend_fit_failed",
                analysis_type=error.analysis_type,
                error=error.message,
                data_points=len(values),
            )
        return result
