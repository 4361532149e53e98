"""
Pattern and anomaly detection over a prepared series.

Detectors:
- Outliers via Tukey fences on the interquartile range
- Cycles via interior peaks and troughs
- Change points via a sliding-window mean shift
- Volatility of relative period-over-period changes
"""

import math
import statistics
from collections.abc import Sequence

import structlog

from core.domain.models import (
    ChangePoint,
    CycleAnalysis,
    CyclePoint,
    OutlierPoint,
    PatternResult,
    PreparedPoint,
    VolatilityAnalysis,
)

logger = structlog.get_logger(__name__)

IQR_FENCE_MULTIPLIER = 1.5
MIN_POINTS_FOR_CYCLES = 6
CHANGE_POINT_THRESHOLD = 0.20
LOW_VOLATILITY = 0.05
MODERATE_VOLATILITY = 0.15


def detect_outliers(data_points: Sequence[PreparedPoint]) -> list[OutlierPoint]:
    """
    Flag points outside the Tukey fences.

    Quartiles are picked by simple index selection (sorted[floor(0.25n)] and
    sorted[floor(0.75n)]) rather than interpolated percentiles, so fences can
    differ slightly from numpy/pandas quantile-based IQR.
    """
    sorted_values = sorted(p.value for p in data_points)
    n = len(sorted_values)
    if n == 0:
        return []

    q1 = sorted_values[math.floor(n * 0.25)]
    q3 = sorted_values[math.floor(n * 0.75)]
    iqr = q3 - q1
    lower_bound = q1 - IQR_FENCE_MULTIPLIER * iqr
    upper_bound = q3 + IQR_FENCE_MULTIPLIER * iqr

    outliers = []
    for index, point in enumerate(data_points):
        if point.value < lower_bound:
            outlier_type = "low"
        elif point.value > upper_bound:
            outlier_type = "high"
        else:
            continue
        outliers.append(
            OutlierPoint(**point.model_dump(), index=index, outlier_type=outlier_type)
        )
    return outliers


def detect_cycles(data_points: Sequence[PreparedPoint]) -> CycleAnalysis:
    if len(data_points) < MIN_POINTS_FOR_CYCLES:
        return CycleAnalysis(detected=False, reason="Insufficient data for cycle detection")

    peaks: list[CyclePoint] = []
    troughs: list[CyclePoint] = []

    for i in range(1, len(data_points) - 1):
        prev = data_points[i - 1].value
        curr = data_points[i].value
        next_ = data_points[i + 1].value

        if curr > prev and curr > next_:
            peaks.append(CyclePoint(index=i, value=curr, period=data_points[i].period))
        elif curr < prev and curr < next_:
            troughs.append(CyclePoint(index=i, value=curr, period=data_points[i].period))

    detected = len(peaks) >= 2 and len(troughs) >= 2

    return CycleAnalysis(
        detected=detected,
        peaks=peaks,
        troughs=troughs,
        cycle_count=min(len(peaks), len(troughs)),
        average_cycle_length=average_cycle_length(peaks) if detected else None,
    )


def average_cycle_length(peaks: Sequence[CyclePoint]) -> float | None:
    """Mean distance, in periods, between consecutive peaks."""
    if len(peaks) < 2:
        return None
    intervals = [peaks[i].index - peaks[i - 1].index for i in range(1, len(peaks))]
    return sum(intervals) / len(intervals)


def detect_change_points(data_points: Sequence[PreparedPoint]) -> list[ChangePoint]:
    window_size = max(3, len(data_points) // 4)
    change_points = []

    for i in range(window_size, len(data_points) - window_size):
        before = data_points[i - window_size : i]
        after = data_points[i : i + window_size]

        before_mean = sum(p.value for p in before) / len(before)
        after_mean = sum(p.value for p in after) / len(after)

        # A shift away from zero has no relative size
        if before_mean == 0:
            continue

        change_ratio = abs(after_mean - before_mean) / before_mean
        if change_ratio > CHANGE_POINT_THRESHOLD:
            change_points.append(
                ChangePoint(
                    index=i,
                    period=data_points[i].period,
                    before_mean=before_mean,
                    after_mean=after_mean,
                    change_ratio=change_ratio,
                    change_type="increase" if after_mean > before_mean else "decrease",
                )
            )

    return change_points


def calculate_volatility(values: Sequence[float]) -> VolatilityAnalysis:
    """Standard deviation of relative period-over-period changes."""
    changes = [
        (values[i] - values[i - 1]) / values[i - 1]
        for i in range(1, len(values))
        if values[i - 1] != 0
    ]
    if not changes:
        return VolatilityAnalysis(volatility=0.0, classification="insufficient_data")

    volatility = math.sqrt(statistics.pvariance(changes))

    if volatility < LOW_VOLATILITY:
        classification = "low"
    elif volatility < MODERATE_VOLATILITY:
        classification = "moderate"
    else:
        classification = "high"

    absolute_changes = [abs(c) for c in changes]
    return VolatilityAnalysis(
        volatility=volatility,
        classification=classification,
        max_change=max(absolute_changes),
        average_change=sum(absolute_changes) / len(absolute_changes),
    )


class PatternDetector:
    """Runs every detector over the same prepared series."""

    def __init__(self) -> None:
        self.logger = logger.bind(component="pattern_detector")

    def detect(self, data_points: Sequence[PreparedPoint]) -> PatternResult:
        patterns = PatternResult(
            outliers=detect_outliers(data_points),
            cycles=detect_cycles(data_points),
            change_points=detect_change_points(data_points),
            volatility=calculate_volatility([p.value for p in data_points]),
        )

        self.logger.debug(
            "patterns_detected",
            outliers=len(patterns.outliers),
            cycles_detected=patterns.cycles.detected,
            change_points=len(patterns.change_points),
            volatility=patterns.volatility.classification,
        )
        return patterns
