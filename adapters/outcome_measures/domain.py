"""
Outcome-measure specific models extending the core analysis framework.

Outcome measures are stored per quality indicator (readmission rate, fall
rate, patient satisfaction, ...) as normalized scores in [0, 1]. Trends only
make sense within one indicator, so records are grouped before analysis.
"""

from collections import defaultdict
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Literal

import structlog
from pydantic import BaseModel, Field

from core.domain.models import (
    MovingAverageTrend,
    RawPoint,
    TrendAnalysisOptions,
    TrendFitFailure,
)
from core.services.trend_engine import AnalysisOutcome, TrendAnalysisEngine

logger = structlog.get_logger(__name__)


class QualityIndicator(str, Enum):
    """Quality indicators tracked for home-health outcome reporting."""

    READMISSION_RATE = "readmission-rate"
    INFECTION_RATE = "infection-rate"
    FALL_RATE = "fall-rate"
    PRESSURE_ULCER_RATE = "pressure-ulcer-rate"
    MEDICATION_ERROR_RATE = "medication-error-rate"
    PATIENT_SATISFACTION = "patient-satisfaction"
    LENGTH_OF_STAY = "length-of-stay"
    MORTALITY_RATE = "mortality-rate"
    PAIN_MANAGEMENT = "pain-management"
    FUNCTIONAL_IMPROVEMENT = "functional-improvement"
    DISCHARGE_TO_COMMUNITY = "discharge-to-community"
    EMERGENCY_DEPARTMENT_VISITS = "emergency-department-visits"


# For these indicators a falling value is the desired outcome
LOWER_IS_BETTER = {
    QualityIndicator.READMISSION_RATE,
    QualityIndicator.INFECTION_RATE,
    QualityIndicator.FALL_RATE,
    QualityIndicator.PRESSURE_ULCER_RATE,
    QualityIndicator.MEDICATION_ERROR_RATE,
    QualityIndicator.LENGTH_OF_STAY,
    QualityIndicator.MORTALITY_RATE,
    QualityIndicator.EMERGENCY_DEPARTMENT_VISITS,
}


class OutcomeMeasureRecord(BaseModel):
    """A single stored outcome measure reading."""

    indicator_type: str = Field(min_length=1)
    category: Literal["clinical", "functional", "satisfaction"]
    value: float = Field(ge=0.0, le=1.0, description="Normalized score")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    confidence: float | None = Field(None, ge=0.0, description="Aggregation weight")
    patient_id: str | None = None

    def to_raw_point(self) -> RawPoint:
        return RawPoint(timestamp=self.timestamp, value=self.value, confidence=self.confidence)


def group_by_indicator(records: Iterable[OutcomeMeasureRecord]) -> dict[str, list[RawPoint]]:
    """Split records into one raw series per indicator, preserving input order."""
    grouped: defaultdict[str, list[RawPoint]] = defaultdict(list)
    for record in records:
        grouped[record.indicator_type].append(record.to_raw_point())
    return dict(grouped)


def analyze_indicator_trends(
    records: Iterable[OutcomeMeasureRecord],
    options: TrendAnalysisOptions | Mapping[str, Any] | None = None,
    engine: TrendAnalysisEngine | None = None,
) -> dict[str, AnalysisOutcome]:
    """Run one trend analysis per indicator."""
    engine = engine or TrendAnalysisEngine()
    grouped = group_by_indicator(records)

    results = {
        indicator: engine.analyze_trends(points, options) for indicator, points in grouped.items()
    }
    logger.info(
        "indicator_trends_analyzed",
        indicators=len(results),
        insufficient=sum(1 for r in results.values() if r.has_insufficient_data),
    )
    return results


def indicator_outlook(
    indicator: str, outcome: AnalysisOutcome
) -> Literal["improving", "stable", "declining", "unknown"]:
    """
    Clinical reading of a trend direction.

    A falling readmission or fall rate is an improvement; a falling
    satisfaction score is not.
    """
    if outcome.has_insufficient_data:
        return "unknown"

    trend = outcome.trend_analysis
    if isinstance(trend, MovingAverageTrend):
        direction = trend.trend.trend_direction
    elif isinstance(trend, TrendFitFailure):
        return "unknown"
    else:
        direction = trend.trend_direction

    if direction in {"increasing", "exponential_growth"}:
        rising = True
    elif direction in {"decreasing", "exponential_decay"}:
        rising = False
    else:
        return "stable"

    lower_is_better = indicator in {i.value for i in LOWER_IS_BETTER}
    return "improving" if rising != lower_is_better else "declining"
