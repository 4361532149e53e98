"""
Domain models for outcome trend analysis.

These models represent the core analysis concepts and are framework-agnostic.
They use Pydantic for validation but carry no I/O or persistence concerns.
"""

import math
from datetime import UTC, datetime
from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class AnalysisType(str, Enum):
    """Trend models the engine can fit."""

    LINEAR = "linear"
    EXPONENTIAL = "exponential"
    SEASONAL = "seasonal"
    MOVING_AVERAGE = "moving_average"


class Granularity(str, Enum):
    """Bucket sizes used when aggregating raw measurements."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


ImpactLevel = Literal["positive", "negative", "neutral"]
ConfidenceLabel = Literal["low", "medium", "high"]
Priority = Literal["high", "medium", "low"]


class RawPoint(BaseModel):
    """Single outcome measurement as received from the caller."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    value: float = Field(allow_inf_nan=False)
    confidence: float | None = Field(
        default=None, ge=0.0, allow_inf_nan=False, description="Aggregation weight, not a CI"
    )

    @field_validator("timestamp")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v.astimezone(UTC)

    @property
    def weight(self) -> float:
        # Missing or zero confidence counts as a full-weight measurement
        return self.confidence or 1.0


class PreparedPoint(BaseModel):
    """One aggregated bucket of raw measurements."""

    model_config = ConfigDict(frozen=True)

    period: str = Field(description="Bucket key, e.g. 2024-03-03 or 2024-03")
    timestamp: datetime
    value: float = Field(description="Confidence-weighted mean of the bucket")
    count: int = Field(gt=0)
    min: float
    max: float
    variance: float = Field(ge=0.0)


class Statistics(BaseModel):
    """Descriptive statistics over a prepared series."""

    count: int
    mean: float
    median: float
    min: float
    max: float
    range: float
    variance: float
    standard_deviation: float
    coefficient_of_variation: float
    first_value: float
    last_value: float
    total_change: float
    percentage_change: float


class TrendSignificance(BaseModel):
    """Simplified significance of a fitted trend."""

    is_significant: bool
    confidence_level: ConfidenceLabel
    r_squared: float
    sample_size: int


class LinearTrend(BaseModel):
    """Ordinary least squares fit over the period index."""

    type: Literal["linear"] = "linear"
    slope: float
    intercept: float
    r_squared: float
    trend_direction: Literal["increasing", "decreasing", "stable"]
    trend_strength: Literal["weak", "moderate", "strong"]
    equation: str
    significance: TrendSignificance

    def predict(self, index: int) -> float:
        return self.slope * index + self.intercept


class ExponentialTrend(BaseModel):
    """Log-linearized fit of y = a * e^(b * x)."""

    type: Literal["exponential"] = "exponential"
    a: float
    b: float
    growth_rate: float = Field(description="Percent change per period")
    r_squared: float
    trend_direction: Literal["exponential_growth", "exponential_decay", "stable"]
    equation: str
    significance: TrendSignificance

    def predict(self, index: int) -> float:
        return self.a * math.exp(self.b * index)


class MovingAveragePoint(BaseModel):
    period: str
    value: float
    original_value: float


class SmoothingEffect(BaseModel):
    original_volatility: float
    smoothed_volatility: float
    reduction_ratio: float


class MovingAverageTrend(BaseModel):
    """Simple moving average with a linear trend fitted over the smoothed series."""

    type: Literal["moving_average"] = "moving_average"
    window: int = Field(gt=0)
    moving_averages: list[MovingAveragePoint]
    trend: LinearTrend
    smoothing_effect: SmoothingEffect


class TrendFitFailure(BaseModel):
    """Serializable record of a fit that could not be produced."""

    type: Literal["linear", "exponential", "moving_average"]
    error: str


TrendResult = Annotated[
    LinearTrend | ExponentialTrend | MovingAverageTrend, Field(discriminator="type")
]


class OutlierPoint(PreparedPoint):
    index: int
    is_outlier: bool = True
    outlier_type: Literal["low", "high"] | None


class CyclePoint(BaseModel):
    index: int
    value: float
    period: str


class CycleAnalysis(BaseModel):
    detected: bool
    peaks: list[CyclePoint] = Field(default_factory=list)
    troughs: list[CyclePoint] = Field(default_factory=list)
    cycle_count: int = 0
    average_cycle_length: float | None = None
    reason: str | None = None


class ChangePoint(BaseModel):
    index: int
    period: str
    before_mean: float
    after_mean: float
    change_ratio: float
    change_type: Literal["increase", "decrease"]


class VolatilityAnalysis(BaseModel):
    volatility: float
    classification: Literal["low", "moderate", "high", "insufficient_data"]
    max_change: float = 0.0
    average_change: float = 0.0


class PatternResult(BaseModel):
    outliers: list[OutlierPoint]
    cycles: CycleAnalysis
    change_points: list[ChangePoint]
    volatility: VolatilityAnalysis


class SeasonalityAnalysis(BaseModel):
    detected: bool
    method: str
    period_length: int | None = None
    reason: str | None = None


class ForecastPoint(BaseModel):
    period: int = Field(ge=1)
    timestamp: datetime
    predicted_value: float = Field(ge=0.0)
    confidence: float = Field(ge=0.1, le=0.9)


class ConfidenceInterval(BaseModel):
    """Symmetric residual-based margin around any predicted value."""

    confidence_level: float
    standard_error: float
    margin_of_error: float

    def lower_bound(self, value: float) -> float:
        return value - self.margin_of_error

    def upper_bound(self, value: float) -> float:
        return value + self.margin_of_error


class Insight(BaseModel):
    type: str
    message: str
    impact: ImpactLevel
    confidence: ConfidenceLabel


class Recommendation(BaseModel):
    priority: Priority
    category: str
    action: str
    rationale: str


class AnalysisMetadata(BaseModel):
    analyzed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    analysis_type: AnalysisType
    confidence_level: float


class TrendAnalysisResult(BaseModel):
    """Complete output of a single trend analysis run."""

    has_insufficient_data: Literal[False] = False
    data_point_count: int
    timeframe: str
    granularity: Granularity
    statistics: Statistics
    trend_analysis: TrendResult | TrendFitFailure
    pattern_analysis: PatternResult
    seasonality_analysis: SeasonalityAnalysis | None = None
    forecast: list[ForecastPoint]
    confidence_intervals: ConfidenceInterval | None = None
    insights: list[Insight]
    recommendations: list[Recommendation]
    metadata: AnalysisMetadata


class InsufficientDataResult(BaseModel):
    """Returned instead of an analysis when too few periods are available."""

    has_insufficient_data: Literal[True] = True
    message: str
    data_point_count: int


class TrendAnalysisOptions(BaseModel):
    """Caller-supplied analysis options; camelCase keys are accepted too."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    analysis_type: AnalysisType = AnalysisType.LINEAR
    timeframe: str = Field(default="6months", description="Echoed back, not computed from")
    granularity: Granularity = Granularity.WEEKLY
    include_seasonality: bool = True
    confidence_level: float = Field(default=0.95, gt=0.0, lt=1.0)
