"""
Trend analysis engine for clinical outcome measurements.

Pipeline (leaves first):
1. Prepare: sort, bucket by period, aggregate
2. Describe: descriptive statistics
3. Fit: linear, exponential or moving-average trend model
4. Detect: outliers, cycles, change points, volatility
5. Project: forecast and confidence intervals
6. Explain: insights, then recommendations

The engine is a pure function of its inputs. It holds no mutable state, does
no I/O, and is safe to call concurrently. Expected shortfalls (too few periods,
a model that cannot be fitted) come back as values; anything else is raised
as TrendAnalysisError.
"""

import asyncio
from collections.abc import Iterable, Mapping
from typing import Any

import structlog

from core.config import AnalysisConfig
from core.domain.models import (
    AnalysisMetadata,
    AnalysisType,
    InsufficientDataResult,
    RawPoint,
    TrendAnalysisOptions,
    TrendAnalysisResult,
    TrendFitFailure,
)
from core.services.data_preparation import prepare_data_for_analysis
from core.services.descriptive_stats import calculate_statistics
from core.services.forecasting import Forecaster, calculate_confidence_intervals
from core.services.insights import InsightGenerator, RecommendationGenerator
from core.services.pattern_detection import PatternDetector
from core.services.result import TrendAnalysisError
from core.services.seasonality import (
    MIN_POINTS_FOR_SEASONALITY,
    SeasonalityAnalyzer,
    StubSeasonalityAnalyzer,
)
from core.services.trend_models import TrendModelFitter

logger = structlog.get_logger(__name__)

AnalysisOutcome = TrendAnalysisResult | InsufficientDataResult
RawInput = RawPoint | Mapping[str, Any]


class TrendAnalysisEngine:
    """
    Orchestrates a single trend analysis run.

    Collaborators are built once from an immutable config; nothing on the
    instance changes between calls.
    """

    analysis_types = AnalysisType

    def __init__(
        self,
        config: AnalysisConfig | None = None,
        seasonality_analyzer: SeasonalityAnalyzer | None = None,
    ) -> None:
        self.config = config or AnalysisConfig()
        self.logger = logger.bind(component="trend_analysis_engine")

        self.fitter = TrendModelFitter(moving_average_window=self.config.moving_average_window)
        self.pattern_detector = PatternDetector()
        self.forecaster = Forecaster(periods=self.config.forecast_periods)
        self.insight_generator = InsightGenerator()
        self.recommendation_generator = RecommendationGenerator()
        self.seasonality_analyzer: SeasonalityAnalyzer = (
            seasonality_analyzer or StubSeasonalityAnalyzer()
        )

    def resolve_options(
        self, options: TrendAnalysisOptions | Mapping[str, Any] | None
    ) -> TrendAnalysisOptions:
        """Fill every option the caller did not set from the engine config."""
        if isinstance(options, TrendAnalysisOptions):
            given = options
        else:
            given = TrendAnalysisOptions.model_validate(dict(options or {}))

        defaults = {
            "analysis_type": self.config.default_analysis_type,
            "timeframe": self.config.default_timeframe,
            "granularity": self.config.default_granularity,
            "include_seasonality": self.config.include_seasonality,
            "confidence_level": self.config.confidence_level,
        }
        unset = {k: v for k, v in defaults.items() if k not in given.model_fields_set}
        return given.model_copy(update=unset)

    def analyze_trends(
        self,
        data_points: Iterable[RawInput],
        options: TrendAnalysisOptions | Mapping[str, Any] | None = None,
    ) -> AnalysisOutcome:
        """
        Analyze trends in outcome measure data.

        Returns InsufficientDataResult when fewer than `min_data_points`
        periods remain after bucketing. Raises TrendAnalysisError on any
        unexpected failure.
        """
        try:
            opts = self.resolve_options(options)
            points = [
                p if isinstance(p, RawPoint) else RawPoint.model_validate(p) for p in data_points
            ]
            log = self.logger.bind(
                analysis_type=opts.analysis_type.value, granularity=opts.granularity.value
            )
            log.info("trend_analysis_started", raw_points=len(points))

            prepared = prepare_data_for_analysis(points, opts.granularity)

            if len(prepared) < self.config.min_data_points:
                log.info(
                    "insufficient_data_for_trend_analysis",
                    data_point_count=len(prepared),
                    required=self.config.min_data_points,
                )
                return InsufficientDataResult(
                    message=(
                        "Insufficient data points for trend analysis "
                        f"(minimum {self.config.min_data_points} required)"
                    ),
                    data_point_count=len(prepared),
                )

            statistics = calculate_statistics(prepared)
            fit = self.fitter.fit(prepared, opts.analysis_type)
            patterns = self.pattern_detector.detect(prepared)

            seasonality = None
            if opts.include_seasonality and len(prepared) >= MIN_POINTS_FOR_SEASONALITY:
                seasonality = self.seasonality_analyzer.analyze(prepared)

            if fit.is_ok():
                trend = fit.unwrap()
                forecast = self.forecaster.forecast(prepared, trend)
                confidence_intervals = calculate_confidence_intervals(
                    prepared, trend, opts.confidence_level
                )
                trend_analysis: Any = trend
            else:
                error = fit.unwrap_err()
                forecast = []
                confidence_intervals = None
                trend_analysis = TrendFitFailure(type=error.analysis_type, error=error.message)

            insights = self.insight_generator.generate(trend_analysis, patterns, statistics)
            recommendations = self.recommendation_generator.generate(trend_analysis, insights)

            result = TrendAnalysisResult(
                data_point_count=len(prepared),
                timeframe=opts.timeframe,
                granularity=opts.granularity,
                statistics=statistics,
                trend_analysis=trend_analysis,
                pattern_analysis=patterns,
                seasonality_analysis=seasonality,
                forecast=forecast,
                confidence_intervals=confidence_intervals,
                insights=insights,
                recommendations=recommendations,
                metadata=AnalysisMetadata(
                    analysis_type=opts.analysis_type,
                    confidence_level=opts.confidence_level,
                ),
            )

            log.info(
                "trend_analysis_completed",
                data_point_count=result.data_point_count,
                trend_type=trend_analysis.type,
                fit_failed=fit.is_err(),
                insights=len(insights),
                recommendations=len(recommendations),
            )
            return result

        except Exception as e:
            self.logger.exception("trend_analysis_failed", error=str(e))
            raise TrendAnalysisError(str(e)) from e

    async def analyze_trends_async(
        self,
        data_points: Iterable[RawInput],
        options: TrendAnalysisOptions | Mapping[str, Any] | None = None,
        timeout_seconds: float | None = None,
    ) -> AnalysisOutcome:
        """
        Run the analysis on a worker thread so callers can impose a deadline.

        Raises TimeoutError when the deadline passes first.
        """
        timeout = timeout_seconds if timeout_seconds is not None else self.config.timeout_seconds
        # Materialize lazy inputs on the caller's side of the thread boundary
        points = list(data_points)

        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.analyze_trends, points, options),
                timeout=timeout,
            )
        except TimeoutError:
            self.logger.error(
                "trend_analysis_timeout", timeout_seconds=timeout, raw_points=len(points)
            )
            raise


_default_engine = TrendAnalysisEngine()


def analyze_trends(
    data_points: Iterable[RawInput],
    options: TrendAnalysisOptions | Mapping[str, Any] | None = None,
) -> AnalysisOutcome:
    """Analyze trends with a default-configured engine."""
    return _default_engine.analyze_trends(data_points, options)
