"""
Tests for the insight and recommendation rule tables.
"""

import math
from datetime import UTC, datetime, timedelta

import pytest

from core.domain.models import (
    ChangePoint,
    CycleAnalysis,
    CyclePoint,
    LinearTrend,
    PatternResult,
    PreparedPoint,
    Statistics,
    TrendFitFailure,
    VolatilityAnalysis,
)
from core.services.descriptive_stats import calculate_statistics
from core.services.insights import InsightGenerator, RecommendationGenerator
from core.services.pattern_detection import PatternDetector, detect_outliers
from core.services.trend_models import fit_exponential, fit_linear, fit_moving_average


def make_points(values: list[float]) -> list[PreparedPoint]:
    start = datetime(2024, 1, 7, tzinfo=UTC)
    return [
        PreparedPoint(
            period=(start + timedelta(weeks=i)).date().isoformat(),
            timestamp=start + timedelta(weeks=i),
            value=value,
            count=1,
            min=value,
            max=value,
            variance=0.0,
        )
        for i, value in enumerate(values)
    ]


def statistics_with_change(percentage_change: float) -> Statistics:
    return calculate_statistics(make_points([100.0, 100.0 + percentage_change]))


@pytest.fixture
def quiet_patterns() -> PatternResult:
    return PatternResult(
        outliers=[],
        cycles=CycleAnalysis(detected=False),
        change_points=[],
        volatility=VolatilityAnalysis(volatility=0.01, classification="low"),
    )


@pytest.fixture
def quiet_statistics() -> Statistics:
    return statistics_with_change(2.0)


@pytest.fixture
def insight_generator() -> InsightGenerator:
    return InsightGenerator()


@pytest.fixture
def recommendation_generator() -> RecommendationGenerator:
    return RecommendationGenerator()


class TestTrendInsights:
    """Direction of the fitted model."""

    def test_significant_upward_trend(
        self,
        insight_generator: InsightGenerator,
        recommendation_generator: RecommendationGenerator,
        quiet_patterns: PatternResult,
        quiet_statistics: Statistics,
    ) -> None:
        trend = fit_linear([float(i) for i in range(1, 11)])

        insights = insight_generator.generate(trend, quiet_patterns, quiet_statistics)
        recommendations = recommendation_generator.generate(trend, insights)

        assert len(insights) == 1
        assert insights[0].type == "trend"
        assert insights[0].message == "Performance shows an strong upward trend"
        assert insights[0].impact == "positive"
        assert insights[0].confidence == "high"
        assert [(r.priority, r.category) for r in recommendations] == [("medium", "maintenance")]

    def test_short_downward_trend_asks_for_more_data(
        self,
        insight_generator: InsightGenerator,
        recommendation_generator: RecommendationGenerator,
        quiet_patterns: PatternResult,
        quiet_statistics: Statistics,
    ) -> None:
        trend = fit_linear([4.0, 3.0, 2.0, 1.0])

        insights = insight_generator.generate(trend, quiet_patterns, quiet_statistics)
        recommendations = recommendation_generator.generate(trend, insights)

        assert insights[0].message == "Performance shows a strong downward trend"
        assert insights[0].impact == "negative"
        assert [(r.priority, r.category) for r in recommendations] == [
            ("high", "improvement"),
            ("low", "data_quality"),
        ]
        assert recommendations[0].action == "Investigate causes of declining performance"

    def test_stable_trend_has_no_trend_insight(
        self,
        insight_generator: InsightGenerator,
        recommendation_generator: RecommendationGenerator,
        quiet_patterns: PatternResult,
        quiet_statistics: Statistics,
    ) -> None:
        trend = fit_linear([5.0] * 10)

        insights = insight_generator.generate(trend, quiet_patterns, quiet_statistics)

        assert insights == []
        assert recommendation_generator.generate(trend, insights) == []

    def test_moving_average_uses_smoothed_direction(
        self,
        insight_generator: InsightGenerator,
        quiet_patterns: PatternResult,
        quiet_statistics: Statistics,
    ) -> None:
        trend = fit_moving_average(make_points([1.0, 3.0, 2.0, 4.0, 3.0, 5.0])).unwrap()

        insights = insight_generator.generate(trend, quiet_patterns, quiet_statistics)

        assert insights[0].type == "trend"
        assert insights[0].impact == "positive"

    def test_exponential_strength_uses_r_squared_bands(
        self,
        insight_generator: InsightGenerator,
        quiet_patterns: PatternResult,
        quiet_statistics: Statistics,
    ) -> None:
        trend = fit_exponential([math.exp(0.3 * i) for i in range(8)]).unwrap()

        insights = insight_generator.generate(trend, quiet_patterns, quiet_statistics)

        assert insights[0].message == "Performance shows an strong upward trend"

    def test_failed_fit_yields_no_trend_records(
        self,
        insight_generator: InsightGenerator,
        recommendation_generator: RecommendationGenerator,
        quiet_patterns: PatternResult,
        quiet_statistics: Statistics,
    ) -> None:
        failure = TrendFitFailure(type="exponential", error="no data")

        insights = insight_generator.generate(failure, quiet_patterns, quiet_statistics)

        assert insights == []
        assert recommendation_generator.generate(failure, insights) == []


class TestPatternInsights:
    """Findings from pattern detection and statistics."""

    @pytest.fixture
    def stable_trend(self) -> LinearTrend:
        return fit_linear([5.0] * 10)

    def test_high_volatility(
        self,
        insight_generator: InsightGenerator,
        recommendation_generator: RecommendationGenerator,
        quiet_patterns: PatternResult,
        quiet_statistics: Statistics,
        stable_trend: LinearTrend,
    ) -> None:
        patterns = quiet_patterns.model_copy(
            update={"volatility": VolatilityAnalysis(volatility=0.4, classification="high")}
        )

        insights = insight_generator.generate(stable_trend, patterns, quiet_statistics)
        recommendations = recommendation_generator.generate(stable_trend, insights)

        assert [(i.type, i.impact, i.confidence) for i in insights] == [
            ("volatility", "neutral", "high")
        ]
        assert [(r.priority, r.category) for r in recommendations] == [("medium", "consistency")]

    def test_outliers_are_counted(
        self,
        insight_generator: InsightGenerator,
        recommendation_generator: RecommendationGenerator,
        quiet_patterns: PatternResult,
        quiet_statistics: Statistics,
        stable_trend: LinearTrend,
    ) -> None:
        outliers = detect_outliers(make_points([1, 2, 3, 4, 5, 100, -100]))
        patterns = quiet_patterns.model_copy(update={"outliers": outliers})

        insights = insight_generator.generate(stable_trend, patterns, quiet_statistics)
        recommendations = recommendation_generator.generate(stable_trend, insights)

        assert insights[0].message == "2 outlier(s) detected"
        assert recommendations[0].action == "Investigate outlier events for learning opportunities"

    def test_latest_change_point_drives_the_insight(
        self,
        insight_generator: InsightGenerator,
        recommendation_generator: RecommendationGenerator,
        quiet_patterns: PatternResult,
        quiet_statistics: Statistics,
        stable_trend: LinearTrend,
    ) -> None:
        change_points = [
            ChangePoint(
                index=4,
                period="2024-02-04",
                before_mean=10.0,
                after_mean=15.0,
                change_ratio=0.5,
                change_type="increase",
            ),
            ChangePoint(
                index=9,
                period="2024-03-10",
                before_mean=15.0,
                after_mean=9.0,
                change_ratio=0.4,
                change_type="decrease",
            ),
        ]
        patterns = quiet_patterns.model_copy(update={"change_points": change_points})

        insights = insight_generator.generate(stable_trend, patterns, quiet_statistics)
        recommendations = recommendation_generator.generate(stable_trend, insights)

        assert insights[0].message == "Significant decrease detected recently"
        assert insights[0].impact == "negative"
        assert [(r.priority, r.category) for r in recommendations] == [("high", "investigation")]

    def test_recent_increase_needs_no_review(
        self,
        insight_generator: InsightGenerator,
        recommendation_generator: RecommendationGenerator,
        quiet_patterns: PatternResult,
        quiet_statistics: Statistics,
        stable_trend: LinearTrend,
    ) -> None:
        change_point = ChangePoint(
            index=4,
            period="2024-02-04",
            before_mean=10.0,
            after_mean=15.0,
            change_ratio=0.5,
            change_type="increase",
        )
        patterns = quiet_patterns.model_copy(update={"change_points": [change_point]})

        insights = insight_generator.generate(stable_trend, patterns, quiet_statistics)

        assert insights[0].impact == "positive"
        assert recommendation_generator.generate(stable_trend, insights) == []

    def test_detected_cycles(
        self,
        insight_generator: InsightGenerator,
        quiet_patterns: PatternResult,
        quiet_statistics: Statistics,
        stable_trend: LinearTrend,
    ) -> None:
        peaks = [CyclePoint(index=i, value=13.0, period=f"p{i}") for i in (1, 5, 9)]
        troughs = [CyclePoint(index=i, value=7.0, period=f"p{i}") for i in (3, 7)]
        patterns = quiet_patterns.model_copy(
            update={
                "cycles": CycleAnalysis(
                    detected=True,
                    peaks=peaks,
                    troughs=troughs,
                    cycle_count=2,
                    average_cycle_length=4.0,
                )
            }
        )

        insights = insight_generator.generate(stable_trend, patterns, quiet_statistics)

        assert [i.type for i in insights] == ["cycle"]
        assert "4.0 periods" in insights[0].message

    @pytest.mark.parametrize(
        "change,impact,verb", [(10.0, "positive", "improved"), (-25.0, "negative", "declined")]
    )
    def test_overall_change(
        self,
        insight_generator: InsightGenerator,
        quiet_patterns: PatternResult,
        stable_trend: LinearTrend,
        change: float,
        impact: str,
        verb: str,
    ) -> None:
        insights = insight_generator.generate(
            stable_trend, quiet_patterns, statistics_with_change(change)
        )

        assert [i.type for i in insights] == ["overall_change"]
        assert insights[0].impact == impact
        assert verb in insights[0].message

    def test_small_overall_change_is_ignored(
        self,
        insight_generator: InsightGenerator,
        quiet_patterns: PatternResult,
        stable_trend: LinearTrend,
    ) -> None:
        insights = insight_generator.generate(
            stable_trend, quiet_patterns, statistics_with_change(9.9)
        )

        assert insights == []


def test_rule_order_is_deterministic(
    insight_generator: InsightGenerator, recommendation_generator: RecommendationGenerator
) -> None:
    points = make_points([10.0, 20.0, 10.0, 20.0, 10.0, 20.0, 10.0, 60.0])

    trend = fit_linear([p.value for p in points])
    patterns = PatternDetector().detect(points)
    statistics = calculate_statistics(points)

    first = insight_generator.generate(trend, patterns, statistics)
    second = insight_generator.generate(trend, patterns, statistics)

    assert first == second
    assert recommendation_generator.generate(trend, first) == (
        recommendation_generator.generate(trend, second)
    )
    order = ["trend", "volatility", "outliers", "change_point", "cycle", "overall_change"]
    assert [i.type for i in first] == sorted((i.type for i in first), key=order.index)
