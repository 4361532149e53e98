"""
Rule-based insights and recommendations.

Both generators are deterministic: identical analysis inputs always produce
the same records in the same order.
"""

from collections.abc import Sequence

from core.domain.models import (
    ConfidenceLabel,
    ExponentialTrend,
    Insight,
    LinearTrend,
    MovingAverageTrend,
    PatternResult,
    Recommendation,
    Statistics,
    TrendFitFailure,
    TrendResult,
)
from core.services.trend_models import categorize_trend_strength

UPWARD_DIRECTIONS = {"increasing", "exponential_growth"}
DOWNWARD_DIRECTIONS = {"decreasing", "exponential_decay"}
OVERALL_CHANGE_THRESHOLD_PERCENT = 10.0


def _direction_model(trend: TrendResult | TrendFitFailure) -> LinearTrend | ExponentialTrend | None:
    """The fitted model whose direction describes the series."""
    if isinstance(trend, MovingAverageTrend):
        return trend.trend
    if isinstance(trend, LinearTrend | ExponentialTrend):
        return trend
    return None


def _strength(model: LinearTrend | ExponentialTrend) -> str:
    if isinstance(model, LinearTrend):
        return model.trend_strength
    return categorize_trend_strength(model.r_squared)


class InsightGenerator:
    """Turns trend, pattern and statistics findings into short statements."""

    def generate(
        self,
        trend: TrendResult | TrendFitFailure,
        patterns: PatternResult,
        statistics: Statistics,
    ) -> list[Insight]:
        insights: list[Insight] = []

        model = _direction_model(trend)
        if model is not None:
            confidence: ConfidenceLabel = model.significance.confidence_level
            if model.trend_direction in UPWARD_DIRECTIONS:
                insights.append(
                    Insight(
                        type="trend",
                        message=f"Performance shows an {_strength(model)} upward trend",
                        impact="positive",
                        confidence=confidence,
                    )
                )
            elif model.trend_direction in DOWNWARD_DIRECTIONS:
                insights.append(
                    Insight(
                        type="trend",
                        message=f"Performance shows a {_strength(model)} downward trend",
                        impact="negative",
                        confidence=confidence,
                    )
                )

        if patterns.volatility.classification == "high":
            insights.append(
                Insight(
                    type="volatility",
                    message="High volatility detected - performance is inconsistent",
                    impact="neutral",
                    confidence="high",
                )
            )

        if patterns.outliers:
            insights.append(
                Insight(
                    type="outliers",
                    message=f"{len(patterns.outliers)} outlier(s) detected",
                    impact="neutral",
                    confidence="high",
                )
            )

        if patterns.change_points:
            last_change = patterns.change_points[-1]
            insights.append(
                Insight(
                    type="change_point",
                    message=f"Significant {last_change.change_type} detected recently",
                    impact="positive" if last_change.change_type == "increase" else "negative",
                    confidence="medium",
                )
            )

        if patterns.cycles.detected:
            insights.append(
                Insight(
                    type="cycle",
                    message=(
                        "Recurring pattern detected with an average cycle of "
                        f"{patterns.cycles.average_cycle_length:.1f} periods"
                    ),
                    impact="neutral",
                    confidence="medium",
                )
            )

        if abs(statistics.percentage_change) >= OVERALL_CHANGE_THRESHOLD_PERCENT:
            rising = statistics.percentage_change > 0
            insights.append(
                Insight(
                    type="overall_change",
                    message=(
                        f"Outcome {'improved' if rising else 'declined'} by "
                        f"{abs(statistics.percentage_change):.1f}% over the analyzed period"
                    ),
                    impact="positive" if rising else "negative",
                    confidence="medium",
                )
            )

        return insights


class RecommendationGenerator:
    """Maps insights to prioritized action items."""

    def generate(
        self, trend: TrendResult | TrendFitFailure, insights: Sequence[Insight]
    ) -> list[Recommendation]:
        recommendations: list[Recommendation] = []

        model = _direction_model(trend)
        if model is not None:
            if model.trend_direction in DOWNWARD_DIRECTIONS:
                recommendations.append(
                    Recommendation(
                        priority="high",
                        category="improvement",
                        action="Investigate causes of declining performance",
                        rationale="Downward trend requires immediate attention",
                    )
                )
            elif model.trend_direction in UPWARD_DIRECTIONS:
                recommendations.append(
                    Recommendation(
                        priority="medium",
                        category="maintenance",
                        action="Continue current practices to maintain positive trend",
                        rationale="Upward trend indicates effective interventions",
                    )
                )

        insight_types = {i.type: i for i in insights}

        if "volatility" in insight_types:
            recommendations.append(
                Recommendation(
                    priority="medium",
                    category="consistency",
                    action="Implement process standardization to reduce variability",
                    rationale="High volatility suggests inconsistent processes",
                )
            )

        if "outliers" in insight_types:
            recommendations.append(
                Recommendation(
                    priority="medium",
                    category="investigation",
                    action="Investigate outlier events for learning opportunities",
                    rationale="Outliers may reveal best practices or issues to address",
                )
            )

        change_point = insight_types.get("change_point")
        if change_point is not None and change_point.impact == "negative":
            recommendations.append(
                Recommendation(
                    priority="high",
                    category="investigation",
                    action="Review interventions around the recent decline",
                    rationale="A sustained drop in the local average marks a shift in outcomes",
                )
            )

        if model is not None and not model.significance.is_significant:
            recommendations.append(
                Recommendation(
                    priority="low",
                    category="data_quality",
                    action="Continue collecting outcome data to strengthen trend confidence",
                    rationale="Current trend is not statistically reliable",
                )
            )

        return recommendations
