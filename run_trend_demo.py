"""
End-to-end demonstration of the trend analysis pipeline.

This script exercises:
1. Configuration loading and validation
2. Trend analysis with each model type
3. Insufficient-data and failed-fit handling
4. Per-indicator analysis of outcome measure records
5. Async analysis with a deadline

Run with: uv run python run_trend_demo.py
"""

import asyncio
import math
from datetime import UTC, datetime, timedelta

from rich.console import Console
from rich.panel import Panel

from adapters.outcome_measures.domain import (
    OutcomeMeasureRecord,
    analyze_indicator_trends,
    indicator_outlook,
)
from core.config import get_config, print_config_summary, validate_config
from core.domain.models import AnalysisType, RawPoint, TrendAnalysisOptions, TrendAnalysisResult
from core.log_config import configure_logging
from core.reporting import render_trend_report
from core.services.trend_engine import TrendAnalysisEngine

console = Console()


def weekly_series(values: list[float], start: datetime | None = None) -> list[RawPoint]:
    """One reading per week, starting on a Sunday."""
    start = start or datetime(2024, 1, 7, 9, 0, tzinfo=UTC)
    return [
        RawPoint(timestamp=start + timedelta(weeks=i), value=value)
        for i, value in enumerate(values)
    ]


def improving_scores() -> list[float]:
    return [0.62, 0.64, 0.63, 0.67, 0.69, 0.68, 0.72, 0.74, 0.73, 0.77, 0.79, 0.81]


def seasonal_scores() -> list[float]:
    return [0.7 + 0.1 * math.sin(i * math.pi / 3) for i in range(16)]


async def run_demo() -> None:
    config = get_config()
    engine = TrendAnalysisEngine(config.analysis)

    console.print(Panel("Linear trend over weekly functional scores", style="bold blue"))
    result = engine.analyze_trends(weekly_series(improving_scores()))
    render_trend_report(result, console)

    console.print(Panel("Moving average over a cyclical series", style="bold blue"))
    result = engine.analyze_trends(
        weekly_series(seasonal_scores()),
        TrendAnalysisOptions(analysis_type=AnalysisType.MOVING_AVERAGE),
    )
    render_trend_report(result, console)

    console.print(Panel("Exponential fit without enough positive values", style="bold blue"))
    result = engine.analyze_trends(
        weekly_series([-5.0, 3.0, 10.0, -1.0]), {"analysisType": "exponential"}
    )
    render_trend_report(result, console)

    console.print(Panel("Too few periods", style="bold blue"))
    render_trend_report(engine.analyze_trends(weekly_series([0.5, 0.6])), console)

    console.print(Panel("Per-indicator outcome measures", style="bold blue"))
    start = datetime(2024, 1, 1, tzinfo=UTC)
    records = [
        OutcomeMeasureRecord(
            indicator_type="fall-rate",
            category="clinical",
            value=max(0.0, 0.2 - 0.01 * i),
            timestamp=start + timedelta(days=30 * i),
        )
        for i in range(8)
    ] + [
        OutcomeMeasureRecord(
            indicator_type="patient-satisfaction",
            category="satisfaction",
            value=min(1.0, 0.7 + 0.02 * i),
            timestamp=start + timedelta(days=30 * i),
        )
        for i in range(8)
    ]
    for indicator, outcome in analyze_indicator_trends(
        records, {"granularity": "monthly"}, engine
    ).items():
        console.print(f"  {indicator}: {indicator_outlook(indicator, outcome)}")

    console.print(Panel("Async analysis with a deadline", style="bold blue"))
    result = await engine.analyze_trends_async(
        weekly_series(improving_scores()), timeout_seconds=5.0
    )
    if isinstance(result, TrendAnalysisResult):
        console.print(f"  completed with {len(result.insights)} insights")


if __name__ == "__main__":
    validate_config()
    print_config_summary()
    configure_logging(get_config().logging)
    asyncio.run(run_demo())
