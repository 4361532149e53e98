"""
Console rendering of trend analysis results with rich.
"""

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from core.domain.models import (
    ExponentialTrend,
    InsufficientDataResult,
    LinearTrend,
    MovingAverageTrend,
    TrendAnalysisResult,
    TrendFitFailure,
)

PRIORITY_STYLES = {"high": "bold red", "medium": "yellow", "low": "dim"}
IMPACT_ICONS = {"positive": "📈", "negative": "📉", "neutral": "➖"}


def _trend_summary(result: TrendAnalysisResult) -> str:
    trend = result.trend_analysis
    if isinstance(trend, TrendFitFailure):
        return f"[red]{trend.type} fit unavailable:[/red] {trend.error}"
    if isinstance(trend, MovingAverageTrend):
        smoothed = trend.trend
        return (
            f"Moving average (window {trend.window}): {smoothed.trend_direction}, "
            f"{smoothed.equation}, R²={smoothed.r_squared:.3f}, "
            f"volatility reduced {trend.smoothing_effect.reduction_ratio:.0%}"
        )
    if isinstance(trend, ExponentialTrend):
        return (
            f"Exponential: {trend.trend_direction}, {trend.equation}, "
            f"growth {trend.growth_rate:.2f}%/period, R²={trend.r_squared:.3f}"
        )
    assert isinstance(trend, LinearTrend)
    return (
        f"Linear: {trend.trend_direction} ({trend.trend_strength}), {trend.equation}, "
        f"R²={trend.r_squared:.3f}"
    )


def build_statistics_table(result: TrendAnalysisResult) -> Table:
    stats = result.statistics
    table = Table(title="Statistics", show_header=True)
    table.add_column("Measure")
    table.add_column("Value", justify="right")

    for label, value in [
        ("Periods", f"{stats.count}"),
        ("Mean", f"{stats.mean:.3f}"),
        ("Median", f"{stats.median:.3f}"),
        ("Std dev", f"{stats.standard_deviation:.3f}"),
        ("CV", f"{stats.coefficient_of_variation:.1f}%"),
        ("Range", f"{stats.min:.3f} – {stats.max:.3f}"),
        ("Total change", f"{stats.total_change:+.3f}"),
        ("Change", f"{stats.percentage_change:+.1f}%"),
    ]:
        table.add_row(label, value)
    return table


def build_forecast_table(result: TrendAnalysisResult) -> Table:
    table = Table(title="Forecast", show_header=True)
    table.add_column("Period", justify="right")
    table.add_column("Date")
    table.add_column("Predicted", justify="right")
    table.add_column("Interval", justify="right")
    table.add_column("Confidence", justify="right")

    interval = result.confidence_intervals
    for point in result.forecast:
        bounds = (
            f"{interval.lower_bound(point.predicted_value):.3f} – "
            f"{interval.upper_bound(point.predicted_value):.3f}"
            if interval is not None
            else "n/a"
        )
        table.add_row(
            str(point.period),
            point.timestamp.strftime("%Y-%m-%d"),
            f"{point.predicted_value:.3f}",
            bounds,
            f"{point.confidence:.0%}",
        )
    return table


def build_recommendations_table(result: TrendAnalysisResult) -> Table:
    table = Table(title="Recommendations", show_header=True)
    table.add_column("Priority")
    table.add_column("Category")
    table.add_column("Action")

    for rec in result.recommendations:
        table.add_row(
            f"[{PRIORITY_STYLES[rec.priority]}]{rec.priority}[/]", rec.category, rec.action
        )
    return table


def render_trend_report(
    result: TrendAnalysisResult | InsufficientDataResult, console: Console | None = None
) -> None:
    """Print a human-readable report of an analysis outcome."""
    console = console or Console()

    if isinstance(result, InsufficientDataResult):
        console.print(
            Panel(
                f"{result.message}\nPeriods available: {result.data_point_count}",
                title="Trend analysis",
                border_style="yellow",
            )
        )
        return

    console.print(
        Panel(
            f"{_trend_summary(result)}\n"
            f"Granularity: {result.granularity.value} | Timeframe: {result.timeframe} | "
            f"Volatility: {result.pattern_analysis.volatility.classification}",
            title=f"Trend analysis ({result.data_point_count} periods)",
            border_style="blue",
        )
    )
    console.print(build_statistics_table(result))

    if result.forecast:
        console.print(build_forecast_table(result))

    if result.insights:
        console.print("\n[bold]Insights[/bold]")
        for insight in result.insights:
            console.print(
                f"  {IMPACT_ICONS[insight.impact]} {insight.message} "
                f"[dim]({insight.confidence} confidence)[/dim]"
            )

    if result.recommendations:
        console.print(build_recommendations_table(result))
