"""
Bucketing of raw outcome measurements into fixed-granularity periods.
"""

from collections import defaultdict
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta

import structlog

from core.domain.models import Granularity, PreparedPoint, RawPoint
from core.services.descriptive_stats import population_variance

logger = structlog.get_logger(__name__)


def period_key(timestamp: datetime, granularity: Granularity | str) -> str:
    """Calendar bucket key for a UTC timestamp."""
    day = timestamp.astimezone(UTC).date()

    if granularity == Granularity.WEEKLY:
        # Weeks start on Sunday; date.weekday() counts Monday as 0
        week_start = day - timedelta(days=(day.weekday() + 1) % 7)
        return week_start.isoformat()
    if granularity == Granularity.MONTHLY:
        return f"{day.year}-{day.month:02d}"
    return day.isoformat()


def period_start(key: str) -> datetime:
    """Midnight UTC at the start of the bucket named by `key`."""
    if len(key) == 7:
        return datetime.strptime(key, "%Y-%m").replace(tzinfo=UTC)
    return datetime.strptime(key, "%Y-%m-%d").replace(tzinfo=UTC)


def aggregated_value(points: list[RawPoint]) -> float:
    """Confidence-weighted mean of the bucket."""
    total_weight = sum(p.weight for p in points)
    weighted_sum = sum(p.value * p.weight for p in points)
    return weighted_sum / total_weight


def group_by_period(
    points: Iterable[RawPoint], granularity: Granularity | str
) -> dict[str, list[RawPoint]]:
    grouped: defaultdict[str, list[RawPoint]] = defaultdict(list)
    for point in points:
        grouped[period_key(point.timestamp, granularity)].append(point)
    return dict(grouped)


def prepare_data_for_analysis(
    data_points: Iterable[RawPoint], granularity: Granularity | str = Granularity.WEEKLY
) -> list[PreparedPoint]:
    """
    Sort raw points, bucket them by period and aggregate each bucket.

    Returns one PreparedPoint per distinct bucket, ascending by timestamp.
    The input is never mutated.
    """
    sorted_points = sorted(data_points, key=lambda p: p.timestamp)
    grouped = group_by_period(sorted_points, granularity)

    prepared = [
        PreparedPoint(
            period=key,
            timestamp=period_start(key),
            value=aggregated_value(points),
            count=len(points),
            min=min(p.value for p in points),
            max=max(p.value for p in points),
            variance=population_variance([p.value for p in points]),
        )
        for key, points in grouped.items()
    ]
    prepared.sort(key=lambda p: p.timestamp)

    logger.debug(
        "data_prepared",
        raw_points=len(sorted_points),
        buckets=len(prepared),
        granularity=str(getattr(granularity, "value", granularity)),
    )
    return prepared
