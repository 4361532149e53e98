"""
Descriptive statistics over a prepared series.
"""

import math
import statistics
from collections.abc import Sequence

from core.domain.models import PreparedPoint, Statistics


def population_variance(values: Sequence[float]) -> float:
    """Variance dividing by n, not n - 1."""
    return statistics.pvariance(values)


def population_std_dev(values: Sequence[float]) -> float:
    return math.sqrt(population_variance(values))


def calculate_statistics(data_points: Sequence[PreparedPoint]) -> Statistics:
    """Summarize the series. Callers guarantee at least one point."""
    values = [p.value for p in data_points]
    n = len(values)

    mean = statistics.fmean(values)
    variance = population_variance(values)
    standard_deviation = math.sqrt(variance)

    minimum = min(values)
    maximum = max(values)

    first_value = values[0]
    last_value = values[-1]
    total_change = last_value - first_value

    return Statistics(
        count=n,
        mean=mean,
        median=statistics.median(values),
        min=minimum,
        max=maximum,
        range=maximum - minimum,
        variance=variance,
        standard_deviation=standard_deviation,
        coefficient_of_variation=(standard_deviation / abs(mean)) * 100 if mean != 0 else 0.0,
        first_value=first_value,
        last_value=last_value,
        total_change=total_change,
        percentage_change=(total_change / abs(first_value)) * 100 if first_value != 0 else 0.0,
    )
