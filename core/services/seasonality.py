"""
Seasonality hook.

Decomposition is not implemented; the engine calls whichever analyzer it was
given once enough periods are available, and the default one only reports
that nothing was attempted.
"""

from collections.abc import Sequence
from typing import Protocol

from core.domain.models import PreparedPoint, SeasonalityAnalysis

MIN_POINTS_FOR_SEASONALITY = 12


class SeasonalityAnalyzer(Protocol):
    """
    Protocol for plugging a seasonality decomposition into the engine.

    Why Protocol over ABC: Structural typing, easier test doubles.
    """

    def analyze(self, data_points: Sequence[PreparedPoint]) -> SeasonalityAnalysis: ...


class StubSeasonalityAnalyzer:
    """Default analyzer: reports that no decomposition was performed."""

    method = "none"

    def analyze(self, data_points: Sequence[PreparedPoint]) -> SeasonalityAnalysis:
        return SeasonalityAnalysis(
            detected=False,
            method=self.method,
            reason=f"Seasonality decomposition not available ({len(data_points)} periods)",
        )
