"""
Core services for the application.

This package contains the trend analysis pipeline: data preparation,
statistics, model fitting, pattern detection, forecasting and insights.
"""

from .result import AnalysisError, Result, TrendAnalysisError
from .trend_engine import TrendAnalysisEngine, analyze_trends
from .trend_models import TrendModelFitter

__all__ = [
    "AnalysisError",
    "Result",
    "TrendAnalysisEngine",
    "TrendAnalysisError",
    "TrendModelFitter",
    "analyze_trends",
]
