"""
Configuration management with environment variable support and validation.

Design principles:
- Environment-specific configs (dev, staging, prod)
- Validation at startup (fail fast)
- Type safety with Pydantic
- Analysis defaults overridable without code changes
"""

import os
from functools import lru_cache
from typing import Literal, cast

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from core.domain.models import AnalysisType, Granularity

# Load environment variables from .env file
load_dotenv()


class AnalysisConfig(BaseModel):
    """Trend analysis defaults and engine tuning."""

    default_analysis_type: AnalysisType = Field(
        default=AnalysisType.LINEAR, description="Trend model used when the caller sets none"
    )
    default_granularity: Granularity = Field(
        default=Granularity.WEEKLY, description="Bucket size used when the caller sets none"
    )
    default_timeframe: str = Field(default="6months", description="Echoed back in results")
    include_seasonality: bool = Field(default=True, description="Invoke the seasonality hook")
    confidence_level: float = Field(
        default=0.95, gt=0.0, lt=1.0, description="Default confidence level for intervals"
    )

    # Engine tuning
    forecast_periods: int = Field(default=4, ge=0, description="Number of periods to forecast")
    moving_average_window: int = Field(default=3, ge=2, description="Moving average window")
    min_data_points: int = Field(
        default=3, ge=3, description="Minimum prepared periods required for analysis"
    )
    timeout_seconds: float | None = Field(
        default=None, gt=0.0, description="Deadline for async analysis runs"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""

    def _env_to_literal(val: str) -> Literal["development", "staging", "production"]:
        v = val.strip().lower()
        if v in {"dev", "development"}:
            return "development"
        if v in {"stage", "staging"}:
            return "staging"
        return "production"

    def _level_to_literal(val: str) -> Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
        v = val.strip().upper()
        return cast(
            Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO",
        )

    def _parse_bool(val: str | None, default: bool) -> bool:
        if val is None:
            return default
        return val.strip().lower() in {"1", "true", "yes", "on"}

    def _parse_optional_float(val: str | None) -> float | None:
        if val is None or not val.strip():
            return None
        return float(val)

    # Detect environment
    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    analysis_config = AnalysisConfig(
        default_analysis_type=AnalysisType(
            os.getenv("TREND_ANALYSIS_TYPE", AnalysisType.LINEAR.value).strip().lower()
        ),
        default_granularity=Granularity(
            os.getenv("TREND_GRANULARITY", Granularity.WEEKLY.value).strip().lower()
        ),
        default_timeframe=os.getenv("TREND_TIMEFRAME", "6months"),
        include_seasonality=_parse_bool(os.getenv("TREND_INCLUDE_SEASONALITY"), True),
        confidence_level=float(os.getenv("TREND_CONFIDENCE_LEVEL", "0.95")),
        forecast_periods=int(os.getenv("TREND_FORECAST_PERIODS", "4")),
        moving_average_window=int(os.getenv("TREND_MOVING_AVERAGE_WINDOW", "3")),
        timeout_seconds=_parse_optional_float(os.getenv("TREND_TIMEOUT_SECONDS")),
    )

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if debug else "json",
    )

    return AppConfig(
        environment=environment,
        debug=debug,
        analysis=analysis_config,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()


def validate_config() -> None:
    """Validate configuration at startup."""
    try:
        config = get_config()
        print(f"✅ Configuration loaded for {config.environment} environment")
    except Exception as e:
        print(f"❌ Configuration validation failed: {e}")
        raise


def print_config_summary() -> None:
    """Print configuration summary for debugging."""
    config = get_config()

    print("\n🔧 CONFIGURATION SUMMARY")
    print(f"Environment: {config.environment}")
    print(f"Debug Mode: {config.debug}")
    print(f"Log Level: {config.logging.level}")

    print("\n📈 ANALYSIS CONFIGURATION")
    print(f"Analysis Type: {config.analysis.default_analysis_type.value}")
    print(f"Granularity: {config.analysis.default_granularity.value}")
    print(f"Confidence Level: {config.analysis.confidence_level:.0%}")
    print(f"Forecast Periods: {config.analysis.forecast_periods}")
    print(f"Moving Average Window: {config.analysis.moving_average_window}")


if __name__ == "__main__":
    validate_config()
    print_config_summary()
