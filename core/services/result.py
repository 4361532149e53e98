"""
Explicit error handling for the analysis pipeline.

Expected failures (a model that cannot be fitted to the data at hand) travel
as values through `Result`; anything else is an exception that surfaces from
the top-level call as `TrendAnalysisError`.
"""

from typing import Generic, TypeVar

ValueT = TypeVar("ValueT")
ErrorT = TypeVar("ErrorT", bound=BaseException)


class AnalysisError(Exception):
    """Expected, recoverable failure of a single analysis step."""

    def __init__(self, analysis_type: str, message: str) -> None:
        super().__init__(message)
        self.analysis_type = analysis_type
        self.message = message


class TrendAnalysisError(RuntimeError):
    """Unexpected failure of a whole trend analysis run."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Trend analysis failed: {reason}")
        self.reason = reason


class Result(Generic[ValueT, ErrorT]):
    """
    Explicit error handling without exceptions for expected failures.

    Why: Makes error paths visible in type system, forces handling decisions.
    When to use: When failure is expected business logic, not exceptional.
    """

    def __init__(self, value: ValueT | None = None, error: ErrorT | None = None) -> None:
        if value is not None and error is not None:
            raise ValueError("Result cannot have both value and error")
        if value is None and error is None:
            raise ValueError("Result must have either value or error")
        self._value: ValueT | None = value
        self._error: ErrorT | None = error

    @classmethod
    def ok(cls, value: ValueT) -> "Result[ValueT, ErrorT]":
        return cls(value=value)

    @classmethod
    def err(cls, error: ErrorT) -> "Result[ValueT, ErrorT]":
        return cls(error=error)

    def is_ok(self) -> bool:
        return self._error is None

    def is_err(self) -> bool:
        return self._error is not None

    def unwrap(self) -> ValueT:
        if self._error is not None:
            raise self._error
        return self._value  # type: ignore

    def unwrap_or(self, default: ValueT) -> ValueT:
        return self._value if self._error is None else default  # type: ignore

    def unwrap_err(self) -> ErrorT:
        if self._error is None:
            raise ValueError("Called unwrap_err() on an Ok value")
        return self._error
