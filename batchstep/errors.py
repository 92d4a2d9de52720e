"""Structured exception hierarchy for batch steps.

Provides specific exception types for the failure modes of the
supplied adapters (settings, checkpoints), with rich context for
debugging. The step engine itself never raises these: faults from
sources and sinks reach the caller untouched.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

__all__ = [
    "StepError",
    "ConfigurationError",
    "CheckpointError",
]


class StepError(Exception):
    """Base exception for all batch step errors.

    Provides structured error information for debugging.
    """

    def __init__(
        self,
        message: str,
        *,
        step: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        self.message = message
        self.step = step
        self.details = details or {}
        self.suggestion = suggestion

        parts = [message]

        if step:
            parts.insert(0, f"[{step}]")

        if self.details:
            parts.append("\nDetails:")
            parts.extend(f"  {k}: {v}" for k, v in self.details.items())

        if suggestion:
            parts.append(f"\nSuggestion: {suggestion}")

        super().__init__("\n".join(parts) if len(parts) > 1 else message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "step": self.step,
            "details": self.details,
            "suggestion": self.suggestion,
        }


class ConfigurationError(StepError):
    """Error in chunk settings.

    Raised when settings are invalid or incomplete.
    """

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        value: Any = None,
        **kwargs: Any,
    ) -> None:
        self.field = field
        self.value = value

        details = kwargs.pop("details", None) or {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)

        super().__init__(message, details=details, **kwargs)


class CheckpointError(StepError):
    """Error reading or writing checkpoint state.

    Raised when a checkpoint file cannot be persisted or parsed.
    """

    def __init__(
        self,
        message: str,
        *,
        path: Optional[str] = None,
        cause: Optional[Exception] = None,
        **kwargs: Any,
    ) -> None:
        self.path = path
        self.cause = cause

        details = kwargs.pop("details", None) or {}
        if path:
            details["path"] = path
        if cause:
            details["cause"] = str(cause)
            details["cause_type"] = type(cause).__name__

        suggestion = kwargs.pop("suggestion", None)
        if not suggestion:
            suggestion = (
                "Check that the checkpoint directory exists and is writable."
            )

        super().__init__(message, details=details, suggestion=suggestion, **kwargs)
