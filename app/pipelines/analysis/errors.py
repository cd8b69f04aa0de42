"""Exceptions raised by the analysis pipeline.

Each error knows the HTTP status and JSON body the `/analyze` endpoint
answers with, so the controller stays a thin translation layer.
"""

from __future__ import annotations

from typing import Any, Optional


class AnalysisError(RuntimeError):
    """Base class for failures surfaced to the caller."""

    status_code = 500
    error = "Analysis failed"

    def __init__(self, details: Optional[str] = None) -> None:
        super().__init__(details or self.error)
        self.details = details

    def payload(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.error}
        if self.details:
            body["details"] = self.details
        return body


class ConfigError(AnalysisError):
    """Required configuration (the GitHub credential) is missing."""

    error = "GitHub token not configured"

    def __init__(
        self,
        details: Optional[str] = None,
        *,
        error: Optional[str] = None,
        hint: str = "Set GITHUB_TOKEN environment variable",
    ) -> None:
        super().__init__(details)
        if error:
            self.error = error
        self.hint = hint

    def payload(self) -> dict[str, Any]:
        body = super().payload()
        body["hint"] = self.hint
        return body


class PayloadValidationError(AnalysisError):
    status_code = 400
    error = "No audio file"


class PayloadTooLargeError(PayloadValidationError):
    status_code = 413
    error = "Audio file too large"


class StageError(AnalysisError):
    """The payload could not be made reachable by the workflow."""

    error = "Failed to stage audio"


class DispatchError(AnalysisError):
    """The repository dispatch call was rejected."""

    error = "Failed to trigger analysis"


class MalformedArtifactError(RuntimeError):
    """The artifact archive or its JSON entry could not be parsed."""


class MalformedResultError(AnalysisError):
    """This request's artifact exists but does not hold a usable result."""

    status_code = 502
    error = "Malformed analysis result"

    def __init__(self, correlation_id: str, details: Optional[str] = None) -> None:
        super().__init__(details)
        self.correlation_id = correlation_id

    def payload(self) -> dict[str, Any]:
        body = super().payload()
        body["requestId"] = self.correlation_id
        return body


class AnalysisTimeoutError(AnalysisError):
    """No matching artifact appeared before the polling deadline."""

    status_code = 504
    error = "Analysis timeout"

    def __init__(self, correlation_id: str, *, hint: str = "Check GitHub Actions for status") -> None:
        super().__init__(None)
        self.correlation_id = correlation_id
        self.hint = hint

    def payload(self) -> dict[str, Any]:
        return {"error": self.error, "requestId": self.correlation_id, "hint": self.hint}


__all__ = [
    "AnalysisError",
    "AnalysisTimeoutError",
    "ConfigError",
    "DispatchError",
    "MalformedArtifactError",
    "MalformedResultError",
    "PayloadTooLargeError",
    "PayloadValidationError",
    "StageError",
]
