"""Typed containers shared across the analysis dispatch pipeline.

These live in their own module so the staging, dispatch, polling and
extraction stages can import them without circular dependencies.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Literal, Mapping, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

ARTIFACT_PREFIX = "prediction-"


def artifact_name_for(correlation_id: str) -> str:
    """Name the remote workflow gives the artifact for one request."""

    return f"{ARTIFACT_PREFIX}{correlation_id}"


@dataclass(frozen=True)
class AnalysisRequest:
    """One inbound analysis call."""

    correlation_id: str
    payload: bytes = field(repr=False)
    created_at: datetime


@dataclass(frozen=True)
class StagedPayload:
    """Where the payload lives while the remote workflow runs.

    ``reference`` is what the workflow receives (base64 body or a URL);
    ``handle`` is private to the stager and identifies what to delete.
    """

    reference: str = field(repr=False)
    backing: Literal["inline", "external"]
    strategy: str
    handle: Optional[str] = None


@dataclass(frozen=True)
class DispatchOutcome:
    accepted: bool
    error: Optional[str] = None
    status_code: Optional[int] = None


class RunStatus(str, Enum):
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class RunConclusion(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    CANCELLED = "cancelled"


# GitHub reports more states than the orchestrator cares about; fold them
# into the three it distinguishes, never into success.
_STATUS_ALIASES = {
    "requested": RunStatus.QUEUED,
    "waiting": RunStatus.QUEUED,
    "pending": RunStatus.QUEUED,
}
_CONCLUSION_ALIASES = {
    "skipped": RunConclusion.CANCELLED,
    "stale": RunConclusion.CANCELLED,
    "neutral": RunConclusion.FAILURE,
    "timed_out": RunConclusion.FAILURE,
    "action_required": RunConclusion.FAILURE,
    "startup_failure": RunConclusion.FAILURE,
}


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


@dataclass(frozen=True)
class WorkflowRun:
    """Snapshot of one remote workflow run as observed by a poll."""

    run_id: int
    status: RunStatus
    conclusion: Optional[RunConclusion] = None
    started_at: Optional[datetime] = None

    @property
    def succeeded(self) -> bool:
        return self.status is RunStatus.COMPLETED and self.conclusion is RunConclusion.SUCCESS

    @property
    def failed_terminally(self) -> bool:
        return self.status is RunStatus.COMPLETED and self.conclusion is not RunConclusion.SUCCESS

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> "WorkflowRun":
        raw_status = str(payload.get("status") or "")
        try:
            status = RunStatus(raw_status)
        except ValueError:
            status = _STATUS_ALIASES.get(raw_status, RunStatus.IN_PROGRESS)

        conclusion: Optional[RunConclusion] = None
        raw_conclusion = payload.get("conclusion")
        if raw_conclusion:
            try:
                conclusion = RunConclusion(raw_conclusion)
            except ValueError:
                conclusion = _CONCLUSION_ALIASES.get(raw_conclusion, RunConclusion.FAILURE)

        started_at = _parse_timestamp(payload.get("run_started_at")) or _parse_timestamp(
            payload.get("created_at")
        )
        return cls(
            run_id=int(payload["id"]),
            status=status,
            conclusion=conclusion,
            started_at=started_at,
        )


@dataclass(frozen=True)
class Artifact:
    name: str
    download_ref: str
    artifact_id: Optional[int] = None
    expired: bool = False

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> "Artifact":
        raw_id = payload.get("id")
        return cls(
            name=str(payload.get("name") or ""),
            download_ref=str(payload.get("archive_download_url") or ""),
            artifact_id=int(raw_id) if raw_id is not None else None,
            expired=bool(payload.get("expired", False)),
        )


class PredictionResult(BaseModel):
    """Classifier output parsed from the artifact's JSON file."""

    label: str = Field(alias="prediction", min_length=1)
    confidence: float = Field(allow_inf_nan=False)
    distribution: Optional[Dict[str, float]] = Field(default=None, alias="all_probabilities")

    model_config = {"populate_by_name": True, "extra": "ignore", "frozen": True}

    @model_validator(mode="before")
    @classmethod
    def accept_legacy_keys(cls, data: Any) -> Any:
        if isinstance(data, dict) and "all_probabilities" not in data and "probabilities" in data:
            data = dict(data)
            data["all_probabilities"] = data.pop("probabilities")
        return data

    @field_validator("confidence")
    @classmethod
    def normalize_confidence(cls, value: float) -> float:
        return max(0.0, min(1.0, value))


@dataclass(frozen=True)
class PollResult:
    """The run whose artifact answered the request, and its parsed result."""

    run: WorkflowRun
    artifact: Artifact
    prediction: PredictionResult


__all__ = [
    "ARTIFACT_PREFIX",
    "AnalysisRequest",
    "Artifact",
    "DispatchOutcome",
    "PollResult",
    "PredictionResult",
    "RunConclusion",
    "RunStatus",
    "StagedPayload",
    "WorkflowRun",
    "artifact_name_for",
]
