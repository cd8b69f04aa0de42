"""End-to-end choreography for one `/analyze` call.

Created -> Staged -> Dispatched -> Polling -> {Resolved | TimedOut |
DispatchFailed | StageFailed | Malformed} -> CleanedUp -> Done.

Staging and cleanup are owned by :func:`staged_payload`, so every path out of
the ``async with`` block (success, dispatch failure, timeout, malformed
output, cancellation, unexpected errors) releases the staged payload once.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional

from app.config.settings import GitHubConfig, PollingConfig, S3Config, Settings, StagingConfig
from app.services.github_actions import GitHubActionsClient
from app.telemetry import record_analysis

from .correlation import new_analysis_request
from .dispatch import dispatch_analysis
from .errors import (
    AnalysisTimeoutError,
    ConfigError,
    DispatchError,
    MalformedResultError,
    PayloadTooLargeError,
    PayloadValidationError,
    StageError,
)
from .polling import WorkflowPoller
from .staging import PayloadStager, build_stager, staged_payload
from .types import PredictionResult

logger = logging.getLogger("app.pipelines.analysis")


@dataclass(frozen=True)
class AnalysisConfig:
    """Everything one analysis call needs, built once from :class:`Settings`."""

    github: GitHubConfig
    polling: PollingConfig
    staging: StagingConfig
    s3: S3Config
    max_audio_bytes: int

    @classmethod
    def from_settings(cls, settings: Settings) -> "AnalysisConfig":
        return cls(
            github=settings.github,
            polling=settings.polling,
            staging=settings.staging,
            s3=settings.s3,
            max_audio_bytes=settings.max_audio_bytes,
        )

    def require_credentials(self) -> None:
        token = self.github.token
        if token is None or not token.get_secret_value().strip():
            raise ConfigError()


class AnalysisOrchestrator:
    """Stage, dispatch, poll and extract for a single payload."""

    def __init__(
        self,
        config: AnalysisConfig,
        client: GitHubActionsClient,
        stager: PayloadStager,
        *,
        poller: Optional[WorkflowPoller] = None,
    ) -> None:
        self._config = config
        self._client = client
        self._stager = stager
        self._poller = poller or WorkflowPoller(client, config.polling)

    @classmethod
    def from_config(cls, config: AnalysisConfig, client: GitHubActionsClient) -> "AnalysisOrchestrator":
        try:
            config.require_credentials()
            stager = build_stager(config.staging, config.s3, client)
        except ConfigError:
            record_analysis("rejected")
            raise
        return cls(config, client, stager)

    def _validate(self, payload: Optional[bytes]) -> bytes:
        if not payload:
            raise PayloadValidationError()
        if len(payload) > self._config.max_audio_bytes:
            raise PayloadTooLargeError(f"Audio exceeds the {self._config.max_audio_bytes} byte limit")
        return payload

    async def analyze(self, payload: Optional[bytes]) -> PredictionResult:
        try:
            self._config.require_credentials()
            payload = self._validate(payload)
        except (ConfigError, PayloadValidationError):
            record_analysis("rejected")
            raise

        request = new_analysis_request(payload)
        logger.info("[%s] Starting analysis, audio size: %d bytes", request.correlation_id, len(payload))

        dispatched_at: Optional[float] = None
        outcome = "error"
        try:
            async with staged_payload(self._stager, request) as staged:
                dispatch = await dispatch_analysis(
                    self._client,
                    self._config.github.event_type,
                    request,
                    staged,
                    self._stager,
                )
                if not dispatch.accepted:
                    outcome = "dispatch_failed"
                    raise DispatchError(dispatch.error)

                dispatched_at = time.monotonic()
                logger.info("[%s] Workflow triggered, waiting for completion...", request.correlation_id)
                try:
                    result = await self._poller.poll(request.correlation_id)
                except AnalysisTimeoutError:
                    outcome = "timeout"
                    raise
                except MalformedResultError:
                    outcome = "malformed"
                    raise

                outcome = "success"
                logger.info(
                    "[%s] Resolved prediction=%s confidence=%.3f run=%s",
                    request.correlation_id,
                    result.prediction.label,
                    result.prediction.confidence,
                    result.run.run_id,
                )
                return result.prediction
        except StageError as exc:
            outcome = "stage_failed"
            logger.error("[%s] Staging failed: %s", request.correlation_id, exc)
            raise
        finally:
            duration = time.monotonic() - dispatched_at if dispatched_at is not None else None
            record_analysis(outcome, duration)
            logger.info("[%s] Done outcome=%s", request.correlation_id, outcome)


__all__ = ["AnalysisConfig", "AnalysisOrchestrator"]
