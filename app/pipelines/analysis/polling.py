"""Polling stage: wait for the workflow run that produced this request's artifact.

GitHub offers no completion callback for `repository_dispatch`, so the
poller lists the newest runs on a fixed cadence until one of them carries
``prediction-<correlation_id>`` or the deadline passes. Every tick sleeps
first, then inspects runs most-recent-first; the first match wins.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

from app.config.settings import PollingConfig
from app.services.github_actions import GitHubActionsClient, GitHubApiError
from app.telemetry import record_poll_error

from .artifacts import resolve_artifact
from .errors import AnalysisTimeoutError, MalformedArtifactError, MalformedResultError
from .extraction import download_and_extract
from .types import PollResult, WorkflowRun

logger = logging.getLogger("app.pipelines.analysis")

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


class WorkflowPoller:
    """Deadline-bounded poll over the repository's dispatch runs."""

    def __init__(
        self,
        client: GitHubActionsClient,
        polling: PollingConfig,
        *,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._client = client
        self._interval = polling.interval_seconds
        self._timeout = polling.timeout_seconds
        self._per_page = polling.runs_per_page
        self._stop_on_malformed = polling.stop_on_malformed
        self._clock = clock
        self._sleep = sleep
        self._skipped_runs: set[int] = set()
        self.ticks = 0
        self.transient_errors = 0

    async def poll(self, correlation_id: str) -> PollResult:
        """Return the matching run and its parsed result.

        Raises :class:`AnalysisTimeoutError` once the deadline elapses and
        :class:`MalformedResultError` when the matching artifact cannot be
        parsed and ``stop_on_malformed`` is set. Transient backend errors only
        end the current tick; they never move the deadline.
        """

        deadline_at = self._clock() + self._timeout
        while True:
            remaining = deadline_at - self._clock()
            if remaining <= 0:
                logger.warning(
                    "Polling timed out request=%s ticks=%d transient_errors=%d",
                    correlation_id,
                    self.ticks,
                    self.transient_errors,
                )
                raise AnalysisTimeoutError(correlation_id)

            await self._sleep(min(self._interval, remaining))
            self.ticks += 1

            try:
                # No tick may run past the deadline plus one cadence interval.
                tick_budget = deadline_at + self._interval - self._clock()
                result = await asyncio.wait_for(self._tick(correlation_id), timeout=tick_budget)
            except asyncio.TimeoutError:
                self._transient("tick", correlation_id, "tick ran past the polling deadline")
                continue
            except GitHubApiError as exc:
                self._transient("runs", correlation_id, exc)
                continue

            if result is not None:
                logger.info(
                    "Result found request=%s run=%s ticks=%d transient_errors=%d",
                    correlation_id,
                    result.run.run_id,
                    self.ticks,
                    self.transient_errors,
                )
                return result

    async def _tick(self, correlation_id: str) -> Optional[PollResult]:
        payloads = await self._client.list_workflow_runs(per_page=self._per_page)
        runs: list[WorkflowRun] = []
        for payload in payloads:
            try:
                runs.append(WorkflowRun.from_api(payload))
            except (KeyError, TypeError, ValueError):
                logger.debug("Ignoring unparseable workflow run payload: %r", payload)
        runs.sort(key=lambda run: run.run_id, reverse=True)
        logger.debug("Tick %d request=%s saw %d run(s)", self.ticks, correlation_id, len(runs))

        for run in runs:
            if run.run_id in self._skipped_runs:
                continue
            if run.failed_terminally:
                # Terminal states are final; never look at this run again.
                self._skipped_runs.add(run.run_id)
                logger.info("Skipping run=%s conclusion=%s", run.run_id, run.conclusion.value if run.conclusion else None)
                continue
            if not run.succeeded:
                continue

            try:
                artifact = await resolve_artifact(self._client, run, correlation_id)
            except GitHubApiError as exc:
                self._transient("artifacts", correlation_id, exc)
                continue
            if artifact is None:
                continue

            try:
                prediction = await download_and_extract(self._client, artifact)
            except GitHubApiError as exc:
                self._transient("download", correlation_id, exc)
                continue
            except MalformedArtifactError as exc:
                if self._stop_on_malformed:
                    logger.error("Malformed artifact request=%s run=%s: %s", correlation_id, run.run_id, exc)
                    raise MalformedResultError(correlation_id, str(exc)) from exc
                self._transient("malformed", correlation_id, exc)
                continue

            return PollResult(run=run, artifact=artifact, prediction=prediction)
        return None

    def _transient(self, stage: str, correlation_id: str, error: object) -> None:
        self.transient_errors += 1
        record_poll_error(stage)
        logger.warning("Poll error request=%s tick=%d stage=%s: %s", correlation_id, self.ticks, stage, error)


__all__ = ["WorkflowPoller"]
