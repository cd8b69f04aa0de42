"""Dispatch stage: fire the `repository_dispatch` event for one request."""

from __future__ import annotations

import logging

from app.services.github_actions import GitHubActionsClient, GitHubApiError

from .staging import PayloadStager
from .types import AnalysisRequest, DispatchOutcome, StagedPayload

logger = logging.getLogger("app.pipelines.analysis")


async def dispatch_analysis(
    client: GitHubActionsClient,
    event_type: str,
    request: AnalysisRequest,
    staged: StagedPayload,
    stager: PayloadStager,
) -> DispatchOutcome:
    """Send one trigger carrying the correlation id and the staged payload."""

    client_payload = {"request_id": request.correlation_id}
    client_payload.update(stager.dispatch_fields(staged))

    try:
        await client.create_dispatch(event_type, client_payload)
    except GitHubApiError as exc:
        logger.error("Dispatch failed request=%s status=%s: %s", request.correlation_id, exc.status_code, exc.body or exc)
        return DispatchOutcome(accepted=False, error=exc.body or str(exc), status_code=exc.status_code)

    logger.info(
        "Workflow triggered request=%s event=%s strategy=%s bytes=%d",
        request.correlation_id,
        event_type,
        staged.strategy,
        len(request.payload),
    )
    return DispatchOutcome(accepted=True)


__all__ = ["dispatch_analysis"]
