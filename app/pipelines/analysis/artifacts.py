"""Artifact resolution: find this request's artifact on a finished run."""

from __future__ import annotations

import logging
from typing import Optional

from app.services.github_actions import GitHubActionsClient

from .types import Artifact, WorkflowRun, artifact_name_for

logger = logging.getLogger("app.pipelines.analysis")


def match_artifact(artifacts: list[Artifact], correlation_id: str) -> Optional[Artifact]:
    """Pick the artifact named exactly ``prediction-<correlation_id>``.

    Prefix matches never count. Expired archives cannot be downloaded and are
    skipped; duplicates are logged and the first one wins.
    """

    expected = artifact_name_for(correlation_id)
    matches = [artifact for artifact in artifacts if artifact.name == expected]
    if not matches:
        return None

    usable = [artifact for artifact in matches if not artifact.expired]
    if len(usable) < len(matches):
        logger.warning("Skipping %d expired artifact(s) named %s", len(matches) - len(usable), expected)
    if not usable:
        return None
    if len(usable) > 1:
        logger.warning(
            "Found %d artifacts named %s; using artifact id=%s",
            len(usable),
            expected,
            usable[0].artifact_id,
        )
    return usable[0]


async def resolve_artifact(
    client: GitHubActionsClient,
    run: WorkflowRun,
    correlation_id: str,
) -> Optional[Artifact]:
    """List the run's artifacts and match one; ``None`` means not found."""

    payloads = await client.list_run_artifacts(run.run_id)
    artifacts: list[Artifact] = []
    for payload in payloads:
        try:
            artifacts.append(Artifact.from_api(payload))
        except (TypeError, ValueError):
            logger.debug("Ignoring unparseable artifact payload on run=%s: %r", run.run_id, payload)
    return match_artifact(artifacts, correlation_id)


__all__ = ["match_artifact", "resolve_artifact"]
