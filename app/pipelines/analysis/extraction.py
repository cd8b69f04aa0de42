"""Result extraction: unzip the artifact and parse its JSON entry."""

from __future__ import annotations

import io
import json
import logging
import zipfile
import zlib

from pydantic import ValidationError

from app.services.github_actions import GitHubActionsClient

from .errors import MalformedArtifactError
from .types import Artifact, PredictionResult

logger = logging.getLogger("app.pipelines.analysis")

_RESULT_SUFFIX = ".json"


def extract_prediction(archive: bytes) -> PredictionResult:
    """Parse the first ``*.json`` entry of a ZIP archive into a result.

    The workflow chooses the file name, so only the suffix is relied on.
    Raises :class:`MalformedArtifactError` on any unpack or parse failure.
    """

    try:
        with zipfile.ZipFile(io.BytesIO(archive)) as bundle:
            entries = [
                info
                for info in bundle.infolist()
                if not info.is_dir() and info.filename.lower().endswith(_RESULT_SUFFIX)
            ]
            if len(entries) > 1:
                logger.warning(
                    "Artifact archive holds %d JSON files; reading %s",
                    len(entries),
                    entries[0].filename,
                )
            raw = bundle.read(entries[0]) if entries else None
    except (zipfile.BadZipFile, zipfile.LargeZipFile, zlib.error, RuntimeError, OSError) as exc:
        raise MalformedArtifactError(f"Artifact is not a readable ZIP archive: {exc}") from exc

    if raw is None:
        raise MalformedArtifactError("Artifact archive holds no JSON file")

    try:
        data = json.loads(raw.decode("utf-8-sig"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise MalformedArtifactError(f"Result file is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise MalformedArtifactError("Result file must hold a JSON object")

    try:
        return PredictionResult.model_validate(data)
    except ValidationError as exc:
        raise MalformedArtifactError(f"Result file failed validation: {exc.errors()[0]['msg']}") from exc


async def download_and_extract(client: GitHubActionsClient, artifact: Artifact) -> PredictionResult:
    """Download ``artifact`` and parse it.

    Download failures surface as ``GitHubApiError`` (transient); content
    problems as :class:`MalformedArtifactError`.
    """

    archive = await client.download_artifact(artifact.download_ref)
    logger.debug("Downloaded artifact %s (%d bytes)", artifact.name, len(archive))
    return extract_prediction(archive)


__all__ = ["download_and_extract", "extract_prediction"]
