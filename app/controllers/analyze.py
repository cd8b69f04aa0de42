"""Audio analysis endpoint.

`POST /analyze` hands the uploaded recording to the GitHub Actions
classifier and blocks until its artifact is available. See
`app.pipelines.analysis` for the stage-by-stage implementation:

1. Configuration + upload validation (no remote call on failure).
2. Payload staging (inline, S3 or gist) and the repository dispatch.
3. Deadline-bounded polling of recent runs and artifact extraction.
4. Release of the staged payload, then the JSON response.
"""

import logging
from typing import Optional

from fastapi import APIRouter, File, UploadFile, status
from fastapi.responses import JSONResponse

from app.controllers.dependencies import AnalysisConfigDep
from app.pipelines.analysis import AnalysisError, AnalysisOrchestrator
from app.services.github_actions import GitHubActionsClient
from app.views.analysis import AnalysisErrorResponse, PredictionResponse

router = APIRouter(tags=["analysis"])

logger = logging.getLogger(__name__)

_AUDIO_FILE_UPLOAD = File(None)
_READ_CHUNK_BYTES = 64 * 1024


async def read_upload(audio: Optional[UploadFile], max_bytes: int) -> bytes:
    """Read at most ``max_bytes + 1`` bytes of the upload; a missing field reads as empty.

    The extra byte is enough for the size check to reject an oversized
    recording without buffering the rest of it.
    """

    if audio is None:
        return b""
    chunks: list[bytes] = []
    total = 0
    try:
        while total <= max_bytes:
            chunk = await audio.read(min(_READ_CHUNK_BYTES, max_bytes + 1 - total))
            if not chunk:
                break
            chunks.append(chunk)
            total += len(chunk)
    finally:
        await audio.close()
    return b"".join(chunks)


@router.post(
    "/analyze",
    response_model=PredictionResponse,
    response_model_exclude_none=True,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": AnalysisErrorResponse},
        status.HTTP_413_REQUEST_ENTITY_TOO_LARGE: {"model": AnalysisErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": AnalysisErrorResponse},
        status.HTTP_502_BAD_GATEWAY: {"model": AnalysisErrorResponse},
        status.HTTP_504_GATEWAY_TIMEOUT: {"model": AnalysisErrorResponse},
    },
)
async def analyze_audio(
    config: AnalysisConfigDep,
    audio: Optional[UploadFile] = _AUDIO_FILE_UPLOAD,
):
    """Classify an uploaded cry recording via the remote workflow."""

    try:
        payload = await read_upload(audio, config.max_audio_bytes)
        async with GitHubActionsClient(config.github) as client:
            orchestrator = AnalysisOrchestrator.from_config(config, client)
            result = await orchestrator.analyze(payload)
    except AnalysisError as exc:
        if exc.status_code >= 500:
            logger.warning("Analysis failed status=%s: %s", exc.status_code, exc.payload())
        return JSONResponse(status_code=exc.status_code, content=exc.payload())
    except Exception as exc:
        logger.exception("Analysis error")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Analysis failed", "details": str(exc) or type(exc).__name__},
        )

    return PredictionResponse.from_result(result)


__all__ = ["router", "read_upload"]
