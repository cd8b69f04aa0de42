"""Remote analysis pipeline package.

Modules are organised by the order in which `/analyze` executes:

1. `correlation` – allocate the request id the workflow echoes back.
2. `staging` – make the audio reachable by the workflow; release it afterwards.
3. `dispatch` – fire the `repository_dispatch` event.
4. `polling` – watch recent runs until one carries our artifact.
5. `artifacts` – match `prediction-<id>` on a finished run.
6. `extraction` – unzip the artifact and validate its JSON.
7. `orchestrator` – tie the stages together with cleanup on every path.
"""

from .artifacts import match_artifact, resolve_artifact
from .correlation import new_analysis_request, new_correlation_id
from .dispatch import dispatch_analysis
from .errors import (
    AnalysisError,
    AnalysisTimeoutError,
    ConfigError,
    DispatchError,
    MalformedArtifactError,
    MalformedResultError,
    PayloadTooLargeError,
    PayloadValidationError,
    StageError,
)
from .extraction import download_and_extract, extract_prediction
from .orchestrator import AnalysisConfig, AnalysisOrchestrator
from .polling import WorkflowPoller
from .staging import (
    GistStager,
    InlineStager,
    PayloadStager,
    S3Stager,
    build_stager,
    release_staged_payload,
    staged_payload,
)
from .types import (
    AnalysisRequest,
    Artifact,
    DispatchOutcome,
    PollResult,
    PredictionResult,
    RunConclusion,
    RunStatus,
    StagedPayload,
    WorkflowRun,
    artifact_name_for,
)

__all__ = [
    "AnalysisConfig",
    "AnalysisError",
    "AnalysisOrchestrator",
    "AnalysisRequest",
    "AnalysisTimeoutError",
    "Artifact",
    "ConfigError",
    "DispatchError",
    "DispatchOutcome",
    "GistStager",
    "InlineStager",
    "MalformedArtifactError",
    "MalformedResultError",
    "PayloadStager",
    "PayloadTooLargeError",
    "PayloadValidationError",
    "PollResult",
    "PredictionResult",
    "RunConclusion",
    "RunStatus",
    "S3Stager",
    "StageError",
    "StagedPayload",
    "WorkflowPoller",
    "WorkflowRun",
    "artifact_name_for",
    "build_stager",
    "dispatch_analysis",
    "download_and_extract",
    "extract_prediction",
    "match_artifact",
    "new_analysis_request",
    "new_correlation_id",
    "release_staged_payload",
    "resolve_artifact",
    "staged_payload",
]
