"""Response schemas for the analysis endpoint."""

from typing import Dict, Optional

from pydantic import BaseModel

from app.pipelines.analysis import PredictionResult


class PredictionResponse(BaseModel):
    prediction: str
    confidence: float
    all_probabilities: Optional[Dict[str, float]] = None

    @classmethod
    def from_result(cls, result: PredictionResult) -> "PredictionResponse":
        return cls(
            prediction=result.label,
            confidence=result.confidence,
            all_probabilities=result.distribution,
        )


class AnalysisErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None
    hint: Optional[str] = None
    requestId: Optional[str] = None
