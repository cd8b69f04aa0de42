"""Pydantic schemas used as views in the MVC architecture."""

from .analysis import AnalysisErrorResponse, PredictionResponse

__all__ = [
    "AnalysisErrorResponse",
    "PredictionResponse",
]
