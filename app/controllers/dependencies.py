"""Common FastAPI dependencies reused across controllers."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends

from app.config.settings import Settings, settings
from app.pipelines.analysis import AnalysisConfig


def get_settings() -> Settings:
    """Return the process settings; tests override this dependency."""

    return settings


SettingsDep = Annotated[Settings, Depends(get_settings)]


def get_analysis_config(app_settings: SettingsDep) -> AnalysisConfig:
    """Build the explicit configuration value handed to the orchestrator."""

    return AnalysisConfig.from_settings(app_settings)


AnalysisConfigDep = Annotated[AnalysisConfig, Depends(get_analysis_config)]


__all__ = ["get_settings", "get_analysis_config", "SettingsDep", "AnalysisConfigDep"]
