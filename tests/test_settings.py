"""Tests for environment-driven configuration."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from app.config.settings import GitHubConfig, PollingConfig, Settings, StagingConfig
from app.pipelines.analysis import AnalysisConfig


def test_polling_defaults():
    polling = PollingConfig()

    assert polling.interval_seconds == 5.0
    assert polling.timeout_seconds == 180.0
    assert polling.runs_per_page == 5
    assert polling.stop_on_malformed is True


def test_github_config_reads_prefixed_environment(monkeypatch):
    monkeypatch.setenv("GITHUB_TOKEN", "ghp_from_env")
    monkeypatch.setenv("GITHUB_OWNER", "someone")
    monkeypatch.setenv("GITHUB_REPO", "cry-lab")

    config = GitHubConfig()

    assert config.token.get_secret_value() == "ghp_from_env"
    assert config.repo_path == "/repos/someone/cry-lab"
    assert "ghp_from_env" not in repr(config)


def test_polling_and_staging_read_environment(monkeypatch):
    monkeypatch.setenv("POLL_INTERVAL_SECONDS", "2.5")
    monkeypatch.setenv("POLL_STOP_ON_MALFORMED", "false")
    monkeypatch.setenv("STAGING_STRATEGY", "s3")
    monkeypatch.setenv("STAGING_S3_BUCKET", "cry-payloads")

    assert PollingConfig().interval_seconds == 2.5
    assert PollingConfig().stop_on_malformed is False
    staging = StagingConfig()
    assert staging.strategy == "s3"
    assert staging.s3_bucket == "cry-payloads"


def test_unknown_staging_strategy_is_rejected(monkeypatch):
    monkeypatch.setenv("STAGING_STRATEGY", "ftp")

    with pytest.raises(ValidationError):
        StagingConfig()


@pytest.mark.parametrize("field, value", [("interval_seconds", 0), ("timeout_seconds", -1), ("runs_per_page", 101)])
def test_polling_bounds(field, value):
    with pytest.raises(ValidationError):
        PollingConfig(**{field: value})


def test_analysis_config_from_settings():
    app_settings = Settings(
        github=GitHubConfig(token="t", owner="octo", repo="cry"),
        polling=PollingConfig(timeout_seconds=60),
        max_audio_bytes=2048,
    )

    config = AnalysisConfig.from_settings(app_settings)

    assert config.github.repo_path == "/repos/octo/cry"
    assert config.polling.timeout_seconds == 60
    assert config.max_audio_bytes == 2048
    config.require_credentials()
