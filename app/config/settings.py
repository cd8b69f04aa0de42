from typing import Literal, Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class GitHubConfig(BaseSettings):
    """GitHub Actions backend configuration"""

    owner: str = "marcobiz"
    repo: str = "babycry-demo"
    token: Optional[SecretStr] = None
    api_url: str = "https://api.github.com"
    event_type: str = "analyze-audio"
    request_timeout_seconds: float = Field(default=30.0, gt=0)

    @property
    def repo_path(self) -> str:
        """Get the `/repos/{owner}/{repo}` API prefix"""
        return f"/repos/{self.owner}/{self.repo}"

    model_config = SettingsConfigDict(
        env_prefix="GITHUB_",
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class PollingConfig(BaseSettings):
    """Workflow run polling cadence and deadline."""

    interval_seconds: float = Field(default=5.0, gt=0)
    timeout_seconds: float = Field(default=180.0, gt=0)
    runs_per_page: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Most recent runs inspected per tick; no pagination beyond this page.",
    )
    stop_on_malformed: bool = Field(
        default=True,
        description="Stop polling when this request's artifact cannot be parsed.",
    )

    model_config = SettingsConfigDict(
        env_prefix="POLL_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class StagingConfig(BaseSettings):
    """Payload staging strategy configuration."""

    strategy: Literal["inline", "s3", "gist"] = "inline"
    s3_bucket: Optional[str] = None
    s3_prefix: str = "payloads"
    url_expires_seconds: int = Field(default=900, ge=60)

    model_config = SettingsConfigDict(
        env_prefix="STAGING_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class S3Config(BaseSettings):
    """S3 configuration"""

    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    region: str = "us-east-1"

    model_config = SettingsConfigDict(
        env_prefix="S3_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class Settings(BaseSettings):
    """Application settings"""

    app_name: str = "BabyCry Analysis Backend"
    app_version: str = "1.0.0"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000
    log_file: str = "logs/app.log"
    analysis_log_file: str = "logs/analysis_pipeline.log"
    max_audio_bytes: int = Field(default=10 * 1024 * 1024, ge=1)

    # GitHub Actions
    github: GitHubConfig = Field(default_factory=GitHubConfig)

    # Polling
    polling: PollingConfig = Field(default_factory=PollingConfig)

    # Staging
    staging: StagingConfig = Field(default_factory=StagingConfig)

    # S3
    s3: S3Config = Field(default_factory=S3Config)

    # CORS
    cors_origins: list[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
