"""Service layer helpers for external integrations."""

from .github_actions import GitHubActionsClient, GitHubApiError
from .storage import S3PayloadStore, StorageError

__all__ = [
    "GitHubActionsClient",
    "GitHubApiError",
    "S3PayloadStore",
    "StorageError",
]
