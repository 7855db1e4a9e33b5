"""Utility for reading the POS API token from Google Secret Manager."""

from functools import lru_cache

from google.cloud import secretmanager

from src.exceptions import ConfigurationError
from src.settings import settings


class SecretManagerClient:
    """Client for accessing secrets from Google Secret Manager."""

    def __init__(self, project_id: str | None = None) -> None:
        self.project_id = project_id or settings.gcp_project_id
        if not self.project_id:
            raise ConfigurationError(
                "GCP project ID is required to read secrets. "
                "Set GCP_PROJECT_ID environment variable."
            )
        self.client = secretmanager.SecretManagerServiceClient()

    @lru_cache(maxsize=8)
    def get_secret(self, secret_id: str, version: str = "latest") -> str:
        """Get a secret value from Secret Manager.

        Args:
            secret_id: The secret ID (name)
            version: The secret version (defaults to "latest")

        Returns:
            The secret value as a string
        """
        name = f"projects/{self.project_id}/secrets/{secret_id}/versions/{version}"

        try:
            response = self.client.access_secret_version(request={"name": name})
            return response.payload.data.decode("UTF-8").strip()
        except Exception as e:
            raise ConfigurationError(f"Failed to access secret {secret_id}: {e}") from e


_secret_client: SecretManagerClient | None = None


def get_secret(secret_id: str, version: str = "latest") -> str:
    """Read a secret through the process-wide Secret Manager client."""
    global _secret_client
    if _secret_client is None:
        _secret_client = SecretManagerClient()
    return _secret_client.get_secret(secret_id, version)
