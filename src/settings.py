"""
Application settings for the possync service.

- Defaults are intended for development use.
- For testing, override via pyproject.toml [tool.pytest.ini_options].
- For production, set environment variables to override fields.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """possync service configuration."""

    # POS (Loyverse) API Configuration
    pos_api_url: str = Field(
        default="https://api.loyverse.com/v1.0",
        description="Base URL of the POS customer API",
    )
    pos_api_token: str | None = Field(
        default=None,
        description="Bearer token for the POS API",
    )
    pos_api_token_secret_id: str | None = Field(
        default=None,
        description="Secret Manager secret holding the POS API token",
    )
    pos_api_timeout: float = Field(
        default=30.0,
        description="Timeout for POS API requests in seconds",
    )
    pos_page_size: int = Field(
        default=250,
        description="Page size used when listing POS customers",
    )
    pos_country_code: str = Field(
        default="PH",
        description="Country code applied to every exported customer",
    )

    # Primary patient store (PostgREST)
    patient_store_url: str = Field(
        default="http://localhost:54321/rest/v1",
        description="PostgREST base URL of the primary patient store",
    )
    patient_store_key: str | None = Field(
        default=None,
        description="Service key for the patient store",
    )
    patient_store_timeout: float = Field(
        default=30.0,
        description="Timeout for patient store requests in seconds",
    )

    # Sync behaviour
    sync_concurrency: int = Field(
        default=1,
        description="Number of patients synced concurrently during a bulk sync",
    )

    # GCP Configuration (Secret Manager only)
    gcp_project_id: str | None = Field(
        default=None,
        description="GCP project ID",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def model_post_init(self, __context: object) -> None:
        """Normalize derived settings after model construction."""
        self.pos_api_url = self.pos_api_url.rstrip("/")
        self.patient_store_url = self.patient_store_url.rstrip("/")
        if self.sync_concurrency < 1:
            self.sync_concurrency = 1


settings = Settings()
