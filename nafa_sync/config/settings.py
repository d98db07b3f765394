"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables with sensible defaults.
Using Pydantic's BaseSettings means we get:
- Type validation at startup (fail fast if config is wrong)
- Documentation of what's required vs optional
- Easy testing with different configurations

Mock mode for the mirror store enables local development without R2.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    Names match the secrets the sync worker has always been deployed with.
    """

    # API Configuration
    api_title: str = "NAFA Audit Sync"

    # Monday.com Configuration
    monday_api_token: str = Field(
        default="",
        description="Monday.com API token, sent as-is in the Authorization header"
    )
    monday_api_url: str = Field(
        default="https://api.monday.com/v2",
        description="Monday.com GraphQL endpoint"
    )
    nafa_file_column_id: str = Field(
        default="",
        description="Monday.com column ID for the NAFA file upload"
    )
    close_lead_id_column_id: str = Field(
        default="",
        description="Monday.com column ID containing the Close Lead ID"
    )

    # Close CRM Configuration
    close_api_key: str = Field(
        default="",
        description="Close API key. Used as the Basic auth username with an empty password."
    )
    close_api_url: str = Field(
        default="https://api.close.com/api/v1",
        description="Close REST API base URL"
    )
    close_nafa_url_field_id: str = Field(
        default="",
        description="Close custom field ID that receives the public NAFA report URL"
    )

    # R2 Mirror Store Configuration
    r2_public_url: str = Field(
        default="",
        description="Public base URL for the R2 bucket"
    )
    r2_account_id: str = Field(
        default="",
        description="Cloudflare account ID for R2"
    )
    r2_access_key_id: str = Field(
        default="",
        description="R2 access key ID"
    )
    r2_secret_access_key: str = Field(
        default="",
        description="R2 secret access key"
    )
    r2_bucket_name: str = Field(
        default="nafa-audit-pdfs",
        description="R2 bucket holding the public copies of audit files"
    )
    r2_endpoint_url: Optional[str] = Field(
        default=None,
        description="R2 endpoint URL. Auto-constructed from account_id if not provided."
    )
    r2_mock_mode: bool = Field(
        default=False,
        description="Use in-memory mock instead of real R2. Enables local dev without object storage."
    )

    # Outbound HTTP
    http_timeout_seconds: float = Field(
        default=60.0,
        description="Timeout for Monday and Close calls. Audit PDFs can be large."
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def r2_endpoint(self) -> str:
        """
        Construct R2 endpoint URL from account ID.

        R2 endpoints follow the pattern: https://{account_id}.r2.cloudflarestorage.com
        This is S3-compatible but uses Cloudflare's network.
        """
        if self.r2_endpoint_url:
            return self.r2_endpoint_url
        return f"https://{self.r2_account_id}.r2.cloudflarestorage.com"

    def validate_required_fields(self) -> list[str]:
        """
        Validate that required fields are set based on mock mode settings.

        Returns list of missing required fields.
        This is separate from Pydantic validation because requirements
        depend on whether we're in mock mode.
        """
        missing = []

        required = {
            "MONDAY_API_TOKEN": self.monday_api_token,
            "CLOSE_API_KEY": self.close_api_key,
            "NAFA_FILE_COLUMN_ID": self.nafa_file_column_id,
            "CLOSE_LEAD_ID_COLUMN_ID": self.close_lead_id_column_id,
            "CLOSE_NAFA_URL_FIELD_ID": self.close_nafa_url_field_id,
            "R2_PUBLIC_URL": self.r2_public_url,
        }
        missing.extend(name for name, value in required.items() if not value)

        # R2 credentials only required if not in mock mode
        if not self.r2_mock_mode:
            if not self.r2_account_id and not self.r2_endpoint_url:
                missing.append("R2_ACCOUNT_ID")
            if not self.r2_access_key_id:
                missing.append("R2_ACCESS_KEY_ID")
            if not self.r2_secret_access_key:
                missing.append("R2_SECRET_ACCESS_KEY")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache means we only load settings once per process.
    This is safe because settings don't change during runtime.
    For tests, you can call get_settings.cache_clear() to reset.
    """
    return Settings()
