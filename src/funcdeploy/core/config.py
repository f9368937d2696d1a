"""Configuration management for funcdeploy."""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Deployer configuration settings.

    Scaleway credentials use the standard ``SCW_*`` variables, everything
    else is read from ``FUNCDEPLOY_*``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="FUNCDEPLOY_",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # Scaleway API
    secret_key: Optional[str] = Field(
        None,
        description="Scaleway API secret key",
        validation_alias="SCW_SECRET_KEY",
    )
    project_id: Optional[str] = Field(
        None,
        description="Project that owns created namespaces",
        validation_alias="SCW_DEFAULT_PROJECT_ID",
    )
    region: str = Field(
        "fr-par",
        description="Functions API region",
        validation_alias="SCW_DEFAULT_REGION",
    )
    api_url: str = Field(
        "https://api.scaleway.com",
        description="Scaleway API base URL",
        validation_alias="SCW_API_URL",
    )

    # Deployment behaviour
    poll_interval_seconds: float = Field(2.0, description="Fixed interval between status polls")
    request_timeout_seconds: float = Field(30.0, description="Timeout for Functions API calls")
    transfer_timeout_seconds: float = Field(300.0, description="Timeout for archive upload/download")
    max_extract_size_mb: int = Field(100, description="Decompressed size ceiling when extracting archives")

    # Observability
    log_level: str = Field("INFO", description="Log level")
    log_format: str = Field("json", description="json or console")

    @field_validator("poll_interval_seconds", "request_timeout_seconds", "transfer_timeout_seconds")
    @classmethod
    def validate_positive_seconds(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be greater than 0")
        return v

    @field_validator("max_extract_size_mb")
    @classmethod
    def validate_extract_size(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be greater than 0")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError("log_level must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in ("json", "console"):
            raise ValueError("log_format must be 'json' or 'console'")
        return v

    @property
    def max_extract_size_bytes(self) -> int:
        return self.max_extract_size_mb * 1024 * 1024
