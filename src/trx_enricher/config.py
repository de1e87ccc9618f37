"""Configuration settings using pydantic-settings."""

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError


class TripleEnvironment(str, Enum):
    """Triple API environment."""

    SANDBOX = "sandbox"
    PRODUCTION = "production"


TRIPLE_BASE_URLS = {
    TripleEnvironment.SANDBOX: "https://api.sandbox.tripledev.app/api",
    TripleEnvironment.PRODUCTION: "https://api.triple.app/api",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # API credential
    triple_api_token: Optional[str] = Field(None, description="Triple API token")
    triple_environment: TripleEnvironment = Field(
        TripleEnvironment.SANDBOX, description="Triple API environment"
    )

    # Batching / throttling
    batch_size: int = Field(10, description="Transactions enriched concurrently per batch")
    batch_delay: float = Field(0.0, description="Pause between batches in seconds")
    read_chunk_size: int = Field(1000, description="Rows read from the input file per chunk")

    # Logging
    log_level: str = Field("INFO", description="Logging level")

    # Timeouts
    http_timeout: float = Field(30.0, description="HTTP request timeout in seconds")

    # Triple API settings
    triple_sandbox_url: str = Field(
        TRIPLE_BASE_URLS[TripleEnvironment.SANDBOX],
        description="Triple sandbox API base URL"
    )
    triple_production_url: str = Field(
        TRIPLE_BASE_URLS[TripleEnvironment.PRODUCTION],
        description="Triple production API base URL"
    )

    def base_url_for(self, environment: TripleEnvironment) -> str:
        """Get the Triple base URL for an environment."""
        if environment is TripleEnvironment.PRODUCTION:
            return self.triple_production_url
        return self.triple_sandbox_url


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the settings instance, loading it on first use."""
    return Settings()


class RunConfig(BaseModel):
    """Validated parameters of one enrichment run."""

    model_config = ConfigDict(frozen=True)

    input_path: Path
    output_path: Path
    api_token: SecretStr
    environment: TripleEnvironment = TripleEnvironment.SANDBOX
    batch_size: int = Field(10, ge=1)
    batch_delay: float = Field(0.0, ge=0)
    http_timeout: float = Field(30.0, gt=0)
    read_chunk_size: int = Field(1000, ge=1)
    base_url: Optional[str] = None

    @field_validator("api_token")
    @classmethod
    def _token_not_blank(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value().strip():
            raise ValueError("API token must not be blank")
        return value

    @property
    def resolved_base_url(self) -> str:
        return self.base_url or TRIPLE_BASE_URLS[self.environment]

    @classmethod
    def from_settings(
        cls,
        input_path: Path,
        output_path: Optional[Path] = None,
        settings: Optional[Settings] = None,
        **overrides,
    ) -> "RunConfig":
        """
        Build a run config, filling unset values from settings.

        Raises:
            ConfigurationError: If any value is invalid
        """
        settings = settings or get_settings()
        values = {
            "api_token": settings.triple_api_token or "",
            "environment": settings.triple_environment,
            "batch_size": settings.batch_size,
            "batch_delay": settings.batch_delay,
            "http_timeout": settings.http_timeout,
            "read_chunk_size": settings.read_chunk_size,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        try:
            environment = TripleEnvironment(values["environment"])
            return cls(
                input_path=input_path,
                output_path=output_path or default_output_path(input_path),
                base_url=settings.base_url_for(environment),
                **values,
            )
        except ValidationError as e:
            raise ConfigurationError(str(e)) from e
        except ValueError as e:
            raise ConfigurationError(f"Unknown Triple environment: {values['environment']!r}") from e


def default_output_path(input_path: Path) -> Path:
    """Derive the output path from the input path."""
    return input_path.with_name(f"{input_path.name}.output")
