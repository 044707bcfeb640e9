"""Fixture configuration using Pydantic settings."""

from typing import Literal, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Fixture engine settings."""

    # Health check settings
    HEALTH_CHECK_TIMEOUT_SECONDS: float = Field(5.0, description="Deadline for a service to report healthy")
    HEALTH_CHECK_POLL_INTERVAL_MS: int = Field(50, description="Delay between health status queries")

    # Runtime settings
    DOCKER_URL: Optional[str] = None
    GATEWAY_TIMEOUT_SECONDS: float = Field(10.0, description="Deadline for a single runtime call")
    PULL_TIMEOUT_SECONDS: float = Field(600.0, description="Deadline for checking and pulling an image")

    # Resource discovery settings
    HOST_RESOLUTION: Literal["published", "container_ip"] = "published"
    PUBLISHED_HOST: str = "localhost"

    # Label settings
    RUN_ID_LABEL: str = "mittons.fixtures.run.id"
    RESOURCE_LABEL_PREFIX: str = "mittons.fixtures.resource."

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="MITTONS_",
        case_sensitive=True,
        extra="ignore",
    )

    @field_validator(
        "HEALTH_CHECK_TIMEOUT_SECONDS",
        "HEALTH_CHECK_POLL_INTERVAL_MS",
        "GATEWAY_TIMEOUT_SECONDS",
        "PULL_TIMEOUT_SECONDS",
    )
    def validate_positive(cls, v: float) -> float:
        """Validate that durations are positive."""
        if v <= 0:
            raise ValueError("Duration must be greater than 0")
        return v

    @property
    def poll_interval_seconds(self) -> float:
        """Convert HEALTH_CHECK_POLL_INTERVAL_MS to seconds."""
        return self.HEALTH_CHECK_POLL_INTERVAL_MS / 1000

settings = Settings()
