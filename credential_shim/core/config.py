from typing import Optional
from enum import Enum
import logging

from pydantic import AnyHttpUrl, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from credential_shim.core.exceptions import ConfigurationError


class RefreshMode(str, Enum):
    """Enum for the background refresh scheduling strategies"""
    INTERVAL = "interval"
    EXPIRATION = "expiration"


class Settings(BaseSettings):
    # Endpoint settings, as exported by e.g. `aws-vault exec --ecs-server`
    AWS_CONTAINER_CREDENTIALS_FULL_URI: Optional[AnyHttpUrl] = None
    AWS_CONTAINER_AUTHORIZATION_TOKEN: Optional[str] = None

    # Refresh loop settings (seconds)
    CREDENTIAL_SHIM_REFRESH_INTERVAL: float = Field(30.0, gt=0)
    CREDENTIAL_SHIM_RETRY_INTERVAL: float = Field(60.0, gt=0)
    CREDENTIAL_SHIM_REFRESH_MODE: RefreshMode = RefreshMode.INTERVAL
    CREDENTIAL_SHIM_REFRESH_BUFFER: float = Field(30.0, ge=0)

    # Timeout for a single request to the credentials endpoint
    CREDENTIAL_SHIM_HTTP_TIMEOUT: float = Field(10.0, gt=0)

    CREDENTIAL_SHIM_LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        case_sensitive=True,
        extra="ignore"
    )

    @field_validator("CREDENTIAL_SHIM_LOG_LEVEL", mode="before")
    @classmethod
    def validate_log_level(cls, v):
        """Normalize the log level name and reject unknown levels"""
        if isinstance(v, str):
            v = v.strip().upper()
            if not isinstance(logging.getLevelName(v), int):
                raise ValueError(f"Unknown log level: {v}")
        return v

    def get_credentials_uri(self) -> str:
        """Get the credentials endpoint URI, failing if it is not configured"""
        if self.AWS_CONTAINER_CREDENTIALS_FULL_URI is None:
            raise ConfigurationError("AWS_CONTAINER_CREDENTIALS_FULL_URI is not set")
        return str(self.AWS_CONTAINER_CREDENTIALS_FULL_URI)

    def get_authorization_token(self) -> Optional[str]:
        """Get the authorization header value, or None when empty"""
        return self.AWS_CONTAINER_AUTHORIZATION_TOKEN or None


def load_settings() -> Settings:
    """Read settings from the current process environment

    Called on every fetch rather than once at startup so that a token
    rotated in the environment is picked up by later refreshes.

    Raises:
        ConfigurationError: If any setting fails validation
    """
    try:
        return Settings()
    except ValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err.get("loc"))
        raise ConfigurationError(f"Bad configuration ({fields}): {e}") from e
