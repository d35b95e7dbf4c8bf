"""Configuration for the App Services SDK.

Uses Pydantic v2 for validation with sensible defaults.
"""

from __future__ import annotations

from typing import Annotated, Any, Self

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    field_validator,
)

from .routes import app_base_url, app_location_url

SDK_NAME = "app-services-sdk"
SDK_VERSION = "0.1.0"

DEFAULT_HEADERS: dict[str, str] = {
    "Accept": "application/json",
    "Content-Type": "application/json",
}


class TelemetryConfig(BaseModel):
    """Logging and tracing configuration."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    service_name: str = SDK_NAME
    service_version: str = SDK_VERSION
    log_level: str = "INFO"
    # Rendered as JSON lines when true, as console key=value pairs otherwise
    json_logs: bool = True

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a known level name."""
        supported = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in supported:
            msg = f"Unsupported log level: {v}. Supported: {supported}"
            raise ValueError(msg)
        return v.upper()


class TransportConfig(BaseModel):
    """Settings for the network transport."""

    model_config = ConfigDict(frozen=True)

    default_headers: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_HEADERS))
    # Applied to requests that do not carry their own timeout
    timeout_ms: Annotated[float, Field(ge=0)] | None = None
    connect_timeout: Annotated[float, Field(gt=0, le=60)] = 10.0
    user_agent: str = f"{SDK_NAME}/{SDK_VERSION} Python"


class OAuth2Config(BaseModel):
    """Settings for the OAuth 2.0 redirect flow."""

    model_config = ConfigDict(frozen=True)

    poll_interval: Annotated[float, Field(gt=0, le=10)] = 0.25
    completion_timeout: Annotated[float, Field(gt=0)] | None = 300.0
    state_length: Annotated[int, Field(ge=16, le=256)] = 64
    storage_prefix: str = Field(default="oauth2", min_length=1)


class AppServicesConfig(BaseModel):
    """Main configuration for the App Services SDK."""

    model_config = ConfigDict(frozen=True, validate_default=True)

    # Required
    base_url: HttpUrl
    app_id: str = Field(..., min_length=1)

    # Ask the server where the app is deployed before the first request
    resolve_location: bool = False

    # Sub-configurations
    transport: TransportConfig = Field(default_factory=TransportConfig)
    oauth2: OAuth2Config = Field(default_factory=OAuth2Config)
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)

    @property
    def base_url_str(self) -> str:
        """Get base URL as string without trailing slash."""
        return str(self.base_url).rstrip("/")

    @property
    def app_url(self) -> str:
        """Base URL of the app on the configured server."""
        return app_base_url(self.base_url_str, self.app_id)

    @property
    def location_url(self) -> str:
        return app_location_url(self.base_url_str, self.app_id)

    def with_overrides(self, **kwargs: Any) -> Self:
        """Create new config with overridden values."""
        data = self.model_dump(mode="json")
        data.update(kwargs)
        return self.__class__(**data)

    @classmethod
    def from_env(cls, prefix: str = "APP_SERVICES_") -> Self:
        """Create config from environment variables."""
        import os

        def get_env(key: str, default: Any = None) -> Any:
            return os.environ.get(f"{prefix}{key}", default)

        base_url = get_env("BASE_URL")
        if not base_url:
            msg = f"{prefix}BASE_URL environment variable is required"
            raise ValueError(msg)

        app_id = get_env("APP_ID")
        if not app_id:
            msg = f"{prefix}APP_ID environment variable is required"
            raise ValueError(msg)

        timeout_ms = get_env("TIMEOUT_MS")
        return cls(
            base_url=base_url,
            app_id=app_id,
            resolve_location=get_env("RESOLVE_LOCATION", "false").lower()
            in {"1", "true", "yes"},
            transport=TransportConfig(
                timeout_ms=float(timeout_ms) if timeout_ms else None,
            ),
            telemetry=TelemetryConfig(log_level=get_env("LOG_LEVEL", "INFO")),
        )
