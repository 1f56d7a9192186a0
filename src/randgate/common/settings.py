"""Configuration management using pydantic-settings."""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Hard ceiling on a single draw; configuration may lower it, never raise it.
MAX_BYTE_LENGTH = 1024


@dataclass(frozen=True)
class AuthConfig:
    """Shared secrets used to authenticate callers.

    Built once at process start and handed to the request handler. The
    header value and the HMAC secret are excluded from repr.
    """

    header_name: str
    header_value: str = field(repr=False)
    hmac_secret: str = field(repr=False)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="RANDGATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Auth
    auth_header_name: str = Field(
        description="Name of the pre-shared header every caller must send",
    )
    auth_header_value: SecretStr = Field(
        description="Expected value of the pre-shared header",
    )
    hmac_secret: SecretStr = Field(
        description="Shared HMAC-SHA384 key used to verify request MACs",
    )
    mac_header: str = Field(
        default="hmac",
        description="Header carrying the base64 HMAC of the canonical message",
    )

    # Service
    route_path: str = Field(
        default="/",
        description="The single path that serves random bytes",
    )
    max_byte_length: int = Field(
        default=MAX_BYTE_LENGTH,
        description="Largest byteLength accepted per request",
    )
    reject_status_code: int = Field(
        default=500,
        description="Status code of the uniform failure response",
    )
    disclosure_path: str | None = Field(
        default=None,
        description="Optional file whose text replaces the built-in failure body",
    )
    host: str = Field(
        default="0.0.0.0",
        description="Host for the HTTP server",
    )
    port: int = Field(
        default=8080,
        description="Port for the HTTP server",
    )

    # Observability
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Log level",
    )
    log_json: bool = Field(
        default=True,
        description="Emit JSON log lines (console format when False)",
    )
    metrics_port: int | None = Field(
        default=None,
        description="Port for a separate Prometheus listener (disabled when unset)",
    )

    # Client
    http_timeout: float = Field(
        default=10.0,
        description="HTTP request timeout in seconds for the bundled client",
    )

    @field_validator("max_byte_length")
    @classmethod
    def _check_max_byte_length(cls, value: int) -> int:
        if not 0 < value <= MAX_BYTE_LENGTH:
            raise ValueError(f"max_byte_length must be within 1..{MAX_BYTE_LENGTH}")
        return value

    @field_validator("reject_status_code")
    @classmethod
    def _check_reject_status_code(cls, value: int) -> int:
        if not 400 <= value <= 599:
            raise ValueError("reject_status_code must be an error status within 400..599")
        return value

    @field_validator("route_path")
    @classmethod
    def _check_route_path(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("route_path must start with '/'")
        return value

    def auth_config(self) -> AuthConfig:
        """Build the immutable auth configuration."""
        return AuthConfig(
            header_name=self.auth_header_name,
            header_value=self.auth_header_value.get_secret_value(),
            hmac_secret=self.hmac_secret.get_secret_value(),
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()  # type: ignore[call-arg]
