"""Configuration for the page fetcher service."""

from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServiceSettings(BaseSettings):
    """Service configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Server
    port: int = Field(
        default=3003,
        description="Service port",
    )
    host: str = Field(
        default="0.0.0.0",
        description="Service host",
    )

    # Traffic shaping
    block_media: bool = Field(
        default=False,
        description="Abort image, audio and video requests",
    )

    # Proxy
    proxy_server: str | None = Field(
        default=None,
        description="Outbound proxy server (e.g., http://proxy:8080)",
    )
    proxy_username: str | None = Field(
        default=None,
        description="Proxy username (used only together with proxy_password)",
    )
    proxy_password: str | None = Field(
        default=None,
        description="Proxy password (used only together with proxy_username)",
    )

    # Browser options
    headless: bool = Field(
        default=True,
        description="Run browser in headless mode",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: str = Field(
        default="json",
        description="Log format (json or console)",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v.upper()

    @field_validator("block_media", mode="before")
    @classmethod
    def parse_block_media(cls, v: Any) -> bool:
        """Only the literal TRUE (any case) enables media blocking."""
        if isinstance(v, str):
            return v.strip().upper() == "TRUE"
        return bool(v)

    @field_validator("proxy_server", "proxy_username", "proxy_password", mode="before")
    @classmethod
    def empty_as_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def proxy(self) -> dict[str, str] | None:
        """Playwright proxy settings, or None when no proxy server is set."""
        if not self.proxy_server:
            return None
        if self.proxy_username and self.proxy_password:
            return {
                "server": self.proxy_server,
                "username": self.proxy_username,
                "password": self.proxy_password,
            }
        return {"server": self.proxy_server}


# Global settings instance
settings = ServiceSettings()
