"""Configuration models for hookline."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseConfig(BaseModel):
    """Persistent store connection settings."""

    url: str = Field(default="", description="postgresql:// or postgresql+asyncpg:// URL.")
    pool_size: int = Field(default=20, ge=1)
    max_overflow: int = Field(default=10, ge=0)
    echo: bool = Field(default=False)


class HttpConfig(BaseModel):
    """Inbound webhook gateway settings."""

    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000, ge=1, le=65535)


class RegistrationConfig(BaseModel):
    """Trigger registration settings."""

    callback_base_url: str = Field(default="http://localhost:8000")
    notification_delay_seconds: float = Field(default=15.0, ge=0.0)
    conflict_retries: int = Field(default=3, ge=1, le=10)
    secret_bytes: int = Field(default=24, ge=16, le=128)


class GitHubProviderConfig(BaseModel):
    """GitHub REST API settings."""

    api_base_url: str = Field(default="https://api.github.com")
    api_version: str = Field(default="2022-11-28")


class WhatsAppProviderConfig(BaseModel):
    """WhatsApp Cloud API settings."""

    graph_base_url: str = Field(default="https://graph.facebook.com/v17.0")


class ProvidersConfig(BaseModel):
    """Provider API configuration."""

    timeout_seconds: float = Field(default=10.0, gt=0.0)
    github: GitHubProviderConfig = Field(default_factory=GitHubProviderConfig)
    whatsapp: WhatsAppProviderConfig = Field(default_factory=WhatsAppProviderConfig)


class HookLineConfig(BaseSettings):
    """Root configuration model for hookline."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    http: HttpConfig = Field(default_factory=HttpConfig)
    registration: RegistrationConfig = Field(default_factory=RegistrationConfig)
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")

    model_config = SettingsConfigDict(
        env_prefix="HOOKLINE_",
        env_nested_delimiter="__",
        extra="ignore",
    )
