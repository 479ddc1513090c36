"""Configuration system for hookline."""

from hookline.config.loader import ConfigLoadError, YAMLConfigLoader, load_config
from hookline.config.models import (
    DatabaseConfig,
    GitHubProviderConfig,
    HookLineConfig,
    HttpConfig,
    ProvidersConfig,
    RegistrationConfig,
    WhatsAppProviderConfig,
)

__all__ = [
    "ConfigLoadError",
    "DatabaseConfig",
    "GitHubProviderConfig",
    "HookLineConfig",
    "HttpConfig",
    "ProvidersConfig",
    "RegistrationConfig",
    "WhatsAppProviderConfig",
    "YAMLConfigLoader",
    "load_config",
]
