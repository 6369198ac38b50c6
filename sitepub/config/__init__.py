"""Configuration management for sitepub."""

from .loader import DEFAULT_CONFIG_PATH, Config, load_config, save_config
from .models import (
    CadenceConfig,
    CDNConfig,
    ConfigModel,
    FeedConfig,
    FontConfig,
    HugoConfig,
    LLMConfig,
    PipelineConfig,
    PostgresConfig,
    SiteConfig,
    StorageConfig,
    TriggerConfig,
)

__all__ = [
    "Config",
    "ConfigModel",
    "CadenceConfig",
    "CDNConfig",
    "DEFAULT_CONFIG_PATH",
    "FeedConfig",
    "FontConfig",
    "HugoConfig",
    "LLMConfig",
    "PipelineConfig",
    "PostgresConfig",
    "SiteConfig",
    "StorageConfig",
    "TriggerConfig",
    "load_config",
    "save_config",
]
