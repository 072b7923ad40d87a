"""Config module exports."""

from dirembed.config.loader import DirEmbedSettings, load_config
from dirembed.config.models import (
    DirEmbedConfig,
    EmbedderConfig,
    IndexConfig,
    LoggingConfig,
    LogOutputConfig,
    SearchConfig,
)

__all__ = [
    "load_config",
    "DirEmbedConfig",
    "DirEmbedSettings",
    "EmbedderConfig",
    "IndexConfig",
    "LoggingConfig",
    "LogOutputConfig",
    "SearchConfig",
]
