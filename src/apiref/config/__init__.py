"""Configuration module using Pydantic Settings.

Usage:
    from apiref.config import Settings

    settings = Settings.load()
    settings = Settings(output={"root": "site"})
"""

from apiref.config.settings import (
    BuildSettings,
    OutputSettings,
    RetryPolicy,
    Settings,
    SourceConfig,
)

__all__ = [
    "Settings",
    "OutputSettings",
    "BuildSettings",
    "SourceConfig",
    "RetryPolicy",
]
