"""Configuration settings using Pydantic Settings.

Settings come from a JSON settings file, environment variables (``APIREF_*``,
nested sections joined with ``__``) and a ``.env`` file. Values passed
explicitly, including those read from the settings file, win over the
environment.

Usage:
    from apiref.config import Settings

    settings = Settings.load("settings.json")
    manifest = settings.output.file_path("manifest")

    # Environment overrides
    #   APIREF_OUTPUT__ROOT=/srv/ref
    #   APIREF_BUILD__DISABLE_REWIND=true
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from apiref.errors import SettingsError

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_FILE = "settings.json"


@dataclass(frozen=True)
class RetryPolicy:
    """Configuration for retrying failed snapshot fetches."""

    max_attempts: int = 1
    """Maximum attempts (1 = no retry). Default: no retry."""

    backoff: Literal["none", "linear", "exponential"] = "none"
    """Backoff strategy between retries."""

    base_delay: float = 0.5
    """Base delay in seconds for backoff calculation."""


class SourceConfig(BaseModel):
    """Where one build configuration's data lives.

    Each field lists locations tried for that kind of data. ``$HASH`` (or
    ``${HASH}``) in a location expands to the build hash.
    """

    builds: list[str] = Field(default_factory=list)
    live: list[str] = Field(default_factory=list)
    api_dump: list[str] = Field(default_factory=list)
    class_icons: list[str] = Field(default_factory=list)


class OutputSettings(BaseModel):
    """Output locations. Files are written under ``root/sub``."""

    root: Path = Path(".")
    sub: str = "ref"
    manifest: str = "manifest"
    search: str = "search.db"

    def file_path(self, kind: Literal["manifest", "search"]) -> Path:
        """Path of an output file, relative to ``root``.

        Raises:
            ValueError: If the kind is unknown.
        """
        if kind == "manifest":
            return Path(self.sub) / self.manifest
        if kind == "search":
            return Path(self.sub) / self.search
        raise ValueError(f"Unknown output file kind: {kind!r}")

    def abs_file_path(self, kind: Literal["manifest", "search"]) -> Path:
        return (self.root / self.file_path(kind)).resolve()


class BuildSettings(BaseModel):
    configs: dict[str, SourceConfig] = Field(default_factory=dict)
    """Source configurations by name."""

    use_configs: list[str] = Field(default_factory=list)
    """Names of the configurations to read builds from, in order."""

    disable_rewind: bool = False
    """Keep builds newer than the newest live build."""

    def config(self, name: str) -> SourceConfig:
        """Configuration by name.

        Raises:
            SettingsError: If no configuration has that name.
        """
        try:
            return self.configs[name]
        except KeyError:
            raise SettingsError(f"Unknown build configuration: {name!r}") from None


class Settings(BaseSettings):  # type: ignore[misc]
    """Top-level settings.

    Environment Variables:
        APIREF_OUTPUT__ROOT, APIREF_OUTPUT__SUB, APIREF_OUTPUT__MANIFEST,
        APIREF_OUTPUT__SEARCH
        APIREF_BUILD__USE_CONFIGS (JSON list), APIREF_BUILD__DISABLE_REWIND
        APIREF_RETRY__MAX_ATTEMPTS, APIREF_RETRY__BACKOFF,
        APIREF_RETRY__BASE_DELAY
    """

    model_config = SettingsConfigDict(
        env_prefix="APIREF_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    output: OutputSettings = Field(default_factory=OutputSettings)
    build: BuildSettings = Field(default_factory=BuildSettings)
    retry: RetryPolicy = Field(default_factory=RetryPolicy)

    @classmethod
    def from_file(cls, path: str | Path) -> Settings:
        """Load settings from a JSON file.

        Raises:
            SettingsError: If the file cannot be read or is invalid.
        """
        path = Path(path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except OSError as e:
            raise SettingsError(f"Cannot read settings file {path}: {e}") from e
        except json.JSONDecodeError as e:
            raise SettingsError(f"Invalid JSON in settings file {path}: {e}") from e
        if not isinstance(data, dict):
            raise SettingsError(f"Settings file {path} must hold a JSON object")
        try:
            return cls(**data)
        except ValidationError as e:
            raise SettingsError(f"Invalid settings in {path}: {e}") from e

    @classmethod
    def load(cls, path: str | Path | None = None) -> Settings:
        """Load settings from path, else ``settings.json`` if present, else defaults."""
        if path is not None:
            return cls.from_file(path)
        default = Path(DEFAULT_SETTINGS_FILE)
        if default.is_file():
            logger.debug("Using settings file %s", default.resolve())
            return cls.from_file(default)
        try:
            return cls()
        except ValidationError as e:
            raise SettingsError(f"Invalid settings: {e}") from e
