"""Snapshot source protocol for swappable backends.

A source answers four questions for a build configuration: which builds exist,
which builds are live, what the API looked like at a build, and which explorer
icon each class uses. Every method raises ``SnapshotFetchError`` on failure.

Usage:
    source = ArchiveClient(base_dir=Path("archive"))
    builds = source.list_builds(settings.build.config("win"))
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from apiref.config import SourceConfig
from apiref.core.api import ApiDump
from apiref.core.patch import BuildInfo


@runtime_checkable
class SnapshotSource(Protocol):
    """Abstract snapshot source. Implementations handle actual retrieval."""

    def list_builds(self, config: SourceConfig) -> list[BuildInfo]:
        """All known builds of a configuration, in source order."""
        ...

    def list_live(self, config: SourceConfig) -> list[BuildInfo]:
        """Builds currently deployed. Only hashes are meaningful."""
        ...

    def fetch_snapshot(self, config: SourceConfig, build_hash: str) -> ApiDump:
        """API snapshot of one build."""
        ...

    def fetch_class_icons(self, config: SourceConfig, build_hash: str) -> dict[str, int]:
        """Explorer icon index per class name; empty when not configured."""
        ...
