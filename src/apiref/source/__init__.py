"""Snapshot sources: where builds and API dumps come from."""

from apiref.source.archive import ArchiveClient, parse_build_list, parse_live
from apiref.source.protocol import SnapshotSource
from apiref.source.retry import RetryingSource, build_retryer

__all__ = [
    "SnapshotSource",
    "ArchiveClient",
    "RetryingSource",
    "build_retryer",
    "parse_build_list",
    "parse_live",
]
