"""apiref: versioned history of an evolving API surface.

Fetches successive API snapshots, diffs consecutive builds into patches, and
folds the patches into an entity graph plus two binary artifacts: the patch
manifest (reused by the next run) and the client search index.

Usage:
    from apiref import ArchiveClient, Settings, run_pipeline

    settings = Settings.load("settings.json")
    result = run_pipeline(settings, ArchiveClient())
    for cls in result.graph.class_list:
        print(cls.id, len(cls.change_log()))
"""

__version__ = "0.1.0"

# Core model
from apiref.core.api import ApiDump, Class, Enum, EnumItem, diff_dumps
from apiref.core.patch import (
    Action,
    ActionType,
    BuildInfo,
    ElementKind,
    Patch,
    PatchHistory,
    Value,
    ValueKind,
    Version,
    make_subactions,
    merge_patches,
    wrap_actions,
)

# Pipeline stages
from apiref.builds import Build, fetch_builds, merge_builds, select_range
from apiref.entities import EntityGraph

# Artifacts
from apiref.codec import (
    decode_manifest,
    decode_search_index,
    encode_manifest,
    encode_search_index,
    read_manifest,
    write_manifest,
    write_search_index,
)

# Configuration and sources
from apiref.config import RetryPolicy, Settings, SourceConfig
from apiref.source import ArchiveClient, RetryingSource, SnapshotSource

from apiref.errors import (
    ApirefError,
    CodecError,
    GraphIntegrityError,
    ManifestError,
    PatchOrderError,
    SearchIndexError,
    SettingsError,
    SnapshotFetchError,
)
from apiref.pipeline import PipelineResult, run_pipeline

__all__ = [
    "__version__",
    # Core model
    "ApiDump",
    "Class",
    "Enum",
    "EnumItem",
    "diff_dumps",
    "Action",
    "ActionType",
    "BuildInfo",
    "ElementKind",
    "Patch",
    "PatchHistory",
    "Value",
    "ValueKind",
    "Version",
    "make_subactions",
    "merge_patches",
    "wrap_actions",
    # Pipeline stages
    "Build",
    "fetch_builds",
    "merge_builds",
    "select_range",
    "EntityGraph",
    # Artifacts
    "encode_manifest",
    "decode_manifest",
    "read_manifest",
    "write_manifest",
    "encode_search_index",
    "decode_search_index",
    "write_search_index",
    # Configuration and sources
    "Settings",
    "SourceConfig",
    "RetryPolicy",
    "SnapshotSource",
    "ArchiveClient",
    "RetryingSource",
    # Errors
    "ApirefError",
    "SnapshotFetchError",
    "GraphIntegrityError",
    "PatchOrderError",
    "CodecError",
    "ManifestError",
    "SearchIndexError",
    "SettingsError",
    # Pipeline
    "PipelineResult",
    "run_pipeline",
]
