"""End-to-end run: builds -> patches -> entity graph -> output files.

Usage:
    settings = Settings.load()
    result = run_pipeline(settings, ArchiveClient())
    print(len(result.patches), result.manifest_path)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from apiref.builds import fetch_builds, merge_builds, select_range
from apiref.codec import read_manifest, write_manifest, write_search_index
from apiref.config import Settings
from apiref.core.patch import PatchHistory
from apiref.entities import EntityGraph
from apiref.errors import SnapshotFetchError
from apiref.source import SnapshotSource

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PipelineResult:
    patches: PatchHistory
    graph: EntityGraph
    manifest_path: Path
    search_path: Path
    new_patches: int = 0
    """Patches recomputed during this run."""
    paths: list[Path] = field(default_factory=list)
    """Every file written."""


def run_pipeline(
    settings: Settings,
    source: SnapshotSource,
    *,
    force: bool = False,
    build_range: str | None = None,
) -> PipelineResult:
    """Run one full update.

    Args:
        settings: Loaded settings.
        source: Snapshot source.
        force: Ignore the existing manifest and recompute every patch.
        build_range: Optional range string restricting the builds considered.

    Raises:
        SnapshotFetchError: If a build list cannot be fetched.
        ManifestError: If the existing manifest cannot be decoded.
        GraphIntegrityError: If the patch history is inconsistent.
    """
    manifest_path = settings.output.abs_file_path("manifest")
    search_path = settings.output.abs_file_path("search")

    cached = [] if force else read_manifest(manifest_path)
    logger.info("Loaded %d cached patches", len(cached))

    builds = select_range(fetch_builds(settings.build, source), build_range)
    logger.info("Processing %d builds", len(builds))

    patches = merge_builds(settings.build, source, cached, builds)
    new_patches = sum(1 for p in patches if p.stale)
    logger.info("Merged %d patches (%d new)", len(patches), new_patches)

    graph = EntityGraph.build(patches)
    if patches:
        latest = patches[-1]
        try:
            icons = source.fetch_class_icons(settings.build.config(latest.config), latest.info.hash)
        except SnapshotFetchError as e:
            logger.error("Failed to fetch class icons for %s: %s", latest.info, e)
        else:
            graph.apply_class_icons(icons)

    write_search_index(search_path, graph)
    write_manifest(manifest_path, patches)

    return PipelineResult(
        patches=patches,
        graph=graph,
        manifest_path=manifest_path,
        search_path=search_path,
        new_patches=new_patches,
        paths=[search_path, manifest_path],
    )
