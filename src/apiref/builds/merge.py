"""Diff-merge engine.

Walks the normalized builds oldest first and produces the patch history,
reusing cached patches whose predecessor still matches and diffing snapshots
for everything else.

Usage:
    history = merge_builds(settings.build, source, read_manifest(path), builds)
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from apiref.builds.normalize import Build
from apiref.config import BuildSettings
from apiref.core.api import ApiDump, diff_dumps
from apiref.core.patch import Patch, PatchHistory, wrap_actions
from apiref.errors import SettingsError, SnapshotFetchError
from apiref.source import SnapshotSource

logger = logging.getLogger(__name__)


def find_cached(cached: Sequence[Patch], build: Build) -> Patch | None:
    for patch in cached:
        if patch.info == build.info:
            return patch
    return None


def _fetch(settings: BuildSettings, source: SnapshotSource, build: Build) -> ApiDump:
    return source.fetch_snapshot(settings.config(build.config), build.info.hash)


def merge_builds(
    settings: BuildSettings,
    source: SnapshotSource,
    cached: Sequence[Patch],
    builds: Sequence[Build],
) -> PatchHistory:
    """Produce the patch history for builds.

    A cached patch for a build is reused when its ``prev`` is the build
    accepted just before; otherwise it is stale and recomputed. Builds whose
    snapshot (or whose predecessor's snapshot) cannot be fetched are skipped,
    including when a cached predecessor names a configuration that no longer
    exists.

    Args:
        settings: Build settings resolving configuration names.
        source: Snapshot source for recomputed patches.
        cached: Patches decoded from the previous manifest.
        builds: Normalized builds, oldest first.

    Returns:
        The chain-validated history. Recomputed patches have ``stale=True``.
    """
    history = PatchHistory()
    latest: Build | None = None

    for build in builds:
        patch = find_cached(cached, build)
        if patch is not None:
            expected = latest.info if latest is not None else None
            if patch.prev == expected:
                patch.stale = False
                history.append(patch)
                latest = Build(config=patch.config, info=patch.info)
                continue
            logger.info("STALE %s %s", build.config, build.info)

        logger.info("NEW %s %s", build.config, build.info)
        try:
            api = _fetch(settings, source, build)
            if latest is not None and latest.api is None:
                latest.api = _fetch(settings, source, latest)
        except (SnapshotFetchError, SettingsError) as e:
            logger.error("Skipping %s %s: %s", build.config, build.info, e)
            continue

        actions = wrap_actions(diff_dumps(latest.api if latest else None, api))
        history.append(
            Patch(
                info=build.info,
                prev=latest.info if latest else None,
                config=build.config,
                actions=actions,
                stale=True,
            )
        )
        latest = Build(config=build.config, info=build.info, api=api)

    for patch in history:
        for i, action in enumerate(patch.actions):
            action.index = i
    return history
