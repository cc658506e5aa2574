"""Build list normalization.

Turns the raw build lists of every configured source into one ordered list:
adjacent builds of the same version collapse into the first, builds newer
than the newest live build are dropped, and the result is sorted by date.

Usage:
    builds = fetch_builds(settings.build, source)
    builds = select_range(builds, "-5")
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from apiref.config import BuildSettings
from apiref.core.api import ApiDump
from apiref.core.patch import BuildInfo
from apiref.errors import SnapshotFetchError
from apiref.source import SnapshotSource

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Build:
    """A build of one source configuration, with its snapshot once fetched."""

    config: str
    info: BuildInfo
    api: ApiDump | None = None


def collapse_builds(builds: Sequence[Build]) -> list[Build]:
    """Drop each build whose version equals that of the build right before it."""
    collapsed: list[Build] = []
    for build in builds:
        if collapsed and collapsed[-1].info.version == build.info.version:
            continue
        collapsed.append(build)
    return collapsed


def rewind_builds(
    builds: Sequence[Build], live: Sequence[BuildInfo]
) -> tuple[list[Build], list[Build]]:
    """Truncate builds after the last one that is live.

    Each live hash is searched from the newest build backward, never below the
    deepest match found so far.

    Returns:
        (kept, discarded). Everything is kept when no live hash matches.
    """
    deepest = -1
    for info in live:
        for i in range(len(builds) - 1, deepest, -1):
            if builds[i].info.hash == info.hash:
                deepest = i
                break
    if deepest < 0:
        return list(builds), []
    return list(builds[: deepest + 1]), list(builds[deepest + 1 :])


def fetch_live(settings: BuildSettings, source: SnapshotSource) -> list[BuildInfo] | None:
    """Live builds of every used configuration, or None if any list failed."""
    live: list[BuildInfo] = []
    for name in settings.use_configs:
        try:
            live.extend(source.list_live(settings.config(name)))
        except SnapshotFetchError as e:
            logger.error("Failed to fetch live builds of %s, not rewinding: %s", name, e)
            return None
    return live


def fetch_builds(settings: BuildSettings, source: SnapshotSource) -> list[Build]:
    """Fetch, collapse, rewind and sort the builds of every used configuration.

    Args:
        settings: Build settings naming the configurations to use.
        source: Snapshot source to list builds from.

    Returns:
        Builds, oldest first, without snapshots.

    Raises:
        SnapshotFetchError: If a build list cannot be fetched.
        SettingsError: If a used configuration is not defined.
    """
    builds: list[Build] = []
    for name in settings.use_configs:
        for info in source.list_builds(settings.config(name)):
            builds.append(Build(config=name, info=info))
    logger.debug("Listed %d builds from %d configurations", len(builds), len(settings.use_configs))

    builds = collapse_builds(builds)

    if not settings.disable_rewind:
        live = fetch_live(settings, source)
        if live is not None:
            builds, discarded = rewind_builds(builds, live)
            for build in discarded:
                logger.info("REWIND %s %s", build.config, build.info)

    builds.sort(key=lambda b: b.info.date)
    return builds


def parse_range(expr: str, length: int) -> range:
    """Resolve a range string against a list length.

    ``"N"`` selects from N to the end, ``"A:B"`` from A up to (not including)
    B. Negative indexes count from the end. Indexes are clamped to the list.

    Raises:
        ValueError: If the string is not a valid range.
    """

    def index(text: str, default: int) -> int:
        text = text.strip()
        if not text:
            return default
        i = int(text)
        if i < 0:
            i += length
        return min(max(i, 0), length)

    start, sep, stop = expr.partition(":")
    try:
        lo = index(start, 0)
        hi = index(stop, length) if sep else length
    except ValueError as e:
        raise ValueError(f"Invalid build range: {expr!r}") from e
    return range(lo, max(lo, hi))


def select_range(builds: Sequence[Build], expr: str | None) -> list[Build]:
    """Builds selected by a range string (all of them when expr is None)."""
    if expr is None:
        return list(builds)
    selected = parse_range(expr, len(builds))
    return [builds[i] for i in selected]
