"""Build normalization and the diff-merge engine."""

from apiref.builds.merge import find_cached, merge_builds
from apiref.builds.normalize import (
    Build,
    collapse_builds,
    fetch_builds,
    fetch_live,
    parse_range,
    rewind_builds,
    select_range,
)

__all__ = [
    "Build",
    "collapse_builds",
    "rewind_builds",
    "fetch_live",
    "fetch_builds",
    "parse_range",
    "select_range",
    "find_cached",
    "merge_builds",
]
