"""File-based snapshot source.

Reads build lists, live lists, API dumps and icon tables from local files.
Locations come from a SourceConfig; ``$HASH`` and ``${HASH}`` expand to the
requested build hash, a ``file://`` prefix is accepted, and relative paths
resolve against ``base_dir``. The file extension selects the format.

Usage:
    client = ArchiveClient(base_dir=Path("archive"))
    config = SourceConfig(builds=["builds.json"], api_dump=["dumps/$HASH.json"])
    dump = client.fetch_snapshot(config, "version-abc")
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

from apiref.config import SourceConfig
from apiref.core.api import ApiDump
from apiref.core.patch import BuildInfo
from apiref.errors import SnapshotFetchError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def parse_build_list(data: Any) -> list[BuildInfo]:
    """Parse a JSON build list: strings (hash only) or Hash/Date/Version objects.

    Raises:
        SnapshotFetchError: If the data is not a list of builds.
    """
    if not isinstance(data, list):
        raise SnapshotFetchError(f"build list must be a JSON array, got {type(data).__name__}")
    try:
        return [BuildInfo.from_dict(entry) for entry in data]
    except (ValueError, TypeError, AttributeError) as e:
        raise SnapshotFetchError(f"invalid build entry: {e}") from e


def parse_live(text: str, suffix: str) -> list[BuildInfo]:
    """Parse a live list: JSON (entry or list of entries) or raw text hashes."""
    if suffix == ".json":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise SnapshotFetchError(f"invalid live JSON: {e}") from e
        return parse_build_list(data if isinstance(data, list) else [data])
    return [BuildInfo(hash=line.strip()) for line in text.splitlines() if line.strip()]


class ArchiveClient:
    """SnapshotSource reading from the local filesystem.

    Args:
        base_dir: Directory relative locations resolve against. Defaults to the
            working directory.
    """

    def __init__(self, base_dir: str | Path | None = None) -> None:
        self.base_dir = Path(base_dir) if base_dir is not None else Path.cwd()

    def resolve(self, location: str, build_hash: str = "") -> Path:
        """Expand a location into a filesystem path."""
        location = location.replace("${HASH}", build_hash).replace("$HASH", build_hash)
        if location.startswith("file://"):
            location = location[len("file://") :]
        path = Path(location)
        if not path.is_absolute():
            path = self.base_dir / path
        return path

    def _read(self, location: str, build_hash: str = "") -> tuple[Path, str]:
        path = self.resolve(location, build_hash)
        try:
            return path, path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise SnapshotFetchError(f"cannot read {path}: {e}") from e

    def _first(
        self,
        what: str,
        locations: list[str],
        build_hash: str,
        parse: Callable[[Path, str], T],
    ) -> T:
        if not locations:
            raise SnapshotFetchError(f"no {what} location configured")
        error: SnapshotFetchError | None = None
        for location in locations:
            try:
                path, text = self._read(location, build_hash)
                return parse(path, text)
            except SnapshotFetchError as e:
                logger.debug("Failed to read %s from %s: %s", what, location, e)
                error = e
        raise SnapshotFetchError(f"all {what} locations failed; last error: {error}") from error

    def list_builds(self, config: SourceConfig) -> list[BuildInfo]:
        def parse(path: Path, text: str) -> list[BuildInfo]:
            if path.suffix != ".json":
                raise SnapshotFetchError(f"unsupported build list format: {path.suffix or path.name}")
            try:
                return parse_build_list(json.loads(text))
            except json.JSONDecodeError as e:
                raise SnapshotFetchError(f"invalid build list {path}: {e}") from e

        return self._first("builds", config.builds, "", parse)

    def list_live(self, config: SourceConfig) -> list[BuildInfo]:
        builds: list[BuildInfo] = []
        for location in config.live:
            path, text = self._read(location)
            builds.extend(parse_live(text, path.suffix))
        return builds

    def fetch_snapshot(self, config: SourceConfig, build_hash: str) -> ApiDump:
        def parse(path: Path, text: str) -> ApiDump:
            if path.suffix != ".json":
                raise SnapshotFetchError(f"unsupported API dump format: {path.suffix or path.name}")
            try:
                return ApiDump.loads(text)
            except (ValueError, TypeError, AttributeError) as e:
                raise SnapshotFetchError(f"invalid API dump {path}: {e}") from e

        return self._first("api_dump", config.api_dump, build_hash, parse)

    def fetch_class_icons(self, config: SourceConfig, build_hash: str) -> dict[str, int]:
        if not config.class_icons:
            return {}

        def parse(path: Path, text: str) -> dict[str, int]:
            try:
                data = json.loads(text)
                return {str(name): int(index) for name, index in data.items()}
            except (ValueError, TypeError, AttributeError) as e:
                raise SnapshotFetchError(f"invalid class icon table {path}: {e}") from e

        return self._first("class_icons", config.class_icons, build_hash, parse)
