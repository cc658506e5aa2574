"""End-to-end tests: builds through patches and graph to output files.

Why these tests exist:
The unit tests check each stage alone. These check that a second run over
unchanged builds reproduces the first run's files byte for byte, and that a
new build only costs one diff.
"""

import copy

import pytest

from apiref.codec import decode_manifest, decode_search_index
from apiref.config import OutputSettings, Settings
from apiref.errors import SnapshotFetchError
from apiref.pipeline import run_pipeline
from builders import FakeSource, dump, info, klass, prop


@pytest.fixture
def settings(tmp_path):
    return Settings(output=OutputSettings(root=tmp_path), build=FakeSource.settings("win"))


def test_first_run_writes_outputs(settings, part_source, tmp_path) -> None:
    part_source.icons = {"h3": {"Part": 34}}
    result = run_pipeline(settings, part_source)

    assert result.manifest_path == (tmp_path / "ref" / "manifest").resolve()
    assert result.new_patches == 3
    assert result.paths == [result.search_path, result.manifest_path]

    patches = decode_manifest(result.manifest_path.read_bytes())
    assert [p.info.hash for p in patches] == ["h1", "h2", "h3"]
    index = decode_search_index(result.search_path.read_bytes())
    assert index.icons == [0, 34]


def test_rerun_is_byte_identical(settings, part_source) -> None:
    """CRITICAL: an unchanged build list rewrites the same files without fetching."""
    first = run_pipeline(settings, part_source)
    manifest = first.manifest_path.read_bytes()
    search = first.search_path.read_bytes()
    part_source.fetched.clear()

    second = run_pipeline(settings, part_source)

    assert second.new_patches == 0
    assert part_source.fetched == []
    assert second.manifest_path.read_bytes() == manifest
    assert second.search_path.read_bytes() == search


def test_new_build_is_diffed_once(settings, part_source, part_history) -> None:
    run_pipeline(settings, part_source)
    h4 = info("h4", 4, "0.4.0.1")
    api4 = copy.deepcopy(part_history[2][1])
    api4.classes.append(klass("Model", prop("PrimaryPart")))
    part_source.builds["win"].append(h4)
    part_source.dumps["h4"] = api4
    part_source.fetched.clear()

    result = run_pipeline(settings, part_source)

    assert result.new_patches == 1
    assert part_source.fetched == ["h4", "h3"]
    assert "Model" in result.graph.classes


def test_force_recomputes(settings, part_source) -> None:
    run_pipeline(settings, part_source)
    result = run_pipeline(settings, part_source, force=True)
    assert result.new_patches == 3


def test_build_range(settings, part_source) -> None:
    result = run_pipeline(settings, part_source, build_range="-1")
    assert [p.info.hash for p in result.patches] == ["h3"]
    assert result.patches[0].prev is None


def test_icon_failure_is_not_fatal(settings, part_source) -> None:
    def fail(config, build_hash):
        raise SnapshotFetchError("no icons")

    part_source.fetch_class_icons = fail
    result = run_pipeline(settings, part_source)
    assert all(c.metadata.explorer_image_index == 0 for c in result.graph.class_list)


def test_list_failure_writes_nothing(settings, tmp_path) -> None:
    with pytest.raises(SnapshotFetchError):
        run_pipeline(settings, FakeSource())
    assert not (tmp_path / "ref").exists()


def test_empty_history(settings) -> None:
    result = run_pipeline(settings, FakeSource(builds={"win": []}, dumps={"x": dump()}))
    assert list(result.patches) == []
    assert decode_manifest(result.manifest_path.read_bytes()) == []
