"""Tests for build list normalization.

Critical Invariants:
- Only strictly adjacent builds of the same version collapse
- Rewind truncates after the deepest live build and logs what it drops
- Output is sorted oldest first
"""

import logging

import pytest

from apiref.builds import collapse_builds, fetch_builds, parse_range, rewind_builds, select_range
from apiref.errors import SettingsError, SnapshotFetchError
from builders import FakeSource, builds, info


def hashes(bs):
    return [b.info.hash for b in bs]


def test_collapse_keeps_first_of_adjacent_duplicates() -> None:
    bs = builds(
        info("a", 1, "0.1.0.0"),
        info("b", 2, "0.1.0.0"),
        info("c", 3, "0.2.0.0"),
        info("d", 4, "0.1.0.0"),
    )
    assert hashes(collapse_builds(bs)) == ["a", "c", "d"]


def test_collapse_treats_zero_version_like_any_other() -> None:
    bs = builds(info("a", 1, "0.0.0.0"), info("b", 2, "0.0.0.0"))
    assert hashes(collapse_builds(bs)) == ["a"]


def test_rewind_truncates_after_deepest_live() -> None:
    bs = builds(info("a", 1), info("b", 2, "0.2.0.0"), info("c", 3, "0.3.0.0"), info("d", 4, "0.4.0.0"))
    kept, dropped = rewind_builds(bs, [info("a"), info("c")])
    assert hashes(kept) == ["a", "b", "c"]
    assert hashes(dropped) == ["d"]


def test_rewind_without_match_keeps_everything() -> None:
    bs = builds(info("a", 1), info("b", 2, "0.2.0.0"))
    kept, dropped = rewind_builds(bs, [info("zzz")])
    assert hashes(kept) == ["a", "b"]
    assert dropped == []


def test_rewind_does_not_search_below_deepest_match() -> None:
    """A later live hash only matches at or above the deepest match so far."""
    bs = builds(info("a", 1), info("b", 2, "0.2.0.0"), info("c", 3, "0.3.0.0"))
    kept, _ = rewind_builds(bs, [info("c"), info("a")])
    assert hashes(kept) == ["a", "b", "c"]


def test_fetch_builds_collapse_and_rewind(caplog) -> None:
    """[v1@t1, v1@t2, v2@t3, v3@t4] with v2 live -> [v1@t1, v2@t3]."""
    v1a, v1b = info("v1a", 1, "0.1.0.0"), info("v1b", 2, "0.1.0.0")
    v2, v3 = info("v2", 3, "0.2.0.0"), info("v3", 4, "0.3.0.0")
    source = FakeSource(builds={"win": [v1a, v1b, v2, v3]}, live={"win": [v2]})

    with caplog.at_level(logging.INFO, logger="apiref.builds.normalize"):
        result = fetch_builds(FakeSource.settings("win"), source)

    assert [b.info for b in result] == [v1a, v2]
    assert any("REWIND" in r.getMessage() and "v3" in r.getMessage() for r in caplog.records)


def test_fetch_builds_disable_rewind() -> None:
    v1, v2 = info("v1", 1, "0.1.0.0"), info("v2", 2, "0.2.0.0")
    source = FakeSource(builds={"win": [v1, v2]}, live={"win": [v1]})
    result = fetch_builds(FakeSource.settings("win", disable_rewind=True), source)
    assert [b.info for b in result] == [v1, v2]


def test_fetch_builds_live_failure_means_no_rewind(caplog) -> None:
    v1, v2 = info("v1", 1, "0.1.0.0"), info("v2", 2, "0.2.0.0")
    source = FakeSource(builds={"win": [v1, v2]}, live={"win": [v1]})
    source.live_fails = True
    with caplog.at_level(logging.ERROR):
        result = fetch_builds(FakeSource.settings("win"), source)
    assert [b.info for b in result] == [v1, v2]
    assert any(r.levelno == logging.ERROR for r in caplog.records)


def test_fetch_builds_merges_configs_and_sorts() -> None:
    win = [info("w1", 1, "0.1.0.0"), info("w2", 5, "0.3.0.0")]
    mac = [info("m1", 3, "0.2.0.0")]
    source = FakeSource(builds={"win": win, "mac": mac})
    result = fetch_builds(FakeSource.settings("win", "mac"), source)
    assert [(b.config, b.info.hash) for b in result] == [("win", "w1"), ("mac", "m1"), ("win", "w2")]


def test_fetch_builds_list_failure_is_fatal() -> None:
    with pytest.raises(SnapshotFetchError):
        fetch_builds(FakeSource.settings("win"), FakeSource())


def test_fetch_builds_unknown_config() -> None:
    settings = FakeSource.settings("win")
    settings.use_configs.append("linux")
    source = FakeSource(builds={"win": []})
    with pytest.raises(SettingsError, match="linux"):
        fetch_builds(settings, source)


@pytest.mark.parametrize(
    ("expr", "expected"),
    [
        ("2", [2, 3, 4]),
        ("-2", [3, 4]),
        ("1:3", [1, 2]),
        ("1:-1", [1, 2, 3]),
        (":2", [0, 1]),
        ("-100:100", [0, 1, 2, 3, 4]),
        ("4:2", []),
        ("9", []),
    ],
)
def test_parse_range(expr, expected) -> None:
    assert list(parse_range(expr, 5)) == expected


def test_parse_range_invalid() -> None:
    with pytest.raises(ValueError, match="Invalid build range"):
        parse_range("a:b", 5)


def test_select_range() -> None:
    bs = builds(*(info(f"h{i}", i, f"0.{i}.0.0") for i in range(4)))
    assert hashes(select_range(bs, None)) == ["h0", "h1", "h2", "h3"]
    assert hashes(select_range(bs, "-1")) == ["h3"]
