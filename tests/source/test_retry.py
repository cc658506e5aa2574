"""Tests for the retrying source wrapper."""

import pytest
import tenacity

from apiref.config import RetryPolicy, SourceConfig
from apiref.errors import SnapshotFetchError
from apiref.source import RetryingSource
from apiref.source.retry import build_retryer
from builders import dump, info, klass


class FlakySource:
    """Fails a fixed number of times before answering."""

    def __init__(self, failures: int, error: Exception | None = None) -> None:
        self.failures = failures
        self.error = error or SnapshotFetchError("temporarily unavailable")
        self.calls = 0

    def _answer(self, value):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return value

    def list_builds(self, config):
        return self._answer([info("a")])

    def list_live(self, config):
        return self._answer([])

    def fetch_snapshot(self, config, build_hash):
        return self._answer(dump(klass("Part")))

    def fetch_class_icons(self, config, build_hash):
        return self._answer({"Part": 1})


POLICY = RetryPolicy(max_attempts=3, backoff="none")


def test_retries_until_success() -> None:
    inner = FlakySource(failures=2)
    source = RetryingSource(inner, POLICY)
    api = source.fetch_snapshot(SourceConfig(), "a")
    assert [c.name for c in api.classes] == ["Part"]
    assert inner.calls == 3


def test_exhausted_attempts_raise_last_error() -> None:
    inner = FlakySource(failures=5)
    with pytest.raises(SnapshotFetchError, match="temporarily unavailable"):
        RetryingSource(inner, POLICY).list_builds(SourceConfig())
    assert inner.calls == 3


def test_other_errors_are_not_retried() -> None:
    inner = FlakySource(failures=1, error=KeyError("boom"))
    with pytest.raises(KeyError):
        RetryingSource(inner, POLICY).fetch_class_icons(SourceConfig(), "a")
    assert inner.calls == 1


def test_single_attempt_calls_through() -> None:
    inner = FlakySource(failures=1)
    with pytest.raises(SnapshotFetchError):
        RetryingSource(inner, RetryPolicy()).list_live(SourceConfig())
    assert inner.calls == 1


@pytest.mark.parametrize(
    ("backoff", "wait_type"),
    [
        ("none", tenacity.wait_none),
        ("linear", tenacity.wait_incrementing),
        ("exponential", tenacity.wait_exponential),
    ],
)
def test_build_retryer_backoff(backoff, wait_type) -> None:
    retryer = build_retryer(RetryPolicy(max_attempts=4, backoff=backoff, base_delay=0.1))
    assert isinstance(retryer.wait, wait_type)
    assert retryer.stop.max_attempt_number == 4
