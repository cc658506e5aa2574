"""Retrying wrapper around a snapshot source.

Usage:
    source = RetryingSource(ArchiveClient(), RetryPolicy(max_attempts=3, backoff="exponential"))
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TypeVar

import tenacity

from apiref.config import RetryPolicy, SourceConfig
from apiref.core.api import ApiDump
from apiref.core.patch import BuildInfo
from apiref.errors import SnapshotFetchError
from apiref.source.protocol import SnapshotSource

logger = logging.getLogger(__name__)

T = TypeVar("T")


def build_retryer(policy: RetryPolicy) -> tenacity.Retrying:
    """Build a tenacity retryer from RetryPolicy configuration."""
    stop = tenacity.stop_after_attempt(policy.max_attempts)

    wait: tenacity.wait.wait_base
    if policy.backoff == "exponential":
        wait = tenacity.wait_exponential(multiplier=policy.base_delay, min=policy.base_delay)
    elif policy.backoff == "linear":
        wait = tenacity.wait_incrementing(start=policy.base_delay, increment=policy.base_delay)
    else:
        wait = tenacity.wait_none()

    return tenacity.Retrying(
        stop=stop,
        wait=wait,
        retry=tenacity.retry_if_exception_type(SnapshotFetchError),
        before_sleep=tenacity.before_sleep_log(logger, logging.WARNING),
        reraise=False,
    )


class RetryingSource:
    """SnapshotSource that retries ``SnapshotFetchError`` from an inner source.

    Other exceptions propagate immediately. Once attempts are exhausted the
    last fetch error is raised.
    """

    def __init__(self, inner: SnapshotSource, policy: RetryPolicy) -> None:
        self.inner = inner
        self.policy = policy

    def _call(self, what: str, fn: Callable[[], T]) -> T:
        if self.policy.max_attempts <= 1:
            return fn()

        retryer = build_retryer(self.policy)
        try:
            for attempt in retryer:
                with attempt:
                    return fn()
        except tenacity.RetryError as e:
            error = e.last_attempt.exception()
            if isinstance(error, SnapshotFetchError):
                raise error from None
            msg = f"{what} failed after {self.policy.max_attempts} attempts"
            raise SnapshotFetchError(msg) from error

        raise SnapshotFetchError(f"{what} failed")  # pragma: no cover

    def list_builds(self, config: SourceConfig) -> list[BuildInfo]:
        return self._call("list_builds", lambda: self.inner.list_builds(config))

    def list_live(self, config: SourceConfig) -> list[BuildInfo]:
        return self._call("list_live", lambda: self.inner.list_live(config))

    def fetch_snapshot(self, config: SourceConfig, build_hash: str) -> ApiDump:
        return self._call(
            f"fetch_snapshot({build_hash})",
            lambda: self.inner.fetch_snapshot(config, build_hash),
        )

    def fetch_class_icons(self, config: SourceConfig, build_hash: str) -> dict[str, int]:
        return self._call(
            f"fetch_class_icons({build_hash})",
            lambda: self.inner.fetch_class_icons(config, build_hash),
        )
