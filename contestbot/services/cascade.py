from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field

from contestbot.scrapers import get_sources_for_platform
from contestbot.scrapers.common import (
    Contest,
    FailureKind,
    Platform,
    SourceResult,
    TimeRange,
)

logger = logging.getLogger(__name__)


@dataclass
class CascadeReport:
    """What happened the last time a platform was fetched."""

    platform: Platform
    source: str | None = None
    attempts: list[tuple[str, str]] = field(default_factory=list)

    @property
    def all_failed(self) -> bool:
        """True when no source even answered (as opposed to 'nothing scheduled')."""
        return self.source is None and all(
            outcome not in (FailureKind.EMPTY.value, 'no_matching_records')
            for _, outcome in self.attempts
        )


class CascadingFetcher:
    """Try each source for a platform in priority order until one delivers.

    Only ``TIMED_OUT`` is retried on the same source, with a longer timeout
    each time. Everything else moves straight to the next source.
    """

    def __init__(
        self,
        credentials: dict | None = None,
        base_timeout: float = 10.0,
        max_attempts: int = 3,
        backoff: float = 1.0,
        sources: dict | None = None,
        sleep=time.sleep,
    ):
        self.credentials = dict(credentials or {})
        self.base_timeout = base_timeout
        self.max_attempts = max(1, max_attempts)
        self.backoff = backoff
        # Optional explicit {platform: [source instances]} for tests and tooling.
        self._sources = sources
        self._sleep = sleep
        self._reports: dict[Platform, CascadeReport] = {}
        self._reports_lock = threading.Lock()

    def sources_for(self, platform: Platform) -> list:
        if self._sources is not None:
            candidates = list(self._sources.get(platform, []))
        else:
            candidates = [
                cls(timeout=self.base_timeout, credentials=self.credentials)
                for cls in get_sources_for_platform(platform)
            ]
        usable = []
        for source in candidates:
            if source.is_available():
                usable.append(source)
            else:
                logger.info(
                    f"Skipping {source.SOURCE_NAME} for {platform.value}: credentials not configured"
                )
                if self._sources is None:
                    source.close()
        return usable

    @contextmanager
    def open_sources(self, platform: Platform):
        """``sources_for`` whose registry-built adapters are closed on exit."""
        sources = self.sources_for(platform)
        try:
            yield sources
        finally:
            if self._sources is None:
                for source in sources:
                    source.close()

    def last_report(self, platform: Platform) -> CascadeReport | None:
        with self._reports_lock:
            return self._reports.get(platform)

    def fetch_platform(self, platform: Platform, window: TimeRange) -> list[Contest]:
        report = CascadeReport(platform=platform)
        try:
            with self.open_sources(platform) as sources:
                for source in sources:
                    result = self._fetch_with_retry(source, window, report)
                    if not result.succeeded:
                        continue
                    contests = [
                        c for c in result.contests
                        if c.platform == platform and window.contains(c.start_time)
                    ]
                    if contests:
                        report.source = source.SOURCE_NAME
                        logger.info(
                            f"{platform.display}: {len(contests)} contests from {source.SOURCE_NAME}"
                        )
                        return contests
                    report.attempts.append((source.SOURCE_NAME, 'no_matching_records'))

            if report.all_failed:
                logger.warning(f"{platform.display}: all sources failed {report.attempts}")
            else:
                logger.info(f"{platform.display}: no contests in range")
            return []
        finally:
            with self._reports_lock:
                self._reports[platform] = report

    def _fetch_with_retry(self, source, window: TimeRange, report: CascadeReport) -> SourceResult:
        result = None
        for attempt in range(1, self.max_attempts + 1):
            timeout = self.base_timeout * attempt
            try:
                result = source.fetch(window, timeout=timeout)
            except Exception as e:
                logger.error(f"{source.SOURCE_NAME} raised unexpectedly: {e!r}")
                result = SourceResult.fail(source.SOURCE_NAME, FailureKind.BAD_FORMAT, repr(e))

            if result.succeeded:
                return result

            report.attempts.append((source.SOURCE_NAME, result.failure.value))
            logger.warning(
                f"{source.SOURCE_NAME} failed (attempt {attempt}/{self.max_attempts}, "
                f"timeout={timeout:g}s): {result.failure.value} {result.detail}"
            )
            if not result.transient:
                break
            if attempt < self.max_attempts and self.backoff > 0:
                self._sleep(self.backoff * (2 ** (attempt - 1)))
        return result
