from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

from contestbot.scrapers.common import Contest, Platform, TimeRange

logger = logging.getLogger(__name__)


def contest_sort_key(contest: Contest):
    return (contest.start_time, contest.platform.value, contest.name)


def normalize_contests(contests, windows: dict, default_window: TimeRange) -> list[Contest]:
    """Deduplicate by identity, keep each contest inside its platform's window, sort."""
    seen = set()
    result = []
    for contest in contests:
        if contest.identity in seen:
            continue
        window = windows.get(contest.platform, default_window)
        if not window.contains(contest.start_time):
            continue
        seen.add(contest.identity)
        result.append(contest)
    result.sort(key=contest_sort_key)
    return result


class ContestAggregator:
    def __init__(self, fetcher, max_workers: int = 4):
        self.fetcher = fetcher
        self.max_workers = max_workers

    def aggregate(
        self,
        platforms,
        window: TimeRange,
        overrides: dict[Platform, TimeRange] | None = None,
    ) -> list[Contest]:
        """Fetch every platform concurrently and merge into one ordered list.

        A platform whose sources all fail contributes nothing; it never
        blocks or fails the others.
        """
        platforms = sorted(set(platforms), key=lambda p: p.value)
        windows = {p: (overrides or {}).get(p, window) for p in platforms}
        if not platforms:
            return []

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(platforms))) as pool:
            futures = {
                p: pool.submit(self._fetch_one, p, windows[p])
                for p in platforms
            }
            batches = {p: f.result() for p, f in futures.items()}

        merged = [c for p in platforms for c in batches[p]]
        contests = normalize_contests(merged, windows, window)
        logger.info(
            f"Aggregated {len(contests)} contests "
            f"({', '.join(f'{p.value}={len(batches[p])}' for p in platforms)})"
        )
        return contests

    def _fetch_one(self, platform: Platform, window: TimeRange) -> list[Contest]:
        try:
            return self.fetcher.fetch_platform(platform, window)
        except Exception as e:
            logger.error(f"Fetching {platform.value} failed: {e!r}")
            return []
