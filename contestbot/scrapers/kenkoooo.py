from __future__ import annotations

from datetime import datetime, timedelta, timezone

from .base import BaseSource
from .common import Contest, Platform, SourceDataInvalid, TimeRange
from . import register_source


@register_source
class AtCoderProblemsSource(BaseSource):
    """Unofficial AtCoder Problems contest list (kenkoooo).

    The API guidelines ask clients to leave at least a second between
    requests, hence the pre-call delay.
    """

    SOURCE_NAME = "kenkoooo"
    SOURCE_DISPLAY = "AtCoder Problems API"
    BASE_URL = "https://kenkoooo.com"
    PLATFORMS = (Platform.ATCODER,)
    PRIORITY = {Platform.ATCODER: 40}
    PRE_CALL_DELAY = 1.0
    USER_AGENT = 'ContestNotifier - Respecting API Guidelines'

    def _fetch_contests(self, window: TimeRange) -> list[Contest]:
        data = self._get_json(f"{self.BASE_URL}/atcoder/resources/contests.json")
        if not isinstance(data, list):
            raise SourceDataInvalid("contests.json is not a list")
        contests = self._map_records(data, self._to_contest)
        return [c for c in contests if c.start_time >= window.begin]

    def _to_contest(self, record: dict) -> Contest:
        if 'start_epoch_second' in record:
            start = datetime.fromtimestamp(int(record['start_epoch_second']), tz=timezone.utc)
            duration = int(record.get('duration_second') or 0)
            end = start + timedelta(seconds=duration) if duration > 0 else None
        else:
            start = datetime.fromisoformat(record['start_time'])
            end = datetime.fromisoformat(record['end_time']) if record.get('end_time') else None
        return Contest.create(
            platform=Platform.ATCODER,
            name=record['title'],
            start_time=start,
            end_time=end,
            url=f"https://atcoder.jp/contests/{record['id']}",
        )
