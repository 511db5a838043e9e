from __future__ import annotations

from datetime import datetime, timedelta, timezone

from .base import BaseSource
from .common import Contest, Platform, SourceDataInvalid, TimeRange
from . import register_source


@register_source
class CodeforcesApiSource(BaseSource):
    """Official Codeforces ``contest.list`` API."""

    SOURCE_NAME = "codeforces_api"
    SOURCE_DISPLAY = "Codeforces API"
    BASE_URL = "https://codeforces.com"
    PLATFORMS = (Platform.CODEFORCES,)
    PRIORITY = {Platform.CODEFORCES: 10}

    def _fetch_contests(self, window: TimeRange) -> list[Contest]:
        data = self._get_json(f"{self.BASE_URL}/api/contest.list", params={'gym': 'false'})
        if not isinstance(data, dict) or data.get('status') != 'OK':
            status = data.get('status') if isinstance(data, dict) else type(data).__name__
            raise SourceDataInvalid(f"contest.list returned status {status}")
        result = data.get('result')
        if not isinstance(result, list):
            raise SourceDataInvalid("contest.list result is not a list")

        upcoming = [c for c in result if isinstance(c, dict) and c.get('phase') == 'BEFORE']
        return self._map_records(upcoming, self._to_contest)

    def _to_contest(self, record: dict) -> Contest:
        start = datetime.fromtimestamp(int(record['startTimeSeconds']), tz=timezone.utc)
        duration = int(record.get('durationSeconds') or 0)
        end = start + timedelta(seconds=duration) if duration > 0 else None
        return Contest.create(
            platform=Platform.CODEFORCES,
            name=record['name'],
            start_time=start,
            end_time=end,
            url=f"{self.BASE_URL}/contests/{record['id']}",
        )
