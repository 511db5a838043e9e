from __future__ import annotations

from datetime import datetime

from .base import BaseSource
from .common import Contest, Platform, SourceDataInvalid, TimeRange
from . import register_source


@register_source
class CodeChefApiSource(BaseSource):
    """Public JSON list behind the CodeChef contests page."""

    SOURCE_NAME = "codechef_api"
    SOURCE_DISPLAY = "CodeChef API"
    BASE_URL = "https://www.codechef.com"
    PLATFORMS = (Platform.CODECHEF,)
    PRIORITY = {Platform.CODECHEF: 10}

    def _fetch_contests(self, window: TimeRange) -> list[Contest]:
        data = self._get_json(
            f"{self.BASE_URL}/api/list/contests/all",
            params={'sort_by': 'START', 'sorting_order': 'asc', 'offset': 0, 'mode': 'all'},
        )
        if not isinstance(data, dict) or data.get('status') != 'success':
            raise SourceDataInvalid("contest list did not report success")
        future = data.get('future_contests')
        if not isinstance(future, list):
            raise SourceDataInvalid("future_contests missing from response")
        return self._map_records(future, self._to_contest)

    def _to_contest(self, record: dict) -> Contest:
        start = datetime.fromisoformat(record['contest_start_date_iso'])
        end_iso = record.get('contest_end_date_iso')
        return Contest.create(
            platform=Platform.CODECHEF,
            name=record['contest_name'],
            start_time=start,
            end_time=datetime.fromisoformat(end_iso) if end_iso else None,
            url=f"{self.BASE_URL}/{record['contest_code']}",
        )
