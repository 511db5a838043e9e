from __future__ import annotations

from datetime import datetime

from .base import CredentialedSource
from .common import Contest, Platform, SourceDataInvalid, TimeRange
from .platform_detect import detect_platform
from . import register_source

# clist.by resource ids for the platforms we follow.
_RESOURCE_IDS = {
    Platform.CODEFORCES: 1,
    Platform.CODECHEF: 2,
    Platform.ATCODER: 93,
}

_CLIST_TIME_FORMAT = '%Y-%m-%dT%H:%M:%S'


@register_source
class ClistSource(CredentialedSource):
    """clist.by v4 API: one call covers every platform we follow."""

    SOURCE_NAME = "clist"
    SOURCE_DISPLAY = "Clist.by API"
    BASE_URL = "https://clist.by"
    PLATFORMS = (Platform.CODEFORCES, Platform.ATCODER, Platform.CODECHEF)
    PRIORITY = {
        Platform.CODEFORCES: 20,
        Platform.ATCODER: 20,
        Platform.CODECHEF: 20,
    }
    CREDENTIAL_KEYS = ('clist_username', 'clist_api_key')
    PAGE_LIMIT = 200

    def _create_session(self):
        session = super()._create_session()
        if self.is_available():
            session.headers['Authorization'] = (
                f"ApiKey {self.credentials['clist_username']}:{self.credentials['clist_api_key']}"
            )
        return session

    def _fetch_authenticated(self, window: TimeRange) -> list[Contest]:
        params = {
            'resource_id__in': ','.join(str(i) for i in sorted(_RESOURCE_IDS.values())),
            'start__gte': window.begin.strftime(_CLIST_TIME_FORMAT),
            'start__lte': window.end.strftime(_CLIST_TIME_FORMAT),
            'order_by': 'start',
            'limit': self.PAGE_LIMIT,
        }
        data = self._get_json(f"{self.BASE_URL}/api/v4/contest/", params=params)
        objects = data.get('objects') if isinstance(data, dict) else None
        if not isinstance(objects, list):
            raise SourceDataInvalid("response has no 'objects' list")
        return self._map_records(objects, self._to_contest)

    def _probe(self):
        data = self._get_json(f"{self.BASE_URL}/api/v4/contest/", params={'limit': 1})
        if not isinstance(data, dict) or not isinstance(data.get('objects'), list):
            raise SourceDataInvalid("response has no 'objects' list")

    def _to_contest(self, record: dict) -> Contest | None:
        platform = detect_platform(
            resource=record.get('resource'),
            url=record.get('href'),
            name=record.get('event'),
        )
        if platform is None:
            self.logger.debug(f"No platform matched for clist record {record.get('id')}")
            return None
        # clist reports naive UTC timestamps.
        start = datetime.fromisoformat(record['start'])
        end = datetime.fromisoformat(record['end']) if record.get('end') else None
        return Contest.create(
            platform=platform,
            name=record['event'],
            start_time=start,
            end_time=end,
            url=record.get('href') or '',
        )
