from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from urllib.parse import urlsplit

import requests

from .common import (
    Contest,
    FailureKind,
    Platform,
    SourceDataInvalid,
    SourceError,
    SourceResult,
    SourceUnauthorized,
    SourceUnavailable,
    TimeRange,
    TransientSourceFailure,
)
from .rate_limiter import get_host_limiter

_PLACEHOLDER_PREFIX = 'your_'


def credential_present(value: str | None) -> bool:
    """True for a real credential, False for empty or ``your_..._here`` placeholders."""
    value = (value or '').strip()
    return bool(value) and not value.startswith(_PLACEHOLDER_PREFIX)


class BaseSource(ABC):
    """One external endpoint that yields contests for one or more platforms.

    Subclasses implement ``_fetch_contests`` and raise the ``SourceError``
    family for anything the provider got wrong. ``fetch`` turns those into a
    ``SourceResult`` so callers never see network or parse exceptions.
    """

    SOURCE_NAME: str = ""
    SOURCE_DISPLAY: str = ""
    BASE_URL: str = ""
    PLATFORMS: tuple[Platform, ...] = ()
    # Cascade position per platform; lower runs first.
    PRIORITY: dict[Platform, int] = {}
    REQUIRES_CREDENTIALS: bool = False
    PRE_CALL_DELAY: float = 0.0
    USER_AGENT = 'Mozilla/5.0 (compatible; ContestNotifier/1.0)'

    def __init__(self, timeout: float = 10.0, credentials: dict | None = None):
        self.timeout = timeout
        self.credentials = dict(credentials or {})
        self.logger = logging.getLogger(f'source.{self.SOURCE_NAME}')
        self.rate_limiter = get_host_limiter(
            urlsplit(self.BASE_URL).netloc or self.SOURCE_NAME,
            self.PRE_CALL_DELAY,
        )
        self.session = self._create_session()

    def priority_for(self, platform: Platform) -> int:
        return self.PRIORITY.get(platform, 100)

    def is_available(self) -> bool:
        """Whether the adapter has what it needs to make a call at all."""
        return True

    def fetch(self, window: TimeRange, timeout: float | None = None) -> SourceResult:
        if timeout is not None:
            self.timeout = timeout
        if not self.is_available():
            return SourceResult.fail(self.SOURCE_NAME, FailureKind.UNAVAILABLE,
                                     'credentials not configured')
        try:
            contests = self._fetch_contests(window)
        except SourceError as e:
            return SourceResult.fail(self.SOURCE_NAME, e.kind, str(e))
        contests = [c for c in contests if window.contains(c.start_time)]
        return SourceResult.ok(self.SOURCE_NAME, contests)

    def probe(self) -> bool:
        """Cheap reachability check for the health surface."""
        if not self.is_available():
            return False
        try:
            self._probe()
            return True
        except SourceError as e:
            self.logger.warning(f"Probe failed: {e}")
            return False

    def _probe(self):
        self._fetch_contests(TimeRange.days_ahead(1))

    def close(self):
        self.session.close()

    @abstractmethod
    def _fetch_contests(self, window: TimeRange) -> list[Contest]:
        ...

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update({'User-Agent': self.USER_AGENT})
        return session

    def _get(self, url: str, **kwargs) -> requests.Response:
        """Single GET with the adapter's etiquette delay and timeout.

        Raises the classified ``SourceError`` subclasses; retrying is the
        cascade's decision, not the adapter's.
        """
        self.rate_limiter.wait()
        try:
            resp = self.session.get(url, timeout=self.timeout, **kwargs)
        except (requests.Timeout, requests.ConnectionError) as e:
            raise TransientSourceFailure(f"{url}: {e}") from e
        except requests.RequestException as e:
            raise SourceDataInvalid(f"{url}: {e}") from e

        status = resp.status_code
        if status in (401, 403):
            raise SourceUnauthorized(f"{url}: HTTP {status}")
        if status == 429 or status >= 500:
            raise TransientSourceFailure(f"{url}: HTTP {status}")
        if status >= 400:
            raise SourceDataInvalid(f"{url}: HTTP {status}")
        return resp

    def _get_json(self, url: str, **kwargs):
        resp = self._get(url, **kwargs)
        try:
            return resp.json()
        except ValueError as e:
            raise SourceDataInvalid(f"{url}: response is not JSON") from e

    def _map_records(self, records, mapper) -> list[Contest]:
        """Map raw records, dropping the ones that do not fit the contest shape.

        A non-empty payload where nothing maps is a schema change, not an
        empty schedule.
        """
        contests = []
        dropped = 0
        for record in records:
            try:
                contest = mapper(record)
            except (KeyError, ValueError, TypeError) as e:
                dropped += 1
                self.logger.debug(f"Dropped record {record!r}: {e}")
                continue
            if contest is not None:
                contests.append(contest)
        if records and not contests and dropped:
            raise SourceDataInvalid(
                f"none of {len(records)} records matched the expected schema"
            )
        return contests


class CredentialedSource(BaseSource):
    """Source that is skipped entirely unless its credentials are configured."""

    REQUIRES_CREDENTIALS = True
    CREDENTIAL_KEYS: tuple[str, ...] = ()

    def is_available(self) -> bool:
        return all(credential_present(self.credentials.get(k)) for k in self.CREDENTIAL_KEYS)

    def _fetch_contests(self, window: TimeRange) -> list[Contest]:
        if not self.is_available():
            raise SourceUnavailable('credentials not configured')
        return self._fetch_authenticated(window)

    @abstractmethod
    def _fetch_authenticated(self, window: TimeRange) -> list[Contest]:
        ...
