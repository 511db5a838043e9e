from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum

DEFAULT_DURATION = timedelta(hours=2)


class Platform(str, Enum):
    CODEFORCES = 'codeforces'
    ATCODER = 'atcoder'
    CODECHEF = 'codechef'

    @property
    def display(self) -> str:
        return _PLATFORM_DISPLAY[self]

    @classmethod
    def parse(cls, value: str) -> Platform:
        """Resolve a platform from its value or display name, case-insensitively."""
        text = (value or '').strip().lower()
        for platform in cls:
            if text in (platform.value, platform.display.lower()):
                return platform
        raise ValueError(f"Unknown platform: {value}")


_PLATFORM_DISPLAY = {
    Platform.CODEFORCES: 'Codeforces',
    Platform.ATCODER: 'AtCoder',
    Platform.CODECHEF: 'CodeChef',
}


class FailureKind(str, Enum):
    TIMED_OUT = 'timed_out'
    BAD_FORMAT = 'bad_format'
    UNAUTHORIZED = 'unauthorized'
    EMPTY = 'empty'
    UNAVAILABLE = 'unavailable'


class SourceError(Exception):
    """Base class for failures raised inside a source adapter."""

    kind: FailureKind = FailureKind.BAD_FORMAT


class TransientSourceFailure(SourceError):
    kind = FailureKind.TIMED_OUT


class SourceDataInvalid(SourceError):
    kind = FailureKind.BAD_FORMAT


class SourceUnauthorized(SourceError):
    kind = FailureKind.UNAUTHORIZED


class SourceUnavailable(SourceError):
    kind = FailureKind.UNAVAILABLE


class DeliveryFailure(Exception):
    """Raised by a delivery sink when the destination rejects a message."""


def to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Contest:
    platform: Platform
    name: str
    start_time: datetime
    end_time: datetime
    url: str = ''

    @classmethod
    def create(
        cls,
        platform: Platform,
        name: str,
        start_time: datetime,
        end_time: datetime | None = None,
        url: str = '',
    ) -> Contest:
        """Build a validated contest.

        Naive datetimes are read as UTC. A missing or non-positive duration
        falls back to two hours.
        """
        name = (name or '').strip()
        if not name:
            raise ValueError("Contest name must not be empty")
        start = to_utc(start_time)
        end = to_utc(end_time) if end_time is not None else None
        if end is None or end <= start:
            end = start + DEFAULT_DURATION
        return cls(platform=Platform(platform), name=name,
                   start_time=start, end_time=end, url=url or '')

    @property
    def identity(self) -> str:
        start_ms = int(self.start_time.timestamp() * 1000)
        return f"{self.platform.value}-{self.name}-{start_ms}"

    @property
    def duration(self) -> timedelta:
        return self.end_time - self.start_time

    def to_dict(self) -> dict:
        return {
            'identity': self.identity,
            'platform': self.platform.value,
            'platform_display': self.platform.display,
            'name': self.name,
            'start_time': self.start_time.isoformat(),
            'end_time': self.end_time.isoformat(),
            'duration_seconds': int(self.duration.total_seconds()),
            'url': self.url,
        }


@dataclass(frozen=True)
class TimeRange:
    begin: datetime
    end: datetime

    def __post_init__(self):
        object.__setattr__(self, 'begin', to_utc(self.begin))
        object.__setattr__(self, 'end', to_utc(self.end))
        if self.end < self.begin:
            raise ValueError("TimeRange end precedes begin")

    @classmethod
    def days_ahead(cls, days: float, now: datetime | None = None) -> TimeRange:
        begin = to_utc(now) if now is not None else utc_now()
        return cls(begin, begin + timedelta(days=days))

    def contains(self, instant: datetime) -> bool:
        return self.begin <= to_utc(instant) <= self.end


@dataclass
class SourceResult:
    source: str
    contests: list[Contest] = field(default_factory=list)
    failure: FailureKind | None = None
    detail: str = ''

    @classmethod
    def ok(cls, source: str, contests: list[Contest]) -> SourceResult:
        if not contests:
            return cls(source=source, failure=FailureKind.EMPTY,
                       detail='no upcoming contests returned')
        return cls(source=source, contests=list(contests))

    @classmethod
    def fail(cls, source: str, kind: FailureKind, detail: str = '') -> SourceResult:
        return cls(source=source, failure=kind, detail=detail)

    @property
    def succeeded(self) -> bool:
        return self.failure is None

    @property
    def transient(self) -> bool:
        return self.failure is FailureKind.TIMED_OUT
