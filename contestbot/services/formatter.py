"""Discord embed payloads for contest messages."""
from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from contestbot.scrapers.common import Contest, Platform

logger = logging.getLogger(__name__)

PLATFORM_COLORS = {
    Platform.CODEFORCES: 0x1F8ACB,
    Platform.ATCODER: 0x00BFFF,
    Platform.CODECHEF: 0x5B4638,
}
DEFAULT_COLOR = 0x00AE86
DIGEST_COLOR = 0x3498DB

_FORMATS = {
    'date': '%a, %b %d, %Y',
    'time': '%I:%M %p',
    'datetime': '%a, %b %d, %Y, %I:%M %p',
}


def resolve_timezone(name: str | None):
    try:
        return ZoneInfo(name or 'UTC')
    except (ZoneInfoNotFoundError, ValueError):
        logger.error(f"Unknown timezone {name!r}, falling back to UTC")
        return timezone.utc


def format_in_timezone(value: datetime, fmt: str = 'datetime', tz_name: str | None = 'UTC') -> str:
    return value.astimezone(resolve_timezone(tz_name)).strftime(_FORMATS[fmt])


def build_contest_embed(contest: Contest, title: str, tz_name: str = 'UTC', color: int | None = None) -> dict:
    embed = {
        'title': contest.name,
        'description': title,
        'color': color if color is not None else PLATFORM_COLORS.get(contest.platform, DEFAULT_COLOR),
        'fields': [
            {'name': 'Platform', 'value': contest.platform.display, 'inline': True},
            {'name': 'Date', 'value': format_in_timezone(contest.start_time, 'date', tz_name), 'inline': True},
            {
                'name': 'Time',
                'value': (
                    f"{format_in_timezone(contest.start_time, 'time', tz_name)} to "
                    f"{format_in_timezone(contest.end_time, 'time', tz_name)}"
                ),
                'inline': True,
            },
        ],
        'footer': {'text': f"All times are shown in {tz_name or 'UTC'} timezone"},
        'timestamp': contest.start_time.isoformat(),
    }
    if contest.url:
        embed['url'] = contest.url
    return embed


def reminder_title(offset_label: str) -> str:
    if offset_label == 'tomorrow':
        return 'Contest Tomorrow'
    return f"Starts in {offset_label}"


def build_summary_embed(contests, day: date, tz_name: str = 'UTC') -> dict:
    """One message listing every contest starting on *day*."""
    count = len(contests)
    lines = '\n'.join(f"• {c.name} ({c.platform.display})" for c in contests)
    return {
        'title': f"{count} Contest{'s' if count != 1 else ''} Tomorrow!",
        'description': f"Get ready for these contests tomorrow:\n\n{lines}",
        'color': DIGEST_COLOR,
        'footer': {'text': f"Tomorrow: {day.strftime(_FORMATS['date'])} ({tz_name or 'UTC'})"},
    }
