"""Shared test fixtures for the contest notifier test suite."""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from apscheduler.schedulers.background import BackgroundScheduler

from contestbot import create_app
from contestbot.scrapers.common import Contest, FailureKind, Platform, SourceResult, utc_now
from contestbot.services.cascade import CascadingFetcher
from contestbot.services.delivery import LogSink
from contestbot.tasks.reminders import ReminderScheduler

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def make_contest(platform=Platform.CODEFORCES, name='Codeforces Round 1000 (Div. 2)',
                 hours=48, duration_hours=2, url='', base=NOW):
    start = base + timedelta(hours=hours)
    return Contest.create(
        platform=platform,
        name=name,
        start_time=start,
        end_time=start + timedelta(hours=duration_hours),
        url=url,
    )


class FakeSource:
    """Scripted stand-in for a source adapter.

    ``results`` is consumed one item per call; the last item repeats.
    """

    def __init__(self, name, results, available=True, reachable=True):
        self.SOURCE_NAME = name
        self.results = list(results)
        self.available = available
        self.reachable = reachable
        self.calls = []

    def is_available(self):
        return self.available

    def fetch(self, window, timeout=None):
        self.calls.append(timeout)
        item = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(item, Exception):
            raise item
        if isinstance(item, FailureKind):
            return SourceResult.fail(self.SOURCE_NAME, item, 'scripted failure')
        return SourceResult.ok(self.SOURCE_NAME, item)

    def probe(self):
        return self.reachable


def fake_response(status_code=200, json_data=None, text=''):
    resp = MagicMock()
    resp.status_code = status_code
    resp.text = text
    if isinstance(json_data, Exception):
        resp.json.side_effect = json_data
    else:
        resp.json.return_value = json_data
    return resp


@pytest.fixture()
def now():
    return NOW


@pytest.fixture()
def sink():
    return LogSink()


@pytest.fixture()
def reminder_scheduler(sink):
    """A ReminderScheduler on a scheduler that is never started."""
    return ReminderScheduler(
        sink=sink,
        scheduler=BackgroundScheduler(timezone='UTC'),
        clock=lambda: NOW,
    )


@pytest.fixture()
def fake_sources():
    # The app fixture runs on the real clock.
    base = utc_now().replace(microsecond=0)
    return {
        Platform.CODEFORCES: [
            FakeSource('cf_primary', [[
                make_contest(name='Codeforces Round 1000 (Div. 2)', hours=30, base=base),
                make_contest(name='Educational Codeforces Round 180', hours=5, base=base),
            ]]),
        ],
        Platform.ATCODER: [
            FakeSource('ac_primary', [[
                make_contest(Platform.ATCODER, 'AtCoder Beginner Contest 430', hours=30, base=base),
            ]]),
        ],
        Platform.CODECHEF: [
            FakeSource('cc_primary', [FailureKind.TIMED_OUT]),
        ],
    }


@pytest.fixture()
def app(sink, fake_sources):
    """Create a Flask application configured for testing, with scripted sources."""
    fetcher = CascadingFetcher(sources=fake_sources, backoff=0)
    application = create_app('testing', sink=sink, fetcher=fetcher)
    yield application
    application.extensions['reminders'].cancel_all()


@pytest.fixture()
def client(app):
    """Provide a Flask test client."""
    return app.test_client()
