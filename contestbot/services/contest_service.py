from __future__ import annotations

import logging
from datetime import timedelta

from contestbot.scrapers.common import Contest, Platform, TimeRange, utc_now
from contestbot.services.aggregator import ContestAggregator, contest_sort_key
from contestbot.services.cascade import CascadingFetcher
from contestbot.services.formatter import resolve_timezone

logger = logging.getLogger(__name__)


class ContestService:
    """Refresh the contest list and hand it to the reminder scheduler."""

    def __init__(
        self,
        aggregator: ContestAggregator,
        reminders,
        platforms=tuple(Platform),
        days_ahead: float = 7,
        platform_days: dict | None = None,
        tz_name: str = 'UTC',
        digest_enabled: bool = True,
        clock=utc_now,
    ):
        self.aggregator = aggregator
        self.reminders = reminders
        self.platforms = tuple(platforms)
        self.days_ahead = days_ahead
        self.platform_days = dict(platform_days or {})
        self.tz_name = tz_name
        self.digest_enabled = digest_enabled
        self._clock = clock

    @classmethod
    def from_config(cls, config, reminders, fetcher: CascadingFetcher | None = None):
        fetcher = fetcher or CascadingFetcher(
            credentials={
                'clist_username': config.get('CLIST_USERNAME', ''),
                'clist_api_key': config.get('CLIST_API_KEY', ''),
            },
            base_timeout=config.get('SOURCE_TIMEOUT', 10.0),
            max_attempts=config.get('SOURCE_MAX_ATTEMPTS', 3),
            backoff=config.get('SOURCE_RETRY_BACKOFF', 1.0),
        )
        return cls(
            aggregator=ContestAggregator(fetcher),
            reminders=reminders,
            platforms=config.get('ENABLED_PLATFORMS', tuple(Platform)),
            days_ahead=config.get('CONTEST_DAYS_AHEAD', 7),
            platform_days=config.get('PLATFORM_DAYS_AHEAD', {}),
            tz_name=config.get('TIMEZONE', 'UTC'),
            digest_enabled=config.get('DAILY_DIGEST_ENABLED', True),
        )

    @property
    def fetcher(self) -> CascadingFetcher:
        return self.aggregator.fetcher

    def windows(self, days: float | None = None, now=None):
        """Global window plus per-platform look-ahead overrides.

        An explicit *days* applies to every platform and ignores overrides.
        """
        now = now or self._clock()
        window = TimeRange.days_ahead(days if days is not None else self.days_ahead, now)
        if days is not None:
            return window, {}
        overrides = {
            platform: TimeRange.days_ahead(platform_days, now)
            for platform, platform_days in self.platform_days.items()
        }
        return window, overrides

    def refresh(self, platforms=None, days: float | None = None) -> list[Contest]:
        window, overrides = self.windows(days)
        contests = self.aggregator.aggregate(platforms or self.platforms, window, overrides)
        if not contests:
            logger.info("No upcoming contests found")
        return contests

    def arm(self, contests) -> list:
        return self.reminders.arm(contests, now=self._clock())

    def refresh_and_arm(self) -> list[Contest]:
        logger.info("Refreshing contest data...")
        contests = self.refresh()
        self.arm(contests)
        logger.info(f"Contest data refreshed, {len(self.reminders.tasks)} reminders armed")
        return contests

    def day_in_display_tz(self, day_offset: int = 0):
        tz = resolve_timezone(self.tz_name)
        return (self._clock().astimezone(tz) + timedelta(days=day_offset)).date()

    def contests_on(self, day_offset: int, contests=None) -> list[Contest]:
        """Contests starting on today + *day_offset*, in the display timezone."""
        tz = resolve_timezone(self.tz_name)
        target = self.day_in_display_tz(day_offset)
        if contests is None:
            contests = self.refresh(days=day_offset + 2)
        return [c for c in contests if c.start_time.astimezone(tz).date() == target]

    def send_tomorrow_digest(self, contests=None) -> int:
        """Summary message, then one ``tomorrow`` notice per contest.

        Returns the number of per-contest notices the sink accepted.
        """
        if not self.digest_enabled:
            return 0
        tomorrow = sorted(self.contests_on(1, contests), key=contest_sort_key)
        if not tomorrow:
            logger.info("No contests happening tomorrow")
            return 0
        sink = self.reminders.sink
        try:
            sink.announce(tomorrow, self.day_in_display_tz(1))
        except Exception as e:
            logger.error(f"Failed to send tomorrow summary: {e}")
        sent = 0
        for contest in tomorrow:
            try:
                if sink.deliver(contest, 'tomorrow'):
                    sent += 1
            except Exception as e:
                logger.error(f"Failed to send tomorrow notice for {contest.name}: {e}")
        logger.info(f"Sent {sent}/{len(tomorrow)} tomorrow notices")
        return sent

    def probe_sources(self, platform: Platform) -> dict[str, bool]:
        with self.fetcher.open_sources(platform) as sources:
            return {source.SOURCE_NAME: source.probe() for source in sources}

    def probe(self, platform: Platform) -> bool:
        return any(self.probe_sources(platform).values())
