from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import date

import requests

from contestbot.scrapers.base import credential_present
from contestbot.scrapers.common import Contest, DeliveryFailure
from contestbot.services.formatter import (
    build_contest_embed,
    build_summary_embed,
    reminder_title,
)

logger = logging.getLogger(__name__)


class DeliverySink(ABC):
    @abstractmethod
    def deliver(self, contest: Contest, offset_label: str) -> bool:
        ...

    @abstractmethod
    def announce(self, contests: list[Contest], day: date) -> bool:
        """Send one summary of the contests starting on *day*."""

    def probe(self) -> bool:
        return True


class LogSink(DeliverySink):
    """Writes reminders to the log. Used when no chat channel is configured."""

    def __init__(self):
        self.delivered: list[tuple[Contest, str]] = []
        self.announced: list[tuple[list[Contest], date]] = []

    def deliver(self, contest: Contest, offset_label: str) -> bool:
        self.delivered.append((contest, offset_label))
        logger.info(f"[reminder] {contest.platform.display} {contest.name!r}: {offset_label}")
        return True

    def announce(self, contests: list[Contest], day: date) -> bool:
        self.announced.append((list(contests), day))
        logger.info(f"[digest] {len(contests)} contests on {day.isoformat()}")
        return True


class DiscordSink(DeliverySink):
    API_BASE = 'https://discord.com/api/v10'

    def __init__(self, token: str, channel_id: str, role_id: str = '',
                 tz_name: str = 'UTC', timeout: float = 10.0):
        self.channel_id = channel_id
        self.role_id = role_id if credential_present(role_id) else ''
        self.tz_name = tz_name
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            'Authorization': f'Bot {token}',
            'User-Agent': 'ContestNotifier (https://github.com, 1.0)',
        })

    def deliver(self, contest: Contest, offset_label: str) -> bool:
        mention = f"<@&{self.role_id}> " if self.role_id else ''
        return self._post({
            'content': f"{mention}Contest reminder!",
            'embeds': [build_contest_embed(contest, reminder_title(offset_label), self.tz_name)],
        })

    def announce(self, contests: list[Contest], day: date) -> bool:
        return self._post({'embeds': [build_summary_embed(contests, day, self.tz_name)]})

    def _post(self, payload: dict) -> bool:
        url = f"{self.API_BASE}/channels/{self.channel_id}/messages"
        try:
            resp = self.session.post(url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise DeliveryFailure(f"Discord request failed: {e}") from e
        if resp.status_code >= 400:
            raise DeliveryFailure(f"Discord rejected message: HTTP {resp.status_code}")
        return True

    def probe(self) -> bool:
        try:
            resp = self.session.get(f"{self.API_BASE}/users/@me", timeout=5)
            return resp.status_code == 200
        except requests.RequestException as e:
            logger.error(f"Discord API health check failed: {e}")
            return False


def create_sink(config) -> DeliverySink:
    token = config.get('DISCORD_TOKEN', '')
    channel_id = config.get('DISCORD_CHANNEL_ID', '')
    if credential_present(token) and credential_present(channel_id):
        return DiscordSink(
            token=token,
            channel_id=channel_id,
            role_id=config.get('CONTEST_ROLE_ID', ''),
            tz_name=config.get('TIMEZONE', 'UTC'),
        )
    logger.info("Discord not configured, reminders will only be logged")
    return LogSink()
