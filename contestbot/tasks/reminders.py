"""One-shot contest reminders on top of APScheduler.

Each ``arm`` call starts a new epoch: every task of the previous epoch is
cancelled before any new task is armed. A task fires at most once, and a
``(contest identity, offset)`` pair is delivered at most once per epoch.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler

from contestbot.scrapers.common import Contest, to_utc, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReminderOffset:
    label: str
    delta: timedelta

    @classmethod
    def from_minutes(cls, minutes: int) -> ReminderOffset:
        if minutes <= 0:
            raise ValueError(f"Reminder offset must be positive, got {minutes}")
        if minutes % 1440 == 0:
            count, unit = minutes // 1440, 'day'
        elif minutes % 60 == 0 and minutes < 1440:
            count, unit = minutes // 60, 'hour'
        else:
            count, unit = minutes, 'minute'
        label = f"{count} {unit}" + ('' if count == 1 else 's')
        return cls(label=label, delta=timedelta(minutes=minutes))


DEFAULT_OFFSETS = (
    ReminderOffset('1 day', timedelta(days=1)),
    ReminderOffset('6 hours', timedelta(hours=6)),
    ReminderOffset('30 minutes', timedelta(minutes=30)),
)


def parse_offsets(value: str) -> tuple[ReminderOffset, ...]:
    """Parse a comma separated list of minutes, largest lead time first."""
    minutes = sorted({int(part) for part in value.split(',') if part.strip()}, reverse=True)
    if not minutes:
        return DEFAULT_OFFSETS
    return tuple(ReminderOffset.from_minutes(m) for m in minutes)


class TaskState(str, Enum):
    ARMED = 'armed'
    FIRED = 'fired'
    CANCELLED = 'cancelled'


@dataclass
class ReminderTask:
    contest: Contest
    offset: ReminderOffset
    fire_at: datetime
    epoch: int
    state: TaskState = TaskState.ARMED
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @property
    def dedup_key(self) -> tuple[str, str]:
        return (self.contest.identity, self.offset.label)

    @property
    def job_id(self) -> str:
        return f"reminder:{self.epoch}:{self.contest.identity}:{self.offset.label}"

    def cancel(self) -> bool:
        """ARMED -> CANCELLED. No-op (False) for tasks already fired or cancelled."""
        with self._lock:
            if self.state is not TaskState.ARMED:
                return False
            self.state = TaskState.CANCELLED
            return True

    def try_fire(self, claim) -> bool:
        """ARMED -> FIRED if ``claim()`` agrees, else ARMED -> CANCELLED.

        ``claim`` runs under the task lock so a concurrent ``cancel`` either
        wins outright or sees the task already fired.
        """
        with self._lock:
            if self.state is not TaskState.ARMED:
                return False
            if not claim():
                self.state = TaskState.CANCELLED
                return False
            self.state = TaskState.FIRED
            return True

    def to_dict(self) -> dict:
        return {
            'identity': self.contest.identity,
            'contest': self.contest.name,
            'platform': self.contest.platform.value,
            'offset': self.offset.label,
            'fire_at': self.fire_at.isoformat(),
            'epoch': self.epoch,
            'state': self.state.value,
        }


class DedupSet:
    """Thread-safe set of delivered ``(identity, offset label)`` pairs."""

    def __init__(self):
        self._items = set()
        self._lock = threading.Lock()

    def add_if_absent(self, key) -> bool:
        with self._lock:
            if key in self._items:
                return False
            self._items.add(key)
            return True

    def clear(self):
        with self._lock:
            self._items.clear()

    def __contains__(self, key) -> bool:
        with self._lock:
            return key in self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class ReminderScheduler:
    def __init__(
        self,
        sink=None,
        offsets=DEFAULT_OFFSETS,
        scheduler: BackgroundScheduler | None = None,
        misfire_grace_time: int = 60,
        clock=utc_now,
    ):
        self.sink = sink
        self.offsets = tuple(offsets)
        self.scheduler = scheduler or BackgroundScheduler(timezone='UTC')
        self.misfire_grace_time = misfire_grace_time
        self._clock = clock
        self._arm_lock = threading.RLock()
        self._tasks: list[ReminderTask] = []
        self._sent = DedupSet()
        self._epoch = 0

    def init_app(self, app, sink=None):
        """Bind configuration from a Flask app; the instance stays process-wide."""
        from contestbot.services.delivery import create_sink

        self.offsets = parse_offsets(app.config.get('REMINDER_OFFSETS', '1440,360,30'))
        self.misfire_grace_time = app.config.get('REMINDER_MISFIRE_GRACE', 60)
        self.sink = sink or create_sink(app.config)
        app.extensions['reminders'] = self

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def tasks(self) -> list[ReminderTask]:
        with self._arm_lock:
            return list(self._tasks)

    def start(self):
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("Reminder scheduler started")

    def shutdown(self):
        self.cancel_all()
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)

    def cancel_all(self) -> int:
        """Cancel the current epoch and clear the delivered-pairs set."""
        with self._arm_lock:
            cancelled = 0
            for task in self._tasks:
                if task.cancel():
                    cancelled += 1
                try:
                    self.scheduler.remove_job(task.job_id)
                except JobLookupError:
                    pass
            self._tasks = []
            self._sent.clear()
            self._epoch += 1
            if cancelled:
                logger.info(f"Cancelled {cancelled} armed reminders")
            return cancelled

    def arm(self, contests, now: datetime | None = None) -> list[ReminderTask]:
        """Replace every armed reminder with a fresh set for *contests*.

        Offsets whose fire time has already passed are skipped.
        """
        with self._arm_lock:
            self.cancel_all()
            now = to_utc(now) if now is not None else self._clock()
            tasks = []
            armed_keys = set()
            for contest in contests:
                if contest.start_time <= now:
                    continue
                for offset in self.offsets:
                    fire_at = contest.start_time - offset.delta
                    if fire_at <= now:
                        continue
                    task = ReminderTask(contest=contest, offset=offset,
                                        fire_at=fire_at, epoch=self._epoch)
                    # One job per pair; a second task would share its job id.
                    if task.dedup_key in armed_keys:
                        continue
                    armed_keys.add(task.dedup_key)
                    self.scheduler.add_job(
                        self.fire,
                        trigger='date',
                        run_date=fire_at,
                        args=[task],
                        id=task.job_id,
                        replace_existing=True,
                        misfire_grace_time=self.misfire_grace_time,
                    )
                    tasks.append(task)
                    logger.debug(
                        f"Armed {offset.label} reminder for {contest.name!r} at {fire_at.isoformat()}"
                    )
            self._tasks = tasks
            logger.info(
                f"Armed {len(tasks)} reminders for {len(contests)} contests (epoch {self._epoch})"
            )
            return list(tasks)

    def fire(self, task: ReminderTask) -> bool:
        """Timer callback. Returns True when the sink was invoked."""
        if not task.try_fire(lambda: self._sent.add_if_absent(task.dedup_key)):
            if task.state is TaskState.CANCELLED and task.dedup_key in self._sent:
                logger.debug(
                    f"Skipping duplicate {task.offset.label} reminder for {task.contest.name}"
                )
            return False

        logger.info(f"Sending {task.offset.label} reminder for {task.contest.name}")
        if self.sink is None:
            logger.error("No delivery sink configured; reminder dropped")
            return True
        try:
            delivered = self.sink.deliver(task.contest, task.offset.label)
        except Exception as e:
            logger.error(
                f"Error sending {task.offset.label} reminder for {task.contest.name}: {e}"
            )
            return True
        if not delivered:
            logger.error(
                f"Delivery rejected for {task.offset.label} reminder of {task.contest.name}"
            )
        return True
