"""Tests for the reminder scheduler: arming, firing, dedup and re-arming."""

import threading
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from contestbot.scrapers.common import DeliveryFailure, FailureKind, Platform, TimeRange
from contestbot.services.aggregator import ContestAggregator
from contestbot.services.cascade import CascadingFetcher
from contestbot.tasks.reminders import (
    DEFAULT_OFFSETS,
    DedupSet,
    ReminderOffset,
    ReminderTask,
    TaskState,
    parse_offsets,
)

from conftest import NOW, FakeSource, make_contest


def _labels(tasks):
    return sorted(t.offset.label for t in tasks)


class TestOffsets:
    def test_default_offsets(self):
        assert [o.label for o in DEFAULT_OFFSETS] == ['1 day', '6 hours', '30 minutes']

    def test_labels_from_minutes(self):
        assert ReminderOffset.from_minutes(1440).label == '1 day'
        assert ReminderOffset.from_minutes(2880).label == '2 days'
        assert ReminderOffset.from_minutes(360).label == '6 hours'
        assert ReminderOffset.from_minutes(60).label == '1 hour'
        assert ReminderOffset.from_minutes(90).label == '90 minutes'
        assert ReminderOffset.from_minutes(1).label == '1 minute'

    def test_parse_offsets_sorted_and_deduplicated(self):
        offsets = parse_offsets('30, 1440,360,30')
        assert [o.label for o in offsets] == ['1 day', '6 hours', '30 minutes']

    def test_parse_offsets_empty_falls_back(self):
        assert parse_offsets('') == DEFAULT_OFFSETS

    def test_non_positive_offset_rejected(self):
        with pytest.raises(ValueError):
            ReminderOffset.from_minutes(0)


class TestDedupSet:
    def test_add_if_absent(self):
        seen = DedupSet()
        assert seen.add_if_absent(('a', '1 day'))
        assert not seen.add_if_absent(('a', '1 day'))
        assert ('a', '1 day') in seen
        seen.clear()
        assert len(seen) == 0

    def test_concurrent_inserts_admit_one(self):
        seen = DedupSet()
        wins = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            wins.append(seen.add_if_absent(('x', '30 minutes')))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert wins.count(True) == 1


class TestArm:
    def test_arms_every_future_offset(self, reminder_scheduler):
        tasks = reminder_scheduler.arm([make_contest(hours=48)])
        assert _labels(tasks) == ['1 day', '30 minutes', '6 hours']
        assert all(t.state is TaskState.ARMED for t in tasks)
        assert len(reminder_scheduler.scheduler.get_jobs()) == 3

    def test_fire_times(self, reminder_scheduler):
        contest = make_contest(hours=48)
        tasks = {t.offset.label: t for t in reminder_scheduler.arm([contest])}
        assert tasks['1 day'].fire_at == contest.start_time - timedelta(days=1)
        assert tasks['30 minutes'].fire_at == contest.start_time - timedelta(minutes=30)

    def test_skips_offsets_already_passed(self, reminder_scheduler):
        tasks = reminder_scheduler.arm([make_contest(hours=3)])
        assert _labels(tasks) == ['30 minutes']

    def test_skips_started_contests(self, reminder_scheduler):
        tasks = reminder_scheduler.arm([make_contest(hours=-1), make_contest(name='Soon', hours=0.25)])
        assert tasks == []

    def test_rearm_cancels_previous_epoch(self, reminder_scheduler):
        first = reminder_scheduler.arm([make_contest(hours=48)])
        second = reminder_scheduler.arm([make_contest(hours=48)])

        assert all(t.state is TaskState.CANCELLED for t in first)
        assert all(t.state is TaskState.ARMED for t in second)
        assert second[0].epoch > first[0].epoch
        job_ids = {job.id for job in reminder_scheduler.scheduler.get_jobs()}
        assert job_ids == {t.job_id for t in second}

    def test_cancel_all_is_idempotent(self, reminder_scheduler):
        tasks = reminder_scheduler.arm([make_contest(hours=48)])
        assert reminder_scheduler.cancel_all() == 3
        assert reminder_scheduler.cancel_all() == 0
        assert all(t.state is TaskState.CANCELLED for t in tasks)
        assert reminder_scheduler.scheduler.get_jobs() == []


class TestFire:
    def test_fire_delivers_contest_and_label(self, reminder_scheduler, sink):
        contest = make_contest(hours=48)
        task = next(t for t in reminder_scheduler.arm([contest]) if t.offset.label == '6 hours')

        assert reminder_scheduler.fire(task)

        assert task.state is TaskState.FIRED
        assert sink.delivered == [(contest, '6 hours')]

    def test_task_fires_only_once(self, reminder_scheduler, sink):
        task = reminder_scheduler.arm([make_contest(hours=48)])[0]
        assert reminder_scheduler.fire(task)
        assert not reminder_scheduler.fire(task)
        assert len(sink.delivered) == 1

    def test_cancelled_task_does_not_fire(self, reminder_scheduler, sink):
        task = reminder_scheduler.arm([make_contest(hours=48)])[0]
        reminder_scheduler.cancel_all()
        assert not reminder_scheduler.fire(task)
        assert sink.delivered == []

    def test_cancel_after_fire_is_noop(self, reminder_scheduler):
        task = reminder_scheduler.arm([make_contest(hours=48)])[0]
        reminder_scheduler.fire(task)
        assert not task.cancel()
        assert task.state is TaskState.FIRED

    def test_duplicate_contest_armed_once(self, reminder_scheduler, sink):
        contest = make_contest(hours=48)
        tasks = reminder_scheduler.arm([contest, contest])

        assert _labels(tasks) == ['1 day', '30 minutes', '6 hours']
        assert len(reminder_scheduler.tasks) == 3
        job_ids = [job.id for job in reminder_scheduler.scheduler.get_jobs()]
        assert sorted(job_ids) == sorted(t.job_id for t in tasks)

        for task in tasks:
            reminder_scheduler.fire(task)
        assert len(sink.delivered) == 3
        assert all(t.state is TaskState.FIRED for t in reminder_scheduler.tasks)

    def test_duplicate_task_delivered_once(self, reminder_scheduler, sink):
        contest = make_contest(hours=48)
        task = reminder_scheduler.arm([contest])[0]
        twin = ReminderTask(contest=contest, offset=task.offset,
                            fire_at=task.fire_at, epoch=task.epoch)

        assert reminder_scheduler.fire(task)
        assert not reminder_scheduler.fire(twin)

        assert sink.delivered == [(contest, task.offset.label)]
        assert twin.state is TaskState.CANCELLED

    def test_sink_exception_still_marks_fired(self, reminder_scheduler):
        reminder_scheduler.sink = MagicMock()
        reminder_scheduler.sink.deliver.side_effect = DeliveryFailure('HTTP 403')
        tasks = reminder_scheduler.arm([make_contest(hours=48)])

        for task in tasks:
            assert reminder_scheduler.fire(task)

        assert all(t.state is TaskState.FIRED for t in tasks)
        assert reminder_scheduler.sink.deliver.call_count == 3

    def test_sink_rejection_not_retried(self, reminder_scheduler):
        reminder_scheduler.sink = MagicMock()
        reminder_scheduler.sink.deliver.return_value = False
        task = reminder_scheduler.arm([make_contest(hours=48)])[0]
        reminder_scheduler.fire(task)
        reminder_scheduler.fire(task)
        assert reminder_scheduler.sink.deliver.call_count == 1
        assert task.state is TaskState.FIRED

    def test_idempotent_rearm_with_same_list(self, reminder_scheduler, sink):
        contests = [make_contest(hours=48), make_contest(Platform.ATCODER, 'ABC 430', hours=30)]
        first = reminder_scheduler.arm(contests)
        second = reminder_scheduler.arm(contests)

        for task in first + second:
            reminder_scheduler.fire(task)

        pairs = [(c.identity, label) for c, label in sink.delivered]
        assert len(pairs) == len(set(pairs)) == len(second)

    def test_concurrent_cancel_and_fire_never_both_win(self, reminder_scheduler):
        for _ in range(50):
            task = reminder_scheduler.arm([make_contest(hours=48)])[0]
            outcome = {}
            barrier = threading.Barrier(2)

            def do_fire():
                barrier.wait()
                outcome['fired'] = reminder_scheduler.fire(task)

            def do_cancel():
                barrier.wait()
                outcome['cancelled'] = task.cancel()

            threads = [threading.Thread(target=do_fire), threading.Thread(target=do_cancel)]
            for t in threads:
                t.start()
            for t in threads:
                t.join()
            assert outcome['fired'] != outcome['cancelled']


class TestScenarios:
    def test_contest_two_hours_away_gets_only_thirty_minute_task(self, reminder_scheduler):
        """Two platforms; only one contest, starting in two hours."""
        soon = make_contest(Platform.CODEFORCES, 'Educational Round 181', hours=2)
        fetcher = CascadingFetcher(sources={
            Platform.CODEFORCES: [FakeSource('cf', [[soon]])],
            Platform.ATCODER: [FakeSource('ac', [FailureKind.EMPTY])],
        }, backoff=0)
        contests = ContestAggregator(fetcher).aggregate(
            [Platform.CODEFORCES, Platform.ATCODER], TimeRange.days_ahead(7, NOW))

        tasks = reminder_scheduler.arm(contests)

        assert contests == [soon]
        assert _labels(tasks) == ['30 minutes']
        assert tasks[0].fire_at == soon.start_time - timedelta(minutes=30)

    def test_rearm_before_six_hour_reminder_only_fresh_task_fires(self, reminder_scheduler, sink):
        contest = make_contest(hours=10)
        stale = next(t for t in reminder_scheduler.arm([contest]) if t.offset.label == '6 hours')

        fresh = next(t for t in reminder_scheduler.arm([contest]) if t.offset.label == '6 hours')

        assert stale.state is TaskState.CANCELLED
        assert not reminder_scheduler.fire(stale)
        assert reminder_scheduler.fire(fresh)
        assert sink.delivered == [(contest, '6 hours')]
        assert stale.job_id != fresh.job_id
