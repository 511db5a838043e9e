"""Tests for merging, deduplicating and ordering contests across platforms."""

from datetime import timedelta

from contestbot.scrapers.common import Contest, FailureKind, Platform, TimeRange
from contestbot.services.aggregator import ContestAggregator, normalize_contests
from contestbot.services.cascade import CascadingFetcher

from conftest import NOW, FakeSource, make_contest


def _aggregator(sources):
    return ContestAggregator(CascadingFetcher(sources=sources, backoff=0))


class TestNormalizeContests:
    def test_deduplicates_by_identity(self):
        a = make_contest(name='Round 1', hours=5, url='https://codeforces.com/contests/1')
        b = make_contest(name='Round 1', hours=5, url='https://clist.by/1')
        result = normalize_contests([a, b], {}, TimeRange.days_ahead(7, NOW))
        assert result == [a]

    def test_sorted_with_deterministic_tie_break(self):
        start = NOW + timedelta(hours=10)
        cf_b = Contest.create(Platform.CODEFORCES, 'B Round', start)
        cf_a = Contest.create(Platform.CODEFORCES, 'A Round', start)
        ac = Contest.create(Platform.ATCODER, 'Z Contest', start)
        early = Contest.create(Platform.CODECHEF, 'Starters', start - timedelta(hours=1))

        result = normalize_contests([cf_b, ac, early, cf_a], {}, TimeRange.days_ahead(7, NOW))

        assert result == [early, ac, cf_a, cf_b]

    def test_drops_records_outside_window(self):
        window = TimeRange.days_ahead(7, NOW)
        past = make_contest(name='Past', hours=-1)
        far = make_contest(name='Far', hours=24 * 8)
        edge = make_contest(name='Edge', hours=24 * 7)
        result = normalize_contests([past, far, edge], {}, window)
        assert [c.name for c in result] == ['Edge']

    def test_per_platform_window(self):
        window = TimeRange.days_ahead(7, NOW)
        overrides = {Platform.ATCODER: TimeRange.days_ahead(14, NOW)}
        ac = make_contest(Platform.ATCODER, 'ABC 432', hours=24 * 10)
        cf = make_contest(Platform.CODEFORCES, 'Round 1060', hours=24 * 10)
        assert normalize_contests([ac, cf], overrides, window) == [ac]


class TestContestAggregator:
    def test_merges_platforms_in_order(self):
        aggregator = _aggregator({
            Platform.CODEFORCES: [FakeSource('cf', [[
                make_contest(name='Round 2', hours=50),
                make_contest(name='Round 1', hours=10),
            ]])],
            Platform.ATCODER: [FakeSource('ac', [[
                make_contest(Platform.ATCODER, 'ABC 430', hours=30),
            ]])],
        })

        contests = aggregator.aggregate({Platform.CODEFORCES, Platform.ATCODER},
                                        TimeRange.days_ahead(7, NOW))

        assert [c.name for c in contests] == ['Round 1', 'ABC 430', 'Round 2']
        starts = [c.start_time for c in contests]
        assert starts == sorted(starts)
        assert len({c.identity for c in contests}) == len(contests)

    def test_failing_platform_does_not_block_others(self):
        aggregator = _aggregator({
            Platform.CODEFORCES: [FakeSource('cf', [FailureKind.TIMED_OUT])],
            Platform.ATCODER: [FakeSource('ac', [[make_contest(Platform.ATCODER, 'ABC 430', hours=30)]])],
        })
        contests = aggregator.aggregate([Platform.CODEFORCES, Platform.ATCODER],
                                        TimeRange.days_ahead(7, NOW))
        assert [c.name for c in contests] == ['ABC 430']

    def test_fetcher_exception_is_contained(self):
        class ExplodingFetcher:
            def fetch_platform(self, platform, window):
                if platform is Platform.CODECHEF:
                    raise RuntimeError('boom')
                return [make_contest(platform, f'{platform.display} contest', hours=3)]

        aggregator = ContestAggregator(ExplodingFetcher())
        contests = aggregator.aggregate(list(Platform), TimeRange.days_ahead(7, NOW))
        assert {c.platform for c in contests} == {Platform.CODEFORCES, Platform.ATCODER}

    def test_all_failing_is_empty_list(self):
        aggregator = _aggregator({p: [FakeSource(p.value, [FailureKind.BAD_FORMAT])] for p in Platform})
        assert aggregator.aggregate(list(Platform), TimeRange.days_ahead(7, NOW)) == []

    def test_no_platforms(self):
        assert _aggregator({}).aggregate([], TimeRange.days_ahead(7, NOW)) == []

    def test_override_window_passed_to_fetcher(self):
        far = make_contest(Platform.ATCODER, 'AGC 80', hours=24 * 12)
        aggregator = _aggregator({Platform.ATCODER: [FakeSource('ac', [[far]])]})
        window = TimeRange.days_ahead(7, NOW)

        assert aggregator.aggregate([Platform.ATCODER], window) == []
        overrides = {Platform.ATCODER: TimeRange.days_ahead(14, NOW)}
        assert aggregator.aggregate([Platform.ATCODER], window, overrides) == [far]
