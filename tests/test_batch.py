"""
Test Suite for the ranking batch (score -> rank -> history) and its retry policy.
"""

import datetime as dt
from decimal import Decimal
from unittest import mock

import pytest
from django.core.cache import cache

from conftest import aware
from rankings.batch import RankingBatch
from rankings.engine import RankingGenerator
from rankings.exceptions import (
    DuplicateHistoryError,
    IncompleteScoreDataError,
    InvalidPeriodError,
    ScoreCalculationError,
)
from rankings.history import RankingHistoryTracker
from rankings.models import CompanyRanking, CompanyRankingHistory
from rankings.periods import RankingPeriod
from rankings.queries import STATISTICS_CACHE_KEY
from rankings.scoring import ScoreCalculator
from rankings.types import RankingEntry

REF = dt.date(2024, 1, 8)


def _entry(calculated_at):
    return RankingEntry(
        company_id=1, ranking_period="1w", rank_position=1, total_score=Decimal("1.00"),
        article_count=1, total_bookmarks=10, period_start=dt.date(2024, 1, 1), period_end=REF,
        calculated_at=calculated_at,
    )


def _mocked_batch(**kwargs):
    calculator = mock.Mock(spec=ScoreCalculator)
    calculator.calculate_all_companies.return_value = []
    generator = mock.Mock(spec=RankingGenerator)
    tracker = mock.Mock(spec=RankingHistoryTracker)
    tracker.record_history.return_value = []
    sleeps = []
    batch = RankingBatch(calculator, generator, tracker, sleep=sleeps.append, **kwargs)
    return batch, calculator, generator, tracker, sleeps


@pytest.mark.django_db
class TestRunPeriodEndToEnd:
    """The full pipeline against the database."""

    def test_two_runs_produce_rank_changes(self, make_company, make_article, clock):
        a, b = make_company(), make_company()
        make_article(a, aware(2024, 1, 7), engagement=200)
        batch = RankingBatch(generator=RankingGenerator(clock=clock), sleep=lambda s: None)

        first = batch.run_period("1w", REF)
        assert [e.company_id for e in first.rankings] == [a.id, b.id]
        assert all(h.rank_change is None for h in first.history)

        make_article(b, aware(2024, 1, 8), engagement=500)
        make_article(b, aware(2024, 1, 8, 15), engagement=500)
        second = batch.run_period("1w", REF)

        changes = {h.company_id: h.rank_change for h in second.history}
        assert changes == {b.id: 1, a.id: -1}
        assert second.attempts == 1
        assert CompanyRanking.objects.filter(ranking_period="1w").count() == 4
        assert CompanyRankingHistory.objects.count() == 4

    def test_result_exposes_period_and_snapshot(self, make_company, clock):
        make_company()
        result = RankingBatch(generator=RankingGenerator(clock=clock)).run_period("1m", REF)
        assert result.period_type == "1m"
        assert result.period.start == dt.date(2023, 12, 9)
        assert result.snapshot_at == result.rankings[0].calculated_at
        assert len(result.scores) == 1

    def test_run_all_periods(self, make_company):
        make_company()
        results = RankingBatch().run_all_periods(REF)
        assert set(results) == set(RankingPeriod.values)
        assert all(len(r.history) == 1 for r in results.values())

    def test_run_score_periods(self, make_company):
        make_company()
        results = RankingBatch().run_score_periods(REF)
        assert set(results) == {"daily", "weekly", "monthly"}

    def test_cache_is_invalidated(self, make_company):
        make_company()
        cache.set(STATISTICS_CACHE_KEY, {"stale": True})
        RankingBatch().run_period("1w", REF)
        assert cache.get(STATISTICS_CACHE_KEY) is None

    def test_no_companies_writes_nothing(self, db):
        result = RankingBatch().run_period("1w", REF)
        assert result.rankings == []
        assert result.history == []


class TestRetryPolicy:
    """Bounded retries with exponential backoff."""

    def test_store_failure_is_retried(self):
        batch, calculator, generator, tracker, sleeps = _mocked_batch(max_attempts=3, retry_delay=1.0)
        stamp = aware(2024, 1, 8, 3)
        calculator.calculate_all_companies.side_effect = [ScoreCalculationError("db down"), []]
        generator.generate_for_period.return_value = [_entry(stamp)]

        result = batch.run_period("1w", REF)

        assert result.attempts == 2
        assert sleeps == [1.0]
        tracker.record_history.assert_called_once_with(RankingPeriod.ONE_WEEK, stamp)

    def test_gives_up_after_max_attempts(self):
        batch, calculator, generator, tracker, sleeps = _mocked_batch(max_attempts=3, retry_delay=0.5)
        calculator.calculate_all_companies.side_effect = ScoreCalculationError("db down")

        with pytest.raises(ScoreCalculationError):
            batch.run_period("1w", REF)

        assert calculator.calculate_all_companies.call_count == 3
        assert sleeps == [0.5, 1.0]
        generator.generate_for_period.assert_not_called()
        tracker.record_history.assert_not_called()

    def test_incomplete_scores_rerun_scoring(self):
        batch, calculator, generator, tracker, sleeps = _mocked_batch(max_attempts=3, retry_delay=0)
        stamp = aware(2024, 1, 8, 3)
        generator.generate_for_period.side_effect = [IncompleteScoreDataError("1w", [7]), [_entry(stamp)]]

        result = batch.run_period("1w", REF)

        assert result.attempts == 2
        assert calculator.calculate_all_companies.call_count == 2
        assert tracker.record_history.call_count == 1

    def test_invalid_period_is_not_retried(self):
        batch, calculator, generator, tracker, sleeps = _mocked_batch()
        with pytest.raises(InvalidPeriodError):
            batch.run_period("2w", REF)
        calculator.calculate_all_companies.assert_not_called()
        assert sleeps == []

    def test_duplicate_history_is_not_retried(self):
        batch, calculator, generator, tracker, sleeps = _mocked_batch()
        generator.generate_for_period.return_value = [_entry(aware(2024, 1, 8, 3))]
        tracker.record_history.side_effect = DuplicateHistoryError("twice")

        with pytest.raises(DuplicateHistoryError):
            batch.run_period("1w", REF)

        assert generator.generate_for_period.call_count == 1
        assert sleeps == []

    def test_score_batch_retry(self):
        batch, calculator, generator, tracker, sleeps = _mocked_batch(max_attempts=2, retry_delay=2)
        calculator.calculate_by_all_periods.side_effect = [ScoreCalculationError("db down"), {"daily": []}]

        assert batch.run_score_periods(REF) == {"daily": []}
        assert sleeps == [2]
