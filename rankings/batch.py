"""
Batch entry points called by the scheduler (cron / management commands).

One unit of work is one period: score every active company, rank the
scores, then diff the new snapshot against the previous one. Scoring and
ranking are retried together with bounded attempts; history recording is
never retried, a second run against the same snapshot is a bug.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from django.utils import timezone

from rankings.conf import ranking_setting
from rankings.engine import RankingGenerator
from rankings.exceptions import IncompleteScoreDataError, ScoreCalculationError
from rankings.history import RankingHistoryTracker
from rankings.periods import RankingPeriod, resolve_period
from rankings.queries import invalidate_ranking_cache
from rankings.scoring import ScoreCalculator
from rankings.types import DateRange, InfluenceScore, RankingEntry, RankingHistoryEntry

logger = logging.getLogger(__name__)

RETRYABLE = (ScoreCalculationError, IncompleteScoreDataError)


@dataclass
class BatchResult:
    period_type: str
    period: DateRange
    attempts: int
    scores: List[InfluenceScore] = field(default_factory=list)
    rankings: List[RankingEntry] = field(default_factory=list)
    history: List[RankingHistoryEntry] = field(default_factory=list)

    @property
    def snapshot_at(self):
        return self.rankings[0].calculated_at if self.rankings else None


class RankingBatch:
    def __init__(
        self,
        score_calculator: Optional[ScoreCalculator] = None,
        generator: Optional[RankingGenerator] = None,
        tracker: Optional[RankingHistoryTracker] = None,
        max_attempts: Optional[int] = None,
        retry_delay: Optional[float] = None,
        sleep=time.sleep,
    ):
        self.score_calculator = score_calculator or ScoreCalculator()
        self.generator = generator or RankingGenerator()
        self.tracker = tracker or RankingHistoryTracker()
        self.max_attempts = max(1, ranking_setting("max_attempts") if max_attempts is None else max_attempts)
        self.retry_delay = ranking_setting("retry_delay_seconds") if retry_delay is None else retry_delay
        self.sleep = sleep

    def _with_retries(self, label, fn):
        for attempt in range(1, self.max_attempts + 1):
            try:
                return fn(), attempt
            except RETRYABLE as e:
                if attempt == self.max_attempts:
                    logger.error("%s failed after %d attempts: %s", label, attempt, e)
                    raise
                delay = self.retry_delay * 2 ** (attempt - 1)
                logger.warning("%s failed (attempt %d/%d), retrying in %.1fs: %s",
                               label, attempt, self.max_attempts, delay, e)
                self.sleep(delay)

    def run_period(self, period_type, reference_date=None) -> BatchResult:
        period_type = RankingPeriod.parse(period_type)
        reference_date = reference_date or timezone.localdate()
        period = resolve_period(period_type, reference_date)
        started = time.monotonic()
        logger.info("Ranking batch started: period=%s reference_date=%s", period_type, reference_date)

        def score_and_rank():
            scores = self.score_calculator.calculate_all_companies(period_type, period.start, period.end)
            return scores, self.generator.generate_for_period(period_type, reference_date)

        (scores, rankings), attempts = self._with_retries(f"Ranking batch {period_type}", score_and_rank)

        result = BatchResult(period_type=period_type.value, period=period, attempts=attempts,
                             scores=scores, rankings=rankings)
        if rankings:
            result.history = self.tracker.record_history(period_type, result.snapshot_at)
            invalidate_ranking_cache()

        logger.info(
            "Ranking batch completed: period=%s companies=%d attempts=%d elapsed=%.2fs",
            period_type, len(rankings), attempts, time.monotonic() - started,
        )
        return result

    def run_all_periods(self, reference_date=None) -> Dict[str, BatchResult]:
        reference_date = reference_date or timezone.localdate()
        return {p.value: self.run_period(p, reference_date) for p in RankingPeriod}

    def run_score_periods(self, reference_date=None) -> Dict[str, List[InfluenceScore]]:
        reference_date = reference_date or timezone.localdate()
        results, _ = self._with_retries(
            "Influence score batch", lambda: self.score_calculator.calculate_by_all_periods(reference_date)
        )
        logger.info(
            "Influence score batch completed: periods=%d companies=%d",
            len(results), sum(len(v) for v in results.values()),
        )
        return results
