"""
Influence score calculation.

Every attributed, non-deleted article published inside the period window
contributes

    engagement bucket weight + recency bonus (or penalty)

to its company's total. Thresholds and weights live in ScoringConfig, which
is injected into ScoreCalculator so tests can pin them.

Default weights:
    engagement > 100 -> +0.3 | > 50 -> +0.2 | > 10 -> +0.1
    age <= 7 days    -> +0.2 | <= 30 -> +0.1 | > 100 -> -0.1
"""
from __future__ import annotations

import datetime as dt
import logging
from collections import defaultdict
from dataclasses import dataclass, fields
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List

from django.conf import settings
from django.db import DatabaseError
from django.utils import timezone

from articles.models import Article
from companies.models import Company
from rankings.exceptions import ScoreCalculationError, UnknownCompanyError
from rankings.models import CompanyInfluenceScore
from rankings.periods import ScorePeriod, parse_any_period, resolve_period
from rankings.types import DateRange, InfluenceScore

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")


@dataclass(frozen=True)
class ScoringConfig:
    high_engagement_threshold: int = 100
    medium_engagement_threshold: int = 50
    low_engagement_threshold: int = 10
    high_engagement_weight: Decimal = Decimal("0.3")
    medium_engagement_weight: Decimal = Decimal("0.2")
    low_engagement_weight: Decimal = Decimal("0.1")

    recent_days: int = 7
    somewhat_recent_days: int = 30
    old_days: int = 100
    recent_bonus: Decimal = Decimal("0.2")
    somewhat_recent_bonus: Decimal = Decimal("0.1")
    old_penalty: Decimal = Decimal("-0.1")

    @classmethod
    def from_settings(cls):
        overrides = getattr(settings, "INFLUENCE_SCORING", {}) or {}
        kwargs = {}
        for f in fields(cls):
            if f.name not in overrides:
                continue
            raw = overrides[f.name]
            kwargs[f.name] = Decimal(str(raw)) if f.type in (Decimal, "Decimal") else int(raw)
        return cls(**kwargs)


DEFAULT_SCORING = ScoringConfig()


def article_score(engagement_count, age_days, config: ScoringConfig = DEFAULT_SCORING) -> Decimal:
    """Incremental score of one article. Raises ValueError on malformed input."""
    if engagement_count is None or isinstance(engagement_count, bool) or engagement_count < 0:
        raise ValueError(f"invalid engagement_count: {engagement_count!r}")
    if age_days is None:
        raise ValueError("article age is unknown")
    age_days = max(0, int(age_days))

    score = Decimal("0")
    if engagement_count > config.high_engagement_threshold:
        score += config.high_engagement_weight
    elif engagement_count > config.medium_engagement_threshold:
        score += config.medium_engagement_weight
    elif engagement_count > config.low_engagement_threshold:
        score += config.low_engagement_weight

    if age_days <= config.recent_days:
        score += config.recent_bonus
    elif age_days <= config.somewhat_recent_days:
        score += config.somewhat_recent_bonus
    elif age_days > config.old_days:
        score += config.old_penalty
    return score


class ScoreCalculator:
    def __init__(self, config: ScoringConfig = None, clock=timezone.now):
        self.config = config or ScoringConfig.from_settings()
        self.clock = clock

    # ----------------------------
    # Public API
    # ----------------------------
    def calculate_for_company(self, company_id: int, period_type: str, start: dt.date, end: dt.date) -> InfluenceScore:
        period_type = parse_any_period(period_type)
        try:
            companies = Company.objects.active().filter(pk=company_id)
            if not companies.exists():
                raise UnknownCompanyError(f"Company {company_id} does not exist or is inactive")
        except DatabaseError as e:
            raise ScoreCalculationError(f"Could not load company {company_id}: {e}") from e

        scores, failed = self._calculate(companies, period_type, DateRange(start, end))
        if failed:
            raise ScoreCalculationError(f"Influence score for company {company_id} could not be computed")
        return scores[0]

    def calculate_all_companies(self, period_type: str, start: dt.date, end: dt.date) -> List[InfluenceScore]:
        period_type = parse_any_period(period_type)
        period = DateRange(start, end)
        scores, failed = self._calculate(Company.objects.active(), period_type, period)
        logger.info(
            "All companies influence scores calculated: period=%s %s..%s scored=%d failed=%d",
            period_type, period.start, period.end, len(scores), len(failed),
        )
        return scores

    def calculate_by_all_periods(self, reference_date) -> Dict[str, List[InfluenceScore]]:
        results = {}
        for period_type in ScorePeriod:
            period = resolve_period(period_type, reference_date, vocabulary=ScorePeriod)
            results[period_type.value] = self.calculate_all_companies(period_type, period.start, period.end)
        return results

    # ----------------------------
    # Internals
    # ----------------------------
    def _calculate(self, companies, period_type, period: DateRange):
        lo, hi = period.window()
        try:
            company_ids = list(companies.order_by("id").values_list("id", flat=True))
            rows = (
                Article.objects.alive()
                .filter(company__in=companies)
                .published_between(lo, hi)
                .values_list("company_id", "engagement_count", "published_at")
            )
            by_company = defaultdict(list)
            for company_id, engagement, published_at in rows:
                by_company[company_id].append((engagement, published_at))
        except DatabaseError as e:
            raise ScoreCalculationError(f"Article aggregation failed for period {period_type}: {e}") from e

        calculated_at = self.clock()
        scores, failed = [], []
        for company_id in company_ids:
            try:
                scores.append(
                    self._score_company(company_id, period_type, period, by_company.get(company_id, []), calculated_at)
                )
            except (ValueError, TypeError, ArithmeticError) as e:
                # left out of this run, picked up again by the next one
                logger.warning(
                    "Influence score skipped: company=%s period=%s %s..%s error=%s",
                    company_id, period_type, period.start, period.end, e,
                )
                failed.append(company_id)

        self._save(scores)
        return scores, failed

    def _score_company(self, company_id, period_type, period: DateRange, articles, calculated_at) -> InfluenceScore:
        total = Decimal("0")
        engagement_sum = 0
        for engagement, published_at in articles:
            age_days = (period.end - timezone.localtime(published_at).date()).days
            total += article_score(engagement, age_days, self.config)
            engagement_sum += engagement

        return InfluenceScore(
            company_id=company_id,
            period_type=str(period_type),
            period_start=period.start,
            period_end=period.end,
            total_score=total.quantize(TWO_PLACES, rounding=ROUND_HALF_UP),
            article_count=len(articles),
            total_engagement=engagement_sum,
            calculated_at=calculated_at,
        )

    def _save(self, scores: List[InfluenceScore]):
        if not scores:
            return
        objs = [
            CompanyInfluenceScore(
                company_id=s.company_id,
                period_type=s.period_type,
                period_start=s.period_start,
                period_end=s.period_end,
                total_score=s.total_score,
                article_count=s.article_count,
                total_engagement=s.total_engagement,
                calculated_at=s.calculated_at,
            )
            for s in scores
        ]
        try:
            CompanyInfluenceScore.objects.bulk_create(
                objs,
                update_conflicts=True,
                unique_fields=["company", "period_type", "period_start", "period_end"],
                update_fields=["total_score", "article_count", "total_engagement", "calculated_at"],
            )
        except DatabaseError as e:
            raise ScoreCalculationError(f"Saving influence scores failed: {e}") from e
