import logging

import pandas as pd
from django.db import transaction
from django.utils import timezone

from companies.models import Company
from rankings.exceptions import IncompleteScoreDataError
from rankings.models import CompanyInfluenceScore, CompanyRanking
from rankings.periods import RankingPeriod, resolve_period
from rankings.types import RankingEntry

logger = logging.getLogger(__name__)

# score desc, then bookmarks desc, then article count desc, then company id asc
SORT_KEYS = ["score", "total_engagement", "article_count", "company_id"]
SORT_ASCENDING = [False, False, False, True]


def rank_scores(rows):
    """
    rows: iterable of objects with company_id, total_score, total_engagement
    and article_count. Returns [(rank_position, row), ...] with positions
    1..N and no ties; company_id is the final tie-break.
    """
    rows = list(rows)
    if not rows:
        return []
    by_company = {r.company_id: r for r in rows}
    df = pd.DataFrame(
        [
            {
                "company_id": r.company_id,
                "score": float(r.total_score),
                "total_engagement": int(r.total_engagement),
                "article_count": int(r.article_count),
            }
            for r in rows
        ]
    )
    df.sort_values(SORT_KEYS, ascending=SORT_ASCENDING, inplace=True, kind="mergesort")
    return [(i, by_company[int(cid)]) for i, cid in enumerate(df["company_id"], 1)]


class RankingGenerator:
    def __init__(self, clock=timezone.now):
        self.clock = clock

    def generate_all_periods(self, reference_date=None):
        reference_date = reference_date or timezone.localdate()
        return {p.value: self.generate_for_period(p, reference_date) for p in RankingPeriod}

    def generate_for_period(self, period_type, reference_date=None):
        period_type = RankingPeriod.parse(period_type)
        reference_date = reference_date or timezone.localdate()
        period = resolve_period(period_type, reference_date)

        logger.info("Generating ranking: period=%s %s..%s", period_type, period.start, period.end)

        active_ids = set(Company.objects.active().values_list("id", flat=True))
        scores = list(
            CompanyInfluenceScore.objects.filter(
                period_type=period_type.value,
                period_start=period.start,
                period_end=period.end,
                company__is_active=True,
            )
        )
        missing = active_ids - {s.company_id for s in scores}
        if missing:
            raise IncompleteScoreDataError(period_type.value, missing)
        if not scores:
            logger.info("No active companies to rank for period=%s", period_type)
            return []

        calculated_at = self.clock()
        entries = [
            RankingEntry(
                company_id=s.company_id,
                ranking_period=period_type.value,
                rank_position=position,
                total_score=s.total_score,
                article_count=s.article_count,
                total_bookmarks=s.total_engagement,
                period_start=period.start,
                period_end=period.end,
                calculated_at=calculated_at,
            )
            for position, s in rank_scores(scores)
        ]

        with transaction.atomic():
            CompanyRanking.objects.bulk_create(
                [
                    CompanyRanking(
                        company_id=e.company_id,
                        ranking_period=e.ranking_period,
                        rank_position=e.rank_position,
                        total_score=e.total_score,
                        article_count=e.article_count,
                        total_bookmarks=e.total_bookmarks,
                        period_start=e.period_start,
                        period_end=e.period_end,
                        calculated_at=e.calculated_at,
                    )
                    for e in entries
                ]
            )

        logger.info("Ranking generated: period=%s companies=%d snapshot=%s", period_type, len(entries), calculated_at)
        return entries
