"""
Read-side helpers over the persisted ranking tables.

Readers always get the latest snapshot that was fully written; a failed
generation run leaves the previous snapshot in place and it keeps being
served.
"""
import datetime as dt
from decimal import Decimal

from django.core.cache import cache
from django.db.models import Avg, Count, Max, Min, Sum
from django.utils import timezone

from rankings.conf import ranking_setting
from rankings.history import validate_limit
from rankings.models import CompanyInfluenceScore, CompanyRanking
from rankings.periods import RankingPeriod, ScorePeriod

STATISTICS_CACHE_KEY = "rankings:statistics"


def _round(value):
    return round(Decimal(str(value or 0)), 2)


def latest_snapshot_at(period_type):
    period_type = RankingPeriod.parse(period_type).value
    return CompanyRanking.objects.filter(ranking_period=period_type).aggregate(latest=Max("calculated_at"))["latest"]


def get_ranking_for_period(period_type, limit=None):
    """Top-N of the latest snapshot; truncation happens here, never at generation time."""
    limit = validate_limit(ranking_setting("default_limit") if limit is None else limit)
    latest = latest_snapshot_at(period_type)
    if latest is None:
        return []
    return list(
        CompanyRanking.objects.filter(
            ranking_period=RankingPeriod.parse(period_type).value,
            calculated_at=latest,
            company__is_active=True,
        )
        .select_related("company")
        .order_by("rank_position")[:limit]
    )


def get_company_rankings(company_id):
    out = {}
    for period in RankingPeriod:
        out[period.value] = (
            CompanyRanking.objects.filter(company_id=company_id, ranking_period=period.value, company__is_active=True)
            .order_by("-calculated_at")
            .first()
        )
    return out


def get_ranking_statistics():
    stats = cache.get(STATISTICS_CACHE_KEY)
    if stats is not None:
        return stats

    stats = {}
    for period in RankingPeriod:
        latest = latest_snapshot_at(period)
        agg = CompanyRanking.objects.filter(ranking_period=period.value, calculated_at=latest).aggregate(
            total_companies=Count("id"),
            avg_score=Avg("total_score"),
            max_score=Max("total_score"),
            min_score=Min("total_score"),
            total_articles=Sum("article_count"),
            total_bookmarks=Sum("total_bookmarks"),
        )
        stats[period.value] = {
            "total_companies": agg["total_companies"],
            "average_score": _round(agg["avg_score"]),
            "max_score": _round(agg["max_score"]),
            "min_score": _round(agg["min_score"]),
            "total_articles": agg["total_articles"] or 0,
            "total_bookmarks": agg["total_bookmarks"] or 0,
            "last_calculated": latest,
        }
    cache.set(STATISTICS_CACHE_KEY, stats, timeout=ranking_setting("statistics_cache_seconds"))
    return stats


def invalidate_ranking_cache():
    cache.delete(STATISTICS_CACHE_KEY)


def get_top_companies_ranking_history(top_count=None, history_days=None):
    """{company domain: {period: [(calculated_at, rank_position, total_score), ...]}} newest first."""
    if top_count is None:
        top_count = ranking_setting("top_companies_count")
    if history_days is None:
        history_days = ranking_setting("history_days")
    since = timezone.now() - dt.timedelta(days=history_days)

    qs = (
        CompanyRanking.objects.filter(rank_position__lte=top_count, calculated_at__gte=since, company__is_active=True)
        .select_related("company")
        .order_by("-calculated_at", "rank_position")
    )
    out = {}
    for r in qs:
        out.setdefault(r.company.domain, {}).setdefault(r.ranking_period, []).append(
            (r.calculated_at, r.rank_position, r.total_score)
        )
    return out


def get_company_scores_by_period(company_id, limit=10):
    return {
        period.value: list(
            CompanyInfluenceScore.objects.filter(company_id=company_id, period_type=period.value).order_by(
                "-calculated_at"
            )[:limit]
        )
        for period in ScorePeriod
    }


def get_company_score_statistics(company_id):
    out = {}
    for period in ScorePeriod:
        agg = CompanyInfluenceScore.objects.filter(company_id=company_id, period_type=period.value).aggregate(
            avg_score=Avg("total_score"),
            max_score=Max("total_score"),
            min_score=Min("total_score"),
            score_count=Count("id"),
        )
        out[period.value] = {
            "average_score": _round(agg["avg_score"]),
            "max_score": _round(agg["max_score"]),
            "min_score": _round(agg["min_score"]),
            "score_count": agg["score_count"],
        }
    return out
