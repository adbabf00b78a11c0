"""
Pytest Configuration and Shared Fixtures

Factories for companies, articles, scores and ranking snapshots shared by
all test modules.
"""

import datetime as dt
import itertools
from decimal import Decimal

import pytest
from django.core.cache import cache
from django.utils import timezone

from articles.models import Article
from companies.models import Company, Platform
from rankings.models import CompanyInfluenceScore, CompanyRanking, CompanyRankingHistory
from rankings.periods import resolve_period


def aware(year, month, day, hour=12, minute=0):
    return timezone.make_aware(dt.datetime(year, month, day, hour, minute))


@pytest.fixture(autouse=True)
def _clear_cache():
    cache.clear()
    yield
    cache.clear()


# ============================================================================
# Model factories
# ============================================================================

@pytest.fixture
def platform(db):
    return Platform.objects.create(name="Qiita", base_url="https://qiita.com/trend")


@pytest.fixture
def make_company(db):
    counter = itertools.count(1)

    def _make(name=None, is_active=True, **kwargs):
        n = next(counter)
        kwargs.setdefault("domain", f"company{n}.example.com")
        return Company.objects.create(name=name or f"Company {n}", is_active=is_active, **kwargs)

    return _make


@pytest.fixture
def make_article(db, platform):
    counter = itertools.count(1)

    def _make(company, published_at, engagement=0, deleted=False):
        n = next(counter)
        return Article.objects.create(
            platform=platform,
            company=company,
            title=f"Article {n}",
            url=f"https://qiita.com/items/{n}",
            published_at=published_at,
            engagement_count=engagement,
            deleted_at=timezone.now() if deleted else None,
        )

    return _make


@pytest.fixture
def make_score(db):
    """Insert a CompanyInfluenceScore matching the resolved range of a ranking period."""

    def _make(company, period_type, reference_date, total_score="0", article_count=0, total_engagement=0):
        period = resolve_period(period_type, reference_date)
        return CompanyInfluenceScore.objects.create(
            company=company,
            period_type=period_type,
            period_start=period.start,
            period_end=period.end,
            total_score=Decimal(total_score),
            article_count=article_count,
            total_engagement=total_engagement,
            calculated_at=timezone.now(),
        )

    return _make


@pytest.fixture
def make_snapshot(db):
    """Insert a ranking snapshot: positions is [(company, rank_position), ...]."""

    def _make(period_type, calculated_at, positions):
        rows = [
            CompanyRanking(
                company=company,
                ranking_period=period_type,
                rank_position=rank,
                total_score=Decimal("0"),
                period_start=dt.date(2024, 1, 1),
                period_end=dt.date(2024, 1, 8),
                calculated_at=calculated_at,
            )
            for company, rank in positions
        ]
        return CompanyRanking.objects.bulk_create(rows)

    return _make


@pytest.fixture
def make_history(db):
    def _make(company, period_type, calculated_at, current_rank, rank_change):
        previous_rank = None if rank_change is None else current_rank + rank_change
        return CompanyRankingHistory.objects.create(
            company=company,
            period_type=period_type,
            current_rank=current_rank,
            previous_rank=previous_rank,
            rank_change=rank_change,
            calculated_at=calculated_at,
        )

    return _make


@pytest.fixture
def clock():
    """Deterministic, strictly increasing snapshot timestamps."""
    ticks = itertools.count()
    base = aware(2024, 1, 8, 3, 0)
    return lambda: base + dt.timedelta(minutes=next(ticks))
