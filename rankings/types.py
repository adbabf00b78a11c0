"""
Value objects returned by the ranking engine.

The ORM rows live in rankings.models; callers of the engine only ever see
these frozen records.
"""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from django.utils import timezone


@dataclass(frozen=True)
class DateRange:
    start: dt.date
    end: dt.date

    def window(self):
        """
        Aware datetimes [start+1 00:00, end+1 00:00): exactly `days` days long,
        ending with the whole reference day.
        """
        tz = timezone.get_current_timezone()
        lo = timezone.make_aware(dt.datetime.combine(self.start + dt.timedelta(days=1), dt.time.min), tz)
        hi = timezone.make_aware(dt.datetime.combine(self.end + dt.timedelta(days=1), dt.time.min), tz)
        return lo, hi

    @property
    def days(self) -> int:
        return (self.end - self.start).days


@dataclass(frozen=True)
class InfluenceScore:
    company_id: int
    period_type: str
    period_start: dt.date
    period_end: dt.date
    total_score: Decimal
    article_count: int
    total_engagement: int
    calculated_at: dt.datetime


@dataclass(frozen=True)
class RankingEntry:
    company_id: int
    ranking_period: str
    rank_position: int
    total_score: Decimal
    article_count: int
    total_bookmarks: int
    period_start: dt.date
    period_end: dt.date
    calculated_at: dt.datetime


@dataclass(frozen=True)
class RankingHistoryEntry:
    company_id: int
    period_type: str
    current_rank: int
    previous_rank: Optional[int]
    rank_change: Optional[int]
    calculated_at: dt.datetime


@dataclass(frozen=True)
class RankingMovement:
    """A history entry joined with the company it belongs to."""
    company_id: int
    company_name: str
    domain: str
    period_type: str
    current_rank: int
    previous_rank: Optional[int]
    rank_change: Optional[int]
    calculated_at: dt.datetime


@dataclass(frozen=True)
class ChangeStatistics:
    period_type: str
    total_companies: int = 0
    rising_companies: int = 0
    falling_companies: int = 0
    unchanged_companies: int = 0
    new_entries: int = 0
    average_change: Decimal = Decimal("0.00")
    max_rise: int = 0
    max_fall: int = 0
    calculated_at: Optional[dt.datetime] = None
