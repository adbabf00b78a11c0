"""
Period vocabularies and date-range resolution.

Two job families use two separate vocabularies and they are validated
independently:

  ScorePeriod    daily / weekly / monthly          (influence score jobs)
  RankingPeriod  1w / 1m / 3m / 6m / 1y / 3y / all (ranking jobs)

resolve_period("1w", date(2024, 1, 8)) -> DateRange(2024-01-01, 2024-01-08)
"""
from __future__ import annotations

import datetime as dt
from typing import Optional

from django.db import models

from rankings.conf import all_time_start
from rankings.exceptions import InvalidDateRangeError, InvalidPeriodError
from rankings.types import DateRange

_SCORE_DAYS = {"daily": 1, "weekly": 7, "monthly": 30}
_RANKING_DAYS = {"1w": 7, "1m": 30, "3m": 90, "6m": 180, "1y": 365, "3y": 1095, "all": None}


class _PeriodMixin:
    @classmethod
    def is_valid(cls, token) -> bool:
        return isinstance(token, str) and token in cls.values

    @classmethod
    def parse(cls, token):
        if not cls.is_valid(token):
            raise InvalidPeriodError(token, cls.values)
        return cls(token)

    @property
    def display_name(self):
        return self.label


class ScorePeriod(_PeriodMixin, models.TextChoices):
    DAILY = "daily", "日次"
    WEEKLY = "weekly", "週次"
    MONTHLY = "monthly", "月次"

    @property
    def days(self) -> int:
        return _SCORE_DAYS[self.value]


class RankingPeriod(_PeriodMixin, models.TextChoices):
    ONE_WEEK = "1w", "1 week"
    ONE_MONTH = "1m", "1 month"
    THREE_MONTHS = "3m", "3 months"
    SIX_MONTHS = "6m", "6 months"
    ONE_YEAR = "1y", "1 year"
    THREE_YEARS = "3y", "3 years"
    ALL = "all", "All time"

    @property
    def days(self) -> Optional[int]:
        return _RANKING_DAYS[self.value]


def parse_any_period(token) -> str:
    """Accept a token from either vocabulary (score jobs may run on ranking windows)."""
    for vocabulary in (ScorePeriod, RankingPeriod):
        if vocabulary.is_valid(token):
            return vocabulary(token)
    raise InvalidPeriodError(token, ScorePeriod.values + RankingPeriod.values)


def resolve_period(token, reference_date, vocabulary=RankingPeriod, epoch: Optional[dt.date] = None) -> DateRange:
    """
    Turn a period token into a concrete date range ending at reference_date.
    'all' starts at the configured epoch (RANKING["all_time_start"]) whatever
    the reference date is; a reference date before the epoch is rejected.
    """
    period = vocabulary.parse(token)
    if isinstance(reference_date, dt.datetime):
        reference_date = reference_date.date()

    days = period.days
    if days is None:
        start = epoch or all_time_start()
    else:
        start = reference_date - dt.timedelta(days=days)
    if start > reference_date:
        raise InvalidDateRangeError(f"Reference date {reference_date} is before the all-time start {start}")
    return DateRange(start=start, end=reference_date)
