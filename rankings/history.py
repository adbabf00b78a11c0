"""
Rank movement between consecutive ranking snapshots.

record_history() is run once per new snapshot: it diffs the snapshot against
the latest earlier snapshot of the same period and appends one
CompanyRankingHistory row per company. rank_change = previous - current, so a
move from #10 to #3 is +7.
"""
import datetime as dt
import logging
from decimal import ROUND_HALF_UP, Decimal

from django.db import IntegrityError, transaction
from django.db.models import Avg, Count, Max, Min, Q
from django.db.models.functions import Abs
from django.utils import timezone

from rankings.conf import ranking_setting
from rankings.exceptions import DuplicateHistoryError, InvalidLimitError, SnapshotNotFoundError
from rankings.models import CompanyRanking, CompanyRankingHistory
from rankings.periods import RankingPeriod
from rankings.types import ChangeStatistics, RankingHistoryEntry, RankingMovement

logger = logging.getLogger(__name__)


def validate_limit(limit) -> int:
    max_limit = ranking_setting("max_limit")
    if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= max_limit:
        raise InvalidLimitError(f"limit must be an integer between 1 and {max_limit}, got {limit!r}")
    return limit


def _to_entry(row):
    return RankingHistoryEntry(
        company_id=row.company_id,
        period_type=row.period_type,
        current_rank=row.current_rank,
        previous_rank=row.previous_rank,
        rank_change=row.rank_change,
        calculated_at=row.calculated_at,
    )


def _to_movement(row):
    return RankingMovement(
        company_id=row.company_id,
        company_name=row.company.name,
        domain=row.company.domain,
        period_type=row.period_type,
        current_rank=row.current_rank,
        previous_rank=row.previous_rank,
        rank_change=row.rank_change,
        calculated_at=row.calculated_at,
    )


class RankingHistoryTracker:
    # ----------------------------
    # Recording
    # ----------------------------
    def record_history(self, period_type, snapshot_timestamp):
        period_type = RankingPeriod.parse(period_type).value
        logger.info("Recording ranking history: period=%s snapshot=%s", period_type, snapshot_timestamp)

        current = list(
            CompanyRanking.objects.filter(ranking_period=period_type, calculated_at=snapshot_timestamp)
            .order_by("rank_position")
            .values_list("company_id", "rank_position")
        )
        if not current:
            raise SnapshotNotFoundError(f"No ranking snapshot for period {period_type!r} at {snapshot_timestamp}")

        previous = self._previous_positions(period_type, snapshot_timestamp)

        entries = []
        for company_id, rank in current:
            previous_rank = previous.get(company_id)
            entries.append(
                RankingHistoryEntry(
                    company_id=company_id,
                    period_type=period_type,
                    current_rank=rank,
                    previous_rank=previous_rank,
                    rank_change=None if previous_rank is None else previous_rank - rank,
                    calculated_at=snapshot_timestamp,
                )
            )

        try:
            with transaction.atomic():
                CompanyRankingHistory.objects.bulk_create(
                    [
                        CompanyRankingHistory(
                            company_id=e.company_id,
                            period_type=e.period_type,
                            current_rank=e.current_rank,
                            previous_rank=e.previous_rank,
                            rank_change=e.rank_change,
                            calculated_at=e.calculated_at,
                        )
                        for e in entries
                    ]
                )
        except IntegrityError as e:
            logger.error(
                "Ranking history already recorded: period=%s snapshot=%s (%s)", period_type, snapshot_timestamp, e
            )
            raise DuplicateHistoryError(
                f"History for period {period_type!r} snapshot {snapshot_timestamp} was already recorded"
            ) from e

        logger.info(
            "Ranking history recorded: period=%s companies=%d new_entries=%d",
            period_type, len(entries), sum(1 for e in entries if e.rank_change is None),
        )
        return entries

    def _previous_positions(self, period_type, snapshot_timestamp):
        previous_at = CompanyRanking.objects.filter(
            ranking_period=period_type, calculated_at__lt=snapshot_timestamp
        ).aggregate(latest=Max("calculated_at"))["latest"]
        if previous_at is None:
            return {}
        return dict(
            CompanyRanking.objects.filter(ranking_period=period_type, calculated_at=previous_at).values_list(
                "company_id", "rank_position"
            )
        )

    # ----------------------------
    # Queries
    # ----------------------------
    def _latest_batch(self, period_type):
        period_type = RankingPeriod.parse(period_type).value
        latest = CompanyRankingHistory.objects.filter(period_type=period_type).aggregate(
            latest=Max("calculated_at")
        )["latest"]
        if latest is None:
            return None
        return CompanyRankingHistory.objects.filter(period_type=period_type, calculated_at=latest)

    def get_top_risers(self, period_type, limit=10):
        limit = validate_limit(limit)
        qs = self._latest_batch(period_type)
        if qs is None:
            return []
        qs = (
            qs.filter(rank_change__gt=0, company__is_active=True)
            .select_related("company")
            .order_by("-rank_change", "current_rank")[:limit]
        )
        return [_to_movement(row) for row in qs]

    def get_top_fallers(self, period_type, limit=10):
        limit = validate_limit(limit)
        qs = self._latest_batch(period_type)
        if qs is None:
            return []
        qs = (
            qs.filter(rank_change__lt=0, company__is_active=True)
            .select_related("company")
            .order_by("rank_change", "current_rank")[:limit]
        )
        return [_to_movement(row) for row in qs]

    def get_change_statistics(self, period_type):
        period_type = RankingPeriod.parse(period_type).value
        qs = self._latest_batch(period_type)
        if qs is None:
            return ChangeStatistics(period_type=period_type)

        stats = qs.aggregate(
            total=Count("id"),
            rising=Count("id", filter=Q(rank_change__gt=0)),
            falling=Count("id", filter=Q(rank_change__lt=0)),
            unchanged=Count("id", filter=Q(rank_change=0)),
            new_entries=Count("id", filter=Q(rank_change__isnull=True)),
            avg_change=Avg(Abs("rank_change")),
            max_change=Max("rank_change"),
            min_change=Min("rank_change"),
            calculated_at=Max("calculated_at"),
        )
        avg = Decimal(str(stats["avg_change"] or 0)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        max_change = stats["max_change"] or 0
        min_change = stats["min_change"] or 0
        return ChangeStatistics(
            period_type=period_type,
            total_companies=stats["total"],
            rising_companies=stats["rising"],
            falling_companies=stats["falling"],
            unchanged_companies=stats["unchanged"],
            new_entries=stats["new_entries"],
            average_change=avg,
            max_rise=max(max_change, 0),
            max_fall=abs(min(min_change, 0)),
            calculated_at=stats["calculated_at"],
        )

    def get_company_history(self, company_id, period_type, days=None):
        period_type = RankingPeriod.parse(period_type).value
        days = ranking_setting("history_days") if days is None else days
        since = timezone.now() - dt.timedelta(days=days)
        qs = CompanyRankingHistory.objects.filter(
            company_id=company_id, period_type=period_type, calculated_at__gte=since
        ).order_by("-calculated_at")
        return [_to_entry(row) for row in qs]

    # ----------------------------
    # Maintenance
    # ----------------------------
    def cleanup_old_history(self, retention_days=None):
        if retention_days is None:
            retention_days = ranking_setting("history_retention_days")
        cutoff = timezone.now() - dt.timedelta(days=retention_days)
        deleted, _ = CompanyRankingHistory.objects.filter(calculated_at__lt=cutoff).delete()
        logger.info("Old ranking history cleaned up: deleted=%d cutoff=%s", deleted, cutoff.date())
        return deleted

    def get_storage_stats(self):
        stats = CompanyRankingHistory.objects.aggregate(
            total_records=Count("id"),
            unique_companies=Count("company", distinct=True),
            period_types=Count("period_type", distinct=True),
            oldest_record=Min("calculated_at"),
            newest_record=Max("calculated_at"),
        )
        stats["retention_days"] = ranking_setting("history_retention_days")
        return stats
