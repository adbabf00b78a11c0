from django.core.management.base import BaseCommand

from rankings.conf import ranking_setting
from rankings.history import RankingHistoryTracker


class Command(BaseCommand):
    help = "Delete ranking history rows older than the retention window."

    def add_arguments(self, parser):
        parser.add_argument("--days", type=int, default=None,
                            help=f"Retention in days (default {ranking_setting('history_retention_days')})")

    def handle(self, *args, **opts):
        deleted = RankingHistoryTracker().cleanup_old_history(opts.get("days"))
        self.stdout.write(self.style.SUCCESS(f"Deleted {deleted} ranking history rows."))
