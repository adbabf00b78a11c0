from django.core.management.base import BaseCommand, CommandError

from rankings.exceptions import RankingError
from rankings.history import RankingHistoryTracker
from rankings.periods import RankingPeriod


class Command(BaseCommand):
    help = "Show the biggest risers and fallers of the latest ranking snapshot."

    def add_arguments(self, parser):
        parser.add_argument("--period", type=str, default="1m", choices=RankingPeriod.values)
        parser.add_argument("--limit", type=int, default=10, help="1..50")

    def handle(self, *args, **opts):
        tracker = RankingHistoryTracker()
        period, limit = opts["period"], opts["limit"]
        try:
            risers = tracker.get_top_risers(period, limit)
            fallers = tracker.get_top_fallers(period, limit)
            stats = tracker.get_change_statistics(period)
        except RankingError as e:
            raise CommandError(str(e))

        if stats.calculated_at is None:
            self.stdout.write(self.style.WARNING(f"No ranking history for period {period}"))
            return

        self.stdout.write(f"Snapshot {stats.calculated_at:%Y-%m-%d %H:%M} ({period})")
        self.stdout.write(self.style.SUCCESS("Risers"))
        for m in risers:
            self.stdout.write(f"  +{m.rank_change:<4} #{m.previous_rank} -> #{m.current_rank}  {m.company_name}")
        self.stdout.write(self.style.WARNING("Fallers"))
        for m in fallers:
            self.stdout.write(f"  {m.rank_change:<5} #{m.previous_rank} -> #{m.current_rank}  {m.company_name}")
        self.stdout.write(
            f"rising={stats.rising_companies} falling={stats.falling_companies} "
            f"unchanged={stats.unchanged_companies} new={stats.new_entries} "
            f"avg_change={stats.average_change} max_rise={stats.max_rise} max_fall={stats.max_fall}"
        )
