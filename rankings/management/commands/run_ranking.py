from django.core.management.base import BaseCommand, CommandError

from rankings.batch import RankingBatch
from rankings.exceptions import RankingError
from rankings.periods import RankingPeriod
from rankings.queries import get_ranking_statistics

from ._options import parse_reference_date


class Command(BaseCommand):
    help = "Score companies, generate the influence ranking and record rank changes."

    def add_arguments(self, parser):
        parser.add_argument("--period", type=str, help=f"Single period ({', '.join(RankingPeriod.values)}); default all")
        parser.add_argument("--date", type=str, help="Reference date YYYY-MM-DD (default today)")

    def handle(self, *args, **opts):
        reference_date = parse_reference_date(opts.get("date"))
        period = opts.get("period")
        if period and not RankingPeriod.is_valid(period):
            raise CommandError(f"Invalid period. Must be one of: {', '.join(RankingPeriod.values)}")

        batch = RankingBatch()
        try:
            if period:
                results = {period: batch.run_period(period, reference_date)}
            else:
                results = batch.run_all_periods(reference_date)
        except RankingError as e:
            raise CommandError(f"Ranking generation failed: {e}")

        total = 0
        for key, result in results.items():
            total += len(result.rankings)
            self.stdout.write(
                f"[{key}] {result.period.start}..{result.period.end}: "
                f"{len(result.rankings)} companies ranked, {len(result.history)} history rows"
            )
        self.stdout.write(self.style.SUCCESS(f"Done. {total} ranking rows written for {reference_date}"))
        self._display_statistics()

    def _display_statistics(self):
        self.stdout.write("")
        self.stdout.write("=== Ranking statistics ===")
        header = f"{'period':<6} {'companies':>9} {'avg':>8} {'max':>8} {'min':>8} {'articles':>9} {'bookmarks':>10}"
        self.stdout.write(header)
        for period, s in get_ranking_statistics().items():
            self.stdout.write(
                f"{period:<6} {s['total_companies']:>9,} {s['average_score']:>8} {s['max_score']:>8} "
                f"{s['min_score']:>8} {s['total_articles']:>9,} {s['total_bookmarks']:>10,}"
            )
