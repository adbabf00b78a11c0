from django.core.management.base import BaseCommand, CommandError

from rankings.batch import RankingBatch
from rankings.exceptions import RankingError
from rankings.periods import RankingPeriod, ScorePeriod, parse_any_period, resolve_period
from rankings.scoring import ScoreCalculator

from ._options import parse_reference_date


class Command(BaseCommand):
    help = "Calculate company influence scores (daily/weekly/monthly by default)."

    def add_arguments(self, parser):
        parser.add_argument("--period", type=str, help="Single period token (daily, weekly, monthly or 1w..all)")
        parser.add_argument("--date", type=str, help="Reference date YYYY-MM-DD (default today)")
        parser.add_argument("--company", type=int, help="Only this company id")

    def handle(self, *args, **opts):
        reference_date = parse_reference_date(opts.get("date"))
        calculator = ScoreCalculator()

        try:
            if opts.get("period"):
                period_type = parse_any_period(opts["period"])
                vocabulary = ScorePeriod if ScorePeriod.is_valid(period_type) else RankingPeriod
                period = resolve_period(period_type, reference_date, vocabulary=vocabulary)
                if opts.get("company"):
                    scores = [calculator.calculate_for_company(opts["company"], period_type, period.start, period.end)]
                else:
                    scores = calculator.calculate_all_companies(period_type, period.start, period.end)
                results = {period_type.value: scores}
            elif opts.get("company"):
                results = {}
                for period_type in ScorePeriod:
                    period = resolve_period(period_type, reference_date, vocabulary=ScorePeriod)
                    results[period_type.value] = [
                        calculator.calculate_for_company(opts["company"], period_type, period.start, period.end)
                    ]
            else:
                results = RankingBatch(score_calculator=calculator).run_score_periods(reference_date)
        except (RankingError, ValueError) as e:
            raise CommandError(str(e))

        verbose = opts.get("verbosity", 1) > 1
        for period_type, scores in results.items():
            self.stdout.write(f"[{period_type}] {len(scores)} companies scored")
            if not verbose:
                continue
            for s in scores:
                self.stdout.write(f"  company={s.company_id} score={s.total_score} articles={s.article_count}")
        self.stdout.write(self.style.SUCCESS(f"Influence scores calculated for {reference_date}"))
