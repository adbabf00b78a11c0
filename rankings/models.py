from django.db import models

from companies.models import Company
from rankings.periods import RankingPeriod, ScorePeriod

PERIOD_TYPE_CHOICES = ScorePeriod.choices + RankingPeriod.choices


class CompanyInfluenceScore(models.Model):
    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="influence_scores")
    period_type = models.CharField(max_length=10, choices=PERIOD_TYPE_CHOICES)
    period_start = models.DateField()
    period_end = models.DateField()
    total_score = models.DecimalField(max_digits=10, decimal_places=2)
    article_count = models.IntegerField(default=0)
    total_engagement = models.IntegerField(default=0)
    calculated_at = models.DateTimeField()

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["company", "period_type", "period_start", "period_end"],
                name="uniq_influence_company_period",
            )
        ]
        indexes = [models.Index(fields=["period_type", "period_start", "period_end"])]

    def __str__(self):
        return f"{self.company_id} {self.period_type} {self.period_start}..{self.period_end}: {self.total_score}"


class CompanyRanking(models.Model):
    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="rankings")
    ranking_period = models.CharField(max_length=10, choices=RankingPeriod.choices)
    rank_position = models.IntegerField()
    total_score = models.DecimalField(max_digits=10, decimal_places=2)
    article_count = models.IntegerField(default=0)
    total_bookmarks = models.IntegerField(default=0)
    period_start = models.DateField()
    period_end = models.DateField()
    calculated_at = models.DateTimeField()

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["company", "ranking_period", "calculated_at"],
                name="uniq_ranking_company_period_calc",
            )
        ]
        indexes = [
            models.Index(fields=["ranking_period", "calculated_at", "rank_position"]),
            models.Index(fields=["company", "ranking_period"]),
        ]

    def __str__(self):
        return f"#{self.rank_position} {self.company_id} ({self.ranking_period})"


class CompanyRankingHistory(models.Model):
    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="ranking_history")
    period_type = models.CharField(max_length=10, choices=RankingPeriod.choices)
    current_rank = models.IntegerField()
    previous_rank = models.IntegerField(null=True, blank=True)
    rank_change = models.IntegerField(null=True, blank=True)  # previous - current, > 0 is a rise
    calculated_at = models.DateTimeField()

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["company", "period_type", "calculated_at"],
                name="uniq_history_company_period_calc",
            )
        ]
        indexes = [
            models.Index(fields=["company", "period_type"]),
            models.Index(fields=["period_type", "calculated_at"]),
        ]
