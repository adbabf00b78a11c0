from django.db import models
from django.utils import timezone


class ArticleQuerySet(models.QuerySet):
    def alive(self):
        return self.filter(deleted_at__isnull=True)

    def attributed(self):
        return self.filter(company__isnull=False)

    def published_between(self, start, end):
        """Half-open window: start <= published_at < end."""
        return self.filter(published_at__gte=start, published_at__lt=end)


class Article(models.Model):
    platform = models.ForeignKey("companies.Platform", on_delete=models.PROTECT, related_name="articles")
    company = models.ForeignKey(
        "companies.Company", on_delete=models.SET_NULL, null=True, blank=True, related_name="articles"
    )
    title = models.CharField(max_length=500)
    url = models.URLField(max_length=500, unique=True)
    author_name = models.CharField(max_length=200, blank=True, default="")
    published_at = models.DateTimeField(null=True, blank=True)
    # bookmarks (Hatena) and likes (Qiita/Zenn) share this column
    engagement_count = models.PositiveIntegerField(default=0)
    scraped_at = models.DateTimeField(default=timezone.now)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = ArticleQuerySet.as_manager()

    class Meta:
        indexes = [
            models.Index(fields=["company", "published_at"]),
            models.Index(fields=["published_at"]),
        ]

    def __str__(self):
        return self.title

    def soft_delete(self):
        self.deleted_at = timezone.now()
        self.save(update_fields=["deleted_at"])
