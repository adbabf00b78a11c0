from django.db import models


class CompanyQuerySet(models.QuerySet):
    def active(self):
        return self.filter(is_active=True)


class Company(models.Model):
    name = models.CharField(max_length=200)
    domain = models.CharField(max_length=255, unique=True)
    website_url = models.URLField(blank=True, null=True)
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = CompanyQuerySet.as_manager()

    def __str__(self):
        return f"{self.name} ({self.domain})"


class Platform(models.Model):
    name = models.CharField(max_length=50, unique=True)
    base_url = models.URLField()
    is_active = models.BooleanField(default=True)

    def __str__(self):
        return self.name
