import datetime as dt

from django.core.management.base import CommandError
from django.utils import timezone


def parse_reference_date(value):
    if not value:
        return timezone.localdate()
    try:
        return dt.date.fromisoformat(value[:10])
    except ValueError:
        raise CommandError(f"Invalid --date {value!r}, expected YYYY-MM-DD")
