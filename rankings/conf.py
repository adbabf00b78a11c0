import datetime as dt

from django.conf import settings

DEFAULTS = {
    "all_time_start": "2020-01-01",
    "default_limit": 50,
    "max_limit": 50,
    "top_companies_count": 10,
    "history_days": 30,
    "history_retention_days": 365,
    "max_attempts": 3,
    "retry_delay_seconds": 1.0,
    "statistics_cache_seconds": 300,
}


def ranking_setting(name):
    return getattr(settings, "RANKING", {}).get(name, DEFAULTS[name])


def all_time_start() -> dt.date:
    value = ranking_setting("all_time_start")
    if isinstance(value, dt.date):
        return value
    return dt.date.fromisoformat(str(value))
