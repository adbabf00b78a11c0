"""
Django settings for techrank project.
"""

from pathlib import Path
import os

# -----------------------------------------------------
# Paths
# -----------------------------------------------------
BASE_DIR = Path(__file__).resolve().parent.parent

# -----------------------------------------------------
# Minimal .env loader (tolerates UTF-8 BOM and CRLF)
# -----------------------------------------------------
env_path = BASE_DIR / ".env"
if env_path.exists():
    for raw in env_path.read_text(encoding="utf-8-sig").splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        k, v = line.split("=", 1)
        v = v.strip().strip('"').strip("'")
        os.environ.setdefault(k.strip(), v)

# -----------------------------------------------------
# Core settings
# -----------------------------------------------------
SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-insecure-key")
DEBUG = os.getenv("DJANGO_DEBUG", "1") == "1"
ALLOWED_HOSTS = ["*"]  # adjust in prod

# -----------------------------------------------------
# Installed apps
# -----------------------------------------------------
INSTALLED_APPS = [
    # Django
    "django.contrib.contenttypes",

    # Local apps
    "companies",
    "articles",
    "rankings",
]

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# -----------------------------------------------------
# Database (Postgres if env vars exist, else SQLite)
# -----------------------------------------------------
if os.getenv("DB_NAME"):
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.getenv("DB_NAME"),
            "USER": os.getenv("DB_USER"),
            "PASSWORD": os.getenv("DB_PASSWORD"),
            "HOST": os.getenv("DB_HOST", "localhost"),
            "PORT": os.getenv("DB_PORT", "5432"),
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }

# -----------------------------------------------------
# I18N / TZ
# -----------------------------------------------------
LANGUAGE_CODE = "en-us"
TIME_ZONE = os.getenv("DJANGO_TIME_ZONE", "Asia/Tokyo")
USE_I18N = True
USE_TZ = True

# -----------------------------------------------------
# Cache (Redis if available, else memory)
# -----------------------------------------------------
REDIS_URL = os.getenv("REDIS_URL")
if REDIS_URL:
    CACHES = {
        "default": {
            "BACKEND": "django.core.cache.backends.redis.RedisCache",
            "LOCATION": REDIS_URL,
        }
    }
else:
    CACHES = {"default": {"BACKEND": "django.core.cache.backends.locmem.LocMemCache"}}

# -----------------------------------------------------
# Logging
# -----------------------------------------------------
LOG_LEVEL = os.getenv("DJANGO_LOG_LEVEL", "INFO")
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {"format": "%(asctime)s %(levelname)s [%(name)s] %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "standard"},
    },
    "root": {"handlers": ["console"], "level": "WARNING"},
    "loggers": {
        "rankings": {"level": LOG_LEVEL},
        "companies": {"level": LOG_LEVEL},
    },
}

# -----------------------------------------------------
# Influence scoring (overrides rankings.scoring.ScoringConfig defaults)
# -----------------------------------------------------
INFLUENCE_SCORING = {
    "high_engagement_threshold": 100,
    "medium_engagement_threshold": 50,
    "low_engagement_threshold": 10,
    "high_engagement_weight": "0.3",
    "medium_engagement_weight": "0.2",
    "low_engagement_weight": "0.1",
    "recent_days": 7,
    "somewhat_recent_days": 30,
    "old_days": 100,
    "recent_bonus": "0.2",
    "somewhat_recent_bonus": "0.1",
    "old_penalty": "-0.1",
}

# -----------------------------------------------------
# Ranking batch
# -----------------------------------------------------
RANKING = {
    "all_time_start": os.getenv("RANKING_ALL_TIME_START", "2020-01-01"),
    "default_limit": 50,
    "max_limit": 50,
    "top_companies_count": 10,
    "history_days": 30,
    "history_retention_days": 365,
    "max_attempts": int(os.getenv("RANKING_MAX_ATTEMPTS", "3")),
    "retry_delay_seconds": float(os.getenv("RANKING_RETRY_DELAY", "1")),
    "statistics_cache_seconds": 300,  # 5 min
}
