"""
Entitlements – Django Settings (Infrastructure Only)
=====================================================
Django hosts the relational store for provisioning, grants and audit.
The engine itself does not depend on Django; only entitlements.store
and EntitlementService.from_settings() read these settings.
"""

import os
from pathlib import Path

# ── Paths ─────────────────────────────────────────────────────
BASE_DIR = Path(__file__).resolve().parent.parent

# ── Security ──────────────────────────────────────────────────
SECRET_KEY = os.environ.get(
    "ENTITLEMENTS_SECRET_KEY", "entitlements-dev-key-replace-before-deployment"
)

DEBUG = os.environ.get("ENTITLEMENTS_DEBUG", "1") == "1"

ALLOWED_HOSTS = []

# ── Installed Apps ────────────────────────────────────────────
INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "entitlements.store",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
]

# ── Database ──────────────────────────────────────────────────
# SQLite for development. Production DB configured separately.
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.environ.get("ENTITLEMENTS_DB_PATH", BASE_DIR / "db.sqlite3"),
    }
}

# ── Internationalization ──────────────────────────────────────
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ── Entitlements engine ───────────────────────────────────────
ENTITLEMENTS = {
    "lock_timeout_seconds": 5.0,
    "audit_page_size": 50,
    "catalog_cache_seconds": None,
}

# ── Logging ───────────────────────────────────────────────────
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "plain",
        },
    },
    "loggers": {
        "entitlements": {
            "handlers": ["console"],
            "level": os.environ.get("ENTITLEMENTS_LOG_LEVEL", "INFO"),
            "propagate": True,
        },
    },
}
