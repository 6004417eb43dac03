"""
Bakery – Django Settings (Infrastructure Only)
===============================================
Django serves as the framework container for the fulfillment core.
Engines never import settings; adapters read the BAKERY_* values
below and hand them to engines as PricingRules / FulfillmentSettings.
"""

import os
from pathlib import Path

# ── Paths ─────────────────────────────────────────────────────
# BASE_DIR = project root
BASE_DIR = Path(__file__).resolve().parent.parent

# ── Security ──────────────────────────────────────────────────
SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "bakery-dev-key-replace-before-deployment")

DEBUG = os.environ.get("DJANGO_DEBUG", "1") == "1"

ALLOWED_HOSTS = [h for h in os.environ.get("DJANGO_ALLOWED_HOSTS", "").split(",") if h]

# ── Installed Apps ────────────────────────────────────────────
INSTALLED_APPS = [
    "django.contrib.contenttypes",
    # ── Bakery Modules ────────────────────────────────────
    "core.fulfillment_store",
]

# ── Middleware ────────────────────────────────────────────────
MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
]

# ── URL ───────────────────────────────────────────────────────
ROOT_URLCONF = "config.urls"

# ── Database ──────────────────────────────────────────────────
# SQLite for development. Production DB configured separately.
# Row and write locks wait at most BAKERY_LOCK_TIMEOUT_SECONDS.
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.environ.get("BAKERY_DB_PATH", str(BASE_DIR / "db.sqlite3")),
        "OPTIONS": {
            "timeout": float(os.environ.get("BAKERY_LOCK_TIMEOUT_SECONDS", "2.0")),
        },
    }
}

# ── Internationalization ──────────────────────────────────────
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ── Logging ───────────────────────────────────────────────────
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "plain",
        },
    },
    "loggers": {
        "bakery": {
            "handlers": ["console"],
            "level": os.environ.get("BAKERY_LOG_LEVEL", "INFO"),
            "propagate": True,
        },
    },
}

# ── Bakery Fulfillment Rules ──────────────────────────────────
# Flat tax rate and delivery fee (already resolved; no jurisdiction lookup).
BAKERY_TAX_RATE = os.environ.get("BAKERY_TAX_RATE", "0.0825")
BAKERY_DELIVERY_FEE = os.environ.get("BAKERY_DELIVERY_FEE", "5.00")
BAKERY_LOCK_TIMEOUT_SECONDS = os.environ.get("BAKERY_LOCK_TIMEOUT_SECONDS", "2.0")
BAKERY_DEFAULT_SLOT_CAPACITY = os.environ.get("BAKERY_DEFAULT_SLOT_CAPACITY", "25")
BAKERY_ORDER_NUMBER_PREFIX = os.environ.get("BAKERY_ORDER_NUMBER_PREFIX", "PCP")
