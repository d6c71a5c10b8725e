"""
Django settings for the kitchen scheduling backend.

Environment (read from .env at the repository root when present):
DJANGO_SECRET_KEY, DJANGO_DEBUG, DJANGO_ALLOWED_HOSTS, DJANGO_DB_PATH,
DJANGO_TIME_ZONE, LAUNCH_TICK_SECONDS
"""

import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent.parent

load_dotenv(BASE_DIR / ".env")

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-only-not-secret")
DEBUG = os.getenv("DJANGO_DEBUG", "true").lower() in ("1", "true", "yes")
ALLOWED_HOSTS = os.getenv("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",")

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "rest_framework",
    "backend.scheduling",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "backend.kitchen_backend.urls"
WSGI_APPLICATION = "backend.kitchen_backend.wsgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.getenv("DJANGO_DB_PATH", str(BASE_DIR / "db.sqlite3")),
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# All datetimes are stored in UTC; slot buckets use the establishment's own zone
USE_TZ = True
TIME_ZONE = os.getenv("DJANGO_TIME_ZONE", "Europe/Brussels")
LANGUAGE_CODE = "fr-be"
USE_I18N = False

REST_FRAMEWORK = {
    # authentication is handled upstream of this service
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": ["rest_framework.permissions.AllowAny"],
    "UNAUTHENTICATED_USER": None,
    "DEFAULT_RENDERER_CLASSES": ["rest_framework.renderers.JSONRenderer"],
    "DEFAULT_PARSER_CLASSES": ["rest_framework.parsers.JSONParser"],
}

# Seconds between two kitchen launch scheduler runs (run_launch_scheduler)
LAUNCH_TICK_SECONDS = int(os.getenv("LAUNCH_TICK_SECONDS", "60"))

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "simple"},
    },
    "root": {"handlers": ["console"], "level": "WARNING"},
    "loggers": {
        "kitchen": {"level": "INFO"},
        "slots": {"level": "INFO"},
        "delivery": {"level": "INFO"},
        "routing": {"level": "INFO"},
        "establishments": {"level": "INFO"},
        "backend": {"level": "INFO"},
    },
}
