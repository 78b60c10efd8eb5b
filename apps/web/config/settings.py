"""
Django settings for Tableside.

Configuration comes from the environment - never hardcode credentials.
Run with: ORDERING_API_URL=https://api.example.com uv run python manage.py runserver
"""

from pathlib import Path

import environ  # type: ignore[import-untyped]

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent

# Initialize environ
env = environ.Env(
    DEBUG=(bool, False),
    ALLOWED_HOSTS=(list, []),
    LOG_LEVEL=(str, "INFO"),
)

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = env("SECRET_KEY", default="insecure-dev-key")

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = env("DEBUG")

ALLOWED_HOSTS = env("ALLOWED_HOSTS")

# Application definition
INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.staticfiles",
    # Local apps
    "apps.web.ordering",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
    # Custom middleware
    "apps.web.ordering.middleware.CafeNetworkMiddleware",
]

# The order/menu API is an external service; no local database
DATABASES: dict[str, dict[str, str]] = {}

# Internationalization
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

# Static files (CSS, JavaScript, Images)
STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR.parent.parent / "staticfiles"

# =============================================================================
# Ordering
# =============================================================================

# Base URL of the order/menu API (trailing slashes are stripped)
ORDERING_API_URL = env.str("ORDERING_API_URL", default="").rstrip("/")

# Café Wi-Fi public address prefixes. Heuristic only, see apps.web.ordering.access
CAFE_NETWORK_PREFIXES = env.list(
    "CAFE_NETWORK_PREFIXES", default=["2402:e280", "58.84"]
)
CAFE_GATE_PATHS = env.list("CAFE_GATE_PATHS", default=["/table/"])
WIFI_REQUIRED_URL = env.str("WIFI_REQUIRED_URL", default="/wifi-required")
IP_LOOKUP_URL = env.str("IP_LOOKUP_URL", default="https://api.ipify.org?format=json")

TABLE_COUNT = env.int("TABLE_COUNT", default=30)

# Seconds between menu revalidations; 0 disables polling
MENU_REFRESH_INTERVAL = env.float("MENU_REFRESH_INTERVAL", default=0.0)

# Create/update calls are aborted after this many seconds
ORDER_REQUEST_TIMEOUT = env.float("ORDER_REQUEST_TIMEOUT", default=30.0)

WAITER_MAX_ATTEMPTS = env.int("WAITER_MAX_ATTEMPTS", default=3)
WAITER_RETRY_BACKOFF = env.float("WAITER_RETRY_BACKOFF", default=1.0)

# =============================================================================
# Logging
# =============================================================================

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "simple",
        },
    },
    "loggers": {
        "apps": {
            "handlers": ["console"],
            "level": env("LOG_LEVEL"),
            "propagate": False,
        },
    },
}
