from .base import BASE_DIR
from .base import REST_FRAMEWORK as BASE_REST_FRAMEWORK
from .base import *  # noqa

DEBUG = False

# SQLite by default; set DATABASE_ENGINE=postgres to run the row-lock concurrency tests
if DB_ENGINE.lower() != "postgres":  # noqa: F405
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "test_db.sqlite3",
        }
    }

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage"},
}

STOCK_RESERVATION_TIMEOUT_MINUTES = 15
STOCK_PENDING_ORDER_EXPIRY_MINUTES = 60
STOCK_DEFAULT_MIN_STOCK = 5
STOCK_JOBS_ENABLED = False

# Relax throttling for tests to reduce flakiness
REST_FRAMEWORK = {**BASE_REST_FRAMEWORK}
REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {
    **BASE_REST_FRAMEWORK.get("DEFAULT_THROTTLE_RATES", {}),
    "user": "10000/min",
    "anon": "10000/min",
    "token": "10000/min",
    "inventory": "10000/min",
    "inventory_write": "10000/min",
    "orders": "10000/min",
    "orders_write": "10000/min",
}

# Let app loggers reach the root so pytest's caplog sees them
LOGGING = {**LOGGING, "loggers": {"tinythreads": {"level": "INFO", "propagate": True}}}  # noqa: F405
