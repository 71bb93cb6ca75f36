from .base import *


SECRET_KEY = "test"  # nosec

DATABASES = {
    "default": db_url("sqlite://:memory:"),
}

STATIC_ROOT = base_dir_join("staticfiles")
STATIC_URL = "/static/"

EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"

# Speed up password hashing
PASSWORD_HASHERS = [
    "django.contrib.auth.hashers.MD5PasswordHasher",
]

# Celery
CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True

# In-memory rate limiter buckets
REDIS_URL = ""

GOOGLE_CLIENT_ID = "test-google-client-id"
GOOGLE_CLIENT_SECRET = "test-google-client-secret"  # noqa: S105
MS_CLIENT_ID = "test-ms-client-id"
MS_CLIENT_SECRET = "test-ms-client-secret"  # noqa: S105

CALENDAR_VIEW_BUSINESS_HOURS = (8, 18)

TIME_ZONE = "UTC"
CELERY_TIMEZONE = TIME_ZONE
