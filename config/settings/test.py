from datetime import timedelta

from .base import *

DEBUG = False

SECRET_KEY = "test-secret-key"

ALLOWED_HOSTS = ["testserver", "localhost"]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

CACHES = {"default": {"BACKEND": "django.core.cache.backends.locmem.LocMemCache"}}

EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"
DEFAULT_FROM_EMAIL = "noreply@example.com"

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

PAYSSAM_BASE_URL = "https://payssam.test"
PAYSSAM_API_KEY = "test-api-key"
PAYSSAM_MEMBER = "TEST_MEMBER"
PAYSSAM_MERCHANT = "TEST_MERCHANT"
PAYSSAM_CALLBACK_URL = "https://example.com/api/payments/callback/"
PAYSSAM_HASH_SECRET = ""

NOTIFICATION_QUEUE_KEY = "test:notifications"

SIMPLE_JWT = {
    "AUTH_HEADER_TYPES": ("Bearer",),
    "ACCESS_TOKEN_LIFETIME": timedelta(minutes=5),
    "ALGORITHM": "HS256",
    "SIGNING_KEY": SECRET_KEY,
}

LOGGING["loggers"]["apps"]["level"] = "CRITICAL"
