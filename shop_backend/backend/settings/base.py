"""
PATH: backend/settings/base.py

BASE SETTINGS (shared by dev + prod + test)

Operational maturity:
- Throttling scopes for the order surface (intent / verify / polling)
- Payment gateway + carrier aggregator config (grouped dicts, env-driven)
- Fulfillment rules (shipping fee, return window, job worker)
- Structured logging (stdlib logging, per-app loggers)
- Sentry (optional): error visibility in production
"""

from __future__ import annotations

import sys
from datetime import timedelta
from pathlib import Path

import environ
from corsheaders.defaults import default_headers, default_methods

# -----------------------------------------
# BASE DIRECTORY
# -----------------------------------------
BASE_DIR = Path(__file__).resolve().parent.parent.parent

# -----------------------------------------
# TEST MODE DETECTION
# -----------------------------------------
TESTING = "test" in sys.argv

# -----------------------------------------
# ENV (django-environ)
# -----------------------------------------
env = environ.Env(
    DEBUG=(bool, True),
    SECRET_KEY=(str, ""),
    TIME_ZONE=(str, "UTC"),
    LOG_LEVEL=(str, "INFO"),
    ALLOWED_HOSTS=(list, ["localhost", "127.0.0.1"]),
    CORS_ALLOWED_ORIGINS=(list, ["http://localhost:5173"]),
    CSRF_TRUSTED_ORIGINS=(list, ["http://localhost:5173"]),
    DATABASE_URL=(str, f"sqlite:///{BASE_DIR / 'db.sqlite3'}"),
    ADMIN_PATH=(str, "admin/"),
    # Payment gateway
    PAYMENT_GATEWAY=(str, "razorpay"),
    PAYMENT_CURRENCY=(str, "INR"),
    RAZORPAY_KEY_ID=(str, ""),
    RAZORPAY_KEY_SECRET=(str, ""),
    RAZORPAY_BASE_URL=(str, "https://api.razorpay.com/v1"),
    RAZORPAY_TIMEOUT_SECONDS=(int, 20),
    # Carrier aggregator
    SHIPPING_CARRIER=(str, "shiprocket"),
    SHIPROCKET_BASE_URL=(str, "https://apiv2.shiprocket.in/v1/external"),
    SHIPROCKET_API_EMAIL=(str, ""),
    SHIPROCKET_API_PASSWORD=(str, ""),
    SHIPROCKET_TIMEOUT_SECONDS=(int, 15),
    SHIPROCKET_MAX_RETRIES=(int, 2),
    SHIPROCKET_BACKOFF_SECONDS=(float, 1.0),
    SHIPROCKET_TOKEN_TTL_SECONDS=(int, 10 * 24 * 3600),
    SHIPROCKET_TOKEN_SAFETY_MARGIN_SECONDS=(int, 2 * 24 * 3600),
    SHIPROCKET_PICKUP_LOCATION=(str, "Primary"),
    SHIPROCKET_PICKUP_PINCODE=(str, "110001"),
    SHIPROCKET_CHANNEL_ID=(str, ""),
    SHIPROCKET_COMPANY_ID=(str, ""),
    SHIPROCKET_SUPPORT_EMAIL=(str, "support@shiprocket.in"),
    SHIPROCKET_TRACKING_URL_TEMPLATE=(str, "https://shiprocket.co/tracking/{awb}"),
    # Fulfillment rules
    FREE_SHIPPING_THRESHOLD=(str, "500.00"),
    FLAT_SHIPPING_FEE=(str, "50.00"),
    TAX_RATE_PERCENT=(str, "0"),
    RETURN_WINDOW_DAYS=(int, 30),
    MAX_REVERSAL_IMAGES=(int, 3),
    PRICE_TOLERANCE=(str, "0.01"),
    SHIPMENT_JOBS_EAGER=(bool, False),
    SHIPMENT_WORKER_CONCURRENCY=(int, 4),
    SHIPMENT_JOB_MAX_ATTEMPTS=(int, 5),
    SHIPMENT_JOB_LEASE_SECONDS=(int, 300),
    SHIPMENT_JOB_POLL_SECONDS=(float, 2.0),
    # Throttling
    THROTTLE_ANON_RATE=(str, "60/min"),
    THROTTLE_USER_RATE=(str, "600/min"),
    THROTTLE_PUBLIC_POLL_RATE=(str, "120/min"),
    THROTTLE_PUBLIC_WRITE_RATE=(str, "10/min"),
    THROTTLE_WEBHOOK_RATE=(str, "600/min"),
    # Sentry (optional; enable by setting SENTRY_DSN)
    SENTRY_DSN=(str, ""),
    SENTRY_ENVIRONMENT=(str, "development"),
    SENTRY_TRACES_SAMPLE_RATE=(float, 0.0),
    SENTRY_SEND_PII=(bool, False),
)

# -----------------------------------------
# LOAD .env
# -----------------------------------------
env_file_1 = BASE_DIR / ".env"
env_file_2 = BASE_DIR.parent / ".env"

if env_file_1.exists():
    env.read_env(str(env_file_1))
elif env_file_2.exists():
    env.read_env(str(env_file_2))

# -----------------------------------------
# CORE SECURITY
# -----------------------------------------
SECRET_KEY = (env("SECRET_KEY") or "dev-insecure-change-me").strip()
DEBUG = env.bool("DEBUG")
ALLOWED_HOSTS = env.list("ALLOWED_HOSTS")
ADMIN_PATH = (env("ADMIN_PATH") or "admin/").strip()

# -----------------------------------------
# I18N / TZ
# -----------------------------------------
LANGUAGE_CODE = "en-us"
TIME_ZONE = (env("TIME_ZONE") or "UTC").strip()
USE_I18N = True
USE_TZ = True

# -----------------------------------------
# INSTALLED APPS
# -----------------------------------------
INSTALLED_APPS = [
    "corsheaders",
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "rest_framework_simplejwt",
    "drf_spectacular",
    "django_filters",
    "catalog.apps.CatalogConfig",
    "promotions.apps.PromotionsConfig",
    "payments.apps.PaymentsConfig",
    "shipping.apps.ShippingConfig",
    "orders.apps.OrdersConfig",
]

# -----------------------------------------
# MIDDLEWARE
# -----------------------------------------
MIDDLEWARE = [
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "backend.urls"
WSGI_APPLICATION = "backend.wsgi.application"
APPEND_SLASH = True

# -----------------------------------------
# TEMPLATES (required for Django admin)
# -----------------------------------------
TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [str(BASE_DIR / "templates")],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    }
]

# -----------------------------------------
# REST FRAMEWORK
# -----------------------------------------
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": (
        "rest_framework_simplejwt.authentication.JWTAuthentication",
        "rest_framework.authentication.SessionAuthentication",
    ),
    "DEFAULT_PERMISSION_CLASSES": ("rest_framework.permissions.IsAuthenticated",),
    "DEFAULT_FILTER_BACKENDS": ("django_filters.rest_framework.DjangoFilterBackend",),
    "DEFAULT_PAGINATION_CLASS": "rest_framework.pagination.PageNumberPagination",
    "PAGE_SIZE": 20,
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
    "DEFAULT_THROTTLE_CLASSES": (
        "rest_framework.throttling.AnonRateThrottle",
        "rest_framework.throttling.UserRateThrottle",
    ),
    "DEFAULT_THROTTLE_RATES": {
        "anon": env("THROTTLE_ANON_RATE"),
        "user": env("THROTTLE_USER_RATE"),
        "public_poll": env("THROTTLE_PUBLIC_POLL_RATE"),
        "public_write": env("THROTTLE_PUBLIC_WRITE_RATE"),
        "webhook": env("THROTTLE_WEBHOOK_RATE"),
    },
}

# -----------------------------------------
# SIMPLE JWT
# -----------------------------------------
SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME": timedelta(minutes=30),
    "REFRESH_TOKEN_LIFETIME": timedelta(days=1),
    "ROTATE_REFRESH_TOKENS": True,
}

# -----------------------------------------
# DATABASE
# -----------------------------------------
DATABASES = {
    "default": env.db("DATABASE_URL"),
}

# -----------------------------------------
# PAYMENTS
# -----------------------------------------
PAYMENTS = {
    "GATEWAY": (env("PAYMENT_GATEWAY") or "razorpay").strip().lower(),
    "CURRENCY": (env("PAYMENT_CURRENCY") or "INR").strip().upper(),
    "RAZORPAY": {
        "KEY_ID": (env("RAZORPAY_KEY_ID") or "").strip(),
        "KEY_SECRET": (env("RAZORPAY_KEY_SECRET") or "").strip(),
        "BASE_URL": (env("RAZORPAY_BASE_URL") or "").strip().rstrip("/"),
        "TIMEOUT_SECONDS": env.int("RAZORPAY_TIMEOUT_SECONDS"),
    },
}

# -----------------------------------------
# SHIPPING (carrier aggregator)
# -----------------------------------------
SHIPPING = {
    "CARRIER": (env("SHIPPING_CARRIER") or "shiprocket").strip().lower(),
    "SHIPROCKET": {
        "BASE_URL": (env("SHIPROCKET_BASE_URL") or "").strip().rstrip("/"),
        "EMAIL": (env("SHIPROCKET_API_EMAIL") or "").strip(),
        "PASSWORD": env("SHIPROCKET_API_PASSWORD") or "",
        "TIMEOUT_SECONDS": env.int("SHIPROCKET_TIMEOUT_SECONDS"),
        "MAX_RETRIES": env.int("SHIPROCKET_MAX_RETRIES"),
        "BACKOFF_SECONDS": env.float("SHIPROCKET_BACKOFF_SECONDS"),
        "TOKEN_TTL_SECONDS": env.int("SHIPROCKET_TOKEN_TTL_SECONDS"),
        "TOKEN_SAFETY_MARGIN_SECONDS": env.int("SHIPROCKET_TOKEN_SAFETY_MARGIN_SECONDS"),
        "PICKUP_LOCATION": (env("SHIPROCKET_PICKUP_LOCATION") or "").strip(),
        "PICKUP_PINCODE": (env("SHIPROCKET_PICKUP_PINCODE") or "").strip(),
        "CHANNEL_ID": (env("SHIPROCKET_CHANNEL_ID") or "").strip(),
        "COMPANY_ID": (env("SHIPROCKET_COMPANY_ID") or "").strip(),
        "SUPPORT_EMAIL": (env("SHIPROCKET_SUPPORT_EMAIL") or "").strip(),
        "TRACKING_URL_TEMPLATE": (env("SHIPROCKET_TRACKING_URL_TEMPLATE") or "").strip(),
    },
}

# -----------------------------------------
# FULFILLMENT RULES
# -----------------------------------------
FULFILLMENT = {
    "FREE_SHIPPING_THRESHOLD": env("FREE_SHIPPING_THRESHOLD"),
    "FLAT_SHIPPING_FEE": env("FLAT_SHIPPING_FEE"),
    "TAX_RATE_PERCENT": env("TAX_RATE_PERCENT"),
    "RETURN_WINDOW_DAYS": env.int("RETURN_WINDOW_DAYS"),
    "MAX_REVERSAL_IMAGES": env.int("MAX_REVERSAL_IMAGES"),
    "PRICE_TOLERANCE": env("PRICE_TOLERANCE"),
    "SHIPMENT_JOBS_EAGER": env.bool("SHIPMENT_JOBS_EAGER"),
    "SHIPMENT_WORKER_CONCURRENCY": env.int("SHIPMENT_WORKER_CONCURRENCY"),
    "SHIPMENT_JOB_MAX_ATTEMPTS": env.int("SHIPMENT_JOB_MAX_ATTEMPTS"),
    "SHIPMENT_JOB_LEASE_SECONDS": env.int("SHIPMENT_JOB_LEASE_SECONDS"),
    "SHIPMENT_JOB_POLL_SECONDS": env.float("SHIPMENT_JOB_POLL_SECONDS"),
}

# -----------------------------------------
# LOGGING
# -----------------------------------------
LOG_LEVEL = (env("LOG_LEVEL") or "INFO").strip().upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "default",
        },
    },
    "root": {"handlers": ["console"], "level": "WARNING"},
    "loggers": {
        "django": {"handlers": ["console"], "level": "INFO", "propagate": False},
        "catalog": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "promotions": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "payments": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "shipping": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "orders": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
    },
}

# -----------------------------------------
# SENTRY (optional)
# -----------------------------------------
SENTRY_DSN = (env("SENTRY_DSN") or "").strip()
SENTRY_ENVIRONMENT = (env("SENTRY_ENVIRONMENT") or "development").strip()
SENTRY_TRACES_SAMPLE_RATE = float(env("SENTRY_TRACES_SAMPLE_RATE"))
SENTRY_SEND_PII = env.bool("SENTRY_SEND_PII")

if SENTRY_DSN:
    import sentry_sdk
    from sentry_sdk.integrations.django import DjangoIntegration

    sentry_sdk.init(
        dsn=SENTRY_DSN,
        environment=SENTRY_ENVIRONMENT,
        integrations=[DjangoIntegration()],
        traces_sample_rate=SENTRY_TRACES_SAMPLE_RATE,
        send_default_pii=SENTRY_SEND_PII,
    )

# -----------------------------------------
# CORS / CSRF
# -----------------------------------------
CORS_ALLOWED_ORIGINS = env.list("CORS_ALLOWED_ORIGINS")
CORS_ALLOW_CREDENTIALS = True
CORS_ALLOW_METHODS = list(default_methods)
CORS_ALLOW_HEADERS = list(default_headers)

CSRF_TRUSTED_ORIGINS = env.list("CSRF_TRUSTED_ORIGINS")

# -----------------------------------------
# STATIC FILES
# -----------------------------------------
STATIC_URL = "static/"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# -----------------------------------------
# SWAGGER
# -----------------------------------------
SPECTACULAR_SETTINGS = {
    "TITLE": "Shop Fulfillment API",
    "DESCRIPTION": "Order intent, payment verification, shipment and reversal API",
    "VERSION": "1.0.0",
    "SERVE_INCLUDE_SCHEMA": False,
}
