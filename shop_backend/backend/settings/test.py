# backend/settings/test.py
"""
PATH: backend/settings/test.py

TEST SETTINGS

- In-memory SQLite
- Fake payment gateway + fake carrier (no network)
- Shipment jobs run inline after commit
- Zero carrier backoff so retry paths stay fast
"""

from __future__ import annotations

from .base import *  # noqa: F403
from .base import FULFILLMENT, LOGGING, PAYMENTS, REST_FRAMEWORK, SHIPPING

DEBUG = False
SECRET_KEY = "test-only-secret"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

PAYMENTS["GATEWAY"] = "fake"
PAYMENTS["RAZORPAY"]["KEY_ID"] = "rzp_test_key"
PAYMENTS["RAZORPAY"]["KEY_SECRET"] = "rzp_test_secret"

SHIPPING["CARRIER"] = "fake"
SHIPPING["SHIPROCKET"]["BACKOFF_SECONDS"] = 0.0
SHIPPING["SHIPROCKET"]["COMPANY_ID"] = "100200"
SHIPPING["SHIPROCKET"]["EMAIL"] = "ops@example.com"

FULFILLMENT["SHIPMENT_JOBS_EAGER"] = True

REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {
    scope: "10000/min" for scope in REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"]
}

LOGGING["root"]["level"] = "CRITICAL"
LOGGING["loggers"] = {}
