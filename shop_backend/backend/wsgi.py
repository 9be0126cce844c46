# backend/wsgi.py
"""
WSGI config for the shop fulfillment API.

Falls back to dev settings when DJANGO_SETTINGS_MODULE is not set.
Deployments must set DJANGO_SETTINGS_MODULE=backend.settings.prod.
The shipment worker runs as its own process:
    python manage.py run_shipment_worker
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "backend.settings.dev")

application = get_wsgi_application()
