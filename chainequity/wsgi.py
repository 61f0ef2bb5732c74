"""WSGI entrypoint for the ChainEquity ledger service."""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "chainequity.settings")

application = get_wsgi_application()
