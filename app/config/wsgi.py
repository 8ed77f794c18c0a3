"""
WSGI config for the coverage marketplace service.

Provided for traditional deployments (gunicorn) and for management tooling
that expects a WSGI callable named `application`.

For more information on this file, see:
https://docs.djangoproject.com/en/5.2/howto/deployment/wsgi/
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_wsgi_application()
