"""
ASGI config for the coverage marketplace service.

Uvicorn serves the Django application through this entry point. The service
is plain HTTP/JSON; there are no WebSocket routes.

For more information on this file, see:
https://docs.djangoproject.com/en/5.2/howto/deployment/asgi/
"""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_asgi_application()
