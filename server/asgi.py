"""ASGI config for server project.

The folder manager API is served by async views, so run it under an
ASGI server (e.g., ``uvicorn server.asgi:application``).
"""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'server.settings')

application = get_asgi_application()
