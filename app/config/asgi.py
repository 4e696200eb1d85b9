"""
ASGI entry point for the chat service.

Routes two protocols:
- HTTP: the Django application (REST API, admin, docs, health)
- WebSocket: Django Channels consumers delivering chat events

Served by Uvicorn (or Daphne) as ``config.asgi:application``.
"""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

# Django must be set up before Channels code imports models
django_asgi_app = get_asgi_application()

from channels.routing import ProtocolTypeRouter, URLRouter  # noqa: E402
from channels.security.websocket import AllowedHostsOriginValidator  # noqa: E402

from chat.middleware import JWTAuthMiddleware  # noqa: E402
from chat.routing import websocket_urlpatterns  # noqa: E402

# WebSocket stack: origin check against ALLOWED_HOSTS, then JWT
# authentication, then routing to ChatConsumer.
application = ProtocolTypeRouter(
    {
        "http": django_asgi_app,
        "websocket": AllowedHostsOriginValidator(
            JWTAuthMiddleware(URLRouter(websocket_urlpatterns))
        ),
    }
)
