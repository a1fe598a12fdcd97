"""
ASGI config for the video moderation backend.

It exposes the ASGI callable as a module-level variable named ``application``.
HTTP goes to Django, WebSocket connections go to the progress consumers.
"""

import os
from django.core.asgi import get_asgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

# Django must be set up before the consumers (and their models) are imported
django_asgi_app = get_asgi_application()

from channels.auth import AuthMiddlewareStack  # noqa: E402
from channels.routing import ProtocolTypeRouter, URLRouter  # noqa: E402
from channels.security.websocket import AllowedHostsOriginValidator  # noqa: E402
import api.routing  # noqa: E402

application = ProtocolTypeRouter({
    # Standard HTTP requests go here
    "http": django_asgi_app,

    # WebSocket requests go here
    "websocket": AllowedHostsOriginValidator(
        AuthMiddlewareStack(
            URLRouter(
                api.routing.websocket_urlpatterns
            )
        )
    ),
})
