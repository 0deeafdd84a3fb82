"""
ASGI config for the Testfachdienst.

Wires both HTTP (Django) and WebSocket (Channels/STOMP) and starts the
recurring self disclosure export.  Order matters: configure Django
before importing any Django-dependent modules.
"""
import os

# 1) Configure settings before any Django import
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "testfachdienst.settings")

# 2) Ensure Django is fully set up (so models work during imports)
import django  # noqa: E402
django.setup()  # noqa: E402

# 3) Now import ASGI/Channels components and app consumers
from django.core.asgi import get_asgi_application  # noqa: E402
from channels.routing import ProtocolTypeRouter, URLRouter  # noqa: E402
from django.urls import path  # noqa: E402

from erezept.jobs import start_scheduler  # noqa: E402
from erezept.paths import configured_context_path  # noqa: E402
from erezept.realtime.consumers import StompConsumer  # noqa: E402
from erezept.realtime.middleware import HandshakeLoggingMiddleware  # noqa: E402

# HTTP app (Django)
django_asgi_app = get_asgi_application()

# WS routes
_context = configured_context_path().lstrip("/")
websocket_urlpatterns = [
    path(f"{_context}/ws" if _context else "ws", StompConsumer.as_asgi()),
    path(f"{_context}/ws/" if _context else "ws/", StompConsumer.as_asgi()),
]

# ASGI entrypoint
application = ProtocolTypeRouter({
    "http": django_asgi_app,
    "websocket": HandshakeLoggingMiddleware(URLRouter(websocket_urlpatterns)),
})

start_scheduler()
