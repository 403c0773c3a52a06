import os
from django.core.asgi import get_asgi_application
from channels.routing import ProtocolTypeRouter, URLRouter

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

django_asgi_app = get_asgi_application()

from apps.tasks.websockets import routing as tasks_routing
from apps.common.middleware import JWTWebSocketMiddleware

application = ProtocolTypeRouter(
    {
        "http": django_asgi_app,
        "websocket": JWTWebSocketMiddleware(
            URLRouter(
                tasks_routing.websocket_urlpatterns
            )
        ),
    }
)
