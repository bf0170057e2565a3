import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "core_backend.settings")

# Initialize Django ASGI application early to ensure AppRegistry is populated
# before importing code that may import ORM models.
django_asgi_app = get_asgi_application()

from channels.routing import ProtocolTypeRouter  # noqa: E402

# Real-time delivery to terminals is handled outside this service; only HTTP is
# routed here, the channel layer is used as a publish target.
application = ProtocolTypeRouter(
    {
        "http": django_asgi_app,
    }
)
