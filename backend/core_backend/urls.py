"""
URL configuration for the POS backend.

Every app mounts its DRF router under ``/api/``.
"""

from django.contrib import admin
from django.http import JsonResponse
from django.urls import include, path


def health_check(request):
    """Simple health check endpoint that doesn't require authentication"""
    return JsonResponse({"status": "ok", "message": "Backend is running"})


urlpatterns = [
    path("api/health/", health_check, name="health_check"),
    path("admin/", admin.site.urls),
    # The orders app registers its own "orders" prefix.
    path("api/", include("orders.urls")),
    path("api/", include("menu.urls")),
    path("api/kitchen/", include("kds.urls")),
]
