from django.urls import path, include
from rest_framework import routers

from .views import MenuItemViewSet

app_name = "menu"

router = routers.DefaultRouter()
router.register(r"menu-items", MenuItemViewSet, basename="menu-item")

urlpatterns = [
    path("", include(router.urls)),
]
