from django.urls import include, path
from rest_framework.routers import SimpleRouter

from .views import KitchenViewSet

app_name = 'kds'

router = SimpleRouter()
router.register(r'', KitchenViewSet, basename='kitchen')

urlpatterns = [
    path('', include(router.urls)),
]
