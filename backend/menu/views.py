from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response

from core_backend.base import ReadOnlyBaseViewSet
from .models import MenuItem
from .serializers import EightySixSerializer, MenuItemSerializer
from .services import MenuCatalog


class MenuItemViewSet(ReadOnlyBaseViewSet):
    """
    The menu as the terminal sees it, plus the 86 toggle.

    ``?location=<id>`` narrows to one location; ``?is_86d=true`` lists what
    is currently off the menu.
    """

    queryset = MenuItem.objects.filter(is_active=True)
    serializer_class = MenuItemSerializer
    filterset_fields = ["location", "station", "is_86d"]
    ordering = ["name"]

    def get_queryset(self):
        return (
            super()
            .get_queryset()
            .select_related("station")
            .prefetch_related("modifier_groups__modifiers")
        )

    @action(detail=True, methods=["post"], url_path="eighty-six")
    def eighty_six(self, request: Request, pk=None) -> Response:
        serializer = EightySixSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        menu_item = MenuCatalog().eighty_six(
            pk, user=request.user, reason=serializer.validated_data["reason"]
        )
        return Response(self.get_serializer(menu_item).data)

    @action(detail=True, methods=["post"], url_path="restore")
    def restore(self, request: Request, pk=None) -> Response:
        menu_item = MenuCatalog().un_eighty_six(pk, user=request.user)
        return Response(self.get_serializer(menu_item).data)
