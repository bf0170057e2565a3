import logging

from django.db import transaction

from core_backend.exceptions import NotFound, ValidationFailure
from notifications.events import EventType
from notifications.services import NotificationPublisher
from .models import MenuItem, Modifier

logger = logging.getLogger(__name__)


class MenuCatalog:
    """
    Read access to the menu for the order core, plus the 86 toggle that
    kitchen staff use to pull an item from sale.
    """

    def __init__(self, publisher=None):
        self._publisher = publisher

    @property
    def publisher(self):
        if self._publisher is None:
            self._publisher = NotificationPublisher()
        return self._publisher

    def get_menu_item(self, menu_item_id):
        try:
            return MenuItem.objects.select_related("station", "location").get(
                pk=menu_item_id
            )
        except (MenuItem.DoesNotExist, ValueError):
            raise NotFound(f"Menu item {menu_item_id} not found")

    def get_active_menu(self, location_id):
        return (
            MenuItem.objects.filter(location_id=location_id, is_active=True)
            .select_related("station")
            .prefetch_related("modifier_groups__modifiers")
        )

    def get_86d_items(self, location_id):
        return MenuItem.objects.filter(location_id=location_id, is_86d=True)

    @transaction.atomic
    def eighty_six(self, menu_item_id, user=None, reason=""):
        menu_item = self.get_menu_item(menu_item_id)
        if not menu_item.is_86d:
            menu_item.is_86d = True
            menu_item.save(update_fields=["is_86d", "updated_at"])
            logger.info(f"Menu item {menu_item.name} 86'd ({reason or 'no reason given'})")
            self.publisher.publish(
                EventType.EIGHTYSIX_ADDED,
                menu_item.location_id,
                {"menu_item_id": menu_item.id, "name": menu_item.name, "reason": reason},
                getattr(user, "id", None),
            )
        return menu_item

    @transaction.atomic
    def un_eighty_six(self, menu_item_id, user=None):
        menu_item = self.get_menu_item(menu_item_id)
        if menu_item.is_86d:
            menu_item.is_86d = False
            menu_item.save(update_fields=["is_86d", "updated_at"])
            logger.info(f"Menu item {menu_item.name} back on the menu")
            self.publisher.publish(
                EventType.EIGHTYSIX_REMOVED,
                menu_item.location_id,
                {"menu_item_id": menu_item.id, "name": menu_item.name},
                getattr(user, "id", None),
            )
        return menu_item


def group_selection_error(group, selected_count):
    """Return a message describing why ``selected_count`` breaks the group's rules, or None."""
    minimum = group.effective_min
    maximum = group.effective_max
    if selected_count < minimum:
        if minimum == 1:
            return f"A selection is required for '{group.name}'."
        return f"You must select at least {minimum} options for '{group.name}'."
    if maximum is not None and selected_count > maximum:
        if maximum == 1:
            return f"Only one option can be selected for '{group.name}'."
        return f"You can select at most {maximum} options for '{group.name}'."
    return None


class ModifierValidationService:
    @classmethod
    def validate_selection(cls, menu_item, modifier_ids):
        """
        Check ``modifier_ids`` against every modifier group linked to the menu item
        and return the selected ``Modifier`` rows.

        Raises ValidationFailure for unknown modifiers, modifiers from groups the
        item does not offer, and groups whose min/max counts are not met.
        """
        selected_ids = list(modifier_ids or [])
        if len(set(selected_ids)) != len(selected_ids):
            raise ValidationFailure("A modifier may only be selected once per item.")

        groups = list(menu_item.modifier_groups.all())
        modifiers = list(
            Modifier.objects.filter(pk__in=selected_ids, is_active=True).select_related("group")
        )
        if len(modifiers) != len(selected_ids):
            missing = set(selected_ids) - {m.id for m in modifiers}
            raise ValidationFailure(f"Invalid modifier option(s) selected: {sorted(missing)}")

        group_ids = {g.id for g in groups}
        foreign = [m.name for m in modifiers if m.group_id not in group_ids]
        if foreign:
            raise ValidationFailure(
                f"Modifier(s) {', '.join(foreign)} are not offered for '{menu_item.name}'."
            )

        for group in groups:
            count = sum(1 for m in modifiers if m.group_id == group.id)
            error = group_selection_error(group, count)
            if error:
                raise ValidationFailure(error)

        return modifiers
