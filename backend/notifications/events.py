from django.db import models


class EventType(models.TextChoices):
    """Event names broadcast to POS terminals and kitchen displays."""

    ORDER_CREATED = "order:created"
    ORDER_UPDATED = "order:updated"
    ORDER_CLOSED = "order:closed"
    ORDER_VOIDED = "order:voided"
    ITEM_ADDED = "item:added"
    ITEM_REMOVED = "item:removed"
    ITEM_VOIDED = "item:voided"
    ITEM_SERVED = "item:served"
    ORDER_FIRED = "order:fired"
    TICKET_BUMPED = "ticket:bumped"
    TICKET_RECALLED = "ticket:recalled"
    EIGHTYSIX_ADDED = "eightysix:added"
    EIGHTYSIX_REMOVED = "eightysix:removed"


def location_group_name(location_id) -> str:
    return f"location_{location_id}_pos"
