"""
Outbound event delivery for order and kitchen changes.

The order core never talks to a transport directly. It hands events to a
``NotificationPublisher``, which defers them until the surrounding database
transaction commits and then passes them to a ``NotificationSink``. Sink
failures and timeouts are logged and dropped; they never reach the caller
and never undo the committed write.
"""
import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.core.serializers.json import DjangoJSONEncoder
from django.db import transaction
from django.utils import timezone

from core_backend.config import app_settings
from .events import EventType, location_group_name

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    def notify(
        self,
        event_type: str,
        location_id: Any,
        payload: Dict[str, Any],
        acting_user_id: Optional[Any] = None,
    ) -> None:
        ...


class ChannelsNotificationSink:
    """Broadcasts events to the ``location_<id>_pos`` group on the channel layer."""

    def __init__(self, channel_layer=None, timeout: Optional[float] = None):
        self.channel_layer = channel_layer or get_channel_layer()
        self.timeout = timeout if timeout is not None else app_settings.notification_timeout

    def notify(self, event_type, location_id, payload, acting_user_id=None):
        if not self.channel_layer:
            logger.warning("No channel layer available for notifications")
            return

        group_name = location_group_name(location_id)
        message = {
            "type": "pos_event",
            "event": str(event_type),
            # Channel layers need plain JSON types; Decimal and UUID become strings.
            "data": json.loads(json.dumps(payload, cls=DjangoJSONEncoder)),
            "user_id": str(acting_user_id) if acting_user_id is not None else None,
            "timestamp": timezone.now().isoformat(),
        }
        logger.debug(f"Sending {event_type} to group {group_name}")
        async_to_sync(self._send)(group_name, message)

    async def _send(self, group_name, message):
        await asyncio.wait_for(
            self.channel_layer.group_send(group_name, message), timeout=self.timeout
        )


@dataclass
class NotificationEvent:
    event_type: str
    location_id: Any
    payload: Dict[str, Any]
    acting_user_id: Optional[Any] = None


@dataclass
class RecordingNotificationSink:
    """In-memory sink that keeps every event it receives. Used by tests and tooling."""

    events: List[NotificationEvent] = field(default_factory=list)

    def notify(self, event_type, location_id, payload, acting_user_id=None):
        self.events.append(
            NotificationEvent(str(event_type), location_id, payload, acting_user_id)
        )

    def of_type(self, event_type) -> List[NotificationEvent]:
        return [e for e in self.events if e.event_type == str(event_type)]

    @property
    def event_types(self) -> List[str]:
        return [e.event_type for e in self.events]

    def clear(self):
        self.events.clear()


class NotificationPublisher:
    """Fire-and-forget publishing bound to the current transaction."""

    def __init__(self, sink: Optional[NotificationSink] = None):
        self.sink = sink if sink is not None else ChannelsNotificationSink()

    def publish(
        self,
        event_type: EventType,
        location_id,
        payload: Dict[str, Any],
        acting_user_id=None,
    ) -> None:
        def send():
            self._send(event_type, location_id, payload, acting_user_id)

        if transaction.get_connection().in_atomic_block:
            transaction.on_commit(send)
        else:
            send()

    def _send(self, event_type, location_id, payload, acting_user_id):
        try:
            self.sink.notify(event_type, location_id, payload, acting_user_id)
        except asyncio.TimeoutError:
            logger.warning(
                f"Timed out sending {event_type} for location {location_id}; event dropped"
            )
        except Exception as e:
            logger.error(f"Error sending {event_type} for location {location_id}: {e}")
