"""
Tracking broadcast channel.

Services publish through ``BroadcastPort`` after their write is committed.
Delivery is best-effort and at-most-once: a subscriber that is not joined at
publish time never sees the event and should re-read the tracking log.
"""
from abc import ABC, abstractmethod
from collections import defaultdict

import structlog
from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

from shared.observability import ecomm_tracking_broadcasts_total, ecomm_tracking_subscribers

logger = structlog.get_logger(__name__)


def order_channel(order_id) -> str:
    return f"order_{order_id}"


def request_channel(request_id) -> str:
    return f"request_{request_id}"


class BroadcastPort(ABC):
    """Abstract interface for real-time transports."""

    @abstractmethod
    async def publish(self, channel_key: str, event: str, payload: dict) -> int:
        """Push ``event`` to every subscriber of ``channel_key``.

        Returns:
            number of subscribers the event was delivered to
        """
        ...


class WebSocketBroadcaster(BroadcastPort):
    """In-process rooms of WebSocket connections keyed by channel."""

    def __init__(self):
        self.rooms: dict[str, set[WebSocket]] = defaultdict(set)

    def join(self, websocket: WebSocket, channel_key: str) -> None:
        self.rooms[channel_key].add(websocket)
        ecomm_tracking_subscribers.set(self.subscriber_count())
        logger.info("tracking_joined", channel=channel_key)

    def leave(self, websocket: WebSocket, channel_key: str) -> None:
        room = self.rooms.get(channel_key)
        if room is not None:
            room.discard(websocket)
            if not room:
                del self.rooms[channel_key]
        ecomm_tracking_subscribers.set(self.subscriber_count())

    def disconnect(self, websocket: WebSocket) -> None:
        for key in [k for k, room in self.rooms.items() if websocket in room]:
            self.leave(websocket, key)

    def subscriber_count(self) -> int:
        return sum(len(room) for room in self.rooms.values())

    async def publish(self, channel_key: str, event: str, payload: dict) -> int:
        ecomm_tracking_broadcasts_total.labels(event=event).inc()
        message = {"event": event, "data": jsonable_encoder(payload)}
        delivered = 0
        for websocket in list(self.rooms.get(channel_key, ())):
            try:
                await websocket.send_json(message)
                delivered += 1
            except Exception as e:
                # Dead sockets are dropped; the durable log stays authoritative
                logger.warning("tracking_send_failed", channel=channel_key, error=str(e))
                self.disconnect(websocket)
        return delivered


class RecordingBroadcaster(BroadcastPort):
    """Broadcaster that keeps published events in memory."""

    def __init__(self):
        self.events: list[dict] = []

    async def publish(self, channel_key: str, event: str, payload: dict) -> int:
        ecomm_tracking_broadcasts_total.labels(event=event).inc()
        self.events.append({"channel": channel_key, "event": event, "payload": jsonable_encoder(payload)})
        return 1

    def for_channel(self, channel_key: str) -> list[dict]:
        return [e for e in self.events if e["channel"] == channel_key]

    def reset(self):
        self.events.clear()


tracking_hub = WebSocketBroadcaster()


def get_tracking_hub() -> WebSocketBroadcaster:
    return tracking_hub


def get_broadcaster() -> BroadcastPort:
    """FastAPI dependency used by services that publish tracking events."""
    return tracking_hub
