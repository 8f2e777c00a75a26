"""Event publisher implementations."""

from __future__ import annotations

import json
from typing import Any

import redis.asyncio
import structlog

from rollout_engine.domain.ports.services import EventPublisher


logger = structlog.get_logger(__name__)


class InMemoryEventPublisher(EventPublisher):
    """In-memory event publisher for development/testing."""

    def __init__(self) -> None:
        self._events: list[tuple[str, dict[str, Any]]] = []
        self._handlers: dict[str, list[Any]] = {}

    async def publish(self, event_type: str, payload: dict[str, Any]) -> None:
        self._events.append((event_type, payload))
        logger.info("event_published", event_type=event_type, payload_keys=list(payload.keys()))

        for handler in self._handlers.get(event_type, []):
            await handler(payload)

    async def publish_batch(self, events: list[tuple[str, dict[str, Any]]]) -> None:
        for event_type, payload in events:
            await self.publish(event_type, payload)

    def subscribe(self, event_type: str, handler: Any) -> None:
        self._handlers.setdefault(event_type, []).append(handler)

    @property
    def published_events(self) -> list[tuple[str, dict[str, Any]]]:
        return list(self._events)

    def event_types(self) -> list[str]:
        return [event_type for event_type, _ in self._events]

    def clear(self) -> None:
        self._events.clear()


class RedisEventPublisher(EventPublisher):
    """Publishes events on Redis pub/sub channels, one channel per event type."""

    def __init__(self, client: redis.Redis, channel_prefix: str = "rollouts.events") -> None:
        self._client = client
        self._channel_prefix = channel_prefix

    async def publish(self, event_type: str, payload: dict[str, Any]) -> None:
        channel = f"{self._channel_prefix}.{event_type}"
        value = json.dumps(payload, default=str).encode("utf-8")

        receivers = await self._client.publish(channel, value)
        logger.info("redis_event_published", channel=channel, receivers=receivers)

    async def publish_batch(self, events: list[tuple[str, dict[str, Any]]]) -> None:
        async with self._client.pipeline(transaction=False) as pipe:
            for event_type, payload in events:
                channel = f"{self._channel_prefix}.{event_type}"
                pipe.publish(channel, json.dumps(payload, default=str).encode("utf-8"))
            await pipe.execute()
        logger.info("redis_batch_published", event_count=len(events))
