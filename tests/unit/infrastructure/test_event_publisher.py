"""Unit tests for event publishers."""

from __future__ import annotations

import json
from typing import Any

import pytest

from rollout_engine.infrastructure.messaging.event_publisher import (
    InMemoryEventPublisher,
    RedisEventPublisher,
)


class FakePipeline:
    def __init__(self, client: FakeRedis) -> None:
        self._client = client
        self._queued: list[tuple[str, bytes]] = []

    async def __aenter__(self) -> FakePipeline:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        return None

    def publish(self, channel: str, value: bytes) -> None:
        self._queued.append((channel, value))

    async def execute(self) -> list[int]:
        self._client.messages.extend(self._queued)
        return [0] * len(self._queued)


class FakeRedis:
    """Records pub/sub publishes."""

    def __init__(self) -> None:
        self.messages: list[tuple[str, bytes]] = []

    async def publish(self, channel: str, value: bytes) -> int:
        self.messages.append((channel, value))
        return 1

    def pipeline(self, transaction: bool = True) -> FakePipeline:
        return FakePipeline(self)


class TestInMemoryEventPublisher:
    @pytest.mark.asyncio
    async def test_publish(self) -> None:
        publisher = InMemoryEventPublisher()
        await publisher.publish("deployment.accepted", {"deployment_id": "d-1"})
        assert publisher.published_events == [("deployment.accepted", {"deployment_id": "d-1"})]
        assert publisher.event_types() == ["deployment.accepted"]

    @pytest.mark.asyncio
    async def test_subscribe_and_receive(self) -> None:
        publisher = InMemoryEventPublisher()
        received: list = []

        async def handler(payload: dict) -> None:
            received.append(payload)

        publisher.subscribe("deployment.failed", handler)
        await publisher.publish("deployment.failed", {"phase": "canary_25"})
        await publisher.publish("deployment.completed", {})
        assert received == [{"phase": "canary_25"}]

    @pytest.mark.asyncio
    async def test_clear(self) -> None:
        publisher = InMemoryEventPublisher()
        await publisher.publish_batch([("a", {}), ("b", {})])
        publisher.clear()
        assert publisher.published_events == []


class TestRedisEventPublisher:
    @pytest.mark.asyncio
    async def test_publish_uses_channel_per_event_type(self) -> None:
        client = FakeRedis()
        publisher = RedisEventPublisher(client, channel_prefix="rollouts.events")  # type: ignore[arg-type]
        await publisher.publish("deployment.completed", {"deployment_id": "d-1", "duration": 1.5})

        channel, value = client.messages[0]
        assert channel == "rollouts.events.deployment.completed"
        assert json.loads(value) == {"deployment_id": "d-1", "duration": 1.5}

    @pytest.mark.asyncio
    async def test_publish_batch(self) -> None:
        client = FakeRedis()
        publisher = RedisEventPublisher(client)  # type: ignore[arg-type]
        await publisher.publish_batch([
            ("deployment.failed", {"phase": "monitor"}),
            ("deployment.rolled_back", {"action": "switch_traffic"}),
        ])
        assert [channel for channel, _ in client.messages] == [
            "rollouts.events.deployment.failed",
            "rollouts.events.deployment.rolled_back",
        ]
