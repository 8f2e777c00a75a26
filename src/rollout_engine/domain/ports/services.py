"""Service port interfaces (hexagonal architecture)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from rollout_engine.domain.models.alert import CriticalAlert


class Tracer(ABC):
    """Port for the tracing backend."""

    @abstractmethod
    def start_span(self, name: str) -> str:
        """Open a named span and return its id."""

    @abstractmethod
    def finish_span(
        self, span_id: str, outcome: str, error: BaseException | None = None
    ) -> None:
        """Close a span with ``"success"`` or ``"error"``."""


class AlertSink(ABC):
    """Port for raising critical alerts to operators."""

    @abstractmethod
    async def raise_alert(self, alert: CriticalAlert) -> None:
        """Raise an alert."""


class EventPublisher(ABC):
    """Port for publishing domain events."""

    @abstractmethod
    async def publish(self, event_type: str, payload: dict[str, Any]) -> None:
        """Publish an event."""

    @abstractmethod
    async def publish_batch(self, events: list[tuple[str, dict[str, Any]]]) -> None:
        """Publish a batch of events."""
