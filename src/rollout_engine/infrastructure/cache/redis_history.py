"""Redis-backed deployment history."""

from __future__ import annotations

import redis.asyncio
import structlog

from rollout_engine.config import RedisSettings
from rollout_engine.domain.models.deployment import TargetEnvironment
from rollout_engine.domain.ports.repositories import DeploymentHistory
from rollout_engine.infrastructure.observability.metrics import REDIS_OPERATIONS_TOTAL


logger = structlog.get_logger(__name__)


class RedisDeploymentHistory(DeploymentHistory):
    """One Redis set of completed versions per environment.

    With a ``fallback`` history (the durable record table), a miss is
    re-checked there and the set is warmed on a hit.
    """

    def __init__(
        self,
        client: redis.Redis,
        key_prefix: str = "rollouts:deployed",
        fallback: DeploymentHistory | None = None,
    ) -> None:
        self._client = client
        self._key_prefix = key_prefix
        self._fallback = fallback

    def _key(self, environment: TargetEnvironment) -> str:
        return f"{self._key_prefix}:{environment.value}"

    async def exists(self, version: str, environment: TargetEnvironment) -> bool:
        found = bool(await self._client.sismember(self._key(environment), version))
        REDIS_OPERATIONS_TOTAL.labels(
            operation="sismember", result="hit" if found else "miss"
        ).inc()
        if found or self._fallback is None:
            return found

        if await self._fallback.exists(version, environment):
            logger.info("history_cache_warmed", version=version, environment=environment.value)
            await self.record(version, environment)
            return True
        return False

    async def record(self, version: str, environment: TargetEnvironment) -> None:
        await self._client.sadd(self._key(environment), version)
        REDIS_OPERATIONS_TOTAL.labels(operation="sadd", result="success").inc()
        logger.debug("version_recorded", version=version, environment=environment.value)


def create_redis_client(settings: RedisSettings) -> redis.Redis:
    """Factory function to create a Redis client."""
    return redis.Redis.from_url(
        settings.url,
        decode_responses=False,
        socket_timeout=5.0,
        socket_connect_timeout=5.0,
        retry_on_timeout=True,
    )
