"""Application configuration using pydantic-settings."""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings


class Environment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class EffectsBackend(str, Enum):
    SIMULATED = "simulated"
    HTTP = "http"


class PersistenceBackend(str, Enum):
    MEMORY = "memory"
    POSTGRES = "postgres"


class DatabaseSettings(BaseSettings):
    """Database configuration."""

    host: str = Field(default="localhost", alias="DB_HOST")
    port: int = Field(default=5432, alias="DB_PORT")
    name: str = Field(default="rollouts", alias="DB_NAME")
    user: str = Field(default="rollouts", alias="DB_USER")
    password: str = Field(default="", alias="DB_PASSWORD")
    pool_size: int = Field(default=10, alias="DB_POOL_SIZE")
    max_overflow: int = Field(default=5, alias="DB_MAX_OVERFLOW")
    pool_timeout: int = Field(default=30, alias="DB_POOL_TIMEOUT")

    @property
    def async_url(self) -> str:
        return (
            f"postgresql+asyncpg://{self.user}:{self.password}"
            f"@{self.host}:{self.port}/{self.name}"
        )

    model_config = {"env_prefix": "DB_", "extra": "ignore", "populate_by_name": True}


class RedisSettings(BaseSettings):
    """Redis configuration."""

    host: str = Field(default="localhost", alias="REDIS_HOST")
    port: int = Field(default=6379, alias="REDIS_PORT")
    password: str = Field(default="", alias="REDIS_PASSWORD")
    db: int = Field(default=0, alias="REDIS_DB")
    history_key_prefix: str = Field(default="rollouts:deployed", alias="REDIS_HISTORY_PREFIX")
    event_channel_prefix: str = Field(default="rollouts.events", alias="REDIS_EVENT_PREFIX")

    @property
    def url(self) -> str:
        auth = f":{self.password}@" if self.password else ""
        return f"redis://{auth}{self.host}:{self.port}/{self.db}"

    model_config = {"env_prefix": "REDIS_", "extra": "ignore", "populate_by_name": True}


class ObservabilitySettings(BaseSettings):
    """Observability configuration."""

    otlp_endpoint: str = Field(default="http://localhost:4317", alias="OTLP_ENDPOINT")
    service_name: str = Field(default="rollout-engine", alias="SERVICE_NAME")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    metrics_enabled: bool = Field(default=True, alias="METRICS_ENABLED")
    tracing_enabled: bool = Field(default=True, alias="TRACING_ENABLED")

    model_config = {"env_prefix": "OBS_", "extra": "ignore", "populate_by_name": True}


class InfrastructureApiSettings(BaseSettings):
    """Endpoints used by the HTTP effect adapters."""

    control_plane_url: str = Field(default="http://localhost:9000", alias="INFRA_CONTROL_PLANE_URL")
    metrics_url: str = Field(default="http://localhost:9090", alias="INFRA_METRICS_URL")
    service_label: str = Field(default="app", alias="INFRA_SERVICE_LABEL")
    request_timeout: float = Field(default=10.0, alias="INFRA_REQUEST_TIMEOUT")

    model_config = {"env_prefix": "INFRA_", "extra": "ignore", "populate_by_name": True}


# ---------------------------------------------------------------------------
# Rollout behaviour
# ---------------------------------------------------------------------------


class MaintenanceWindowSettings(BaseModel):
    """Production exclusion window. Weekdays use Monday=0."""

    enabled: bool = True
    blocked_weekdays: list[int] = Field(default_factory=lambda: [0, 1, 2, 3, 4])
    start_hour: int = Field(default=9, ge=0, le=23)
    end_hour: int = Field(default=17, ge=0, le=23)
    hotfix_bypass: bool = False

    @field_validator("blocked_weekdays")
    @classmethod
    def _check_weekdays(cls, value: list[int]) -> list[int]:
        if any(day < 0 or day > 6 for day in value):
            raise ValueError("weekdays must be between 0 (Monday) and 6 (Sunday)")
        return value


class PreflightSettings(BaseModel):
    check_timeout_seconds: float = Field(default=30.0, gt=0)
    min_health_score: float = 70.0
    max_cpu_percent: float = 80.0
    max_memory_percent: float = 85.0
    max_storage_percent: float = 90.0
    dependencies: list[str] = Field(
        default_factory=lambda: ["database", "cache", "external_api"]
    )
    dependency_failure_tolerance: int = Field(default=0, ge=0)
    max_backup_age_hours: float = 24.0


class BlueGreenSettings(BaseModel):
    traffic_steps: list[int] = Field(default_factory=lambda: [10, 25, 50, 75, 90])
    step_pause_seconds: float = 1.0
    monitor_window_seconds: float = 300.0
    monitor_interval_seconds: float = 30.0
    rollback_estimate_seconds: float = 30.0


class CanaryStageSettings(BaseModel):
    percentage: int = Field(gt=0, le=100)
    monitor_seconds: float = Field(gt=0)

    model_config = {"frozen": True}


class CanarySettings(BaseModel):
    stages: list[CanaryStageSettings] = Field(
        default_factory=lambda: [
            CanaryStageSettings(percentage=5, monitor_seconds=300),
            CanaryStageSettings(percentage=25, monitor_seconds=600),
            CanaryStageSettings(percentage=50, monitor_seconds=600),
            CanaryStageSettings(percentage=100, monitor_seconds=300),
        ]
    )
    sample_interval_seconds: float = Field(default=60.0, gt=0)
    max_error_rate: float = 1.5
    max_latency_ms: float = 120.0
    rollback_estimate_seconds: float = 60.0

    @field_validator("stages")
    @classmethod
    def _check_ascending(cls, value: list[CanaryStageSettings]) -> list[CanaryStageSettings]:
        if not value:
            raise ValueError("at least one canary stage is required")
        percentages = [stage.percentage for stage in value]
        if percentages != sorted(percentages):
            raise ValueError("canary stages must ramp up in traffic percentage")
        return value


class RollingSettings(BaseModel):
    batch_fraction: float = Field(default=0.25, gt=0, le=1)
    batch_pause_seconds: float = 30.0
    rollback_time_factor: float = 1.2


class HotfixSettings(BaseModel):
    version_marker: str = "hotfix"
    rollback_estimate_seconds: float = 120.0


class RolloutSettings(BaseSettings):
    """Every rollout default in one place, handed to the orchestrator."""

    config_version: str = Field(default="1", alias="ROLLOUT_CONFIG_VERSION")
    default_rollback_policy: str = Field(default="immediate", alias="ROLLOUT_DEFAULT_ROLLBACK_POLICY")
    health_checks_enabled: bool = Field(default=True, alias="ROLLOUT_HEALTH_CHECKS")
    timezone: str = Field(default="UTC", alias="ROLLOUT_TIMEZONE")

    maintenance_window: MaintenanceWindowSettings = Field(default_factory=MaintenanceWindowSettings)
    preflight: PreflightSettings = Field(default_factory=PreflightSettings)
    blue_green: BlueGreenSettings = Field(default_factory=BlueGreenSettings)
    canary: CanarySettings = Field(default_factory=CanarySettings)
    rolling: RollingSettings = Field(default_factory=RollingSettings)
    hotfix: HotfixSettings = Field(default_factory=HotfixSettings)

    model_config = {
        "env_prefix": "ROLLOUT_",
        "env_nested_delimiter": "__",
        "extra": "ignore",
        "populate_by_name": True,
    }


class Settings(BaseSettings):
    """Main application settings."""

    environment: Environment = Field(default=Environment.DEVELOPMENT, alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")
    api_prefix: str = Field(default="/api/v1", alias="API_PREFIX")
    host: str = Field(default="0.0.0.0", alias="HOST")  # noqa: S104
    port: int = Field(default=8000, alias="PORT")
    workers: int = Field(default=1, alias="WORKERS")
    effects_backend: EffectsBackend = Field(default=EffectsBackend.SIMULATED, alias="EFFECTS_BACKEND")
    persistence_backend: PersistenceBackend = Field(
        default=PersistenceBackend.MEMORY, alias="PERSISTENCE_BACKEND"
    )

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)
    infrastructure: InfrastructureApiSettings = Field(default_factory=InfrastructureApiSettings)
    rollout: RolloutSettings = Field(default_factory=RolloutSettings)

    model_config = {"env_prefix": "", "extra": "ignore", "populate_by_name": True}


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
