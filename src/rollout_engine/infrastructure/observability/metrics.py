"""Prometheus metrics configuration."""

from __future__ import annotations

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    Info,
)


# Application info
APP_INFO = Info("rollout_engine", "Release rollout engine application info")
APP_INFO.info({
    "version": "1.0.0",
    "service": "rollout-engine",
})

# Deployment metrics
DEPLOYMENTS_TOTAL = Counter(
    "rollout_deployments_total",
    "Total number of deployment runs by final status",
    ["status", "environment", "strategy"],
)

DEPLOYMENT_DURATION = Histogram(
    "rollout_deployment_duration_seconds",
    "Time taken for strategy execution",
    ["environment", "strategy"],
    buckets=[10, 30, 60, 120, 300, 600, 1800, 3600],
)

ACTIVE_DEPLOYMENTS = Gauge(
    "rollout_active_deployments",
    "Number of deployment runs in flight",
    ["environment"],
)

# Gate metrics
PREFLIGHT_CHECKS_TOTAL = Counter(
    "rollout_preflight_checks_total",
    "Total number of preflight checks run",
    ["check", "result"],  # result: passed/failed
)

CANARY_STAGES_TOTAL = Counter(
    "rollout_canary_stages_total",
    "Total number of canary stages evaluated",
    ["percentage", "result"],
)

# Compensation metrics
ROLLBACKS_TOTAL = Counter(
    "rollout_rollbacks_total",
    "Total number of compensating rollbacks",
    ["strategy", "result"],  # result: success/failure
)

CRITICAL_ALERTS_TOTAL = Counter(
    "rollout_critical_alerts_total",
    "Total number of critical alerts raised",
    ["environment"],
)

# API metrics
API_REQUESTS_TOTAL = Counter(
    "rollout_api_requests_total",
    "Total API requests",
    ["method", "endpoint", "status_code"],
)

# Infrastructure metrics
REDIS_OPERATIONS_TOTAL = Counter(
    "rollout_redis_operations_total",
    "Total Redis operations",
    ["operation", "result"],
)
