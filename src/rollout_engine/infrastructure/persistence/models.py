"""SQLAlchemy ORM models."""

from __future__ import annotations

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    func,
    Index,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSON
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class DeploymentRecordORM(Base):
    __tablename__ = "deployment_records"

    id = Column(String(36), primary_key=True)
    strategy = Column(String(20), nullable=False)
    environment = Column(String(20), nullable=False)
    version = Column(String(100), nullable=False)
    rollback_policy = Column(String(20), nullable=False)
    health_checks_enabled = Column(Boolean, nullable=False, default=True)
    approval_required = Column(Boolean, nullable=False, default=True)
    initiated_by = Column(String(255), nullable=False, default="")
    status = Column(String(30), nullable=False, index=True)
    preflight_report = Column(JSON, nullable=True)
    strategy_result = Column(JSON, nullable=True)
    rollback_plan = Column(JSON, nullable=True)
    rollback_outcome = Column(JSON, nullable=True)
    failed_phase = Column(String(100), nullable=True, default="")
    error_message = Column(Text, nullable=True, default="")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    completed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_deployment_records_version_env_status", "version", "environment", "status"),
        Index("ix_deployment_records_created_at", "created_at"),
    )


class AlertORM(Base):
    __tablename__ = "critical_alerts"

    id = Column(String(36), primary_key=True)
    deployment_id = Column(String(36), nullable=False, index=True)
    rule_name = Column(String(100), nullable=False)
    severity = Column(String(20), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    original_error = Column(Text, nullable=False)
    rollback_error = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default="active")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
