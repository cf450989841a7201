# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Audit log data models."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, field_serializer

from .enums import ErrorKind


class AuditStatus(str, Enum):
    """Status of an audit log entry."""

    SUCCESS = "success"
    FAILURE = "failure"


class AuditLogEntry(BaseModel):
    """Represents a single reconciler operation recorded in the audit log."""

    id: int | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    operation: str
    identity: str | None = None
    status: AuditStatus
    error_kind: ErrorKind | None = None
    error_message: str | None = None
    correlation_id: str | None = None
    execution_time_ms: float | None = None

    @field_serializer("timestamp")
    def serialize_timestamp(self, timestamp: datetime) -> str:
        return timestamp.isoformat()
