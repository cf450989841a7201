# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Audit logging service for tracking reconciler operations."""

import logging
import sqlite3
from datetime import datetime
from typing import Optional

from ..models.audit import AuditLogEntry, AuditStatus
from ..models.enums import ErrorKind

logger = logging.getLogger(__name__)


class AuditService:
    """Service for logging and retrieving reconciler audit entries."""

    def __init__(self, db_path: str = "reconciler_audit.db"):
        """
        Initialize the audit service.

        Args:
            db_path: Path to the SQLite database file
        """
        self.db_path = db_path
        self._init_database()

    def _init_database(self) -> None:
        """Initialize the SQLite database with the audit_logs table."""
        conn = sqlite3.connect(self.db_path)
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS audit_logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp TEXT NOT NULL,
                    operation TEXT NOT NULL,
                    identity TEXT,
                    status TEXT NOT NULL,
                    error_kind TEXT,
                    error_message TEXT,
                    correlation_id TEXT,
                    execution_time_ms REAL
                )
                """
            )
            cursor.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_audit_identity
                ON audit_logs(identity)
                """
            )
            conn.commit()
        finally:
            conn.close()

    def log_operation(self, entry: AuditLogEntry) -> AuditLogEntry:
        """
        Record a reconciler operation.

        Args:
            entry: The operation to record

        Returns:
            The entry with its generated ID
        """
        conn = sqlite3.connect(self.db_path)
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO audit_logs
                (timestamp, operation, identity, status, error_kind, error_message,
                 correlation_id, execution_time_ms)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.timestamp.isoformat(),
                    entry.operation,
                    entry.identity,
                    entry.status.value,
                    entry.error_kind.value if entry.error_kind else None,
                    entry.error_message,
                    entry.correlation_id,
                    entry.execution_time_ms,
                ),
            )
            conn.commit()
            entry_id = cursor.lastrowid
        finally:
            conn.close()

        return entry.model_copy(update={"id": entry_id})

    def get_logs(
        self,
        identity: Optional[str] = None,
        status: Optional[AuditStatus] = None,
        limit: int = 100,
    ) -> list[AuditLogEntry]:
        """
        Retrieve audit logs with optional filtering.

        Args:
            identity: Filter by license configuration ARN
            status: Filter by status
            limit: Maximum number of logs to return

        Returns:
            List of audit log entries, newest first
        """
        conn = sqlite3.connect(self.db_path)
        try:
            cursor = conn.cursor()

            query = (
                "SELECT id, timestamp, operation, identity, status, error_kind, "
                "error_message, correlation_id, execution_time_ms "
                "FROM audit_logs WHERE 1=1"
            )
            params: list = []

            if identity:
                query += " AND identity = ?"
                params.append(identity)

            if status:
                query += " AND status = ?"
                params.append(status.value)

            query += " ORDER BY id DESC LIMIT ?"
            params.append(limit)

            cursor.execute(query, params)
            rows = cursor.fetchall()
        finally:
            conn.close()

        return [
            AuditLogEntry(
                id=row[0],
                timestamp=datetime.fromisoformat(row[1]),
                operation=row[2],
                identity=row[3],
                status=AuditStatus(row[4]),
                error_kind=ErrorKind(row[5]) if row[5] else None,
                error_message=row[6],
                correlation_id=row[7],
                execution_time_ms=row[8],
            )
            for row in rows
        ]
