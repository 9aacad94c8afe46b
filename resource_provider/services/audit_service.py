"""Audit trail of lifecycle operations in SQLite."""

import json
import sqlite3
from datetime import datetime, timezone
from typing import Optional

from ..models.audit import AuditLogEntry, AuditStatus


class AuditService:
    """Service for recording and retrieving lifecycle audit entries."""

    def __init__(self, db_path: str = "provider_audit.db"):
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
                    resource_type TEXT NOT NULL,
                    operation TEXT NOT NULL,
                    resource_id TEXT NOT NULL,
                    parameters TEXT NOT NULL,
                    status TEXT NOT NULL,
                    error_message TEXT,
                    execution_time_ms REAL,
                    correlation_id TEXT
                )
                """
            )
            cursor.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_audit_timestamp
                ON audit_logs(timestamp)
                """
            )
            conn.commit()
        finally:
            conn.close()

    def is_connected(self) -> bool:
        """Check that the database can be queried."""
        try:
            conn = sqlite3.connect(self.db_path)
            try:
                conn.execute("SELECT 1")
            finally:
                conn.close()
            return True
        except sqlite3.Error:
            return False

    def log_operation(
        self,
        resource_type: str,
        operation: str,
        resource_id: str,
        parameters: dict,
        status: AuditStatus,
        error_message: Optional[str] = None,
        execution_time_ms: Optional[float] = None,
        correlation_id: Optional[str] = None,
    ) -> AuditLogEntry:
        """
        Record one lifecycle operation.

        Args:
            resource_type: Resource kind the operation ran against
            operation: create, read, update, delete or import
            resource_id: Remote handle (may be empty before create)
            parameters: Redacted operation parameters
            status: Success or failure
            error_message: Error message if status is failure
            execution_time_ms: Execution time in milliseconds
            correlation_id: Request correlation ID, when known

        Returns:
            AuditLogEntry including the generated ID
        """
        timestamp = datetime.now(timezone.utc)

        conn = sqlite3.connect(self.db_path)
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO audit_logs
                (timestamp, resource_type, operation, resource_id, parameters,
                 status, error_message, execution_time_ms, correlation_id)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    timestamp.isoformat(),
                    resource_type,
                    operation,
                    resource_id,
                    json.dumps(parameters, default=str),
                    status.value,
                    error_message,
                    execution_time_ms,
                    correlation_id,
                ),
            )
            conn.commit()
            entry_id = cursor.lastrowid
        finally:
            conn.close()

        return AuditLogEntry(
            id=entry_id,
            timestamp=timestamp,
            resource_type=resource_type,
            operation=operation,
            resource_id=resource_id,
            parameters=parameters,
            status=status,
            error_message=error_message,
            execution_time_ms=execution_time_ms,
            correlation_id=correlation_id,
        )

    def get_logs(
        self,
        resource_type: Optional[str] = None,
        operation: Optional[str] = None,
        status: Optional[AuditStatus] = None,
        limit: int = 100,
    ) -> list[AuditLogEntry]:
        """
        Retrieve audit entries, newest first, with optional filtering.

        Args:
            resource_type: Filter by resource kind
            operation: Filter by operation name
            status: Filter by status
            limit: Maximum number of entries to return

        Returns:
            List of audit log entries
        """
        conn = sqlite3.connect(self.db_path)
        try:
            cursor = conn.cursor()

            query = (
                "SELECT id, timestamp, resource_type, operation, resource_id, parameters, "
                "status, error_message, execution_time_ms, correlation_id "
                "FROM audit_logs WHERE 1=1"
            )
            params: list = []

            if resource_type:
                query += " AND resource_type = ?"
                params.append(resource_type)

            if operation:
                query += " AND operation = ?"
                params.append(operation)

            if status:
                query += " AND status = ?"
                params.append(status.value)

            query += " ORDER BY id DESC LIMIT ?"
            params.append(limit)

            cursor.execute(query, params)
            rows = cursor.fetchall()

            return [
                AuditLogEntry(
                    id=row[0],
                    timestamp=datetime.fromisoformat(row[1]),
                    resource_type=row[2],
                    operation=row[3],
                    resource_id=row[4],
                    parameters=json.loads(row[5]),
                    status=AuditStatus(row[6]),
                    error_message=row[7],
                    execution_time_ms=row[8],
                    correlation_id=row[9],
                )
                for row in rows
            ]
        finally:
            conn.close()
