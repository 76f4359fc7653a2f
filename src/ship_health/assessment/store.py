"""SQLite storage for equipment, sensor readings, alarms and maintenance.

Every method opens its own connection and closes it before returning, so
a store instance holds no connection state. All times are stored as epoch
milliseconds in UTC.
"""

from __future__ import annotations

import logging
import os
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, Iterator, List, Optional

from ship_health.phm.types import MetricDataPoint
from ship_health.utils.timeutils import from_millis, to_millis

logger = logging.getLogger(__name__)

EQUIPMENT_STATUSES = ("normal", "warning", "fault", "offline")
ALARM_LEVELS = ("low", "medium", "high", "critical")


@dataclass(frozen=True)
class EquipmentRecord:
    id: str
    name: str
    status: str
    installed_at: datetime


@dataclass(frozen=True)
class AlarmRecord:
    """Alarm as persisted, with the four-level store severity."""

    id: str
    equipment_id: str
    timestamp: datetime
    severity: str
    metric_type: str
    metric_value: float = 0.0
    threshold_value: float = 0.0
    description: str = ""


@dataclass(frozen=True)
class MaintenanceRecord:
    id: int
    equipment_id: str
    performed_at: datetime
    description: str = ""


class SqliteStore:
    def __init__(self, db_path: str) -> None:
        self.db_path = db_path

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        conn = self._get_conn()
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def init_db(self) -> None:
        """Create database tables if they do not exist."""
        with self._connection() as conn:
            cur = conn.cursor()
            cur.execute("""
                CREATE TABLE IF NOT EXISTS equipment (
                    id TEXT PRIMARY KEY,
                    name TEXT,
                    status TEXT,
                    installed_at INTEGER
                )
            """)
            cur.execute("""
                CREATE TABLE IF NOT EXISTS readings (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    equipment_id TEXT,
                    timestamp INTEGER,
                    metric_type TEXT,
                    value REAL
                )
            """)
            cur.execute("""
                CREATE TABLE IF NOT EXISTS alarms (
                    id TEXT PRIMARY KEY,
                    equipment_id TEXT,
                    timestamp INTEGER,
                    severity TEXT,
                    metric_type TEXT,
                    metric_value REAL DEFAULT 0,
                    threshold_value REAL DEFAULT 0,
                    description TEXT DEFAULT ''
                )
            """)
            cur.execute("""
                CREATE TABLE IF NOT EXISTS maintenance (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    equipment_id TEXT,
                    performed_at INTEGER,
                    description TEXT DEFAULT ''
                )
            """)
            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_readings_eq_ts ON readings(equipment_id, timestamp)"
            )
            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_alarms_eq_ts ON alarms(equipment_id, timestamp)"
            )
            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_maintenance_eq ON maintenance(equipment_id)"
            )
        logger.debug("Initialised database at %s", self.db_path)

    def clear(self) -> None:
        """Delete all rows from every table."""
        with self._connection() as conn:
            for table in ["equipment", "readings", "alarms", "maintenance"]:
                conn.execute(f"DELETE FROM {table}")

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add_equipment(
        self,
        equipment_id: str,
        installed_at: datetime,
        name: str = "",
        status: str = "normal",
    ) -> None:
        with self._connection() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO equipment (id, name, status, installed_at) VALUES (?, ?, ?, ?)",
                (equipment_id, name or equipment_id, status, to_millis(installed_at)),
            )

    def set_status(self, equipment_id: str, status: str) -> None:
        with self._connection() as conn:
            conn.execute("UPDATE equipment SET status = ? WHERE id = ?", (status, equipment_id))

    def add_readings(self, equipment_id: str, readings: Iterable[MetricDataPoint]) -> int:
        rows = [(equipment_id, to_millis(r.timestamp), r.metric_type, r.value) for r in readings]
        with self._connection() as conn:
            conn.executemany(
                "INSERT INTO readings (equipment_id, timestamp, metric_type, value) VALUES (?, ?, ?, ?)",
                rows,
            )
        return len(rows)

    def add_alarms(self, alarms: Iterable[AlarmRecord]) -> int:
        rows = [
            (
                a.id,
                a.equipment_id,
                to_millis(a.timestamp),
                a.severity,
                a.metric_type,
                a.metric_value,
                a.threshold_value,
                a.description,
            )
            for a in alarms
        ]
        with self._connection() as conn:
            conn.executemany(
                "INSERT OR REPLACE INTO alarms (id, equipment_id, timestamp, severity, metric_type, "
                "metric_value, threshold_value, description) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                rows,
            )
        return len(rows)

    def add_maintenance(
        self, equipment_id: str, performed_at: datetime, description: str = ""
    ) -> None:
        with self._connection() as conn:
            conn.execute(
                "INSERT INTO maintenance (equipment_id, performed_at, description) VALUES (?, ?, ?)",
                (equipment_id, to_millis(performed_at), description),
            )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def fetch_query(self, query: str, params: tuple = ()) -> List[Dict[str, Any]]:
        """Execute a SELECT query and return results as list of dicts."""
        if not os.path.exists(self.db_path):
            return []
        with self._connection() as conn:
            cur = conn.execute(query, params)
            return [dict(row) for row in cur.fetchall()]

    def get_equipment(self, equipment_id: str) -> Optional[EquipmentRecord]:
        rows = self.fetch_query("SELECT * FROM equipment WHERE id = ?", (equipment_id,))
        if not rows:
            return None
        return _equipment_from_row(rows[0])

    def list_equipment(self) -> List[EquipmentRecord]:
        return [_equipment_from_row(r) for r in self.fetch_query("SELECT * FROM equipment ORDER BY id")]

    def fetch_readings(
        self,
        equipment_id: str,
        start_ms: int,
        end_ms: int,
        metric_type: Optional[str] = None,
    ) -> List[MetricDataPoint]:
        """Readings in the inclusive window, oldest first."""
        query = "SELECT timestamp, metric_type, value FROM readings WHERE equipment_id = ? AND timestamp BETWEEN ? AND ?"
        params: List[Any] = [equipment_id, start_ms, end_ms]
        if metric_type:
            query += " AND metric_type = ?"
            params.append(metric_type)
        query += " ORDER BY timestamp, id"
        return [
            MetricDataPoint(
                timestamp=from_millis(r["timestamp"]),
                metric_type=r["metric_type"],
                value=r["value"],
            )
            for r in self.fetch_query(query, tuple(params))
        ]

    def count_readings(self, equipment_id: str, start_ms: int, end_ms: int) -> int:
        rows = self.fetch_query(
            "SELECT COUNT(*) AS n FROM readings WHERE equipment_id = ? AND timestamp BETWEEN ? AND ?",
            (equipment_id, start_ms, end_ms),
        )
        return int(rows[0]["n"]) if rows else 0

    def fetch_alarms(
        self,
        equipment_id: str,
        start_ms: Optional[int] = None,
        end_ms: Optional[int] = None,
    ) -> List[AlarmRecord]:
        """Alarms for one equipment, newest first, optionally windowed."""
        query = "SELECT * FROM alarms WHERE equipment_id = ?"
        params: List[Any] = [equipment_id]
        if start_ms is not None:
            query += " AND timestamp >= ?"
            params.append(start_ms)
        if end_ms is not None:
            query += " AND timestamp <= ?"
            params.append(end_ms)
        query += " ORDER BY timestamp DESC"
        return [
            AlarmRecord(
                id=r["id"],
                equipment_id=r["equipment_id"],
                timestamp=from_millis(r["timestamp"]),
                severity=r["severity"],
                metric_type=r["metric_type"] or "UNKNOWN",
                metric_value=r["metric_value"] or 0.0,
                threshold_value=r["threshold_value"] or 0.0,
                description=r["description"] or "",
            )
            for r in self.fetch_query(query, tuple(params))
        ]

    def count_alarms(self, equipment_id: str, start_ms: int, end_ms: int) -> int:
        rows = self.fetch_query(
            "SELECT COUNT(*) AS n FROM alarms WHERE equipment_id = ? AND timestamp BETWEEN ? AND ?",
            (equipment_id, start_ms, end_ms),
        )
        return int(rows[0]["n"]) if rows else 0

    def fetch_maintenance(self, equipment_id: str) -> List[MaintenanceRecord]:
        """Maintenance records for one equipment, oldest first."""
        return [
            MaintenanceRecord(
                id=r["id"],
                equipment_id=r["equipment_id"],
                performed_at=from_millis(r["performed_at"]),
                description=r["description"] or "",
            )
            for r in self.fetch_query(
                "SELECT * FROM maintenance WHERE equipment_id = ? ORDER BY performed_at",
                (equipment_id,),
            )
        ]


def _equipment_from_row(row: Dict[str, Any]) -> EquipmentRecord:
    return EquipmentRecord(
        id=row["id"],
        name=row["name"] or row["id"],
        status=row["status"] or "normal",
        installed_at=from_millis(row["installed_at"]),
    )
