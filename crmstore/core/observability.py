"""
ObservabilityLogger - Phase-based activity log for the CRM store.

Records what callers did against the store (lookups, searches, writes,
errors) as structured rows in a separate SQLite database.
"""

import json
import sqlite3
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional


@dataclass
class LogEntry:
    """A log entry from the observability database."""

    id: int
    ts: str
    session: str
    phase: str
    data: Dict[str, Any] = field(default_factory=dict)


class ObservabilityLogger:
    """Phase-based logging of store activity.

    Phases:
    - read: Keyed or prefix lookups
    - search: Substring search and filtered listings
    - aggregate: Statistics
    - write: Adds, updates and deletes
    - error: Failures and how they were reported
    - server: Server lifecycle (start, stop)
    """

    PHASES = [
        "read",
        "search",
        "aggregate",
        "write",
        "error",
        "server",
    ]

    def __init__(self, db_path: Path):
        """Initialize logger with database path.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()
        self.session_id = self._new_session()

    def _init_db(self) -> None:
        """Create tables if they don't exist."""
        with sqlite3.connect(self.db_path) as conn:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    ts TEXT NOT NULL DEFAULT (datetime('now')),
                    session TEXT NOT NULL,
                    phase TEXT NOT NULL,
                    data JSON NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_session ON logs(session);
                CREATE INDEX IF NOT EXISTS idx_phase ON logs(phase);
                CREATE INDEX IF NOT EXISTS idx_ts ON logs(ts);

                CREATE VIEW IF NOT EXISTS errors AS
                SELECT id, ts, session,
                       json_extract(data, '$.error_type') as error_type,
                       json_extract(data, '$.tool') as tool,
                       json_extract(data, '$.message') as message,
                       data
                FROM logs WHERE phase = 'error';

                CREATE VIEW IF NOT EXISTS writes AS
                SELECT id, ts, session,
                       json_extract(data, '$.person_id') as person_id,
                       json_extract(data, '$.change_type') as change_type,
                       json_extract(data, '$.changed') as changed
                FROM logs WHERE phase = 'write';
            """)

    def _new_session(self) -> str:
        """Generate a new session ID."""
        return f"session_{datetime.now().strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:6]}"

    def new_session(self) -> str:
        """Start a new session and return its ID."""
        self.session_id = self._new_session()
        return self.session_id

    def log(self, phase: str, data: Dict[str, Any]) -> None:
        """Log a phase with structured data.

        Args:
            phase: One of PHASES
            data: Structured data for the log entry

        Raises:
            ValueError: If phase is unknown
        """
        if phase not in self.PHASES:
            raise ValueError(f"Invalid phase: {phase}. Must be one of {self.PHASES}")

        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO logs (session, phase, data)
                VALUES (?, ?, ?)
                """,
                (self.session_id, phase, json.dumps(data, default=str)),
            )

    # Convenience methods

    def log_read(self, tool: str, arguments: Dict[str, Any], found: bool) -> None:
        """Log a single-record lookup."""
        self.log("read", {"tool": tool, "arguments": arguments, "found": found})

    def log_search(self, tool: str, arguments: Dict[str, Any], result_count: int) -> None:
        """Log a multi-record lookup or search."""
        self.log(
            "search",
            {"tool": tool, "arguments": arguments, "result_count": result_count},
        )

    def log_aggregate(self, tool: str, result: Any) -> None:
        """Log a statistics call and its result."""
        self.log("aggregate", {"tool": tool, "result": result})

    def log_write(
        self,
        person_id: Optional[str],
        change_type: str,
        changed: bool,
        tool: Optional[str] = None,
    ) -> None:
        """Log a mutation.

        Args:
            person_id: Affected person ID
            change_type: create, update or delete
            changed: Whether a record was actually created/changed/removed
            tool: Optional tool name that triggered the write
        """
        data: Dict[str, Any] = {
            "person_id": person_id,
            "change_type": change_type,
            "changed": changed,
        }
        if tool:
            data["tool"] = tool
        self.log("write", data)

    def log_error(
        self,
        error_type: str,
        message: str,
        tool: Optional[str] = None,
        details: Optional[Dict] = None,
    ) -> None:
        """Log an error.

        Args:
            error_type: Error code or exception type
            message: Human-readable message
            tool: Optional tool involved
            details: Optional additional details
        """
        data: Dict[str, Any] = {"error_type": error_type, "message": message}
        if tool:
            data["tool"] = tool
        if details:
            data["details"] = details
        self.log("error", data)

    # Query methods

    @staticmethod
    def _to_entries(rows: List[sqlite3.Row]) -> List[LogEntry]:
        return [
            LogEntry(
                id=row["id"],
                ts=row["ts"],
                session=row["session"],
                phase=row["phase"],
                data=json.loads(row["data"]),
            )
            for row in rows
        ]

    def get_session(self, session_id: Optional[str] = None) -> List[LogEntry]:
        """Get all logs for a session (defaults to current session)."""
        session_id = session_id or self.session_id

        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            rows = conn.execute(
                "SELECT * FROM logs WHERE session = ? ORDER BY id",
                (session_id,),
            ).fetchall()
            return self._to_entries(rows)

    def get_errors(self, since: Optional[str] = None, limit: int = 100) -> List[LogEntry]:
        """Get error logs.

        Args:
            since: Optional timestamp ("YYYY-MM-DD HH:MM:SS") to filter from
            limit: Maximum results

        Returns:
            Error entries, newest first
        """
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row

            if since:
                rows = conn.execute(
                    """
                    SELECT * FROM logs
                    WHERE phase = 'error' AND ts >= ?
                    ORDER BY id DESC LIMIT ?
                    """,
                    (since, limit),
                ).fetchall()
            else:
                rows = conn.execute(
                    """
                    SELECT * FROM logs
                    WHERE phase = 'error'
                    ORDER BY id DESC LIMIT ?
                    """,
                    (limit,),
                ).fetchall()

            return self._to_entries(rows)

    def get_writes(self, change_type: Optional[str] = None, limit: int = 100) -> List[LogEntry]:
        """Get write logs, optionally filtered by change type (create, update, delete)."""
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row

            if change_type:
                rows = conn.execute(
                    """
                    SELECT * FROM logs
                    WHERE phase = 'write' AND json_extract(data, '$.change_type') = ?
                    ORDER BY id DESC LIMIT ?
                    """,
                    (change_type, limit),
                ).fetchall()
            else:
                rows = conn.execute(
                    """
                    SELECT * FROM logs
                    WHERE phase = 'write'
                    ORDER BY id DESC LIMIT ?
                    """,
                    (limit,),
                ).fetchall()

            return self._to_entries(rows)

    def latest_session(self) -> Optional[str]:
        """ID of the most recently logged session, if any."""
        with sqlite3.connect(self.db_path) as conn:
            row = conn.execute("SELECT session FROM logs ORDER BY id DESC LIMIT 1").fetchone()
            return row[0] if row else None

    def get_session_summary(self, session_id: Optional[str] = None) -> Dict[str, Any]:
        """Get summary statistics for a session.

        Args:
            session_id: Session ID (defaults to current session)

        Returns:
            Dictionary with phase counts, write counts by change type,
            and error count
        """
        session_id = session_id or self.session_id

        with sqlite3.connect(self.db_path) as conn:
            phase_counts = {}
            for row in conn.execute(
                """
                SELECT phase, COUNT(*) as count
                FROM logs WHERE session = ?
                GROUP BY phase
                """,
                (session_id,),
            ):
                phase_counts[row[0]] = row[1]

            change_counts = {}
            for row in conn.execute(
                """
                SELECT json_extract(data, '$.change_type') as change_type, COUNT(*) as count
                FROM logs
                WHERE session = ? AND phase = 'write'
                GROUP BY json_extract(data, '$.change_type')
                """,
                (session_id,),
            ):
                if row[0]:
                    change_counts[row[0]] = row[1]

            return {
                "session_id": session_id,
                "phase_counts": phase_counts,
                "change_counts": change_counts,
                "error_count": phase_counts.get("error", 0),
                "total_logs": sum(phase_counts.values()),
            }
