"""
Automation Log Store — append-only record of what automation did.

Every rule outcome of every processed event becomes one row. A fatal rule
store failure becomes a single row without a rule id. The store is how
operators see automation failures, since they never block the end user.

Behavioral Contract:
- Append-only. No row is ever modified or deleted.
- Queryable by rule, by recency and by failure (optionally retryable only).
"""

import json
import sqlite3
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from automation_kernel.models.outcome import EventOutcome, RuleOutcome, RuleStatus


class LogStatus:
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    PARTIAL = "PARTIAL"
    SKIPPED = "SKIPPED"


def _status_for(rule_outcome: RuleOutcome) -> str:
    if rule_outcome.status == RuleStatus.SKIPPED_CANCELLED:
        return LogStatus.SKIPPED
    outcomes = rule_outcome.action_outcomes
    failed = [o for o in outcomes if not o.succeeded]
    if not failed:
        return LogStatus.SUCCESS
    if len(failed) == len(outcomes):
        return LogStatus.FAILED
    return LogStatus.PARTIAL


class AutomationLogStore:
    """
    SQLite-backed execution log.
    Prototype: SQLite. Production: the host application's database.
    """

    def __init__(self, db_path: str = ":memory:"):
        self.db_path = db_path
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self) -> None:
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS automation_logs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                event_type TEXT NOT NULL,
                occurred_at TEXT NOT NULL,
                rule_id TEXT,
                rule_name TEXT,
                status TEXT NOT NULL,
                message TEXT NOT NULL,
                error_details TEXT,
                retryable INTEGER NOT NULL DEFAULT 0,
                execution_time REAL NOT NULL DEFAULT 0,
                triggered_data TEXT NOT NULL,
                executed_actions TEXT NOT NULL,
                created_at TEXT NOT NULL
            )
        """)
        self._conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_automation_logs_rule_id ON automation_logs(rule_id)
        """)
        self._conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_automation_logs_status ON automation_logs(status)
        """)
        self._conn.commit()

    def record(self, outcome: EventOutcome) -> List[int]:
        """Append one row per rule outcome. Returns the new row ids."""
        event = outcome.event
        triggered = json.dumps(event.payload, default=str)
        created_at = datetime.now(timezone.utc).isoformat()
        ids = []

        if outcome.fatal_error is not None:
            ids.append(self._insert(
                event_type=event.type.value,
                occurred_at=event.occurred_at.isoformat(),
                rule_id=None,
                rule_name=None,
                status=LogStatus.FAILED,
                message=outcome.fatal_message or outcome.fatal_error.value,
                error_details=json.dumps({"kind": outcome.fatal_error.value}),
                retryable=False,
                execution_time=0.0,
                triggered_data=triggered,
                executed_actions="[]",
                created_at=created_at,
            ))

        for rule_outcome in outcome.rule_outcomes:
            status = _status_for(rule_outcome)
            failed = [o for o in rule_outcome.action_outcomes if not o.succeeded]
            succeeded = len(rule_outcome.action_outcomes) - len(failed)
            if status == LogStatus.SKIPPED:
                message = "Skipped: cancelled before start"
            else:
                message = (
                    f"Executed {succeeded} of "
                    f"{len(rule_outcome.action_outcomes)} actions"
                )
            error_details = None
            if failed:
                error_details = json.dumps([
                    {
                        "action": o.action.type.value,
                        "kind": o.error.value if o.error else None,
                        "message": o.message,
                    }
                    for o in failed
                ])
            ids.append(self._insert(
                event_type=event.type.value,
                occurred_at=event.occurred_at.isoformat(),
                rule_id=rule_outcome.rule.id,
                rule_name=rule_outcome.rule.name,
                status=status,
                message=message,
                error_details=error_details,
                retryable=any(o.error and o.error.retryable for o in failed),
                execution_time=rule_outcome.duration_seconds,
                triggered_data=triggered,
                executed_actions=json.dumps([
                    o.model_dump(mode="json") for o in rule_outcome.action_outcomes
                ]),
                created_at=created_at,
            ))

        self._conn.commit()
        return ids

    def _insert(self, **row: Any) -> int:
        columns = ", ".join(row)
        placeholders = ", ".join("?" for _ in row)
        cursor = self._conn.execute(
            f"INSERT INTO automation_logs ({columns}) VALUES ({placeholders})",
            [int(v) if isinstance(v, bool) else v for v in row.values()],
        )
        return cursor.lastrowid

    def _row_to_dict(self, row: sqlite3.Row) -> Dict[str, Any]:
        entry = dict(row)
        entry["retryable"] = bool(entry["retryable"])
        entry["triggered_data"] = json.loads(entry["triggered_data"])
        entry["executed_actions"] = json.loads(entry["executed_actions"])
        if entry["error_details"]:
            entry["error_details"] = json.loads(entry["error_details"])
        return entry

    def query_recent(self, limit: int = 50) -> List[Dict[str, Any]]:
        rows = self._conn.execute(
            "SELECT * FROM automation_logs ORDER BY id DESC LIMIT ?", (limit,)
        ).fetchall()
        return [self._row_to_dict(r) for r in rows]

    def query_by_rule(self, rule_id: str, limit: int = 50) -> List[Dict[str, Any]]:
        rows = self._conn.execute(
            "SELECT * FROM automation_logs WHERE rule_id = ? ORDER BY id DESC LIMIT ?",
            (rule_id, limit),
        ).fetchall()
        return [self._row_to_dict(r) for r in rows]

    def query_failures(
        self, retryable_only: bool = False, limit: int = 50
    ) -> List[Dict[str, Any]]:
        sql = "SELECT * FROM automation_logs WHERE status IN (?, ?)"
        params: List[Any] = [LogStatus.FAILED, LogStatus.PARTIAL]
        if retryable_only:
            sql += " AND retryable = 1"
        sql += " ORDER BY id DESC LIMIT ?"
        params.append(limit)
        rows = self._conn.execute(sql, params).fetchall()
        return [self._row_to_dict(r) for r in rows]

    def count(self, rule_id: Optional[str] = None) -> int:
        if rule_id is None:
            row = self._conn.execute("SELECT COUNT(*) FROM automation_logs").fetchone()
        else:
            row = self._conn.execute(
                "SELECT COUNT(*) FROM automation_logs WHERE rule_id = ?", (rule_id,)
            ).fetchone()
        return row[0]
