from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from kielcleanup.core.errors import StepStatusError
from kielcleanup.core.runtime.context import RunContext


class StepStatus(str, Enum):
    LOCKED = "LOCKED"
    OPEN = "OPEN"
    INWORK = "INWORK"
    DONE = "DONE"
    ERROR = "ERROR"
    DEACTIVATED = "DEACTIVATED"


def _json_dumps(obj: Any) -> str:
    """Deterministic JSON serialization.

    Notes:
    - Expects JSON-safe values (event payloads are already converted).
    """

    return json.dumps(obj, sort_keys=True, separators=(",", ":"))


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(slots=True)
class SQLiteStepStatusStore:
    """SQLite persistence for the workflow steps of one process.

    Also keeps the event ledger of each cleanup run for later review.

    Notes:
    - Values read from the database are treated as untrusted.
    - Step titles are not unique; updates apply to every step with the title.

    Complexity
    - disable_step: O(s) for s steps of the process
    - save_run: O(e) inserts for e events
    """

    db_path: Path
    process_id: str = "default"

    def __post_init__(self) -> None:
        self.db_path = Path(self.db_path)

    def connect(self) -> sqlite3.Connection:
        con = sqlite3.connect(str(self.db_path))
        con.execute("PRAGMA foreign_keys = ON")
        return con

    def init_schema(self) -> None:
        """Create tables if missing."""

        try:
            with self.connect() as con:
                con.executescript(
                    """
                    CREATE TABLE IF NOT EXISTS steps (
                        process_id TEXT NOT NULL,
                        idx INTEGER NOT NULL,
                        title TEXT NOT NULL,
                        status TEXT NOT NULL,
                        updated_at TEXT NOT NULL,
                        PRIMARY KEY (process_id, idx)
                    );

                    CREATE TABLE IF NOT EXISTS runs (
                        run_id TEXT PRIMARY KEY,
                        process_id TEXT NOT NULL,
                        created_at TEXT NOT NULL,
                        success INTEGER NOT NULL,
                        cause TEXT
                    );

                    CREATE TABLE IF NOT EXISTS run_events (
                        run_id TEXT NOT NULL,
                        idx INTEGER NOT NULL,
                        event_type TEXT NOT NULL,
                        payload_json TEXT NOT NULL,
                        previous_event_hash TEXT,
                        event_hash TEXT,
                        PRIMARY KEY (run_id, idx),
                        FOREIGN KEY (run_id) REFERENCES runs(run_id) ON DELETE CASCADE
                    );
                    """
                )
        except sqlite3.Error as e:
            raise StepStatusError(f"cannot initialize step store {self.db_path}: {e}") from e

    def add_step(self, title: str, status: StepStatus | str = StepStatus.OPEN) -> int:
        """Append a step to the process and return its position."""

        self.init_schema()
        status = StepStatus(status)
        try:
            with self.connect() as con:
                row = con.execute(
                    "SELECT COALESCE(MAX(idx), -1) + 1 FROM steps WHERE process_id = ?",
                    (self.process_id,),
                ).fetchone()
                idx = int(row[0])
                con.execute(
                    "INSERT INTO steps(process_id, idx, title, status, updated_at) VALUES(?,?,?,?,?)",
                    (self.process_id, idx, title, status.value, _now_iso()),
                )
        except sqlite3.Error as e:
            raise StepStatusError(f"cannot add step {title!r}: {e}") from e
        return idx

    def list_steps(self) -> List[Dict[str, Any]]:
        """List the steps of the process in workflow order."""

        self.init_schema()
        try:
            with self.connect() as con:
                rows = con.execute(
                    "SELECT idx, title, status, updated_at FROM steps WHERE process_id = ? ORDER BY idx",
                    (self.process_id,),
                ).fetchall()
        except sqlite3.Error as e:
            raise StepStatusError(f"cannot list steps: {e}") from e
        return [{"idx": int(r[0]), "title": r[1], "status": r[2], "updated_at": r[3]} for r in rows]

    def disable_step(self, name: str) -> int:
        """Mark every step titled `name` as DEACTIVATED.

        Returns: number of steps changed (0 if the process has no such step).
        """

        self.init_schema()
        try:
            with self.connect() as con:
                cur = con.execute(
                    "UPDATE steps SET status = ?, updated_at = ? WHERE process_id = ? AND title = ?",
                    (StepStatus.DEACTIVATED.value, _now_iso(), self.process_id, name),
                )
                return int(cur.rowcount)
        except sqlite3.Error as e:
            raise StepStatusError(f"cannot disable step {name!r}: {e}") from e

    def save_run(self, ctx: RunContext, *, success: bool, cause: Optional[str] = None) -> None:
        """Persist a finished run and its sealed events."""

        self.init_schema()
        try:
            with self.connect() as con:
                con.execute(
                    "INSERT OR REPLACE INTO runs(run_id, process_id, created_at, success, cause) VALUES(?,?,?,?,?)",
                    (ctx.run_id, self.process_id, ctx.created_at.isoformat(), int(success), cause),
                )
                con.execute("DELETE FROM run_events WHERE run_id = ?", (ctx.run_id,))
                for idx, ev in enumerate(ctx.get_events()):
                    con.execute(
                        """INSERT INTO run_events(
                            run_id, idx, event_type, payload_json, previous_event_hash, event_hash
                        ) VALUES(?,?,?,?,?,?)""",
                        (
                            ctx.run_id,
                            idx,
                            ev.event_type,
                            _json_dumps(ev.to_payload()),
                            ev.previous_event_hash,
                            ev.event_hash,
                        ),
                    )
        except sqlite3.Error as e:
            raise StepStatusError(f"cannot save run {ctx.run_id}: {e}") from e

    def list_runs(self, *, limit: int = 50) -> List[Dict[str, Any]]:
        """List recent runs of the process, newest first."""

        self.init_schema()
        limit_i = max(1, min(500, int(limit)))
        try:
            with self.connect() as con:
                rows = con.execute(
                    """SELECT r.run_id, r.created_at, r.success, r.cause,
                              (SELECT COUNT(*) FROM run_events e WHERE e.run_id = r.run_id)
                       FROM runs r WHERE r.process_id = ?
                       ORDER BY r.created_at DESC LIMIT ?""",
                    (self.process_id, limit_i),
                ).fetchall()
        except sqlite3.Error as e:
            raise StepStatusError(f"cannot list runs: {e}") from e
        return [
            {
                "run_id": r[0],
                "created_at": r[1],
                "success": bool(r[2]),
                "cause": r[3],
                "event_count": int(r[4]),
            }
            for r in rows
        ]
