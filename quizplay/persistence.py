from __future__ import annotations

import logging
import sqlite3
import time
from pathlib import Path

from .results import ResultRecord

SCHEMA_VERSION = 1

logger = logging.getLogger(__name__)


def open_db(path: Path) -> sqlite3.Connection:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path)
    conn.execute("PRAGMA foreign_keys=ON;")
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    _migrate(conn)
    return conn


def _utc_now_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(time.time()))


def _migrate(conn: sqlite3.Connection) -> None:
    row = conn.execute("PRAGMA user_version;").fetchone()
    ver = int(row[0]) if row else 0
    if ver >= SCHEMA_VERSION:
        return

    with conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS session_result (
                id INTEGER PRIMARY KEY,
                user_id TEXT,
                content_id TEXT NOT NULL,
                evaluation_event_id TEXT,
                normalized_score INTEGER NOT NULL,
                max_score INTEGER NOT NULL,
                passed INTEGER NOT NULL,
                elapsed_seconds INTEGER NOT NULL,
                raw_score INTEGER NOT NULL,
                max_raw_score INTEGER NOT NULL,
                reason TEXT NOT NULL,
                lives_remaining INTEGER,
                completed_at_utc TEXT NOT NULL
            );
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS metric (
                result_id INTEGER NOT NULL REFERENCES session_result(id) ON DELETE CASCADE,
                key TEXT NOT NULL,
                value TEXT NOT NULL,
                PRIMARY KEY (result_id, key)
            );
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS attempt_event (
                id INTEGER PRIMARY KEY,
                result_id INTEGER NOT NULL REFERENCES session_result(id) ON DELETE CASCADE,
                seq INTEGER NOT NULL,
                item_id TEXT NOT NULL,
                response TEXT NOT NULL,
                status TEXT NOT NULL,
                points_awarded INTEGER NOT NULL,
                lives_cost INTEGER NOT NULL,
                at_ms INTEGER NOT NULL
            );
            """
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_attempt_event_result_seq ON attempt_event(result_id, seq);"
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_session_result_user_content ON session_result(user_id, content_id);"
        )
        conn.execute(f"PRAGMA user_version={SCHEMA_VERSION};")


class SqliteResultsStore:
    """ResultsStore backed by a local sqlite file.

    One connection per write: session_result -> metric + attempt_event.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = Path(db_path)

    @property
    def db_path(self) -> Path:
        return self._db_path

    def save_result(self, record: ResultRecord) -> int:
        conn = open_db(self._db_path)
        try:
            result_id = _insert_result(conn=conn, record=record)
        finally:
            conn.close()
        logger.info(
            "result_saved: id=%s content_id=%s user_id=%s score=%s",
            result_id,
            record.content_id,
            record.user_id,
            record.normalized_score,
        )
        return result_id

    def list_results(self, *, user_id: str | None = None, content_id: str | None = None) -> list[dict[str, object]]:
        conn = open_db(self._db_path)
        try:
            conn.row_factory = sqlite3.Row
            clauses = []
            params: list[object] = []
            if user_id is not None:
                clauses.append("user_id = ?")
                params.append(user_id)
            if content_id is not None:
                clauses.append("content_id = ?")
                params.append(content_id)
            where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
            rows = conn.execute(f"SELECT * FROM session_result {where} ORDER BY id", params).fetchall()
            return [dict(r) for r in rows]
        finally:
            conn.close()

    def metrics_for(self, result_id: int) -> dict[str, str]:
        conn = open_db(self._db_path)
        try:
            rows = conn.execute("SELECT key, value FROM metric WHERE result_id = ?", (int(result_id),)).fetchall()
            return {str(k): str(v) for k, v in rows}
        finally:
            conn.close()

    def attempts_for(self, result_id: int) -> list[tuple[int, str, str, str]]:
        conn = open_db(self._db_path)
        try:
            rows = conn.execute(
                "SELECT seq, item_id, response, status FROM attempt_event WHERE result_id = ? ORDER BY seq",
                (int(result_id),),
            ).fetchall()
            return [(int(a), str(b), str(c), str(d)) for a, b, c, d in rows]
        finally:
            conn.close()


def _insert_result(*, conn: sqlite3.Connection, record: ResultRecord) -> int:
    with conn:
        cur = conn.execute(
            """
            INSERT INTO session_result(
                user_id, content_id, evaluation_event_id,
                normalized_score, max_score, passed, elapsed_seconds,
                raw_score, max_raw_score, reason, lives_remaining,
                completed_at_utc
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.user_id,
                str(record.content_id),
                record.evaluation_event_id,
                int(record.normalized_score),
                int(record.max_score),
                1 if record.passed else 0,
                int(record.elapsed_seconds),
                int(record.raw_score),
                int(record.max_raw_score),
                str(record.reason.value),
                None if record.lives_remaining is None else int(record.lives_remaining),
                _utc_now_iso(),
            ),
        )
        result_id = int(cur.lastrowid)

        # Integrity metrics are only stored when the host tracked them.
        metrics: dict[str, str] = {}
        if record.focus_losses is not None:
            metrics["focus_losses"] = str(record.focus_losses)
        if record.suspicious is not None:
            metrics["suspicious"] = "1" if record.suspicious else "0"
        if record.clipboard_attempts is not None:
            metrics["clipboard_attempts"] = str(record.clipboard_attempts)
        for k, v in metrics.items():
            conn.execute("INSERT INTO metric(result_id, key, value) VALUES (?, ?, ?)", (result_id, k, v))

        for a in record.attempts:
            conn.execute(
                """
                INSERT INTO attempt_event(
                    result_id, seq, item_id, response, status,
                    points_awarded, lives_cost, at_ms
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    result_id,
                    int(a.seq),
                    str(a.item_id),
                    str(a.response),
                    str(a.status.value),
                    int(a.points_awarded),
                    int(a.lives_cost),
                    int(round(a.at_s * 1000.0)),
                ),
            )

    return result_id
