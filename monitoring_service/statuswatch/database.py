import json
import os
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path

from opentelemetry import trace
from opentelemetry.trace import SpanKind

from statuswatch.snapshots import Snapshot, to_utc

DB_PATH = Path(os.environ.get("DATABASE_PATH", str(Path(__file__).parent.parent / "statuswatch.db")))

SCHEMA = """
CREATE TABLE IF NOT EXISTS snapshots (
    id TEXT PRIMARY KEY,
    timestamp TEXT NOT NULL,
    document TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_snapshots_timestamp ON snapshots(timestamp);
"""


def _get_db_path() -> Path:
    return DB_PATH


def _ts_key(value: datetime) -> str:
    """Fixed-width UTC string; lexical order is chronological order."""
    return to_utc(value).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def _span(name: str, operation: str, **attributes):
    tracer = trace.get_tracer(__name__)
    return tracer.start_as_current_span(
        name,
        kind=SpanKind.INTERNAL,
        attributes={"db.system": "sqlite", "db.operation": operation, **attributes},
    )


def init_db():
    db_path = _get_db_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)

    should_reset = os.environ.get("DB_RESET_ON_START", "false").lower() == "true"

    with sqlite3.connect(str(db_path)) as conn:
        if should_reset:
            conn.execute("DROP TABLE IF EXISTS snapshots")
        conn.executescript(SCHEMA)


@contextmanager
def get_connection():
    conn = sqlite3.connect(str(_get_db_path()))
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()


def _row_to_snapshot(row: sqlite3.Row) -> Snapshot:
    return Snapshot.from_document(json.loads(row["document"]), snapshot_id=row["id"])


def insert_snapshot(snapshot: Snapshot) -> str:
    """Append a snapshot and return its storage-assigned id."""
    snapshot_id = uuid.uuid4().hex
    with _span("db insert_snapshot", "INSERT", **{"db.snapshot.ping_count": len(snapshot.ping_results)}):
        with get_connection() as conn:
            conn.execute(
                "INSERT INTO snapshots (id, timestamp, document) VALUES (?, ?, ?)",
                (snapshot_id, _ts_key(snapshot.timestamp), json.dumps(snapshot.to_document())),
            )
    return snapshot_id


def get_latest_snapshot() -> Snapshot | None:
    with _span("db query get_latest_snapshot", "SELECT"):
        with get_connection() as conn:
            row = conn.execute(
                "SELECT id, document FROM snapshots ORDER BY timestamp DESC, id DESC LIMIT 1"
            ).fetchone()
    return _row_to_snapshot(row) if row else None


def list_snapshots(limit: int = 10, start_after: datetime | None = None) -> list[Snapshot]:
    """
    Page through snapshots newest first.

    ``start_after`` is the timestamp of the last item of the previous page;
    only strictly older snapshots are returned. A page shorter than
    ``limit`` means there is nothing more to read.
    """
    with _span("db query list_snapshots", "SELECT", **{"db.query.limit": limit}) as span:
        query = "SELECT id, document FROM snapshots"
        params: list = []
        if start_after is not None:
            query += " WHERE timestamp < ?"
            params.append(_ts_key(start_after))
        query += " ORDER BY timestamp DESC, id DESC LIMIT ?"
        params.append(limit)

        with get_connection() as conn:
            rows = conn.execute(query, params).fetchall()

        result = [_row_to_snapshot(row) for row in rows]
        span.set_attribute("db.result_count", len(result))
        return result


def delete_snapshots_before(cutoff: datetime) -> int:
    with _span("db delete_snapshots_before", "DELETE") as span:
        with get_connection() as conn:
            cursor = conn.execute("DELETE FROM snapshots WHERE timestamp < ?", (_ts_key(cutoff),))
            deleted = cursor.rowcount
        span.set_attribute("db.deleted_count", deleted)
        return deleted


def purge_older_than(days: int, now: datetime | None = None) -> int:
    """Delete snapshots older than ``days`` days; returns how many went."""
    cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=days)
    return delete_snapshots_before(cutoff)


def get_total_snapshots() -> int:
    with get_connection() as conn:
        row = conn.execute("SELECT COUNT(*) AS cnt FROM snapshots").fetchone()
    return row["cnt"]


def check_connection() -> bool:
    try:
        with get_connection() as conn:
            conn.execute("SELECT 1")
        return True
    except sqlite3.Error:
        return False
