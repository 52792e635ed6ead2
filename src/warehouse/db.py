"""DuckDB storage for the development capture sink.

Captured events land in an append-only table. DuckDB is used as a local,
zero-cost database so the tracker can be exercised end to end without a
real analytics backend.
"""

import json
from pathlib import Path
from typing import Any, Optional

import duckdb

DEFAULT_DB_PATH = Path("data/captures.duckdb")

# Schema for the captured events table
_CREATE_SEQUENCE = "CREATE SEQUENCE IF NOT EXISTS captured_events_seq START 1"

_CREATE_EVENTS_TABLE = """
CREATE TABLE IF NOT EXISTS captured_events (
    row_id      BIGINT PRIMARY KEY DEFAULT nextval('captured_events_seq'),
    api_key     VARCHAR NOT NULL,
    event       VARCHAR NOT NULL,
    distinct_id VARCHAR NOT NULL,
    timestamp   TIMESTAMP WITH TIME ZONE NOT NULL,
    properties  JSON,
    received_at TIMESTAMP WITH TIME ZONE DEFAULT now()
);
"""


def get_connection(db_path: Path | str = DEFAULT_DB_PATH) -> duckdb.DuckDBPyConnection:
    """Open a DuckDB connection, creating the database file if needed.

    Pass \":memory:\" for an in-memory database (useful for testing).
    """
    if str(db_path) == ":memory:":
        return duckdb.connect(":memory:")
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return duckdb.connect(str(db_path))


def init_db(conn: duckdb.DuckDBPyConnection) -> None:
    """Create the captured_events table if it doesn't exist."""
    conn.execute(_CREATE_SEQUENCE)
    conn.execute(_CREATE_EVENTS_TABLE)


def insert_event(conn: duckdb.DuckDBPyConnection, event: dict[str, Any]) -> None:
    """Append one captured event.

    ``event`` is a capture payload dumped in JSON mode, so the timestamp
    is already an ISO-8601 string.
    """
    conn.execute(
        """
        INSERT INTO captured_events (api_key, event, distinct_id, timestamp, properties)
        VALUES (?, ?, ?, ?, ?)
        """,
        [
            event["api_key"],
            event["event"],
            event["distinct_id"],
            event["timestamp"],
            json.dumps(event.get("properties", {})),
        ],
    )


def count_events(conn: duckdb.DuckDBPyConnection, event: Optional[str] = None) -> int:
    """Return the number of stored events, optionally for one event name."""
    if event is None:
        result = conn.execute("SELECT COUNT(*) FROM captured_events").fetchone()
    else:
        result = conn.execute(
            "SELECT COUNT(*) FROM captured_events WHERE event = ?", [event]
        ).fetchone()
    return result[0]


def fetch_events(
    conn: duckdb.DuckDBPyConnection, distinct_id: Optional[str] = None
) -> list[dict[str, Any]]:
    """Return stored events in arrival order with properties decoded."""
    query = "SELECT event, distinct_id, properties FROM captured_events"
    params: list[Any] = []
    if distinct_id is not None:
        query += " WHERE distinct_id = ?"
        params.append(distinct_id)
    query += " ORDER BY row_id"

    rows = conn.execute(query, params).fetchall()
    return [
        {"event": event, "distinct_id": did, "properties": json.loads(props)}
        for event, did, props in rows
    ]
