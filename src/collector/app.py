"""FastAPI capture sink for local development and end-to-end tests.

Accepts tracker payloads on ``POST /capture/``, validates them against the
wire schema, persists them to the DuckDB warehouse, and answers the way an
analytics ingestion endpoint does (HTTP 200 with ``{"status": 1}``).
"""

from collections.abc import Iterable
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

import duckdb
from fastapi import FastAPI, HTTPException, Request

from src.collector.schemas import CapturePayload, CaptureResponse
from src.core.logging import get_logger
from src.warehouse.db import get_connection, init_db, insert_event

DB_PATH = Path("data/captures.duckdb")

logger = get_logger("src.collector")


def create_app(
    db_path: Path | str = DB_PATH,
    conn: Optional[duckdb.DuckDBPyConnection] = None,
    api_keys: Optional[Iterable[str]] = None,
) -> FastAPI:
    """Build the sink.

    With ``conn`` the app uses that connection as-is and leaves closing it
    to the caller; otherwise it opens ``db_path`` on startup. ``api_keys``
    restricts which project keys are accepted; ``None`` accepts any.
    """
    accepted_keys = frozenset(api_keys) if api_keys is not None else None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Open the warehouse on startup unless a connection was supplied."""
        if conn is not None:
            yield
            return
        owned = get_connection(db_path)
        init_db(owned)
        app.state.db = owned
        yield
        owned.close()

    app = FastAPI(
        title="Capture Sink",
        description="Receives tracker events and stores them in DuckDB.",
        version="0.1.0",
        lifespan=lifespan,
    )
    if conn is not None:
        init_db(conn)
        app.state.db = conn

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    @app.post("/capture/", response_model=CaptureResponse)
    async def capture(payload: CapturePayload, request: Request) -> CaptureResponse:
        """Store one event."""
        # runs on the event loop: writes to the shared connection must not overlap
        if accepted_keys is not None and payload.api_key not in accepted_keys:
            logger.warning("Rejected capture with unknown api key", extra={"event": payload.event})
            raise HTTPException(status_code=401, detail="invalid api key")

        insert_event(request.app.state.db, payload.model_dump(mode="json"))
        logger.info(
            "Captured event",
            extra={"event": payload.event, "distinct_id": payload.distinct_id},
        )
        return CaptureResponse()

    return app


app = create_app()
