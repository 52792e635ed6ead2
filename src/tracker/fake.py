"""Fake transport for testing."""

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

from src.tracker.transport import TransportResponse


@dataclass
class SentRequest:
    """Single recorded POST."""

    url: str
    headers: Dict[str, str]
    payload: Dict[str, Any]

    @property
    def event(self) -> str:
        return self.payload["event"]

    @property
    def properties(self) -> Dict[str, Any]:
        return self.payload["properties"]


class FakeTransport:
    """In-memory test double for the ``Transport`` protocol.

    Records every request (with the JSON body decoded) for assertions.
    Set ``status_code`` to simulate an error response, or ``error`` to make
    ``post`` raise instead of answering.

    Usage:
        transport = FakeTransport()
        tracker = Tracker(config, transport=transport)
        await tracker.capture("signup")
        assert transport.has("signup")
    """

    def __init__(self, status_code: int = 200, body: str = '{"status": 1}') -> None:
        self.status_code = status_code
        self.body = body
        self.error: Optional[Exception] = None
        self.requests: list[SentRequest] = []
        self.closed = False

    async def post(self, url, content, headers):
        self.requests.append(
            SentRequest(url=url, headers=dict(headers), payload=json.loads(content))
        )
        if self.error is not None:
            raise self.error
        return TransportResponse(status_code=self.status_code, body=self.body)

    async def aclose(self) -> None:
        self.closed = True

    @property
    def events(self) -> list[str]:
        return [r.event for r in self.requests]

    def has(self, event_name: str) -> bool:
        """Return True if a request for the given event was sent."""
        return any(r.event == event_name for r in self.requests)

    def get(self, event_name: str) -> SentRequest:
        """Return the first request matching name, or raise AssertionError."""
        for r in self.requests:
            if r.event == event_name:
                return r
        raise AssertionError(
            f"No request for event '{event_name}' sent. Sent: {self.events}"
        )

    def get_all(self, event_name: str) -> list[SentRequest]:
        """Return all requests matching name."""
        return [r for r in self.requests if r.event == event_name]

    def clear(self) -> None:
        """Reset recorded requests."""
        self.requests.clear()
