"""Exception types raised by the tracker client.

Only ``TrackerNotInitializedError`` ever reaches callers. Delivery errors
are raised inside ``Tracker.capture`` and swallowed there.
"""

from typing import Optional


class TrackerError(Exception):
    """Base class for tracker errors."""


class TrackerNotInitializedError(TrackerError, RuntimeError):
    """An operation was used before ``init`` or after ``dispose``."""

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(
            message or "Tracker is not initialized. Please call init() first."
        )


class TransportError(TrackerError):
    """The request never produced an HTTP response."""


class DeliveryError(TrackerError):
    """The ingestion endpoint answered with something other than 200."""

    def __init__(self, status_code: int, body: str = "") -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"Failed to send event (HTTP {status_code}): {body}")
