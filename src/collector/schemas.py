"""Wire-format definitions for the capture endpoint.

Every event travels in a common envelope (api_key, event, distinct_id,
timestamp) with a flexible properties dict holding the merged event,
user and library fields. The tracker client serializes with these models
and the capture sink validates with them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class SpecialEvent(str, Enum):
    """Reserved event names with analytics-backend meaning."""

    IDENTIFY = "$identify"
    CREATE_ALIAS = "$create_alias"
    PAGEVIEW = "$pageview"
    SCREEN = "$screen"


class CapturePayload(BaseModel):
    """Body of one ``POST {host}/capture/`` request.

    ``timestamp`` is a sibling of ``properties``, never inside it.
    """

    api_key: str
    event: str
    distinct_id: str
    properties: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("api_key", "event", "distinct_id")
    @classmethod
    def not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be empty")
        return v

    @field_validator("timestamp")
    @classmethod
    def timestamp_has_timezone(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            v = v.replace(tzinfo=timezone.utc)
        return v


class CaptureResponse(BaseModel):
    """Response returned after a capture is accepted."""

    status: int = 1
