"""HTTP transport used by the Tracker to deliver capture payloads."""

import logging
from dataclasses import dataclass
from typing import Mapping, Optional, Protocol

import httpx

from src.tracker.config import DEFAULT_TIMEOUT
from src.tracker.errors import TransportError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransportResponse:
    status_code: int
    body: str = ""


class Transport(Protocol):
    """POST a pre-encoded body and report what came back.

    Implementations raise ``TransportError`` when no response was received
    and must not interpret the status code; that is the caller's job.
    """

    async def post(
        self, url: str, content: bytes, headers: Mapping[str, str]
    ) -> TransportResponse:
        ...

    async def aclose(self) -> None:
        ...


class HttpTransport:
    """``Transport`` backed by ``httpx.AsyncClient``.

    Pass ``client`` to reuse an existing client (tests route one into an
    ASGI app). An injected client is still closed by ``aclose``.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def post(
        self, url: str, content: bytes, headers: Mapping[str, str]
    ) -> TransportResponse:
        try:
            response = await self._client.post(url, content=content, headers=dict(headers))
        except httpx.HTTPError as e:
            raise TransportError(f"POST {url} failed: {e}") from e
        return TransportResponse(status_code=response.status_code, body=response.text)

    async def aclose(self) -> None:
        await self._client.aclose()
        logger.debug("HTTP transport closed")
