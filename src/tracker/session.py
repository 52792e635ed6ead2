"""Tracker session: identity state plus the event-emission operations.

A ``Tracker`` owns the distinct id, user properties, kill switch and
current screen, and decorates every captured event with them before
handing the envelope to a ``Transport``. Delivery is best effort: failures
are logged and reported to the optional ``on_error`` hook, never raised.
"""

import asyncio
import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from src.collector.schemas import CapturePayload, SpecialEvent
from src.tracker.config import TrackerConfig, UserPropertiesPolicy
from src.tracker.errors import DeliveryError, TrackerNotInitializedError
from src.tracker.platform_info import PlatformInfo, detect_platform
from src.tracker.transport import HttpTransport, Transport

logger = logging.getLogger(__name__)

LIB_NAME = "event-tracker-python"
LIB_VERSION = "0.1.0"

ErrorHook = Callable[[str, Exception], None]

_JSON_HEADERS = {"Content-Type": "application/json"}


class Tracker:
    """One analytics session bound to a single project and endpoint."""

    def __init__(
        self,
        config: TrackerConfig,
        transport: Optional[Transport] = None,
        platform: Optional[PlatformInfo] = None,
        on_error: Optional[ErrorHook] = None,
    ) -> None:
        self.config = config
        self._transport = transport or HttpTransport(timeout=config.timeout)
        self._platform = platform or detect_platform()
        self._on_error = on_error

        self._lock = threading.Lock()
        self._distinct_id: Optional[str] = None
        self._user_properties: Dict[str, Any] = {}
        self._enabled = True
        self._identify_called = False
        self._screen: Optional[str] = None
        self._closed = False
        self._pending: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def identify_called(self) -> bool:
        return self._identify_called

    @property
    def screen_name(self) -> Optional[str]:
        return self._screen

    @property
    def user_properties(self) -> Dict[str, Any]:
        return dict(self._user_properties)

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_open(self) -> None:
        if self._closed:
            raise TrackerNotInitializedError(
                "Tracker has been disposed. Please call init() again."
            )

    def get_or_create_distinct_id(self) -> str:
        """Return the current distinct id, generating a UUID4 on first use."""
        self._ensure_open()
        with self._lock:
            return self._get_or_create_locked()

    def _get_or_create_locked(self) -> str:
        if self._distinct_id is None:
            self._distinct_id = str(uuid.uuid4())
            logger.debug("Generated anonymous distinct id %s", self._distinct_id)
        return self._distinct_id

    def reset(self) -> None:
        """Forget the distinct id and user properties."""
        self._ensure_open()
        with self._lock:
            self._distinct_id = None
            self._user_properties = {}
        logger.debug("Tracker reset")

    def enable(self) -> None:
        self._ensure_open()
        with self._lock:
            self._enabled = True
        logger.debug("Analytics enabled")

    def disable(self) -> None:
        self._ensure_open()
        with self._lock:
            self._enabled = False
        logger.debug("Analytics disabled")

    # ------------------------------------------------------------------
    # Payload construction
    # ------------------------------------------------------------------

    def build_payload(
        self, event_name: str, properties: Optional[Dict[str, Any]] = None
    ) -> CapturePayload:
        """Assemble the envelope for one event.

        Properties merge in order, later keys winning: caller properties,
        user properties (policy ``always``), then library tags. The
        top-level ``distinct_id`` is always the tracker's own, even when
        the caller put a ``distinct_id`` in ``properties``.
        """
        config = self.config
        with self._lock:
            distinct_id = self._get_or_create_locked()
            user_properties = dict(self._user_properties)
            screen = self._screen

        merged: Dict[str, Any] = dict(properties or {})
        if config.user_properties_policy is UserPropertiesPolicy.ALWAYS:
            merged.update(user_properties)

        merged["version"] = config.version
        if config.debug:
            merged["debug"] = True
        if screen is not None:
            merged["$pathname"] = screen
            merged["$screen_name"] = screen
        merged["$os"] = self._platform.os_name
        merged["$os_version"] = self._platform.os_version
        merged["$lib"] = LIB_NAME
        merged["$lib_version"] = LIB_VERSION

        # no validation: blank ids and event names are sent as given
        return CapturePayload.model_construct(
            api_key=config.api_key,
            event=event_name,
            distinct_id=distinct_id,
            properties=merged,
            timestamp=datetime.now(timezone.utc),
        )

    # ------------------------------------------------------------------
    # Event emission
    # ------------------------------------------------------------------

    async def capture(
        self, event_name: str, properties: Optional[Dict[str, Any]] = None
    ) -> None:
        """Send one event. Delivery failures are logged, never raised."""
        self._ensure_open()
        await self._deliver(event_name, properties)

    async def _deliver(
        self, event_name: str, properties: Optional[Dict[str, Any]] = None
    ) -> None:
        # a tracker closed after the caller passed the entry check counts as
        # a failed delivery
        if self._closed:
            error = TrackerNotInitializedError("Tracker was disposed before delivery")
            logger.warning("Failed to send event: %s (%s)", event_name, error)
            self._report_failure(event_name, error)
            return
        if not self._enabled:
            logger.debug("Analytics disabled, skipping capture of %s", event_name)
            return

        try:
            payload = self.build_payload(event_name, properties)
            response = await self._transport.post(
                self.config.capture_url,
                payload.model_dump_json().encode("utf-8"),
                _JSON_HEADERS,
            )
            if response.status_code != 200:
                raise DeliveryError(response.status_code, response.body)
            logger.debug("Event sent: %s", event_name)
        except Exception as e:
            logger.warning("Failed to send event: %s (%s)", event_name, e, exc_info=True)
            self._report_failure(event_name, e)

    def _report_failure(self, event_name: str, error: Exception) -> None:
        if self._on_error is None:
            return
        try:
            self._on_error(event_name, error)
        except Exception:
            logger.exception("on_error hook failed for event %s", event_name)

    def track(
        self, event_name: str, properties: Optional[Dict[str, Any]] = None
    ) -> asyncio.Task:
        """Fire-and-forget ``capture`` on the running event loop.

        The returned task may be awaited but never raises a delivery error.
        ``flush`` waits for every task still in flight.
        """
        self._ensure_open()
        task = asyncio.get_running_loop().create_task(
            self._deliver(event_name, properties)
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def flush(self) -> None:
        """Wait for all background captures started with ``track``."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def identify(
        self, distinct_id: str, properties: Optional[Dict[str, Any]] = None
    ) -> None:
        """Attach the session to a known user.

        Emits ``$identify``, then ``$create_alias`` linking the anonymous id
        on the first identify of this tracker, or ``$pageview`` on every
        later one.
        """
        self._ensure_open()
        if not self._enabled:
            logger.debug("Analytics disabled, skipping identify")
            return

        with self._lock:
            previous_distinct_id = self._get_or_create_locked()
            self._distinct_id = distinct_id
            self._user_properties = dict(properties or {})
            first_identify = not self._identify_called
            self._identify_called = True

        logger.debug("User identified: %s", distinct_id)

        await self._deliver(SpecialEvent.IDENTIFY.value, {"$set": dict(properties or {})})

        if first_identify:
            await self._deliver(
                SpecialEvent.CREATE_ALIAS.value,
                {"alias": previous_distinct_id, "distinct_id": distinct_id},
            )
        else:
            await self._deliver(SpecialEvent.PAGEVIEW.value)

    async def screen(self, name: str) -> None:
        """Record a navigation to ``name`` and emit ``$screen``.

        The screen is sticky: every later event carries ``$pathname`` and
        ``$screen_name`` until the next call.
        """
        self._ensure_open()
        if not self._enabled:
            logger.debug("Analytics disabled, skipping screen")
            return

        with self._lock:
            self._screen = name

        await self._deliver(SpecialEvent.SCREEN.value)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def aclose(self) -> None:
        """Release the transport. Later operations raise."""
        if self._closed:
            return
        self._closed = True
        await self._transport.aclose()
        logger.debug("Tracker closed")
