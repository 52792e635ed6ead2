"""Process-wide tracker handle and module-level shortcuts.

``init`` builds a ``Tracker``, remembers it as the current handle and
returns it. Code that holds the returned handle can ignore this module;
the shortcuts below exist for call sites that would rather not thread the
handle through.

Usage:
    from src.tracker import client as analytics

    await analytics.init(api_key="phc_123", host="https://eu.example.com")
    await analytics.capture("signup", {"plan": "pro"})
    await analytics.dispose()
"""

import logging
from typing import Any, Dict, Optional

from src.collector.schemas import SpecialEvent
from src.tracker.config import (
    DEFAULT_TIMEOUT,
    DEFAULT_VERSION,
    TrackerConfig,
    UserPropertiesPolicy,
)
from src.tracker.errors import TrackerNotInitializedError
from src.tracker.platform_info import PlatformInfo
from src.tracker.session import ErrorHook, Tracker
from src.tracker.transport import Transport

logger = logging.getLogger(__name__)

_instance: Optional[Tracker] = None


async def init(
    api_key: str,
    host: str,
    debug: bool = False,
    version: str = DEFAULT_VERSION,
    transport: Optional[Transport] = None,
    *,
    user_properties_policy: UserPropertiesPolicy = UserPropertiesPolicy.ALWAYS,
    platform: Optional[PlatformInfo] = None,
    on_error: Optional[ErrorHook] = None,
    timeout: float = DEFAULT_TIMEOUT,
    identify_on_init: bool = False,
) -> Tracker:
    """Create the tracker and make it the current handle.

    A previous handle is replaced, not disposed; closing it is up to
    whoever still holds it.
    """
    global _instance

    config = TrackerConfig(
        api_key=api_key,
        host=host,
        debug=debug,
        version=version,
        timeout=timeout,
        user_properties_policy=user_properties_policy,
        identify_on_init=identify_on_init,
    )
    tracker = Tracker(config, transport=transport, platform=platform, on_error=on_error)
    if _instance is not None:
        logger.debug("Replacing existing tracker handle")
    _instance = tracker

    if config.identify_on_init:
        tracker.track(SpecialEvent.IDENTIFY.value)
    return tracker


def get_tracker() -> Tracker:
    """Return the current handle or raise ``TrackerNotInitializedError``."""
    if _instance is None:
        raise TrackerNotInitializedError()
    return _instance


def is_initialized() -> bool:
    return _instance is not None


async def dispose(tracker: Optional[Tracker] = None) -> None:
    """Close ``tracker`` (default: the current handle).

    The current handle is forgotten when it is the one being closed, so a
    later ``init`` starts from a fresh session.
    """
    global _instance

    if tracker is None:
        tracker = get_tracker()
    if tracker is _instance:
        _instance = None
    await tracker.aclose()


async def capture(event_name: str, properties: Optional[Dict[str, Any]] = None) -> None:
    await get_tracker().capture(event_name, properties)


async def identify(distinct_id: str, properties: Optional[Dict[str, Any]] = None) -> None:
    await get_tracker().identify(distinct_id, properties)


async def screen(name: str) -> None:
    await get_tracker().screen(name)


def reset() -> None:
    get_tracker().reset()


def enable() -> None:
    get_tracker().enable()


def disable() -> None:
    get_tracker().disable()


def get_or_create_distinct_id() -> str:
    return get_tracker().get_or_create_distinct_id()
