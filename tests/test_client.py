"""Tests for the process-wide tracker handle."""

import pytest
from pydantic import ValidationError

from src.tracker import client
from src.tracker.errors import TrackerNotInitializedError
from src.tracker.fake import FakeTransport
from src.tracker.platform_info import PlatformInfo
from src.tracker.session import Tracker


@pytest.fixture(autouse=True)
def no_handle(monkeypatch):
    """Every test starts without a current tracker."""
    monkeypatch.setattr(client, "_instance", None)


async def _init(transport=None, **kwargs) -> Tracker:
    return await client.init(
        api_key="phc_test",
        host="https://ingest.test",
        transport=transport or FakeTransport(),
        platform=PlatformInfo(),
        **kwargs,
    )


class TestUninitialized:
    @pytest.mark.parametrize(
        "call",
        [
            lambda: client.capture("x"),
            lambda: client.identify("u1"),
            lambda: client.screen("home"),
            lambda: client.dispose(),
        ],
        ids=["capture", "identify", "screen", "dispose"],
    )
    @pytest.mark.asyncio
    async def test_async_operations_raise(self, call):
        with pytest.raises(TrackerNotInitializedError):
            await call()

    @pytest.mark.parametrize(
        "call",
        [client.reset, client.enable, client.disable, client.get_or_create_distinct_id],
        ids=["reset", "enable", "disable", "distinct_id"],
    )
    def test_sync_operations_raise(self, call):
        with pytest.raises(TrackerNotInitializedError):
            call()

    def test_get_tracker_raises(self):
        with pytest.raises(TrackerNotInitializedError, match="init"):
            client.get_tracker()
        assert client.is_initialized() is False


class TestInit:
    @pytest.mark.asyncio
    async def test_init_returns_current_handle(self):
        tracker = await _init()
        assert client.get_tracker() is tracker
        assert client.is_initialized() is True

    @pytest.mark.asyncio
    async def test_init_applies_config(self):
        tracker = await _init(debug=True, version="9.9.9")
        assert tracker.config.host == "https://ingest.test"
        assert tracker.config.debug is True
        assert tracker.config.version == "9.9.9"

    @pytest.mark.asyncio
    async def test_second_init_replaces_handle(self):
        first_transport = FakeTransport()
        first = await _init(first_transport)
        second = await _init()

        assert client.get_tracker() is second
        assert second is not first
        # the old handle is left open for its owner to close
        assert first_transport.closed is False

    @pytest.mark.asyncio
    async def test_invalid_config_rejected(self):
        with pytest.raises(ValidationError):
            await client.init(api_key="", host="https://ingest.test", transport=FakeTransport())
        assert client.is_initialized() is False

    @pytest.mark.asyncio
    async def test_identify_on_init_sends_identify(self):
        transport = FakeTransport()
        tracker = await _init(transport, identify_on_init=True)
        await tracker.flush()

        assert transport.events == ["$identify"]
        assert transport.get("$identify").payload["distinct_id"] == tracker.get_or_create_distinct_id()
        assert tracker.identify_called is False


class TestModuleOperations:
    @pytest.mark.asyncio
    async def test_operations_delegate_to_handle(self):
        transport = FakeTransport()
        await _init(transport)

        await client.screen("home")
        await client.identify("u1", {"plan": "pro"})
        await client.capture("x")

        assert transport.events == ["$screen", "$identify", "$create_alias", "x"]
        assert client.get_or_create_distinct_id() == "u1"

    @pytest.mark.asyncio
    async def test_disable_and_enable(self):
        transport = FakeTransport()
        await _init(transport)

        client.disable()
        await client.capture("skipped")
        client.enable()
        await client.capture("sent")

        assert transport.events == ["sent"]

    @pytest.mark.asyncio
    async def test_reset(self):
        await _init()
        before = client.get_or_create_distinct_id()
        client.reset()
        assert client.get_or_create_distinct_id() != before


class TestDispose:
    @pytest.mark.asyncio
    async def test_dispose_closes_and_clears(self):
        transport = FakeTransport()
        tracker = await _init(transport)

        await client.dispose()

        assert transport.closed is True
        assert client.is_initialized() is False
        with pytest.raises(TrackerNotInitializedError):
            await client.capture("x")
        with pytest.raises(TrackerNotInitializedError):
            await tracker.capture("x")
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_init_after_dispose_starts_fresh(self):
        first = await _init()
        await first.identify("u1")
        await client.dispose()

        second = await _init()
        assert second.identify_called is False
        assert second.get_or_create_distinct_id() != "u1"

    @pytest.mark.asyncio
    async def test_disposing_stale_handle_keeps_current(self):
        stale = await _init()
        current = await _init()

        await client.dispose(stale)

        assert stale.closed is True
        assert client.get_tracker() is current

    @pytest.mark.asyncio
    async def test_dispose_right_after_identify_on_init(self):
        failures = []
        transport = FakeTransport()
        tracker = await _init(
            transport,
            identify_on_init=True,
            on_error=lambda name, exc: failures.append((name, exc)),
        )

        await client.dispose()
        await tracker.flush()

        assert transport.requests == []
        [(name, exc)] = failures
        assert name == "$identify"
        assert isinstance(exc, TrackerNotInitializedError)
