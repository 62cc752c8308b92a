"""
Unit tests for the queued location provider and connectivity monitor.

Tests cover:
- One-shot fixes delivered after the request
- Cached fixes honouring maximum_age
- Timeouts and device errors
- Permission denial
- Position streams
"""
import asyncio
import pytest
from datetime import datetime, timedelta, timezone

from app.domain.exceptions import LocationUnavailableError
from app.domain.models import PositionFix, PositionOptions
from app.infrastructure.connectivity import ConnectivityMonitor
from app.infrastructure.location_provider import QueuedLocationProvider, fix_age_seconds


def make_fix(age_seconds: float = 0.0, latitude: float = 6.3156) -> PositionFix:
    return PositionFix(
        latitude=latitude,
        longitude=-10.8074,
        accuracy=4.0,
        timestamp=datetime.now(timezone.utc) - timedelta(seconds=age_seconds),
    )


# ============================================================
# One-shot Position Tests
# ============================================================

class TestCurrentPosition:
    """Tests for get_current_position."""

    @pytest.mark.asyncio
    async def test_waits_for_pushed_fix(self, location_provider):
        options = PositionOptions(timeout=1.0, maximum_age=0)
        fix = make_fix()

        async def deliver():
            await asyncio.sleep(0.01)
            location_provider.push_fix(fix)

        asyncio.get_running_loop().create_task(deliver())
        result = await location_provider.get_current_position(options)

        assert result == fix
        assert location_provider.last_fix == fix

    @pytest.mark.asyncio
    async def test_recent_cached_fix_is_reused(self, location_provider):
        fix = make_fix(age_seconds=5)
        location_provider.push_fix(fix)

        result = await location_provider.get_current_position(PositionOptions(timeout=0.05, maximum_age=60))

        assert result == fix

    @pytest.mark.asyncio
    async def test_stale_cached_fix_is_not_reused(self, location_provider):
        location_provider.push_fix(make_fix(age_seconds=120))

        with pytest.raises(LocationUnavailableError) as exc_info:
            await location_provider.get_current_position(PositionOptions(timeout=0.05, maximum_age=60))

        assert "timeout" in exc_info.value.reason

    @pytest.mark.asyncio
    async def test_device_error(self, location_provider):
        async def fail():
            await asyncio.sleep(0.01)
            location_provider.push_error("position unavailable")

        asyncio.get_running_loop().create_task(fail())

        with pytest.raises(LocationUnavailableError) as exc_info:
            await location_provider.get_current_position(PositionOptions(timeout=1.0, maximum_age=0))

        assert exc_info.value.reason == "position unavailable"

    @pytest.mark.asyncio
    async def test_permission_denied(self, location_provider):
        location_provider.push_fix(make_fix())
        location_provider.set_permission(False)

        with pytest.raises(LocationUnavailableError) as exc_info:
            await location_provider.get_current_position(PositionOptions(timeout=0.05))

        assert exc_info.value.reason == "permission denied"

    def test_fix_age(self):
        assert fix_age_seconds(make_fix(age_seconds=30)) == pytest.approx(30, abs=1)

    def test_fix_age_naive_timestamp_treated_as_utc(self):
        naive = make_fix().model_copy(update={"timestamp": datetime.utcnow() - timedelta(seconds=10)})
        assert fix_age_seconds(naive) == pytest.approx(10, abs=1)


# ============================================================
# Position Stream Tests
# ============================================================

class TestPositionStream:
    """Tests for stream_positions."""

    @pytest.mark.asyncio
    async def test_stream_yields_fixes_and_timeouts(self, location_provider):
        stream = location_provider.stream_positions(PositionOptions(timeout=0.05, maximum_age=0))

        async def deliver():
            await asyncio.sleep(0.01)
            location_provider.push_fix(make_fix(latitude=6.30))

        asyncio.get_running_loop().create_task(deliver())
        first = await stream.__anext__()
        second = await stream.__anext__()
        await stream.aclose()

        assert isinstance(first, PositionFix) and first.latitude == 6.30
        assert isinstance(second, LocationUnavailableError)

    @pytest.mark.asyncio
    async def test_stream_starts_with_cached_fix(self, location_provider):
        cached = make_fix()
        location_provider.push_fix(cached)

        stream = location_provider.stream_positions(PositionOptions(timeout=0.05, maximum_age=5))
        first = await stream.__anext__()
        await stream.aclose()

        assert first == cached


# ============================================================
# Connectivity Tests
# ============================================================

class TestConnectivityMonitor:
    """Tests for the connectivity flag."""

    def test_callable_state(self):
        monitor = ConnectivityMonitor(online=True)
        assert monitor() is True

        monitor.set_online(False)

        assert monitor() is False
        assert monitor.online is False
