"""Unit tests for the location provider state machine."""

import asyncio

import pytest

from happyhour.core.errors import LocationErrorKind
from happyhour.models.dto import Coordinate, GeocodeResult
from happyhour.services.location import (
    LocationProvider,
    LocationStatus,
    StaticLocationBackend,
)

POINT = Coordinate(latitude=13.75, longitude=100.5)


class GatedBackend(StaticLocationBackend):
    """Backend whose position only arrives once `release` is set."""

    def __init__(self, coordinate=POINT):
        super().__init__(coordinate)
        self.release = asyncio.Event()
        self.position_calls = 0
        self.maximum_ages = []
        self.error = None

    async def get_current_position(self, maximum_age):
        self.position_calls += 1
        self.maximum_ages.append(maximum_age)
        await self.release.wait()
        if self.error is not None:
            raise self.error
        return self.coordinate


async def settle():
    """Let scheduled tasks run up to their first real suspension point."""
    for _ in range(5):
        await asyncio.sleep(0)


class SlowBackend(StaticLocationBackend):
    async def get_current_position(self, maximum_age):
        await asyncio.sleep(10)
        return self.coordinate


class BrokenBackend(StaticLocationBackend):
    async def get_current_position(self, maximum_age):
        raise RuntimeError("gps chip on fire")


class RaisingGeocoder:
    async def resolve(self, coord):
        raise RuntimeError("should have been absorbed")


class TestAcquire:
    @pytest.mark.asyncio
    async def test_success_enriches_fix(self, fake_geocoder):
        provider = LocationProvider(StaticLocationBackend(POINT), fake_geocoder)
        assert provider.status == LocationStatus.IDLE

        fix = await provider.acquire()

        assert provider.status == LocationStatus.READY
        assert provider.fix is fix
        assert not provider.loading
        assert provider.error is None
        assert (fix.latitude, fix.longitude) == (13.75, 100.5)
        assert fix.city == "Bangkok"
        assert fix.country == "Thailand"
        assert fake_geocoder.calls == [POINT]

    @pytest.mark.asyncio
    async def test_permission_denied(self, fake_geocoder):
        provider = LocationProvider(StaticLocationBackend(POINT, permission_granted=False), fake_geocoder)

        assert await provider.acquire() is None

        assert provider.status == LocationStatus.FAILED
        assert provider.error.kind == LocationErrorKind.PERMISSION_DENIED
        assert provider.error_message == "Location permission denied"
        assert fake_geocoder.calls == []

    @pytest.mark.asyncio
    async def test_provider_unavailable(self, fake_geocoder):
        provider = LocationProvider(StaticLocationBackend(POINT, available=False), fake_geocoder)
        await provider.acquire()
        assert provider.error.kind == LocationErrorKind.PROVIDER_UNAVAILABLE

    @pytest.mark.asyncio
    async def test_timeout(self, fake_geocoder):
        provider = LocationProvider(SlowBackend(POINT), fake_geocoder, timeout=0.01)
        await provider.acquire()
        assert provider.status == LocationStatus.FAILED
        assert provider.error.kind == LocationErrorKind.TIMEOUT

    @pytest.mark.asyncio
    async def test_unexpected_error_is_unknown(self, fake_geocoder):
        provider = LocationProvider(BrokenBackend(POINT), fake_geocoder)
        await provider.acquire()
        assert provider.error.kind == LocationErrorKind.UNKNOWN
        assert provider.error_message == "Failed to get location"

    @pytest.mark.asyncio
    async def test_geocode_failure_keeps_coordinates(self):
        provider = LocationProvider(StaticLocationBackend(POINT), RaisingGeocoder())
        fix = await provider.acquire()
        assert provider.status == LocationStatus.READY
        assert fix.city is None and fix.address is None
        assert fix.latitude == 13.75

    @pytest.mark.asyncio
    async def test_empty_geocode_result(self, fake_geocoder):
        fake_geocoder.result = GeocodeResult()
        fix = await LocationProvider(StaticLocationBackend(POINT), fake_geocoder).acquire()
        assert fix.city is None

    @pytest.mark.asyncio
    async def test_maximum_age_is_passed_to_backend(self, fake_geocoder):
        backend = GatedBackend()
        backend.release.set()
        await LocationProvider(backend, fake_geocoder, maximum_age=60).acquire()
        assert backend.maximum_ages == [60]

    @pytest.mark.asyncio
    async def test_retry_after_failure(self, fake_geocoder):
        backend = StaticLocationBackend(POINT, permission_granted=False)
        provider = LocationProvider(backend, fake_geocoder)
        await provider.acquire()
        assert provider.status == LocationStatus.FAILED

        backend.permission_granted = True
        fix = await provider.refresh()
        assert provider.status == LocationStatus.READY
        assert provider.error is None
        assert fix is provider.fix


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_concurrent_acquire_joins_pending(self, fake_geocoder):
        backend = GatedBackend()
        provider = LocationProvider(backend, fake_geocoder)

        first = asyncio.ensure_future(provider.acquire())
        await settle()
        assert provider.loading
        second = asyncio.ensure_future(provider.acquire())
        await settle()

        backend.release.set()
        a, b = await asyncio.gather(first, second)

        assert backend.position_calls == 1
        assert a is b is provider.fix

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_cancel_acquisition(self, fake_geocoder):
        backend = GatedBackend()
        provider = LocationProvider(backend, fake_geocoder)

        caller = asyncio.ensure_future(provider.acquire())
        await settle()
        caller.cancel()
        with pytest.raises(asyncio.CancelledError):
            await caller

        backend.release.set()
        fix = await provider.acquire()
        assert provider.status == LocationStatus.READY
        assert fix is not None
        assert backend.position_calls == 1

    @pytest.mark.asyncio
    async def test_refresh_starts_new_acquisition(self, fake_geocoder):
        backend = GatedBackend()
        backend.release.set()
        provider = LocationProvider(backend, fake_geocoder)
        first = await provider.acquire()
        second = await provider.refresh()
        assert backend.position_calls == 2
        assert second is not first
        assert provider.fix is second


class TestTeardown:
    @pytest.mark.asyncio
    async def test_late_result_is_dropped_after_close(self, fake_geocoder):
        backend = GatedBackend()
        provider = LocationProvider(backend, fake_geocoder)
        seen = []
        provider.subscribe(lambda p: seen.append(p.status))

        pending = asyncio.ensure_future(provider.acquire())
        await settle()
        provider.close()
        backend.release.set()

        assert await pending is None
        assert provider.fix is None
        assert provider.status == LocationStatus.ACQUIRING
        assert seen == [LocationStatus.ACQUIRING]
        assert fake_geocoder.calls == []

    @pytest.mark.asyncio
    async def test_late_error_is_dropped_after_close(self, fake_geocoder):
        backend = GatedBackend()
        provider = LocationProvider(backend, fake_geocoder)

        pending = asyncio.ensure_future(provider.acquire())
        await settle()
        provider.close()
        backend.error = RuntimeError("lost fix")
        backend.release.set()
        await pending
        assert provider.error is None

    @pytest.mark.asyncio
    async def test_acquire_after_close_is_noop(self, fake_geocoder):
        backend = GatedBackend()
        provider = LocationProvider(backend, fake_geocoder)
        provider.close()
        assert await provider.acquire() is None
        assert provider.status == LocationStatus.IDLE
        assert backend.position_calls == 0


class TestListeners:
    @pytest.mark.asyncio
    async def test_listeners_see_transitions(self, fake_geocoder):
        provider = LocationProvider(StaticLocationBackend(POINT), fake_geocoder)
        seen = []
        unsubscribe = provider.subscribe(lambda p: seen.append(p.status))

        await provider.acquire()
        assert seen == [LocationStatus.ACQUIRING, LocationStatus.READY]

        unsubscribe()
        await provider.acquire()
        assert len(seen) == 2
