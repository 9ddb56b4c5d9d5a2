from __future__ import annotations

from contextlib import asynccontextmanager

import pytest

import app.workers.expire_pending_bookings_worker as worker_module


class FakeBookingService:
    def __init__(self, expired: int) -> None:
        self.expired = expired
        self.calls = 0

    async def expire_pending_holds(self) -> int:
        self.calls += 1
        return self.expired


@pytest.fixture
def fake_service(monkeypatch: pytest.MonkeyPatch) -> FakeBookingService:
    service = FakeBookingService(expired=2)
    opened: list[str] = []

    @asynccontextmanager
    async def _session_scope():
        opened.append("session")
        yield object()

    @asynccontextmanager
    async def _gateway():
        yield object()

    monkeypatch.setattr(worker_module, "session_scope", _session_scope)
    monkeypatch.setattr(worker_module, "build_payment_gateway", _gateway)
    monkeypatch.setattr(worker_module, "build_booking_service", lambda session, gateway: service)
    service.opened = opened
    return service


@pytest.mark.asyncio
async def test_run_cycle_expires_in_one_transaction(fake_service: FakeBookingService) -> None:
    expired = await worker_module.run_cycle()

    assert expired == 2
    assert fake_service.calls == 1
    assert fake_service.opened == ["session"]


@pytest.mark.asyncio
async def test_main_runs_single_cycle_in_once_mode(
    fake_service: FakeBookingService,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("EXPIRY_WORKER_MODE", "once")

    await worker_module.main()

    assert fake_service.calls == 1
