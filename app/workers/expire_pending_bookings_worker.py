"""Executable worker that expires stale pending bookings."""

from __future__ import annotations

import asyncio
import logging
import os

from app.core.database import session_scope
from app.modules.booking.service import build_booking_service
from app.modules.payments.gateway import build_payment_gateway

logger = logging.getLogger(__name__)


async def run_cycle() -> int:
    """Expire stale pending bookings in one DB transaction."""
    async with session_scope() as session, build_payment_gateway() as gateway:
        service = build_booking_service(session, gateway)
        return await service.expire_pending_holds()


async def main() -> None:
    """Run once or keep polling according to worker mode."""
    logging.basicConfig(level=os.getenv("EXPIRY_WORKER_LOG_LEVEL", "INFO"))
    mode = os.getenv("EXPIRY_WORKER_MODE", "once").strip().lower()
    poll_seconds = int(os.getenv("EXPIRY_WORKER_POLL_SECONDS", "60"))

    if mode == "once":
        expired = await run_cycle()
        logger.info("Pending expiry worker expired %s bookings", expired)
        return

    while True:
        try:
            expired = await run_cycle()
            logger.info("Pending expiry worker expired %s bookings", expired)
        except Exception:
            logger.exception("Pending expiry worker cycle failed")
        await asyncio.sleep(poll_seconds)


if __name__ == "__main__":
    asyncio.run(main())
