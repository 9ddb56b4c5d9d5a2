"""Seed idempotent demo data for local/non-production environments."""

from __future__ import annotations

import argparse
import asyncio
from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import close_engine, session_scope
from app.core.security import create_access_token
from app.modules.packages.models import Package

DEMO_ADMIN_REF = "demo-admin"
DEMO_CUSTOMER_REF = "demo-customer"
DEMO_TOKEN_MINUTES = 24 * 60

DEMO_PACKAGES = (
    ("Portrait Session", "One hour studio portrait shoot, 15 edited photos.", Decimal("500.00")),
    ("Family Session", "Two hour shoot for up to six people, 30 edited photos.", Decimal("1500.00")),
    ("Event Coverage", "Half-day on-location coverage with online gallery.", Decimal("4500.00")),
)


@dataclass(slots=True)
class SeedStats:
    packages_created: int = 0
    packages_existing: int = 0
    package_ids: list[str] = field(default_factory=list)


async def _ensure_package(
    session: AsyncSession,
    *,
    name: str,
    description: str,
    price: Decimal,
    currency: str,
) -> tuple[Package, bool]:
    package = await session.scalar(select(Package).where(Package.name == name))
    if package is not None:
        return package, False

    package = Package(name=name, description=description, price=price, currency=currency, is_active=True)
    session.add(package)
    await session.flush()
    return package, True


async def _run_seed(*, allow_production: bool) -> SeedStats:
    settings = get_settings()
    app_env = settings.app_env.strip().lower()
    if app_env in {"production", "prod"} and not allow_production:
        raise RuntimeError(
            "Refusing to seed demo data in production. "
            "Re-run with --allow-production only if you are absolutely sure.",
        )

    stats = SeedStats()

    async with session_scope() as session:
        for name, description, price in DEMO_PACKAGES:
            package, created = await _ensure_package(
                session,
                name=name,
                description=description,
                price=price,
                currency=settings.payment_currency,
            )
            if created:
                stats.packages_created += 1
            else:
                stats.packages_existing += 1
            stats.package_ids.append(str(package.id))

    return stats


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Seed idempotent demo data for the studio booking API (packages, demo tokens).",
    )
    parser.add_argument(
        "--allow-production",
        action="store_true",
        help="Allow seeding even when APP_ENV is production/prod.",
    )
    return parser


def _print_summary(stats: SeedStats) -> None:
    settings = get_settings()
    print("Demo seed completed.")
    print(f"- Packages created: {stats.packages_created}")
    print(f"- Packages already present: {stats.packages_existing}")
    for package_id in stats.package_ids:
        print(f"  - {package_id}")
    print("")
    print("Demo bearer tokens (non-production only):")
    admin_token = create_access_token(
        DEMO_ADMIN_REF,
        expires_minutes=DEMO_TOKEN_MINUTES,
        role=settings.identity_admin_role,
    )
    customer_token = create_access_token(DEMO_CUSTOMER_REF, expires_minutes=DEMO_TOKEN_MINUTES)
    print(f"- admin:    {admin_token}")
    print(f"- customer: {customer_token}")


def main() -> int:
    parser = _build_parser()
    args = parser.parse_args()

    try:
        stats = asyncio.run(_run_seed(allow_production=args.allow_production))
    except Exception as exc:
        print(f"Demo seed failed: {exc}")
        return 1
    finally:
        asyncio.run(close_engine())

    _print_summary(stats)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
