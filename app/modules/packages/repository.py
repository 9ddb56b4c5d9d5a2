"""Package repository layer."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.packages.models import Package


class PackagesRepository:
    """DB access methods for the package catalog."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_package(
        self,
        name: str,
        description: str | None,
        price: Decimal,
        currency: str,
    ) -> Package:
        package = Package(
            name=name,
            description=description,
            price=price,
            currency=currency.upper(),
            is_active=True,
        )
        self.session.add(package)
        await self.session.flush()
        return package

    async def get_package_by_id(self, package_id: UUID) -> Package | None:
        stmt = select(Package).where(Package.id == package_id)
        return await self.session.scalar(stmt)

    async def list_packages(
        self,
        include_inactive: bool,
        limit: int,
        offset: int,
    ) -> tuple[list[Package], int]:
        base_stmt: Select[tuple[Package]] = select(Package)
        if not include_inactive:
            base_stmt = base_stmt.where(Package.is_active.is_(True))

        count_stmt = select(func.count()).select_from(base_stmt.subquery())
        total = int((await self.session.scalar(count_stmt)) or 0)

        stmt = base_stmt.order_by(Package.price.asc(), Package.name.asc()).limit(limit).offset(offset)
        items = (await self.session.scalars(stmt)).all()
        return items, total

    async def deactivate_package(self, package: Package) -> Package:
        package.is_active = False
        await self.session.flush()
        return package

    async def update_package(self, package: Package, **changes: object) -> Package:
        for field_name, value in changes.items():
            setattr(package, field_name, value)
        await self.session.flush()
        return package
