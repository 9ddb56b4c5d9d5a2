"""Package catalog business logic."""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import get_db_session
from app.modules.identity.schemas import Identity
from app.modules.packages.models import Package
from app.modules.packages.repository import PackagesRepository
from app.modules.packages.schemas import PackageCreate, PackageUpdate
from app.shared.exceptions import (
    BusinessRuleException,
    NotFoundException,
    UnauthorizedException,
)

settings = get_settings()
logger = logging.getLogger(__name__)


class PackagesService:
    """Package catalog service."""

    def __init__(self, repository: PackagesRepository, default_currency: str | None = None) -> None:
        self.repository = repository
        self.default_currency = default_currency or settings.payment_currency

    async def create_package(self, payload: PackageCreate, actor: Identity) -> Package:
        """Add a priced offering (admin only)."""
        if not actor.is_admin:
            raise UnauthorizedException("Only admin can create packages")

        package = await self.repository.create_package(
            name=payload.name.strip(),
            description=payload.description,
            price=payload.price,
            currency=payload.currency or self.default_currency,
        )
        logger.info("Package %s created by %s", package.id, actor.customer_ref)
        return package

    async def list_packages(
        self,
        actor: Identity | None,
        include_inactive: bool,
        limit: int,
        offset: int,
    ) -> tuple[list[Package], int]:
        """List the catalog; inactive packages are visible to admins only."""
        if include_inactive and (actor is None or not actor.is_admin):
            raise UnauthorizedException("Only admin can list inactive packages")
        return await self.repository.list_packages(include_inactive, limit, offset)

    async def update_package(self, package_id: UUID, payload: PackageUpdate, actor: Identity) -> Package:
        if not actor.is_admin:
            raise UnauthorizedException("Only admin can update packages")

        package = await self.repository.get_package_by_id(package_id)
        if package is None:
            raise NotFoundException("Package not found")

        changes = payload.model_dump(exclude_unset=True)
        if "name" in changes:
            if changes["name"] is None:
                raise BusinessRuleException("Package name cannot be empty")
            changes["name"] = changes["name"].strip()
        if "price" in changes and changes["price"] is None:
            raise BusinessRuleException("Package price cannot be empty")
        if "is_active" in changes and changes["is_active"] is None:
            del changes["is_active"]
        return await self.repository.update_package(package, **changes)

    async def delete_package(self, package_id: UUID, actor: Identity) -> Package:
        """Withdraw a package from sale; existing bookings keep their reference."""
        if not actor.is_admin:
            raise UnauthorizedException("Only admin can delete packages")

        package = await self.repository.get_package_by_id(package_id)
        if package is None:
            raise NotFoundException("Package not found")
        return await self.repository.deactivate_package(package)


async def get_packages_service(session: AsyncSession = Depends(get_db_session)) -> PackagesService:
    """Dependency provider for packages service."""
    return PackagesService(PackagesRepository(session))
