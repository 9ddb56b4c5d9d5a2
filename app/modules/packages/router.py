"""Packages API router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from app.modules.identity.schemas import Identity
from app.modules.identity.service import get_current_identity, get_optional_identity
from app.modules.packages.schemas import PackageCreate, PackageRead, PackageUpdate
from app.modules.packages.service import PackagesService, get_packages_service
from app.shared.pagination import Page, build_page, get_pagination_params

router = APIRouter(prefix="/packages", tags=["packages"])


@router.get("", response_model=Page[PackageRead])
async def list_packages(
    include_inactive: bool = Query(default=False),
    pagination=Depends(get_pagination_params),
    service: PackagesService = Depends(get_packages_service),
    identity: Identity | None = Depends(get_optional_identity),
) -> Page[PackageRead]:
    """List bookable packages."""
    items, total = await service.list_packages(
        identity,
        include_inactive,
        pagination.limit,
        pagination.offset,
    )
    serialized = [PackageRead.model_validate(item) for item in items]
    return build_page(serialized, total, pagination)


@router.post("", response_model=PackageRead, status_code=status.HTTP_201_CREATED)
async def create_package(
    payload: PackageCreate,
    service: PackagesService = Depends(get_packages_service),
    identity: Identity = Depends(get_current_identity),
) -> PackageRead:
    """Create package (admin only)."""
    package = await service.create_package(payload, identity)
    return PackageRead.model_validate(package)


@router.patch("/{package_id}", response_model=PackageRead)
async def update_package(
    package_id: UUID,
    payload: PackageUpdate,
    service: PackagesService = Depends(get_packages_service),
    identity: Identity = Depends(get_current_identity),
) -> PackageRead:
    """Edit package details (admin only)."""
    package = await service.update_package(package_id, payload, identity)
    return PackageRead.model_validate(package)


@router.delete("/{package_id}", response_model=PackageRead)
async def delete_package(
    package_id: UUID,
    service: PackagesService = Depends(get_packages_service),
    identity: Identity = Depends(get_current_identity),
) -> PackageRead:
    """Withdraw package from sale (admin only)."""
    package = await service.delete_package(package_id, identity)
    return PackageRead.model_validate(package)
