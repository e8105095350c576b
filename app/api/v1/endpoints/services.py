from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.dependencies import get_current_user, require_admin
from app.core.errors import is_unique_violation
from app.models.service import Service
from app.schemas.service import ServiceCreate, ServiceResponse, ServiceUpdate
from app.schemas.user import CurrentUser

router = APIRouter()


async def _get_service_or_404(db: AsyncSession, service_id: UUID) -> Service:
    service = await db.get(Service, service_id)
    if not service:
        raise HTTPException(status_code=404, detail="Service not found")
    return service


async def _commit_unique(db: AsyncSession, name: str):
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        if is_unique_violation(exc):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"A service named '{name}' already exists",
            )
        raise


@router.get("", response_model=List[ServiceResponse])
async def list_services(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(Service).order_by(Service.name))
    return result.scalars().all()


@router.post("", response_model=ServiceResponse, status_code=status.HTTP_201_CREATED)
async def create_service(
    payload: ServiceCreate,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    Add a service to the catalog.

    Price accepts "1.234,56" style strings as well as numbers.
    """
    service = Service(
        name=payload.name.strip(),
        description=(payload.description or "").strip() or None,
        price=payload.price,
        allow_custom_price=payload.allow_custom_price,
    )
    db.add(service)
    await _commit_unique(db, service.name)

    print(f"[SERVICES] Created service '{service.name}'")
    return service


@router.put("/{service_id}", response_model=ServiceResponse)
async def update_service(
    service_id: UUID,
    payload: ServiceUpdate,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    changes = payload.model_dump(exclude_unset=True)
    for field in ("name", "price", "allow_custom_price"):
        if field in changes and changes[field] is None:
            changes.pop(field)
    if not changes:
        raise HTTPException(status_code=400, detail="No changes provided")

    service = await _get_service_or_404(db, service_id)
    for field, value in changes.items():
        if field == "name" and value:
            value = value.strip()
        setattr(service, field, value)
    await _commit_unique(db, service.name)
    await db.refresh(service)
    return service


@router.delete("/{service_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_service(
    service_id: UUID,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    service = await _get_service_or_404(db, service_id)
    await db.delete(service)
    await db.commit()
    print(f"[SERVICES] Deleted service {service_id}")
