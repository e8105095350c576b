from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, or_, select
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import contains_eager

from app.core.database import get_db
from app.core.dependencies import get_current_user, require_admin
from app.core.errors import is_schema_missing
from app.core.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, page_offset, page_payload
from app.core.validation import only_digits
from app.models.client import Client
from app.models.cloud_access import CloudAccess
from app.models.service import Service
from app.schemas.cloud import CloudAccessListItem, CloudAccessPage, CloudAccessResponse, CloudAccessUpdate
from app.schemas.user import CurrentUser

router = APIRouter()


async def _get_access_or_404(db: AsyncSession, access_id: UUID) -> CloudAccess:
    access = await db.get(CloudAccess, access_id)
    if not access:
        raise HTTPException(status_code=404, detail="Cloud access not found")
    return access


@router.get("/accesses", response_model=CloudAccessPage)
async def list_cloud_accesses(
    search: Optional[str] = Query(None, description="Client name, email, document or service name"),
    document: Optional[str] = Query(None),
    service: Optional[str] = Query(None, description="Exact service name (case-insensitive)"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    List cloud accesses, soonest expiration first.
    """
    conditions = []
    if search and search.strip():
        term = f"%{search.strip()}%"
        clauses = [
            Client.name.ilike(term),
            Client.email.ilike(term),
            Service.name.ilike(term),
        ]
        digits = only_digits(search)
        if digits:
            clauses.append(Client.document.ilike(f"%{digits}%"))
        conditions.append(or_(*clauses))
    if document and only_digits(document):
        conditions.append(Client.document.ilike(f"%{only_digits(document)}%"))
    if service and service.strip():
        conditions.append(func.lower(Service.name) == service.strip().lower())

    try:
        total = await db.scalar(
            select(func.count(CloudAccess.id))
            .join(CloudAccess.client)
            .join(CloudAccess.service)
            .where(*conditions)
        )
        result = await db.execute(
            select(CloudAccess)
            .join(CloudAccess.client)
            .join(CloudAccess.service)
            .options(contains_eager(CloudAccess.client), contains_eager(CloudAccess.service))
            .where(*conditions)
            .order_by(CloudAccess.expires_at.asc())
            .offset(page_offset(page, limit))
            .limit(limit)
        )
        accesses = result.scalars().all()
    except DBAPIError as exc:
        if not is_schema_missing(exc):
            raise
        await db.rollback()
        print("[CLOUD] [WARNING] cloud_accesses unavailable, returning an empty page")
        return page_payload([], page, limit, 0)

    data = [CloudAccessListItem.model_validate(access) for access in accesses]
    return page_payload(data, page, limit, total or 0)


@router.patch("/accesses/{access_id}", response_model=CloudAccessResponse)
async def update_cloud_access(
    access_id: UUID,
    payload: CloudAccessUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Update expiration, test flag or notes of a cloud access.

    Raises:
        HTTPException 400: If no field was provided
        HTTPException 404: If the access does not exist
    """
    changes = payload.model_dump(exclude_unset=True)
    if "expires_at" in changes and changes["expires_at"] is None:
        changes.pop("expires_at")
    if "is_test" in changes and changes["is_test"] is None:
        changes.pop("is_test")
    if not changes:
        raise HTTPException(status_code=400, detail="Provide at least one field to update")

    access = await _get_access_or_404(db, access_id)
    if "notes" in changes:
        changes["notes"] = (changes["notes"] or "").strip() or None
    for field, value in changes.items():
        setattr(access, field, value)

    await db.commit()
    await db.refresh(access, attribute_names=["service", "updated_at"])
    return access


@router.delete("/accesses/{access_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_cloud_access(
    access_id: UUID,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    access = await _get_access_or_404(db, access_id)
    await db.delete(access)
    await db.commit()
    print(f"[CLOUD] Access {access_id} deleted by {admin.id}")
