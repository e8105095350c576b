from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.dependencies import get_current_user
from app.models.client import Client
from app.models.line import Line
from app.schemas.line import LineCreate, LineResponse, LineUpdate
from app.schemas.user import CurrentUser

router = APIRouter()


async def _ensure_client_exists(db: AsyncSession, client_id: UUID) -> None:
    if not await db.get(Client, client_id):
        raise HTTPException(status_code=404, detail="Client not found")


async def _get_line_or_404(db: AsyncSession, line_id: UUID) -> Line:
    line = await db.get(Line, line_id)
    if not line:
        raise HTTPException(status_code=404, detail="Line not found")
    return line


@router.get("", response_model=List[LineResponse])
async def list_lines(
    client_id: Optional[UUID] = Query(None),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    stmt = select(Line).order_by(Line.created_at.desc())
    if client_id:
        stmt = stmt.where(Line.client_id == client_id)
    result = await db.execute(stmt)
    return result.scalars().all()


@router.post("", response_model=LineResponse, status_code=status.HTTP_201_CREATED)
async def create_line(
    payload: LineCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await _ensure_client_exists(db, payload.client_id)

    line = Line(**payload.model_dump())
    db.add(line)
    await db.commit()
    return line


@router.put("/{line_id}", response_model=LineResponse)
async def update_line(
    line_id: UUID,
    payload: LineUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    line = await _get_line_or_404(db, line_id)
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("client_id"):
        await _ensure_client_exists(db, changes["client_id"])

    for field, value in changes.items():
        if value is None and field in ("client_id", "phone_number", "type"):
            continue
        setattr(line, field, value)
    await db.commit()
    await db.refresh(line)
    return line


@router.delete("/{line_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_line(
    line_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    line = await _get_line_or_404(db, line_id)
    await db.delete(line)
    await db.commit()
