from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.contract_service import ContractService
from app.core.database import get_db
from app.core.dependencies import get_current_user
from app.core.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, page_offset, page_payload
from app.core.resource_auth import ensure_contract_access
from app.models.contract import Contract, ContractStatus
from app.schemas.contract import (
    ContractActionResponse,
    ContractCreate,
    ContractDetailResponse,
    ContractListResponse,
    ContractResponse,
)
from app.schemas.user import CurrentUser

router = APIRouter()


def _visible_to(stmt, user: CurrentUser):
    if user.is_admin:
        return stmt
    return stmt.where(or_(Contract.created_by == user.id, Contract.created_by.is_(None)))


@router.get("", response_model=ContractListResponse)
async def list_contracts(
    status_filter: Optional[ContractStatus] = Query(None, alias="status"),
    client_id: Optional[UUID] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    List contracts, newest first.

    Regular users only see contracts they created (plus unowned ones).
    summary.status_counts covers the whole visible set, ignoring the
    status filter.
    """
    base = _visible_to(select(Contract), user)
    if client_id:
        base = base.where(Contract.client_id == client_id)
    if search and search.strip():
        base = base.where(Contract.title.ilike(f"%{search.strip()}%"))

    counts_stmt = base.with_only_columns(Contract.status, func.count(Contract.id)).group_by(Contract.status)
    counts = {state.value: 0 for state in ContractStatus}
    for contract_status, amount in (await db.execute(counts_stmt)).all():
        counts[ContractStatus(contract_status).value] = amount

    filtered = base.where(Contract.status == status_filter) if status_filter else base
    total = await db.scalar(filtered.with_only_columns(func.count(Contract.id)))

    result = await db.execute(
        filtered.order_by(Contract.created_at.desc()).offset(page_offset(page, limit)).limit(limit)
    )
    data = [ContractResponse.model_validate(row) for row in result.scalars().all()]

    payload = page_payload(data, page, limit, total or 0)
    payload["summary"] = {"status_counts": counts}
    return payload


@router.post("", response_model=ContractDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_contract(
    payload: ContractCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await ContractService.create_contract(db, payload, user)


@router.get("/{contract_id}", response_model=ContractDetailResponse)
async def get_contract(
    contract_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    contract = await ContractService.get_contract(db, contract_id)
    ensure_contract_access(contract, user)
    return contract


@router.post("/{contract_id}/send", response_model=ContractActionResponse)
async def send_contract(
    contract_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    contract = await ContractService.get_contract(db, contract_id)
    ensure_contract_access(contract, user)
    message = await ContractService.send_contract(db, contract)
    return {"contract": contract, "message": message}


@router.post("/{contract_id}/sign", response_model=ContractResponse)
async def sign_contract(
    contract_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    contract = await ContractService.get_contract(db, contract_id)
    ensure_contract_access(contract, user)
    await ContractService.sign_contract(db, contract)
    return contract


@router.post("/{contract_id}/cancel", response_model=ContractResponse)
async def cancel_contract(
    contract_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    contract = await ContractService.get_contract(db, contract_id)
    ensure_contract_access(contract, user)
    await ContractService.cancel_contract(db, contract)
    return contract
