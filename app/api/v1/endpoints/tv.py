from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import String, cast, func, or_, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import contains_eager, selectinload

from app.core.database import get_db, utc_now
from app.core.dependencies import get_current_user, require_admin
from app.core.errors import is_schema_missing, is_unique_violation
from app.core.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, page_offset, page_payload
from app.core.security import generate_numeric_password
from app.core.tv_assignments import (
    TVAssignmentService,
    account_sort_key,
    build_client_assignment,
    label_assignments,
    tv_schema_guard,
)
from app.core.validation import parse_date_input, parse_sold_at
from app.models.client import Client
from app.models.tv_account import TVAccount
from app.models.tv_slot import SlotStatus, TVSlot
from app.models.tv_slot_history import SlotAction, TVSlotHistory
from app.schemas.tv import (
    ClientBrief,
    NextEmailResponse,
    TVAccountResponse,
    TVAccountSlotItem,
    TVAccountSummary,
    TVAccountUpdate,
    TVAccountUsage,
    TVAccountWithSlots,
    TVAssignRequest,
    TVBatchAssignRequest,
    TVBatchAssignResponse,
    TVMigrateRequest,
    TVOverviewItem,
    TVOverviewPage,
    TVSlotHistoryResponse,
    TVSlotResponse,
    TVSlotUpdate,
)
from app.schemas.user import CurrentUser

router = APIRouter()


async def _ensure_client_exists(db: AsyncSession, client_id: UUID) -> None:
    if not await db.get(Client, client_id):
        raise HTTPException(status_code=404, detail="Client not found")


async def _get_account_or_404(db: AsyncSession, account_id: UUID) -> TVAccount:
    try:
        account = await db.get(TVAccount, account_id)
    except DBAPIError as exc:
        if not is_schema_missing(exc):
            raise
        await db.rollback()
        account = None
    if not account:
        raise HTTPException(status_code=404, detail="TV account not found")
    return account


# ------------------------------------------------------------------
# SLOTS
# ------------------------------------------------------------------
@router.get("/slots")
async def list_slots(
    available: Optional[bool] = Query(None, description="Only free slots"),
    client_id: Optional[UUID] = Query(None),
    include_history: bool = Query(False),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    List TV slots ordered by account email and slot number.

    With include_history the slots come back as client assignments, each
    one labelled "Perfil N" and carrying its history (newest first).
    """
    stmt = (
        select(TVSlot)
        .join(TVSlot.account)
        .options(contains_eager(TVSlot.account))
        .order_by(TVAccount.email, TVSlot.slot_number)
        .execution_options(populate_existing=True)
    )
    if available:
        stmt = stmt.where(TVSlot.status == SlotStatus.AVAILABLE).where(TVSlot.client_id.is_(None))
    if client_id:
        stmt = stmt.where(TVSlot.client_id == client_id)

    try:
        slots = (await db.execute(stmt)).scalars().all()
    except DBAPIError as exc:
        if not is_schema_missing(exc):
            raise
        await db.rollback()
        print("[TV] [WARNING] TV tables unavailable, returning no slots")
        return []

    if not include_history:
        return [TVSlotResponse.from_slot(slot) for slot in slots]

    histories = await TVAssignmentService.fetch_history_for_slots(db, [slot.id for slot in slots])
    assignments = [build_client_assignment(slot, histories.get(slot.id)) for slot in slots]

    by_client = {}
    for item in assignments:
        by_client.setdefault(item.client_id, []).append(item)
    for group in by_client.values():
        label_assignments(group)
    return assignments


@router.post("/slots/assign", response_model=TVSlotResponse, status_code=status.HTTP_201_CREATED)
async def assign_slot(
    payload: TVAssignRequest,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await _ensure_client_exists(db, payload.client_id)
    slot = await TVAssignmentService.assign_slot_to_client(db, payload)
    return TVSlotResponse.from_slot(slot)


@router.post("/slots/batch-assign", response_model=TVBatchAssignResponse, status_code=status.HTTP_201_CREATED)
async def batch_assign_slots(
    payload: TVBatchAssignRequest,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await _ensure_client_exists(db, payload.client_id)
    params = TVAssignRequest(**payload.model_dump(exclude={"quantity"}))
    slots = await TVAssignmentService.assign_multiple_slots_to_client(db, params, payload.quantity)
    return {
        "assignments": [TVSlotResponse.from_slot(slot) for slot in slots],
        "count": len(slots),
    }


@router.post("/slots/reset")
async def reset_slots(
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Return every slot to the pool; assignment restarts from 1a8 slot 1."""
    result = await TVAssignmentService.reset_tv_slots_to_start(db)
    print(f"[TV] Slot reset requested by {admin.id}")
    return {"message": "All TV slots returned to the pool", **result}


@router.patch("/slots/{slot_id}", response_model=TVSlotResponse)
async def update_slot(
    slot_id: UUID,
    payload: TVSlotUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Partially update a slot.

    Regular users may only edit notes. Moving a slot out of ASSIGNED gives
    it a fresh password unless one is provided.

    Raises:
        HTTPException 400: If the body is empty
        HTTPException 403: If a regular user touches anything but notes
        HTTPException 404: If the slot does not exist
    """
    changes = payload.model_dump(exclude_unset=True)
    for field in ("status", "password"):
        if field in changes and changes[field] is None:
            changes.pop(field)
    if not changes:
        raise HTTPException(status_code=400, detail="No changes provided")
    if not user.is_admin and set(changes) - {"notes"}:
        raise HTTPException(status_code=403, detail="Only administrators can change these fields")

    async with tv_schema_guard(db):
        slot = await TVAssignmentService.get_slot(db, slot_id)
        if not slot:
            raise HTTPException(status_code=404, detail="TV slot not found")

        values = dict(changes)
        if "sold_at" in values:
            values["sold_at"] = parse_sold_at(values["sold_at"])
        for field in ("starts_at", "expires_at"):
            if field in values:
                values[field] = parse_date_input(values[field], field)
        if "notes" in values:
            values["notes"] = (values["notes"] or "").strip() or None
        if values.get("status") and values["status"] != SlotStatus.ASSIGNED and "password" not in values:
            values["password"] = generate_numeric_password()

        await db.execute(
            update(TVSlot)
            .where(TVSlot.id == slot_id)
            .values(updated_at=utc_now(), **values)
            .execution_options(synchronize_session=False)
        )

        recorded = {field: value for field, value in values.items() if field != "password"}
        if "password" in values:
            recorded["password_changed"] = True
        await TVAssignmentService.record_history(
            db, slot_id, SlotAction.UPDATED, {"changes": recorded, "updated_by": user.id}
        )
        await db.commit()

        updated = await TVAssignmentService.get_slot(db, slot_id)
    return TVSlotResponse.from_slot(updated)


@router.post("/slots/{slot_id}/release", response_model=TVSlotResponse)
async def release_slot(
    slot_id: UUID,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    slot = await TVAssignmentService.release_slot(db, slot_id)
    return TVSlotResponse.from_slot(slot)


@router.get("/slots/{slot_id}/history", response_model=List[TVSlotHistoryResponse])
async def slot_history(
    slot_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        result = await db.execute(
            select(TVSlotHistory)
            .where(TVSlotHistory.tv_slot_id == slot_id)
            .order_by(TVSlotHistory.created_at.desc())
        )
        rows = result.scalars().all()
    except DBAPIError as exc:
        if not is_schema_missing(exc):
            raise
        await db.rollback()
        return []
    return [TVSlotHistoryResponse.from_history(row) for row in rows]


# ------------------------------------------------------------------
# OVERVIEW
# ------------------------------------------------------------------
@router.get("/overview", response_model=TVOverviewPage)
async def tv_overview(
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Paginated list of assigned slots together with their clients.

    Profiles are labelled per client within the returned page.
    """
    conditions = [TVSlot.status == SlotStatus.ASSIGNED, TVSlot.client_id.is_not(None)]
    if search and search.strip():
        term = f"%{search.strip()}%"
        conditions.append(or_(
            TVSlot.username.ilike(term),
            TVSlot.sold_by.ilike(term),
            TVSlot.notes.ilike(term),
            cast(TVSlot.plan_type, String).ilike(term),
            cast(TVSlot.status, String).ilike(term),
            cast(TVSlot.slot_number, String).ilike(term),
            TVAccount.email.ilike(term),
            Client.name.ilike(term),
            Client.email.ilike(term),
            Client.phone.ilike(term),
            Client.document.ilike(term),
        ))

    try:
        total = await db.scalar(
            select(func.count(TVSlot.id))
            .join(TVSlot.account)
            .join(TVSlot.client)
            .where(*conditions)
        )
        result = await db.execute(
            select(TVSlot)
            .join(TVSlot.account)
            .join(TVSlot.client)
            .options(contains_eager(TVSlot.account), contains_eager(TVSlot.client))
            .where(*conditions)
            .order_by(TVAccount.email, TVSlot.slot_number)
            .offset(page_offset(page, limit))
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        slots = result.scalars().all()
    except DBAPIError as exc:
        if not is_schema_missing(exc):
            raise
        await db.rollback()
        print("[TV] [WARNING] TV tables unavailable, returning an empty overview")
        return page_payload([], page, limit, 0)

    items = [
        TVOverviewItem(
            id=slot.id,
            slot_number=slot.slot_number,
            username=slot.username,
            email=slot.account.email,
            status=slot.status,
            password=slot.password,
            sold_by=slot.sold_by,
            sold_at=slot.sold_at,
            starts_at=slot.starts_at,
            expires_at=slot.expires_at,
            notes=slot.notes,
            plan_type=slot.plan_type,
            has_telephony=slot.has_telephony,
            client=ClientBrief.model_validate(slot.client),
            client_id=slot.client_id,
            document=slot.client.document,
        )
        for slot in slots
    ]

    by_client = {}
    for item in items:
        by_client.setdefault(item.client_id, []).append(item)
    for group in by_client.values():
        label_assignments(group)

    return page_payload(items, page, limit, total or 0)


@router.get("/next-email", response_model=NextEmailResponse)
async def next_email(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await TVAssignmentService.next_account_email(db)


# ------------------------------------------------------------------
# ACCOUNTS
# ------------------------------------------------------------------
@router.get("/accounts", response_model=List[TVAccountWithSlots])
async def list_accounts(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        result = await db.execute(
            select(TVAccount)
            .options(selectinload(TVAccount.slots))
            .order_by(TVAccount.email)
            .execution_options(populate_existing=True)
        )
        accounts = result.scalars().all()
    except DBAPIError as exc:
        if not is_schema_missing(exc):
            raise
        await db.rollback()
        return []

    return [
        {
            "account": TVAccountResponse.model_validate(account),
            "slots": [TVSlotResponse.from_slot(slot, account) for slot in account.slots],
        }
        for account in accounts
    ]


@router.get("/accounts/list", response_model=List[TVAccountSummary])
async def list_account_summaries(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Slot counters per account, standard accounts first."""
    try:
        result = await db.execute(
            select(TVAccount)
            .options(selectinload(TVAccount.slots))
            .execution_options(populate_existing=True)
        )
        accounts = result.scalars().all()
    except DBAPIError as exc:
        if not is_schema_missing(exc):
            raise
        await db.rollback()
        return []

    summaries = []
    for account in sorted(accounts, key=lambda item: account_sort_key(item.email)):
        slots = account.slots
        summaries.append(TVAccountSummary(
            id=account.id,
            email=account.email,
            total_slots=len(slots),
            available_slots=sum(
                1 for slot in slots if slot.status == SlotStatus.AVAILABLE and slot.client_id is None
            ),
            assigned_slots=sum(
                1 for slot in slots if slot.status == SlotStatus.ASSIGNED and slot.client_id is not None
            ),
            created_at=account.created_at,
        ))
    return summaries


@router.post("/accounts/reset")
async def reset_accounts(
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await TVAssignmentService.reset_accounts_to_first(db)


@router.post("/accounts/migrate")
async def migrate_account(
    payload: TVMigrateRequest,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await TVAssignmentService.migrate_account_slots(
        db, payload.from_account_id, payload.to_account_id
    )


@router.patch("/accounts/{account_id}", response_model=TVAccountResponse)
async def update_account(
    account_id: UUID,
    payload: TVAccountUpdate,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    Rename a TV account.

    Raises:
        HTTPException 404: If the account does not exist
        HTTPException 409: If another account already uses the email
    """
    email = str(payload.email).strip().lower()
    account = await _get_account_or_404(db, account_id)

    duplicate = await db.scalar(
        select(TVAccount.id).where(TVAccount.email == email).where(TVAccount.id != account_id)
    )
    if duplicate:
        raise HTTPException(status_code=409, detail="Another TV account already uses this email")

    account.email = email
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        if is_unique_violation(exc):
            raise HTTPException(status_code=409, detail="Another TV account already uses this email")
        raise
    await db.refresh(account)
    return account


@router.get("/accounts/{account_id}/slots", response_model=List[TVAccountSlotItem])
async def account_slots(
    account_id: UUID,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await _get_account_or_404(db, account_id)
    result = await db.execute(
        select(TVSlot)
        .options(selectinload(TVSlot.client))
        .where(TVSlot.tv_account_id == account_id)
        .order_by(TVSlot.slot_number)
        .execution_options(populate_existing=True)
    )
    return [
        TVAccountSlotItem(
            id=slot.id,
            slot_number=slot.slot_number,
            username=slot.username,
            status=slot.status,
            client_id=slot.client_id,
            client=ClientBrief.model_validate(slot.client) if slot.client else None,
            plan_type=slot.plan_type,
            sold_by=slot.sold_by,
            sold_at=slot.sold_at,
            expires_at=slot.expires_at,
            notes=slot.notes,
            has_telephony=slot.has_telephony,
        )
        for slot in result.scalars().all()
    ]


@router.get("/accounts/{account_id}/usage", response_model=TVAccountUsage)
async def account_usage(
    account_id: UUID,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await _get_account_or_404(db, account_id)
    total = await db.scalar(select(func.count(TVSlot.id)).where(TVSlot.tv_account_id == account_id))
    assigned = await db.scalar(
        select(func.count(TVSlot.id))
        .where(TVSlot.tv_account_id == account_id)
        .where(TVSlot.status == SlotStatus.ASSIGNED)
        .where(TVSlot.client_id.is_not(None))
    )
    return {"total_slots": total or 0, "assigned_slots": assigned or 0}
