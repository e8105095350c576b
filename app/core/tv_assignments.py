"""
TV slot inventory: account pool growth, slot assignment, release and resets.

Accounts are created on demand in batches of USERS_PER_ACCOUNT slots and
named after the user range they hold (1a8, 9a16, ...). A slot is handed out
with a conditional UPDATE so two concurrent sales never get the same seat.
"""
import asyncio
import math
import os
import re
from contextlib import asynccontextmanager
from datetime import date
from typing import Dict, List, Optional
from uuid import UUID

from fastapi import HTTPException, status
from fastapi.encoders import jsonable_encoder
from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.database import utc_now
from app.core.errors import is_schema_missing, is_unique_violation, tv_unavailable
from app.core.security import generate_numeric_password
from app.core.validation import parse_date_input, parse_sold_at
from app.models.tv_account import TVAccount
from app.models.tv_slot import PlanType, SlotStatus, TVSlot
from app.models.tv_slot_history import SlotAction, TVSlotHistory
from app.schemas.tv import ClientTVAssignment, TVAssignRequest, TVSlotHistoryResponse

USERS_PER_ACCOUNT = 8
TOTAL_USERS_TARGET = 5000
MAX_ACCOUNT_INDEX = math.ceil(TOTAL_USERS_TARGET / USERS_PER_ACCOUNT) - 1
MAX_BULK_ASSIGN_QUANTITY = 50
MAX_RETRY_ATTEMPTS = 5
RETRY_DELAY_SECONDS = 0.1
NEXT_EMAIL_SCAN_LIMIT = 100

TV_EMAIL_DOMAIN = os.getenv("TV_EMAIL_DOMAIN", "nexusrs.com.br").lower()

_STANDARD_LOCAL_PART = re.compile(r"^(\d+)a(\d+)$")

# Sale fields wiped whenever a slot goes back to the pool
_CLEARED_SALE_FIELDS = {
    "client_id": None,
    "sold_by": None,
    "sold_at": None,
    "expires_at": None,
    "notes": None,
    "plan_type": None,
    "has_telephony": None,
}


@asynccontextmanager
async def tv_schema_guard(db: AsyncSession):
    """Translate missing TV tables into a 503 for write operations."""
    try:
        yield
    except DBAPIError as exc:
        if not is_schema_missing(exc):
            raise
        await db.rollback()
        print(f"[TV] [ERROR] TV tables unavailable: {exc.orig}")
        raise tv_unavailable()


def account_sort_key(email: str) -> tuple:
    """Standard accounts first, by index; custom emails after, alphabetically."""
    index = TVAssignmentService.parse_email_index(email)
    if index is not None and TVAssignmentService.is_standard_email(email):
        return (0, index, "")
    return (1, 0, (email or "").casefold())


def build_client_assignment(slot: TVSlot, history: Optional[List[TVSlotHistory]] = None) -> ClientTVAssignment:
    assigned = slot.status == SlotStatus.ASSIGNED
    account = slot.__dict__.get("account")
    return ClientTVAssignment(
        slot_id=slot.id,
        slot_number=slot.slot_number,
        username=slot.username,
        email=account.email if account is not None else "",
        password=slot.password,
        status=slot.status,
        sold_by=slot.sold_by,
        sold_at=slot.sold_at,
        starts_at=slot.starts_at if assigned else None,
        expires_at=slot.expires_at,
        notes=slot.notes,
        plan_type=slot.plan_type if assigned else None,
        has_telephony=slot.has_telephony,
        history=[TVSlotHistoryResponse.from_history(row) for row in (history or [])],
        client_id=slot.client_id,
    )


def label_assignments(assignments: list) -> None:
    """
    Sort one client's assignments by account email and slot number, then
    number them "Perfil 1", "Perfil 2", ... History is ordered newest first.
    """
    assignments.sort(key=lambda item: (item.email.casefold(), item.slot_number))
    for position, item in enumerate(assignments, start=1):
        item.profile_label = f"Perfil {position}"
        history = getattr(item, "history", None)
        if history:
            history.sort(key=lambda entry: entry.created_at, reverse=True)


class TVAssignmentService:
    """
    Static operations over tv_accounts, tv_slots and tv_slot_history.

    Every method receives the request's AsyncSession and commits its own work.
    """

    # ------------------------------------------------------------------
    # ACCOUNT NAMING
    # ------------------------------------------------------------------
    @staticmethod
    def build_account_email(index: int) -> str:
        """
        Build the standard email of the account at `index`.

        Example:
            >>> TVAssignmentService.build_account_email(1)
            '9a16@nexusrs.com.br'
        """
        start = index * USERS_PER_ACCOUNT + 1
        end = start + USERS_PER_ACCOUNT - 1
        return f"{start}a{end}@{TV_EMAIL_DOMAIN}"

    @staticmethod
    def parse_email_index(email: Optional[str]) -> Optional[int]:
        local_part = (email or "").split("@")[0]
        match = _STANDARD_LOCAL_PART.match(local_part)
        if not match:
            return None
        start = int(match.group(1))
        if start < 1:
            return None
        return (start - 1) // USERS_PER_ACCOUNT

    @staticmethod
    def is_standard_email(email: Optional[str]) -> bool:
        if not email or "@" not in email:
            return False
        local_part, domain = email.lower().split("@", 1)
        return domain == TV_EMAIL_DOMAIN and bool(_STANDARD_LOCAL_PART.match(local_part))

    # ------------------------------------------------------------------
    # POOL GROWTH
    # ------------------------------------------------------------------
    @staticmethod
    async def determine_next_account_index(db: AsyncSession) -> int:
        """
        Find the lowest account index not used by any standard account.

        Raises:
            HTTPException 409: If the pool already reached TOTAL_USERS_TARGET
        """
        result = await db.execute(select(TVAccount.email))
        used = set()
        for email in result.scalars().all():
            if TVAssignmentService.is_standard_email(email):
                used.add(TVAssignmentService.parse_email_index(email))

        index = 0
        while index in used:
            index += 1

        if index > MAX_ACCOUNT_INDEX:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"TV account limit reached ({TOTAL_USERS_TARGET} users)",
            )
        return index

    @staticmethod
    async def create_account_batch(db: AsyncSession, index: int) -> bool:
        """
        Create the standard account at `index` with its 8 available slots.

        Returns:
            bool: False if another request created the same account first
        """
        email = TVAssignmentService.build_account_email(index)
        start = index * USERS_PER_ACCOUNT + 1

        try:
            async with db.begin_nested():
                account = TVAccount(email=email, max_slots=USERS_PER_ACCOUNT)
                db.add(account)
                await db.flush()
                for number in range(1, USERS_PER_ACCOUNT + 1):
                    db.add(TVSlot(
                        tv_account_id=account.id,
                        slot_number=number,
                        username=str(start + number - 1),
                        password=generate_numeric_password(),
                        status=SlotStatus.AVAILABLE,
                    ))
                await db.flush()
        except IntegrityError as exc:
            if is_unique_violation(exc):
                print(f"[TV] Account {email} already created by a concurrent request")
                return False
            raise

        await db.commit()
        print(f"[TV] Created account {email} with {USERS_PER_ACCOUNT} slots")
        return True

    # ------------------------------------------------------------------
    # HISTORY
    # ------------------------------------------------------------------
    @staticmethod
    async def record_history(
        db: AsyncSession,
        slot_id: UUID,
        action: SlotAction,
        details: Optional[dict] = None,
    ) -> bool:
        """
        Append a history row for a slot. A missing history table is tolerated.

        Returns:
            bool: True if the row was written
        """
        try:
            async with db.begin_nested():
                db.add(TVSlotHistory(
                    tv_slot_id=slot_id,
                    action=action.value,
                    details=jsonable_encoder(details or {}),
                ))
                await db.flush()
        except DBAPIError as exc:
            if not is_schema_missing(exc):
                raise
            print(f"[TV] [WARNING] tv_slot_history unavailable, {action.value} not recorded")
            return False
        return True

    @staticmethod
    async def fetch_history_for_slots(
        db: AsyncSession,
        slot_ids: List[UUID],
    ) -> Dict[UUID, List[TVSlotHistory]]:
        """Group history rows by slot, newest first. Empty if the table is missing."""
        histories: Dict[UUID, List[TVSlotHistory]] = {}
        if not slot_ids:
            return histories
        try:
            async with db.begin_nested():
                result = await db.execute(
                    select(TVSlotHistory)
                    .where(TVSlotHistory.tv_slot_id.in_(slot_ids))
                    .order_by(TVSlotHistory.created_at.desc())
                )
                rows = result.scalars().all()
        except DBAPIError as exc:
            if not is_schema_missing(exc):
                raise
            print("[TV] [WARNING] tv_slot_history unavailable, returning slots without history")
            return histories

        for row in rows:
            histories.setdefault(row.tv_slot_id, []).append(row)
        return histories

    @staticmethod
    async def previously_assigned_slot_ids(db: AsyncSession) -> set:
        try:
            async with db.begin_nested():
                result = await db.execute(
                    select(TVSlotHistory.tv_slot_id)
                    .where(TVSlotHistory.action == SlotAction.ASSIGNED.value)
                    .distinct()
                )
                return set(result.scalars().all())
        except DBAPIError as exc:
            if not is_schema_missing(exc):
                raise
            print("[TV] [WARNING] tv_slot_history unavailable, skipping history filter")
            return set()

    @staticmethod
    async def _clear_history(db: AsyncSession, slot_ids: Optional[List[UUID]] = None) -> None:
        try:
            async with db.begin_nested():
                stmt = delete(TVSlotHistory)
                if slot_ids is not None:
                    stmt = stmt.where(TVSlotHistory.tv_slot_id.in_(slot_ids))
                await db.execute(stmt)
        except DBAPIError as exc:
            if not is_schema_missing(exc):
                raise
            print("[TV] [WARNING] tv_slot_history unavailable, nothing to clear")

    # ------------------------------------------------------------------
    # SLOT LOOKUP
    # ------------------------------------------------------------------
    @staticmethod
    async def get_slot(db: AsyncSession, slot_id: UUID) -> Optional[TVSlot]:
        result = await db.execute(
            select(TVSlot)
            .options(selectinload(TVSlot.account))
            .where(TVSlot.id == slot_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def fetch_available_slot(db: AsyncSession) -> Optional[TVSlot]:
        """
        Pick the next free slot that was never assigned before.

        Slots are ordered by account index, then slot number, so the pool is
        consumed in order: 1a8 slot 1..8, then 9a16, and so on.
        """
        result = await db.execute(
            select(TVSlot)
            .options(selectinload(TVSlot.account))
            .where(TVSlot.status == SlotStatus.AVAILABLE)
            .where(TVSlot.client_id.is_(None))
        )
        candidates = result.scalars().all()
        if not candidates:
            return None

        used = await TVAssignmentService.previously_assigned_slot_ids(db)
        fresh = [slot for slot in candidates if slot.id not in used]
        if not fresh:
            return None

        fresh.sort(key=lambda slot: account_sort_key(slot.account.email) + (slot.slot_number,))
        return fresh[0]

    @staticmethod
    async def ensure_available_slot_exists(db: AsyncSession) -> TVSlot:
        """
        Return a free slot, growing the pool with a new account when empty.

        Raises:
            HTTPException 409: If the account limit is reached
            HTTPException 500: If no slot could be secured after MAX_RETRY_ATTEMPTS
        """
        for attempt in range(1, MAX_RETRY_ATTEMPTS + 1):
            slot = await TVAssignmentService.fetch_available_slot(db)
            if slot:
                return slot

            index = await TVAssignmentService.determine_next_account_index(db)
            created = await TVAssignmentService.create_account_batch(db, index)
            if not created:
                await asyncio.sleep(RETRY_DELAY_SECONDS * attempt)

        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not find an available TV slot. Try again.",
        )

    @staticmethod
    async def _claim_custom_email_slot(db: AsyncSession, email: str) -> TVSlot:
        """
        Return the free slot of a dedicated single-slot account, creating the
        account on first use.
        """
        email = email.strip().lower()
        result = await db.execute(
            select(TVAccount).options(selectinload(TVAccount.slots)).where(TVAccount.email == email)
        )
        account = result.scalar_one_or_none()

        if account is None:
            account = TVAccount(email=email, max_slots=1)
            db.add(account)
            await db.flush()
            db.add(TVSlot(
                tv_account_id=account.id,
                slot_number=1,
                username=email.split("@")[0],
                password=generate_numeric_password(),
                status=SlotStatus.AVAILABLE,
            ))
            await db.commit()
            print(f"[TV] Created custom account {email}")

        result = await db.execute(
            select(TVSlot)
            .options(selectinload(TVSlot.account))
            .where(TVSlot.tv_account_id == account.id)
            .where(TVSlot.status == SlotStatus.AVAILABLE)
            .where(TVSlot.client_id.is_(None))
            .order_by(TVSlot.slot_number)
            .limit(1)
        )
        slot = result.scalar_one_or_none()
        if slot is None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"TV account {email} has no free slot",
            )
        return slot

    # ------------------------------------------------------------------
    # ASSIGNMENT
    # ------------------------------------------------------------------
    @staticmethod
    async def assign_slot_to_client(db: AsyncSession, params: TVAssignRequest) -> TVSlot:
        """
        Assign one slot to a client.

        The slot is claimed with an UPDATE guarded by status='AVAILABLE' and
        client_id IS NULL; if another request wins the race the next free slot
        is tried. A fresh password is generated on every assignment.

        Args:
            db (AsyncSession): Database session
            params (TVAssignRequest): Client and sale information

        Returns:
            TVSlot: The assigned slot with its account loaded

        Raises:
            HTTPException 503: If the TV tables do not exist
            HTTPException 500: If no slot could be claimed
        """
        sold_at = parse_sold_at(params.sold_at) or utc_now()
        if params.starts_at is None:
            starts_at = date.today()
        else:
            starts_at = parse_date_input(params.starts_at, "starts_at")
        expires_at = parse_date_input(params.expires_at, "expires_at")
        notes = (params.notes or "").strip() or None

        async with tv_schema_guard(db):
            claimed = None
            for attempt in range(1, MAX_RETRY_ATTEMPTS + 1):
                if params.custom_email:
                    slot = await TVAssignmentService._claim_custom_email_slot(db, params.custom_email)
                else:
                    slot = await TVAssignmentService.ensure_available_slot_exists(db)
                slot_id = slot.id

                result = await db.execute(
                    update(TVSlot)
                    .where(TVSlot.id == slot_id)
                    .where(TVSlot.status == SlotStatus.AVAILABLE)
                    .where(TVSlot.client_id.is_(None))
                    .values(
                        status=SlotStatus.ASSIGNED,
                        client_id=params.client_id,
                        password=generate_numeric_password(),
                        sold_by=params.sold_by,
                        sold_at=sold_at,
                        starts_at=starts_at,
                        expires_at=expires_at,
                        notes=notes,
                        plan_type=params.plan_type,
                        has_telephony=params.has_telephony,
                        updated_at=utc_now(),
                    )
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 1:
                    await db.commit()
                    claimed = slot_id
                    break

                await db.rollback()
                print(f"[TV] Slot {slot_id} taken concurrently (attempt {attempt}/{MAX_RETRY_ATTEMPTS})")
                await asyncio.sleep(RETRY_DELAY_SECONDS * attempt)

            if claimed is None:
                raise HTTPException(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    detail="Could not assign a TV slot after several attempts",
                )

            await TVAssignmentService.record_history(db, claimed, SlotAction.ASSIGNED, {
                "client_id": params.client_id,
                "sold_by": params.sold_by,
                "sold_at": sold_at,
                "expires_at": expires_at,
                "notes": notes,
            })
            await db.commit()

            assigned = await TVAssignmentService.get_slot(db, claimed)

        print(
            f"[TV] Slot {assigned.account.email}#{assigned.slot_number} "
            f"assigned to client {params.client_id}"
        )
        return assigned

    @staticmethod
    async def assign_multiple_slots_to_client(
        db: AsyncSession,
        params: TVAssignRequest,
        quantity: int,
    ) -> List[TVSlot]:
        """
        Assign `quantity` slots to the same client, one after the other.

        A custom email, when given, is only used for the first slot.

        Raises:
            HTTPException 400: If quantity is outside 1..MAX_BULK_ASSIGN_QUANTITY
        """
        if quantity < 1 or quantity > MAX_BULK_ASSIGN_QUANTITY:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Quantity must be between 1 and {MAX_BULK_ASSIGN_QUANTITY}",
            )

        slots = []
        for position in range(quantity):
            current = params if position == 0 else params.model_copy(update={"custom_email": None})
            slots.append(await TVAssignmentService.assign_slot_to_client(db, current))
        return slots

    # ------------------------------------------------------------------
    # RELEASE
    # ------------------------------------------------------------------
    @staticmethod
    async def release_slots_for_client(db: AsyncSession, client_id: UUID) -> int:
        """
        Release every slot held by a client (service removed).

        Released slots become USED and get a new password so the former
        client loses access.

        Returns:
            int: Number of slots released
        """
        async with tv_schema_guard(db):
            result = await db.execute(select(TVSlot.id).where(TVSlot.client_id == client_id))
            slot_ids = list(result.scalars().all())
            if not slot_ids:
                return 0

            await db.execute(update(TVSlot), [
                {
                    "id": slot_id,
                    "status": SlotStatus.USED,
                    "password": generate_numeric_password(),
                    "updated_at": utc_now(),
                    **_CLEARED_SALE_FIELDS,
                }
                for slot_id in slot_ids
            ])
            for slot_id in slot_ids:
                await TVAssignmentService.record_history(
                    db, slot_id, SlotAction.RELEASED, {"reason": "SERVICE_REMOVED"}
                )
            await db.commit()

        print(f"[TV] Released {len(slot_ids)} slot(s) from client {client_id}")
        return len(slot_ids)

    @staticmethod
    async def release_slot(db: AsyncSession, slot_id: UUID) -> TVSlot:
        """
        Release a single slot.

        Raises:
            HTTPException 404: If the slot does not exist
        """
        async with tv_schema_guard(db):
            slot = await TVAssignmentService.get_slot(db, slot_id)
            if not slot:
                raise HTTPException(status_code=404, detail="TV slot not found")

            await db.execute(
                update(TVSlot)
                .where(TVSlot.id == slot_id)
                .values(
                    status=SlotStatus.USED,
                    password=generate_numeric_password(),
                    updated_at=utc_now(),
                    **_CLEARED_SALE_FIELDS,
                )
                .execution_options(synchronize_session=False)
            )
            await TVAssignmentService.record_history(db, slot_id, SlotAction.RELEASED, {})
            await db.commit()
            return await TVAssignmentService.get_slot(db, slot_id)

    @staticmethod
    async def reduce_client_slots(
        db: AsyncSession,
        client_id: UUID,
        plan_type: PlanType,
        count: int,
    ) -> int:
        """
        Return the `count` most recently sold slots of a plan to the pool.

        Slots without a plan count as ESSENCIAL.
        """
        if count <= 0:
            return 0

        async with tv_schema_guard(db):
            stmt = (
                select(TVSlot.id)
                .where(TVSlot.client_id == client_id)
                .where(TVSlot.status == SlotStatus.ASSIGNED)
            )
            if plan_type == PlanType.ESSENCIAL:
                stmt = stmt.where(or_(TVSlot.plan_type.is_(None), TVSlot.plan_type == PlanType.ESSENCIAL))
            else:
                stmt = stmt.where(TVSlot.plan_type == plan_type)
            stmt = stmt.order_by(TVSlot.sold_at.desc(), TVSlot.slot_number.desc()).limit(count)

            slot_ids = list((await db.execute(stmt)).scalars().all())
            if not slot_ids:
                return 0

            await db.execute(update(TVSlot), [
                {
                    "id": slot_id,
                    "status": SlotStatus.AVAILABLE,
                    "starts_at": date.today(),
                    "updated_at": utc_now(),
                    **_CLEARED_SALE_FIELDS,
                }
                for slot_id in slot_ids
            ])
            for slot_id in slot_ids:
                await TVAssignmentService.record_history(
                    db, slot_id, SlotAction.RELEASED, {"reason": "QUANTITY_REDUCED"}
                )
            await db.commit()

        print(f"[TV] Removed {len(slot_ids)} {plan_type.value} slot(s) from client {client_id}")
        return len(slot_ids)

    @staticmethod
    async def update_client_sale_details(
        db: AsyncSession,
        client_id: UUID,
        values: dict,
    ) -> None:
        """Overwrite sale fields (seller, dates, notes) on all assigned slots of a client."""
        async with tv_schema_guard(db):
            await db.execute(
                update(TVSlot)
                .where(TVSlot.client_id == client_id)
                .where(TVSlot.status == SlotStatus.ASSIGNED)
                .values(updated_at=utc_now(), **values)
                .execution_options(synchronize_session=False)
            )
            await db.commit()

    # ------------------------------------------------------------------
    # MAINTENANCE
    # ------------------------------------------------------------------
    @staticmethod
    async def randomize_all_tv_passwords(db: AsyncSession) -> int:
        """Give every slot a new 4-digit password."""
        async with tv_schema_guard(db):
            slot_ids = list((await db.execute(select(TVSlot.id))).scalars().all())
            if slot_ids:
                await db.execute(update(TVSlot), [
                    {"id": slot_id, "password": generate_numeric_password(), "updated_at": utc_now()}
                    for slot_id in slot_ids
                ])
                await db.commit()

        print(f"[TV] Randomized passwords of {len(slot_ids)} slot(s)")
        return len(slot_ids)

    @staticmethod
    async def reset_tv_slots_to_start(db: AsyncSession) -> dict:
        """
        Return every slot to the pool and clear the slot history.

        Without history the never-assigned filter no longer excludes anything,
        so assignment starts again from 1a8 slot 1.

        Returns:
            dict: {"slots_reset": int}
        """
        async with tv_schema_guard(db):
            slot_ids = list((await db.execute(select(TVSlot.id))).scalars().all())
            await TVAssignmentService._clear_history(db)
            if slot_ids:
                await db.execute(update(TVSlot), [
                    {
                        "id": slot_id,
                        "status": SlotStatus.AVAILABLE,
                        "starts_at": None,
                        "password": generate_numeric_password(),
                        "updated_at": utc_now(),
                        **_CLEARED_SALE_FIELDS,
                    }
                    for slot_id in slot_ids
                ])
            await db.commit()

        print(f"[TV] Reset {len(slot_ids)} slot(s) to the start of the pool")
        return {"slots_reset": len(slot_ids)}

    @staticmethod
    async def reset_accounts_to_first(db: AsyncSession) -> dict:
        """
        Drop every account except the first standard one and rebuild its 8 slots.
        """
        first_email = TVAssignmentService.build_account_email(0)

        async with tv_schema_guard(db):
            result = await db.execute(select(TVAccount).where(TVAccount.email == first_email))
            account = result.scalar_one_or_none()
            if account is None:
                account = TVAccount(email=first_email, max_slots=USERS_PER_ACCOUNT)
                db.add(account)
                await db.flush()

            await db.execute(delete(TVAccount).where(TVAccount.id != account.id))
            await db.execute(
                delete(TVSlot)
                .where(TVSlot.tv_account_id == account.id)
                .where(TVSlot.slot_number > USERS_PER_ACCOUNT)
            )

            result = await db.execute(
                select(TVSlot.slot_number).where(TVSlot.tv_account_id == account.id)
            )
            existing = set(result.scalars().all())
            for number in range(1, USERS_PER_ACCOUNT + 1):
                if number not in existing:
                    db.add(TVSlot(
                        tv_account_id=account.id,
                        slot_number=number,
                        username=str(number),
                        password=generate_numeric_password(),
                        status=SlotStatus.AVAILABLE,
                    ))
            await db.flush()

            slot_ids = list((await db.execute(
                select(TVSlot.id).where(TVSlot.tv_account_id == account.id)
            )).scalars().all())
            await db.execute(update(TVSlot), [
                {
                    "id": slot_id,
                    "status": SlotStatus.AVAILABLE,
                    "starts_at": None,
                    "password": generate_numeric_password(),
                    "updated_at": utc_now(),
                    **_CLEARED_SALE_FIELDS,
                }
                for slot_id in slot_ids
            ])
            await TVAssignmentService._clear_history(db, slot_ids)
            await db.commit()

        print(f"[TV] Accounts reset, next email is {first_email}")
        return {
            "message": f"TV accounts reset. Ready to start from {first_email.split('@')[0]}",
            "next_email": first_email,
            "available_slots": USERS_PER_ACCOUNT,
        }

    @staticmethod
    async def next_account_email(db: AsyncSession) -> dict:
        """
        Report which standard account the next sale will land in.

        Returns:
            dict: {"next_email", "available_slots", "exists"}
        """
        fallback = {
            "next_email": TVAssignmentService.build_account_email(0),
            "available_slots": 0,
            "exists": False,
        }
        try:
            result = await db.execute(select(TVAccount.id, TVAccount.email))
            standard = {
                email.lower(): account_id
                for account_id, email in result.all()
                if TVAssignmentService.is_standard_email(email)
            }

            for index in range(NEXT_EMAIL_SCAN_LIMIT):
                email = TVAssignmentService.build_account_email(index)
                account_id = standard.get(email)
                if account_id is None:
                    return {"next_email": email, "available_slots": 0, "exists": False}

                available = await db.scalar(
                    select(func.count(TVSlot.id))
                    .where(TVSlot.tv_account_id == account_id)
                    .where(TVSlot.status == SlotStatus.AVAILABLE)
                    .where(TVSlot.client_id.is_(None))
                )
                if available:
                    return {"next_email": email, "available_slots": available, "exists": True}
        except DBAPIError as exc:
            if not is_schema_missing(exc):
                raise
            print("[TV] [WARNING] TV tables unavailable, reporting first account")

        return fallback

    @staticmethod
    async def migrate_account_slots(db: AsyncSession, from_account_id: UUID, to_account_id: UUID) -> dict:
        """
        Move every assigned slot of one account onto free slots of another.

        Credentials travel with the assignment, so clients keep their login.

        Raises:
            HTTPException 400: Same account, nothing to migrate, or not enough room
            HTTPException 404: If either account does not exist
        """
        if from_account_id == to_account_id:
            raise HTTPException(status_code=400, detail="Cannot migrate an account to itself")

        async with tv_schema_guard(db):
            from_account = await db.get(TVAccount, from_account_id)
            if not from_account:
                raise HTTPException(status_code=404, detail="Source account not found")
            to_account = await db.get(TVAccount, to_account_id)
            if not to_account:
                raise HTTPException(status_code=404, detail="Destination account not found")

            result = await db.execute(
                select(TVSlot)
                .where(TVSlot.tv_account_id == from_account_id)
                .where(TVSlot.client_id.is_not(None))
                .where(TVSlot.status == SlotStatus.ASSIGNED)
                .order_by(TVSlot.slot_number)
            )
            to_migrate = result.scalars().all()
            if not to_migrate:
                raise HTTPException(
                    status_code=400,
                    detail=f"Account {from_account.email} has no assigned slots to migrate",
                )

            result = await db.execute(
                select(TVSlot)
                .where(TVSlot.tv_account_id == to_account_id)
                .where(TVSlot.client_id.is_(None))
                .where(TVSlot.status == SlotStatus.AVAILABLE)
                .order_by(TVSlot.slot_number)
            )
            free = result.scalars().all()
            if len(free) < len(to_migrate):
                raise HTTPException(
                    status_code=400,
                    detail=(
                        f"Account {to_account.email} has only {len(free)} free slot(s), "
                        f"{len(to_migrate)} needed"
                    ),
                )

            total_to = await db.scalar(
                select(func.count(TVSlot.id)).where(TVSlot.tv_account_id == to_account_id)
            )
            assigned_after = (total_to - len(free)) + len(to_migrate)
            if assigned_after > to_account.max_slots:
                raise HTTPException(
                    status_code=400,
                    detail=(
                        f"Account {to_account.email} would hold {assigned_after} assigned slot(s), "
                        f"maximum is {to_account.max_slots}"
                    ),
                )

            moved = []
            for source, target in zip(to_migrate, free):
                moved.append({
                    "id": target.id,
                    "status": SlotStatus.ASSIGNED,
                    "client_id": source.client_id,
                    "sold_by": source.sold_by,
                    "sold_at": source.sold_at,
                    "starts_at": source.starts_at,
                    "expires_at": source.expires_at,
                    "notes": source.notes,
                    "plan_type": source.plan_type,
                    "has_telephony": source.has_telephony,
                    "username": source.username,
                    "password": source.password,
                    "updated_at": utc_now(),
                })
            released = [
                {
                    "id": source.id,
                    "status": SlotStatus.AVAILABLE,
                    "starts_at": date.today(),
                    "updated_at": utc_now(),
                    **_CLEARED_SALE_FIELDS,
                }
                for source in to_migrate
            ]
            await db.execute(update(TVSlot), moved)
            await db.execute(update(TVSlot), released)
            await db.commit()

        print(f"[TV] Migrated {len(to_migrate)} slot(s) from {from_account.email} to {to_account.email}")
        return {
            "message": "Migration completed successfully",
            "migrated": {
                "from": {"email": from_account.email, "slots_count": len(to_migrate)},
                "to": {"email": to_account.email, "slots_count": len(to_migrate)},
            },
        }
