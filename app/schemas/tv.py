"""
Pydantic schemas for TV accounts, slots, slot history and assignments.
"""
from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List, Union
from datetime import date, datetime
from uuid import UUID

from app.models.tv_slot import PlanType, SlotStatus


# ------------------------------------------------------------------
# ACCOUNTS
# ------------------------------------------------------------------
class TVAccountResponse(BaseModel):
    id: UUID
    email: str
    max_slots: int = 8
    created_at: datetime

    class Config:
        from_attributes = True


class TVAccountUpdate(BaseModel):
    email: EmailStr


class TVAccountSummary(BaseModel):
    """Slot counters for one account (account list screen)."""
    id: UUID
    email: str
    total_slots: int
    available_slots: int
    assigned_slots: int
    created_at: datetime


class TVAccountUsage(BaseModel):
    total_slots: int
    assigned_slots: int


class TVMigrateRequest(BaseModel):
    from_account_id: UUID
    to_account_id: UUID


class NextEmailResponse(BaseModel):
    next_email: str
    available_slots: int
    exists: bool


# ------------------------------------------------------------------
# HISTORY
# ------------------------------------------------------------------
class TVSlotHistoryResponse(BaseModel):
    id: UUID
    action: str
    metadata: Optional[dict] = None
    created_at: datetime

    @classmethod
    def from_history(cls, row) -> "TVSlotHistoryResponse":
        return cls(id=row.id, action=row.action, metadata=row.details, created_at=row.created_at)


# ------------------------------------------------------------------
# SLOTS
# ------------------------------------------------------------------
class TVSlotResponse(BaseModel):
    """
    Slot as exposed by the API.

    starts_at and plan_type only make sense while the slot is assigned and
    are reported as null otherwise.
    """
    id: UUID
    tv_account_id: UUID
    slot_number: int
    username: str
    password: str
    status: SlotStatus
    client_id: Optional[UUID] = None
    sold_by: Optional[str] = None
    sold_at: Optional[datetime] = None
    starts_at: Optional[date] = None
    expires_at: Optional[date] = None
    notes: Optional[str] = None
    plan_type: Optional[PlanType] = None
    has_telephony: Optional[bool] = None
    created_at: datetime
    updated_at: datetime
    account: Optional[TVAccountResponse] = None

    @classmethod
    def from_slot(cls, slot, account=None) -> "TVSlotResponse":
        assigned = slot.status == SlotStatus.ASSIGNED
        account = account if account is not None else slot.__dict__.get("account")
        return cls(
            id=slot.id,
            tv_account_id=slot.tv_account_id,
            slot_number=slot.slot_number,
            username=slot.username,
            password=slot.password,
            status=slot.status,
            client_id=slot.client_id,
            sold_by=slot.sold_by,
            sold_at=slot.sold_at,
            starts_at=slot.starts_at if assigned else None,
            expires_at=slot.expires_at,
            notes=slot.notes,
            plan_type=slot.plan_type if assigned else None,
            has_telephony=slot.has_telephony,
            created_at=slot.created_at,
            updated_at=slot.updated_at,
            account=TVAccountResponse.model_validate(account) if account is not None else None,
        )


class ClientTVAssignment(BaseModel):
    """
    One TV profile held by a client, labelled "Perfil N" in display order.
    """
    slot_id: UUID
    slot_number: int
    username: str
    email: str
    password: str
    status: SlotStatus
    sold_by: Optional[str] = None
    sold_at: Optional[datetime] = None
    starts_at: Optional[date] = None
    expires_at: Optional[date] = None
    notes: Optional[str] = None
    plan_type: Optional[PlanType] = None
    has_telephony: Optional[bool] = None
    history: List[TVSlotHistoryResponse] = []
    client_id: Optional[UUID] = None
    profile_label: Optional[str] = None


class ClientBrief(BaseModel):
    id: UUID
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    document: Optional[str] = None

    class Config:
        from_attributes = True


class TVOverviewItem(BaseModel):
    id: UUID
    slot_number: int
    username: str
    email: str
    status: SlotStatus
    password: str
    sold_by: Optional[str] = None
    sold_at: Optional[datetime] = None
    starts_at: Optional[date] = None
    expires_at: Optional[date] = None
    notes: Optional[str] = None
    plan_type: Optional[PlanType] = None
    has_telephony: Optional[bool] = None
    client: Optional[ClientBrief] = None
    client_id: Optional[UUID] = None
    profile_label: Optional[str] = None
    document: Optional[str] = None


class TVOverviewPage(BaseModel):
    data: List[TVOverviewItem]
    page: int
    limit: int
    total: int
    total_pages: int


class TVAccountSlotItem(BaseModel):
    """Slot row in the per-account admin view."""
    id: UUID
    slot_number: int
    username: str
    status: SlotStatus
    client_id: Optional[UUID] = None
    client: Optional[ClientBrief] = None
    plan_type: Optional[PlanType] = None
    sold_by: Optional[str] = None
    sold_at: Optional[datetime] = None
    expires_at: Optional[date] = None
    notes: Optional[str] = None
    has_telephony: Optional[bool] = None


class TVAccountWithSlots(BaseModel):
    account: TVAccountResponse
    slots: List[TVSlotResponse]


# ------------------------------------------------------------------
# ASSIGNMENT INPUT
# ------------------------------------------------------------------
class TVAssignRequest(BaseModel):
    """
    Parameters for assigning a slot to a client.

    Dates accept ISO strings. A 10-character sold_at (YYYY-MM-DD) is read as
    noon UTC; starts_at defaults to today, an empty string clears it.
    """
    client_id: UUID
    sold_by: Optional[str] = None
    sold_at: Optional[Union[datetime, str]] = None
    starts_at: Optional[Union[date, str]] = None
    expires_at: Optional[Union[date, str]] = None
    notes: Optional[str] = None
    plan_type: Optional[PlanType] = None
    has_telephony: Optional[bool] = None
    custom_email: Optional[EmailStr] = None


class TVBatchAssignRequest(TVAssignRequest):
    quantity: int


class TVBatchAssignResponse(BaseModel):
    assignments: List[TVSlotResponse]
    count: int


class TVSlotUpdate(BaseModel):
    """
    Partial slot update. Regular users may only change notes.
    """
    status: Optional[SlotStatus] = None
    password: Optional[str] = Field(None, pattern=r"^\d{4}$")
    sold_by: Optional[str] = None
    sold_at: Optional[Union[datetime, str]] = None
    starts_at: Optional[Union[date, str]] = None
    expires_at: Optional[Union[date, str]] = None
    notes: Optional[str] = None
    plan_type: Optional[PlanType] = None
    has_telephony: Optional[bool] = None
