from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import or_, select
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.database import get_db
from app.core.dependencies import get_current_user
from app.core.errors import is_schema_missing
from app.core.supabase_admin import SupabaseAdmin, get_optional_supabase_admin
from app.core.validation import only_digits
from app.models.client import Client
from app.models.client_service import ClientService
from app.models.cloud_access import CloudAccess
from app.models.tv_slot import TVSlot
from app.schemas.report import ServiceReport
from app.schemas.user import CurrentUser

router = APIRouter()

DEFAULT_REPORT_LIMIT = 2000
MAX_REPORT_LIMIT = 10000


def service_category(name: str, default: str = "OTHER") -> str:
    """
    Classify a service by name.

    Example:
        >>> service_category("Nexus Hub Pro")
        'HUB'
    """
    lower = (name or "").lower()
    if "hub" in lower:
        return "HUB"
    if "tele" in lower:
        return "TELE"
    if "cloud" in lower:
        return "CLOUD"
    return default


def _is_tv_name(name: str) -> bool:
    lower = (name or "").strip().lower()
    return lower == "tv" or lower.startswith("tv ")


async def _vendor_names(supabase_admin: Optional[SupabaseAdmin]) -> Dict[str, str]:
    if supabase_admin is None:
        return {}
    try:
        users = await supabase_admin.list_users()
    except HTTPException as e:
        print(f"[REPORTS] [WARNING] Could not load vendors: {e.detail}")
        return {}
    return {user["id"]: user["name"] or user["email"] for user in users if user["name"] or user["email"]}


async def _safe_scalars(db: AsyncSession, stmt, label: str) -> list:
    try:
        async with db.begin_nested():
            return list((await db.execute(stmt)).scalars().all())
    except DBAPIError as exc:
        if not is_schema_missing(exc):
            raise
        print(f"[REPORTS] [WARNING] {label} unavailable, skipping")
        return []


@router.get("/services", response_model=ServiceReport)
async def services_report(
    category: Optional[str] = Query(None, description="TV, HUB, TELE, CLOUD, OTHER or ALL"),
    service: Optional[str] = Query(None, description="Comma-separated service name fragments"),
    document: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    limit: int = Query(DEFAULT_REPORT_LIMIT, ge=1),
    user: CurrentUser = Depends(get_current_user),
    supabase_admin: Optional[SupabaseAdmin] = Depends(get_optional_supabase_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    Flat report of everything sold, one row per TV profile, cloud access
    and client service.

    TV-named client services are left out for clients that already have TV
    slots, since the slots are listed individually. Rows are sorted by
    client name, then category.
    """
    limit = min(limit, MAX_REPORT_LIMIT)
    doc_digits = only_digits(document)

    stmt = select(Client).order_by(Client.name)
    if doc_digits:
        stmt = stmt.where(Client.document == doc_digits)
    elif search and search.strip():
        term = f"%{search.strip()}%"
        stmt = stmt.where(or_(
            Client.name.ilike(term),
            Client.email.ilike(term),
            Client.company_name.ilike(term),
            Client.document.ilike(term),
        ))
    clients = {client.id: client for client in (await db.execute(stmt)).scalars().all()}
    if not clients:
        return {"data": [], "total": 0}

    vendors = await _vendor_names(supabase_admin)
    client_ids = list(clients)
    rows = []

    def base_row(client: Client) -> dict:
        return {
            "client_id": client.id,
            "client_name": client.name,
            "client_document": client.document,
            "client_email": client.email,
            "client_vendor_name": vendors.get(client.opened_by) if client.opened_by else None,
        }

    slots = await _safe_scalars(
        db,
        select(TVSlot).options(selectinload(TVSlot.account)).where(TVSlot.client_id.in_(client_ids)),
        "tv_slots",
    )
    for slot in slots:
        plan = slot.plan_type.value if slot.plan_type else None
        account_email = slot.account.email if slot.account else slot.username
        rows.append({
            **base_row(clients[slot.client_id]),
            "id": str(slot.id),
            "category": "TV",
            "service_id": plan,
            "service_name": f"TV {plan}" if plan else "TV",
            "identifier": f"{account_email} · Perfil {slot.slot_number}",
            "plan_type": plan,
            "responsible": slot.sold_by,
            "status": slot.status.value,
            "starts_at": slot.starts_at,
            "expires_at": slot.expires_at,
            "notes": slot.notes,
            "service_vendor_name": vendors.get(slot.sold_by) if slot.sold_by else None,
        })

    accesses = await _safe_scalars(
        db,
        select(CloudAccess).options(selectinload(CloudAccess.service)).where(CloudAccess.client_id.in_(client_ids)),
        "cloud_accesses",
    )
    for access in accesses:
        name = access.service.name if access.service else "Cloud"
        rows.append({
            **base_row(clients[access.client_id]),
            "id": str(access.id),
            "category": service_category(name, default="CLOUD"),
            "service_id": str(access.service_id),
            "service_name": name,
            "identifier": name,
            "plan_type": "TESTE" if access.is_test else None,
            "status": "Teste" if access.is_test else None,
            "expires_at": access.expires_at,
            "notes": access.notes,
        })

    clients_with_tv = {slot.client_id for slot in slots}
    links = await _safe_scalars(
        db,
        select(ClientService).options(selectinload(ClientService.service)).where(ClientService.client_id.in_(client_ids)),
        "client_services",
    )
    for link in links:
        if link.service is None:
            continue
        name = link.service.name
        if _is_tv_name(name) and link.client_id in clients_with_tv:
            continue
        rows.append({
            **base_row(clients[link.client_id]),
            "id": f"{link.client_id}-{link.service_id}",
            "category": "TV" if _is_tv_name(name) else service_category(name),
            "service_id": str(link.service_id),
            "service_name": name,
            "identifier": name,
            "service_vendor_name": vendors.get(link.sold_by) if link.sold_by else None,
            "service_value": float(link.custom_price) if link.custom_price is not None else None,
        })

    wanted_category = (category or "ALL").strip().upper()
    if wanted_category != "ALL":
        rows = [row for row in rows if row["category"] == wanted_category]

    fragments = [item.strip().lower() for item in (service or "").split(",") if item.strip()]
    if fragments:
        rows = [row for row in rows if any(fragment in row["service_name"].lower() for fragment in fragments)]

    rows.sort(key=lambda row: (row["client_name"].casefold(), row["category"]))
    rows = rows[:limit]
    return {"data": rows, "total": len(rows)}
