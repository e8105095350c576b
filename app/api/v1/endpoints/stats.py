import re
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Optional, Set

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, select
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import as_utc, get_db, utc_now
from app.core.dependencies import get_current_user
from app.core.errors import is_schema_missing
from app.core.tv_assignments import TOTAL_USERS_TARGET
from app.core.validation import document_type
from app.models.client import Client
from app.models.client_service import ClientService
from app.models.cloud_access import CloudAccess
from app.models.contract import Contract
from app.models.service import Service
from app.models.tv_slot import PlanType, SlotStatus, TVSlot
from app.schemas.contract import ContractResponse
from app.schemas.stats import DashboardStats, SalesReport, StatsOverview
from app.schemas.user import CurrentUser

router = APIRouter()

MONTH_LABELS = ["jan", "fev", "mar", "abr", "mai", "jun", "jul", "ago", "set", "out", "nov", "dez"]
_MONTH_PARAM = re.compile(r"^(\d{4})-(\d{2})$")

TV_SALES_KEYS = {PlanType.ESSENCIAL: "tv-essencial", PlanType.PREMIUM: "tv-premium"}
TV_SALES_NAMES = {PlanType.ESSENCIAL: "TV Essencial", PlanType.PREMIUM: "TV Premium"}


async def _rows_or_empty(db: AsyncSession, stmt, label: str) -> list:
    """Run a query whose table may not exist yet; missing tables yield []."""
    try:
        async with db.begin_nested():
            return (await db.execute(stmt)).all()
    except DBAPIError as exc:
        if not is_schema_missing(exc):
            raise
        print(f"[STATS] [WARNING] {label} unavailable, counting as empty")
        return []


@router.get("", response_model=DashboardStats)
async def dashboard_stats(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Headline counters for the dashboard."""
    total_clients = await db.scalar(select(func.count(Client.id)))
    total_contracts = await db.scalar(select(func.count(Contract.id)))

    tv_rows = await _rows_or_empty(
        db, select(func.count(TVSlot.id)).where(TVSlot.status == SlotStatus.ASSIGNED), "tv_slots"
    )
    cloud_rows = await _rows_or_empty(
        db,
        select(func.count(CloudAccess.id))
        .where(CloudAccess.is_test.is_(False))
        .where(CloudAccess.expires_at >= date.today()),
        "cloud_accesses",
    )

    return DashboardStats(
        total_clients=total_clients or 0,
        total_contracts=total_contracts or 0,
        active_tv_slots=tv_rows[0][0] if tv_rows else 0,
        active_cloud_accesses=cloud_rows[0][0] if cloud_rows else 0,
    )


@router.get("/overview", response_model=StatsOverview)
async def stats_overview(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Client segmentation, TV plan usage and the most recent contracts.

    A slot counts as used while it has a client and is not USED. Segments
    are "Todos", the two TV plans and one per non-TV service.
    """
    result = await db.execute(select(Client.id, Client.document, Client.created_at))
    clients = {
        client_id: (document_type(document), as_utc(created_at) if created_at else None)
        for client_id, document, created_at in result.all()
    }
    cutoff = utc_now() - timedelta(days=30)

    def metrics_for(ids: Set) -> dict:
        counts = {"cpf": 0, "cnpj": 0, "total": 0, "last_month": 0}
        for client_id in ids:
            info = clients.get(client_id)
            if info is None:
                continue
            doc_type, created_at = info
            counts["total"] += 1
            if doc_type == "CPF":
                counts["cpf"] += 1
            elif doc_type == "CNPJ":
                counts["cnpj"] += 1
            if created_at and created_at >= cutoff:
                counts["last_month"] += 1
        return counts

    slot_rows = await _rows_or_empty(
        db, select(TVSlot.client_id, TVSlot.plan_type, TVSlot.status), "tv_slots"
    )
    plan_clients: Dict[PlanType, Set] = {plan: set() for plan in PlanType}
    plan_slots: Dict[PlanType, int] = {plan: 0 for plan in PlanType}
    used_slots = 0
    for client_id, plan_type, slot_status in slot_rows:
        if client_id and slot_status != SlotStatus.USED:
            used_slots += 1
            if plan_type:
                plan_slots[PlanType(plan_type)] += 1
        if client_id and plan_type and client_id in clients:
            plan_clients[PlanType(plan_type)].add(client_id)

    metrics = {
        "all": metrics_for(set(clients)),
        "essencial": metrics_for(plan_clients[PlanType.ESSENCIAL]),
        "premium": metrics_for(plan_clients[PlanType.PREMIUM]),
    }

    service_segments: Dict = {}
    result = await db.execute(
        select(ClientService.client_id, Service.id, Service.name)
        .join(Service, Service.id == ClientService.service_id)
    )
    for client_id, service_id, service_name in result.all():
        if client_id not in clients or service_name.strip().lower() == "tv":
            continue
        segment = service_segments.setdefault(
            f"service-{service_id}", {"label": service_name, "clients": set()}
        )
        segment["clients"].add(client_id)

    segments = [
        {"key": "all", "label": "Todos", "metrics": metrics["all"]},
        {"key": "essencial", "label": "TV Essencial", "metrics": metrics["essencial"]},
        {"key": "premium", "label": "TV Premium", "metrics": metrics["premium"]},
    ]
    segments.extend(
        {"key": key, "label": value["label"], "metrics": metrics_for(value["clients"])}
        for key, value in service_segments.items()
    )

    result = await db.execute(select(Contract).order_by(Contract.created_at.desc()).limit(5))
    recent = [ContractResponse.model_validate(row) for row in result.scalars().all()]

    return {
        "metrics": metrics,
        "plan_summary": [
            {"plan": plan.value, "clients": len(plan_clients[plan]), "slots": plan_slots[plan]}
            for plan in PlanType
        ],
        "tv_usage": {
            "goal": TOTAL_USERS_TARGET,
            "used": used_slots,
            "available": max(TOTAL_USERS_TARGET - used_slots, 0),
            "percentage": round(used_slots / TOTAL_USERS_TARGET * 100, 2),
        },
        "recent_contracts": recent,
        "segments": segments,
    }


# ------------------------------------------------------------------
# SALES
# ------------------------------------------------------------------
def _parse_month(value: Optional[str], field: str) -> Optional[date]:
    if not value:
        return None
    match = _MONTH_PARAM.match(value.strip())
    if not match or not 1 <= int(match.group(2)) <= 12:
        raise HTTPException(status_code=400, detail=f"Invalid {field}: use YYYY-MM")
    return date(int(match.group(1)), int(match.group(2)), 1)


def _add_months(month: date, amount: int) -> date:
    index = month.year * 12 + month.month - 1 + amount
    return date(index // 12, index % 12 + 1, 1)


def month_keys(start: date, end: date) -> list:
    keys = []
    cursor = start
    while cursor <= end:
        keys.append(f"{cursor.year}-{cursor.month:02d}")
        cursor = _add_months(cursor, 1)
    return keys


def month_label(key: str) -> str:
    """
    Example:
        >>> month_label("2026-03")
        'mar/2026'
    """
    year, month = key.split("-")
    return f"{MONTH_LABELS[int(month) - 1]}/{year}"


@router.get("/sales", response_model=SalesReport)
async def sales_report(
    start: Optional[str] = Query(None, description="First month, YYYY-MM"),
    end: Optional[str] = Query(None, description="Last month, YYYY-MM"),
    services: Optional[str] = Query(None, description="Comma-separated service names or tv-essencial/tv-premium"),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Monthly sales per service.

    Service sales come from client_services.created_at and TV sales from
    tv_slots.sold_at. Defaults to the last 12 months.

    Raises:
        HTTPException 400: If a month is malformed or start is after end
    """
    today = date.today()
    end_month = _parse_month(end, "end") or date(today.year, today.month, 1)
    start_month = _parse_month(start, "start") or _add_months(end_month, -11)
    if start_month > end_month:
        raise HTTPException(status_code=400, detail="Invalid period: start must be before or equal to end")

    range_start = datetime(start_month.year, start_month.month, 1, tzinfo=timezone.utc)
    next_month = _add_months(end_month, 1)
    range_end = datetime(next_month.year, next_month.month, 1, tzinfo=timezone.utc)

    selected = [item.strip() for item in (services or "").split(",") if item.strip()]

    catalog: Dict[str, dict] = {}
    events = []

    result = await db.execute(
        select(ClientService.created_at, Service.id, Service.name)
        .join(Service, Service.id == ClientService.service_id)
        .where(ClientService.created_at >= range_start)
        .where(ClientService.created_at < range_end)
    )
    for created_at, service_id, service_name in result.all():
        name = service_name.strip()
        if not created_at or name.lower() == "tv":
            continue
        key = f"svc-{service_id}"
        catalog.setdefault(key, {"key": key, "name": name, "group": "SERVICO"})
        events.append((key, as_utc(created_at)))

    slot_rows = await _rows_or_empty(
        db,
        select(TVSlot.sold_at, TVSlot.plan_type)
        .where(TVSlot.sold_at.is_not(None))
        .where(TVSlot.sold_at >= range_start)
        .where(TVSlot.sold_at < range_end),
        "tv_slots",
    )
    for sold_at, plan_type in slot_rows:
        plan = PlanType.PREMIUM if plan_type == PlanType.PREMIUM else PlanType.ESSENCIAL
        key = TV_SALES_KEYS[plan]
        catalog.setdefault(key, {"key": key, "name": TV_SALES_NAMES[plan], "group": "TV"})
        events.append((key, as_utc(sold_at)))

    if selected:
        events = [
            (key, occurred_at) for key, occurred_at in events
            if catalog[key]["name"] in selected or key in selected
        ]

    months = month_keys(start_month, end_month)
    buckets = {month: {} for month in months}
    for key, occurred_at in events:
        month = f"{occurred_at.year}-{occurred_at.month:02d}"
        bucket = buckets.setdefault(month, {})
        bucket[key] = bucket.get(key, 0) + 1

    points = []
    for month in months:
        totals = {key: buckets[month].get(key, 0) for key in catalog}
        points.append({
            "month": month,
            "label": month_label(month),
            "totals": totals,
            "total": sum(totals.values()),
        })

    return {
        "range": {"start": range_start.isoformat(), "end": (range_end - timedelta(microseconds=1)).isoformat()},
        "services": list(catalog.values()),
        "selected_services": selected,
        "points": points,
        "total_sales": len(events),
    }
