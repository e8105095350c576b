from datetime import date, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy import func, or_, select
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.ai_chat import HISTORY_LIMIT, AIChatService, get_ai_chat
from app.core.database import get_db, utc_now
from app.core.dependencies import get_current_user
from app.core.errors import is_schema_missing
from app.core.tv_assignments import TVAssignmentService
from app.models.client import Client
from app.models.cloud_access import CloudAccess
from app.models.contract import Contract, ContractStatus
from app.models.service import Service
from app.models.tv_slot import SlotStatus, TVSlot
from app.schemas.assistant import ChatRequest, ChatResponse, SuggestionList
from app.schemas.user import CurrentUser

router = APIRouter()

ASSISTANT_RESULT_LIMIT = 10
SEARCH_MIN_LENGTH = 2
LOW_TV_SLOTS_THRESHOLD = 50
SOON_EXPIRING_DAYS = 7
PENDING_STATUSES = (ContractStatus.DRAFT, ContractStatus.SENT)


async def _scalar_or(db: AsyncSession, stmt, default=0):
    """Run a scalar query, falling back to `default` if the table is missing."""
    try:
        async with db.begin_nested():
            value = await db.scalar(stmt)
    except DBAPIError as exc:
        if not is_schema_missing(exc):
            raise
        return default
    return value if value is not None else default


async def _scalars_or_empty(db: AsyncSession, stmt) -> list:
    try:
        async with db.begin_nested():
            return list((await db.execute(stmt)).scalars().all())
    except DBAPIError as exc:
        if not is_schema_missing(exc):
            raise
        return []


def _expiring_cloud(start: date, end: date):
    return (
        select(CloudAccess)
        .options(selectinload(CloudAccess.client), selectinload(CloudAccess.service))
        .where(CloudAccess.expires_at >= start)
        .where(CloudAccess.expires_at <= end)
        .order_by(CloudAccess.expires_at)
        .limit(ASSISTANT_RESULT_LIMIT)
    )


def _expiring_tv(start: date, end: date):
    return (
        select(TVSlot)
        .options(selectinload(TVSlot.client))
        .where(TVSlot.status == SlotStatus.ASSIGNED)
        .where(TVSlot.client_id.is_not(None))
        .where(TVSlot.expires_at.is_not(None))
        .where(TVSlot.expires_at >= start)
        .where(TVSlot.expires_at <= end)
        .order_by(TVSlot.expires_at)
        .limit(ASSISTANT_RESULT_LIMIT)
    )


@router.get("/stats")
async def assistant_stats(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return {
        "clients": await _scalar_or(db, select(func.count(Client.id))),
        "contracts": await _scalar_or(db, select(func.count(Contract.id))),
        "tv_active": await _scalar_or(
            db, select(func.count(TVSlot.id)).where(TVSlot.status == SlotStatus.ASSIGNED)
        ),
        "services": await _scalar_or(db, select(func.count(Service.id))),
    }


@router.get("/expiring")
async def expiring_services(
    days: int = Query(30, ge=0, le=365),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Cloud accesses and TV profiles expiring between today and `days` from now."""
    today = date.today()
    target = today + timedelta(days=days)

    results = [
        {
            "type": "cloud",
            "expires_at": access.expires_at,
            "client_name": access.client.name if access.client else "-",
            "service_name": access.service.name if access.service else "-",
        }
        for access in await _scalars_or_empty(db, _expiring_cloud(today, target))
    ]
    results.extend(
        {
            "type": "tv",
            "expires_at": slot.expires_at,
            "client_name": slot.client.name if slot.client else "-",
            "service_name": "TV",
        }
        for slot in await _scalars_or_empty(db, _expiring_tv(today, target))
    )
    return {"results": results}


@router.get("/search/clients")
async def search_clients(
    q: str = Query(""),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    term = q.strip()
    if len(term) < SEARCH_MIN_LENGTH:
        return {"results": []}

    like = f"%{term}%"
    clients = await _scalars_or_empty(
        db,
        select(Client)
        .where(or_(Client.name.ilike(like), Client.email.ilike(like), Client.document.ilike(like)))
        .order_by(Client.name)
        .limit(ASSISTANT_RESULT_LIMIT),
    )
    return {
        "results": [
            {"id": client.id, "name": client.name, "email": client.email, "document": client.document}
            for client in clients
        ]
    }


@router.get("/suggestions", response_model=SuggestionList)
async def suggestions(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Short hints for the dashboard assistant.

    Covers pending contracts, expirations in the next 7 days, a low TV slot
    pool, recent clients, and a first-client prompt on an empty system.
    """
    results = []

    pending = await _scalar_or(
        db, select(func.count(Contract.id)).where(Contract.status.in_(PENDING_STATUSES))
    )
    if pending:
        results.append({
            "type": "warning",
            "title": f"{pending} contrato(s) pendente(s)",
            "description": "Existem contratos aguardando ação. Revise e envie ou finalize.",
            "action": {"label": "Ver contratos", "route": "/contratos"},
        })

    today = date.today()
    soon = today + timedelta(days=SOON_EXPIRING_DAYS)
    expiring = len(await _scalars_or_empty(db, _expiring_cloud(today, soon)))
    expiring += len(await _scalars_or_empty(db, _expiring_tv(today, soon)))
    if expiring:
        results.append({
            "type": "warning",
            "title": f"{expiring} serviço(s) vence(m) em breve",
            "description": "Alguns serviços estão próximos do vencimento. Entre em contato com os clientes.",
            "action": {"label": "Ver vencimentos", "route": "/relatorios/servicos?category=ALL"},
        })

    available = await _scalar_or(
        db,
        select(func.count(TVSlot.id))
        .where(TVSlot.status == SlotStatus.AVAILABLE)
        .where(TVSlot.client_id.is_(None)),
        default=None,
    )
    if available is not None and available < LOW_TV_SLOTS_THRESHOLD:
        results.append({
            "type": "info",
            "title": "Poucos slots TV disponíveis",
            "description": f"Apenas {available} slot(s) disponível(is). Novos emails serão criados automaticamente.",
            "action": {"label": "Ver TV", "route": "/usuarios"},
        })

    recent = await _scalar_or(
        db, select(func.count(Client.id)).where(Client.created_at >= utc_now() - timedelta(days=30))
    )
    if recent:
        results.append({
            "type": "success",
            "title": f"{recent} novo(s) cliente(s) no último mês",
            "description": "Ótimo crescimento! Continue assim.",
            "action": {"label": "Ver clientes", "route": "/clientes"},
        })

    total_clients = await _scalar_or(db, select(func.count(Client.id)), default=None)
    if total_clients == 0:
        results.append({
            "type": "action",
            "title": "Cadastre seu primeiro cliente",
            "description": "Comece adicionando um cliente ao sistema.",
            "action": {"label": "Novo cliente", "route": "/clientes?action=new"},
        })

    return {"results": results}


@router.get("/tv/available")
async def tv_available(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Free slots that were never assigned before."""
    slot_ids = await _scalars_or_empty(
        db,
        select(TVSlot.id)
        .where(TVSlot.status == SlotStatus.AVAILABLE)
        .where(TVSlot.client_id.is_(None)),
    )
    if not slot_ids:
        return {"count": 0}
    used = await TVAssignmentService.previously_assigned_slot_ids(db)
    return {"count": sum(1 for slot_id in slot_ids if slot_id not in used)}


@router.get("/contracts/pending")
async def pending_contracts(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    contracts = await _scalars_or_empty(
        db,
        select(Contract)
        .options(selectinload(Contract.client))
        .where(Contract.status.in_(PENDING_STATUSES))
        .order_by(Contract.created_at.desc())
        .limit(ASSISTANT_RESULT_LIMIT),
    )
    return {
        "results": [
            {
                "id": contract.id,
                "title": contract.title,
                "status": contract.status.value,
                "client_name": contract.client.name if contract.client else "-",
                "created_at": contract.created_at,
            }
            for contract in contracts
        ]
    }


@router.post("/chat", response_model=ChatResponse)
async def chat(
    payload: ChatRequest,
    user: CurrentUser = Depends(get_current_user),
    ai_chat: AIChatService = Depends(get_ai_chat),
):
    """
    Ask the AI assistant a question.

    Only the last HISTORY_LIMIT history messages are forwarded.

    Raises:
        HTTPException 400: If the message is blank
    """
    message = (payload.message or "").strip()
    if not message:
        raise HTTPException(status_code=400, detail="Message is required")

    result = await ai_chat.reply(message, payload.history[-HISTORY_LIMIT:])
    if result is None:
        return JSONResponse(
            status_code=503,
            content={
                "error": "AI service not configured. Set GOOGLE_API_KEY or OPENAI_API_KEY.",
                "fallback": True,
            },
        )
    return result
