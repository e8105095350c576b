from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.client_sync import ClientSyncService
from app.core.cnpj_lookup import CNPJLookupService, get_cnpj_lookup
from app.core.database import get_db, utc_now
from app.core.dependencies import get_current_user, require_admin
from app.core.errors import is_schema_missing, is_unique_violation
from app.core.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, page_offset, page_payload
from app.core.privacy import mask_email
from app.core.rate_limit import CNPJ_LOOKUP, limiter
from app.core.resource_auth import ensure_client_access
from app.core.security import generate_numeric_password
from app.core.validation import is_valid_cnpj, only_digits, sanitize_document
from app.models.client import Client
from app.models.client_service import ClientService
from app.models.cloud_access import CloudAccess
from app.models.contract import Contract
from app.models.tv_slot import SlotStatus, TVSlot
from app.schemas.client import (
    ClientCreate,
    ClientDetailResponse,
    ClientListResponse,
    ClientResponse,
    ClientUpdate,
    CNPJLookupResponse,
    ServiceSelection,
)
from app.schemas.cloud import CloudAccessResponse
from app.schemas.contract import ContractResponse
from app.schemas.service import ClientServiceResponse, ServiceResponse
from app.schemas.user import CurrentUser

router = APIRouter()

SETUP_FIELDS = {"service_ids", "service_selections", "tv_setup", "cloud_setups"}


# ------------------------------------------------------------------
# HELPERS
# ------------------------------------------------------------------
async def _load_client(db: AsyncSession, client_id: UUID, with_contracts: bool = False) -> Optional[Client]:
    options = [
        selectinload(Client.service_links).selectinload(ClientService.service),
        selectinload(Client.cloud_accesses).selectinload(CloudAccess.service),
    ]
    if with_contracts:
        options.append(selectinload(Client.contracts))
    result = await db.execute(
        select(Client)
        .options(*options)
        .where(Client.id == client_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


def _serialize_client(client: Client, assignments, with_contracts: bool = False):
    services = [
        ClientServiceResponse(
            **ServiceResponse.model_validate(link.service).model_dump(),
            custom_price=link.custom_price,
            custom_price_essencial=link.custom_price_essencial,
            custom_price_premium=link.custom_price_premium,
            sold_by=link.sold_by,
        )
        for link in sorted(client.service_links, key=lambda link: link.service.name)
    ]
    fields = {
        "id": client.id,
        "name": client.name,
        "email": client.email,
        "phone": client.phone,
        "document": client.document,
        "cost_center": client.cost_center,
        "company_name": client.company_name,
        "notes": client.notes,
        "address": client.address,
        "city": client.city,
        "state": client.state,
        "opened_by": client.opened_by,
        "created_at": client.created_at,
        "updated_at": client.updated_at,
        "services": services,
        "cloud_accesses": [CloudAccessResponse.model_validate(access) for access in client.cloud_accesses],
        "tv_assignments": assignments,
    }
    if with_contracts:
        contracts = sorted(client.contracts, key=lambda contract: contract.created_at, reverse=True)
        return ClientDetailResponse(
            **fields,
            contracts=[ContractResponse.model_validate(contract) for contract in contracts],
        )
    return ClientResponse(**fields)


async def _client_summary(db: AsyncSession, client_id: UUID, with_contracts: bool = False):
    client = await _load_client(db, client_id, with_contracts)
    if not client:
        raise HTTPException(status_code=404, detail="Client not found")
    assignments = await ClientSyncService.fetch_tv_assignments_for_clients(db, [client.id], include_history=True)
    return _serialize_client(client, assignments.get(client.id, []), with_contracts)


async def _ensure_document_free(db: AsyncSession, document: str, exclude_id: Optional[UUID] = None) -> None:
    stmt = select(Client.id).where(Client.document == document)
    if exclude_id:
        stmt = stmt.where(Client.id != exclude_id)
    if await db.scalar(stmt):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A client with this document already exists",
        )


async def _commit_client(db: AsyncSession) -> None:
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        if is_unique_violation(exc):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="A client with this document already exists",
            )
        raise


async def _apply_setup(
    db: AsyncSession,
    client_id: UUID,
    selections: Optional[list],
    payload,
) -> None:
    """Run service, TV and cloud synchronization for a create/update body."""
    if selections is not None:
        await ClientSyncService.sync_client_services(db, client_id, selections)
        await ClientSyncService.handle_tv_service_for_client(db, client_id, selections, payload.tv_setup)

    if selections is not None or payload.cloud_setups is not None:
        selected_ids = [selection.service_id for selection in selections] if selections is not None else None
        await ClientSyncService.sync_cloud_accesses(db, client_id, selected_ids, payload.cloud_setups)


async def _discard_client(db: AsyncSession, client_id: UUID) -> None:
    """Undo a half-created client: free its TV slots and delete the row."""
    try:
        async with db.begin_nested():
            await db.execute(
                update(TVSlot)
                .where(TVSlot.client_id == client_id)
                .values(
                    status=SlotStatus.USED,
                    client_id=None,
                    sold_by=None,
                    sold_at=None,
                    expires_at=None,
                    notes=None,
                    plan_type=None,
                    has_telephony=None,
                    password=generate_numeric_password(),
                    updated_at=utc_now(),
                )
                .execution_options(synchronize_session=False)
            )
    except DBAPIError as exc:
        if not is_schema_missing(exc):
            raise
    await db.execute(delete(Client).where(Client.id == client_id))
    await db.commit()


# ------------------------------------------------------------------
# ENDPOINTS
# ------------------------------------------------------------------
@router.get("", response_model=ClientListResponse)
async def list_clients(
    search: Optional[str] = Query(None),
    document: Optional[str] = Query(None),
    document_type: Optional[str] = Query(None, description="CPF or CNPJ"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    List clients, newest first, with services, cloud accesses and TV profiles.
    """
    stmt = select(Client)
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        conditions = [
            Client.name.ilike(pattern),
            Client.email.ilike(pattern),
            Client.document.ilike(pattern),
            Client.company_name.ilike(pattern),
            Client.phone.ilike(pattern),
        ]
        digits = only_digits(search)
        if digits and digits != search.strip():
            conditions.append(Client.document.ilike(f"%{digits}%"))
        stmt = stmt.where(or_(*conditions))

    if document and only_digits(document):
        stmt = stmt.where(Client.document.ilike(f"%{only_digits(document)}%"))

    kind = (document_type or "").upper()
    if kind == "CPF":
        stmt = stmt.where(func.length(Client.document) == 11)
    elif kind == "CNPJ":
        stmt = stmt.where(func.length(Client.document) == 14)

    total = await db.scalar(stmt.with_only_columns(func.count(Client.id)))

    result = await db.execute(
        stmt.options(
            selectinload(Client.service_links).selectinload(ClientService.service),
            selectinload(Client.cloud_accesses).selectinload(CloudAccess.service),
        )
        .order_by(Client.created_at.desc())
        .offset(page_offset(page, limit))
        .limit(limit)
    )
    clients = result.scalars().all()

    assignments = await ClientSyncService.fetch_tv_assignments_for_clients(db, [client.id for client in clients])
    data = [_serialize_client(client, assignments.get(client.id, [])) for client in clients]
    return page_payload(data, page, limit, total or 0)


@router.get("/lookup/cnpj/{cnpj}", response_model=CNPJLookupResponse)
@limiter.limit(CNPJ_LOOKUP)
async def lookup_cnpj(
    request: Request,
    response: Response,
    cnpj: str,
    user: CurrentUser = Depends(get_current_user),
    lookup: CNPJLookupService = Depends(get_cnpj_lookup),
):
    """
    Prefill client data from the public CNPJ registry (BrasilAPI).
    """
    digits = only_digits(cnpj)
    if not is_valid_cnpj(digits):
        raise HTTPException(status_code=400, detail="Invalid CNPJ")
    return await lookup.lookup(digits)


@router.post("", response_model=ClientResponse, status_code=status.HTTP_201_CREATED)
async def create_client(
    payload: ClientCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Create a client and set up its services, TV profiles and cloud accesses.

    If any setup step fails the client is removed again.

    Raises:
        HTTPException 400: Invalid document or incomplete setup
        HTTPException 409: Document already registered
    """
    document = sanitize_document(payload.document)
    await _ensure_document_free(db, document)

    data = payload.model_dump(exclude=SETUP_FIELDS)
    data["document"] = document
    data["name"] = data["name"].strip()
    data["opened_by"] = data.get("opened_by") or user.id

    client = Client(**data)
    db.add(client)
    await _commit_client(db)
    client_id = client.id
    print(f"[CLIENTS] Created client {client_id} ({mask_email(client.email)})")

    try:
        await _apply_setup(db, client_id, payload.selections(), payload)
    except Exception:
        print(f"[CLIENTS] [ERROR] Setup failed for client {client_id}, removing it")
        await db.rollback()
        await _discard_client(db, client_id)
        raise

    return await _client_summary(db, client_id)


@router.get("/{client_id}", response_model=ClientDetailResponse)
async def get_client(
    client_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    client = await db.get(Client, client_id)
    if not client:
        raise HTTPException(status_code=404, detail="Client not found")
    ensure_client_access(client, user)
    return await _client_summary(db, client_id, with_contracts=True)


@router.put("/{client_id}", response_model=ClientResponse)
async def update_client(
    client_id: UUID,
    payload: ClientUpdate,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    Partially update a client.

    A tv_setup sent without a service list is applied to the services the
    client already has.
    """
    client = await _load_client(db, client_id)
    if not client:
        raise HTTPException(status_code=404, detail="Client not found")

    changes = payload.model_dump(exclude_unset=True, exclude=SETUP_FIELDS)
    if "document" in changes:
        if changes["document"] is None:
            changes.pop("document")
        else:
            changes["document"] = sanitize_document(changes["document"])
            await _ensure_document_free(db, changes["document"], exclude_id=client_id)

    for field in ("name", "email", "cost_center"):
        if field in changes and changes[field] is None:
            changes.pop(field)

    for field, value in changes.items():
        setattr(client, field, value)

    selections = payload.selections()
    if selections is None and payload.tv_setup is not None:
        selections = [
            ServiceSelection(
                service_id=link.service_id,
                custom_price=link.custom_price,
                custom_price_essencial=link.custom_price_essencial,
                custom_price_premium=link.custom_price_premium,
                sold_by=link.sold_by,
            )
            for link in client.service_links
        ]

    await _commit_client(db)
    await _apply_setup(db, client_id, selections, payload)

    print(f"[CLIENTS] Updated client {client_id}")
    return await _client_summary(db, client_id)


@router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_client(
    client_id: UUID,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    if not await db.get(Client, client_id):
        raise HTTPException(status_code=404, detail="Client not found")
    await _discard_client(db, client_id)
    print(f"[CLIENTS] Deleted client {client_id}")
