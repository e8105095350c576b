"""
Keeps a client's contracted services, TV slots and cloud accesses in line
with what was selected on the client form.
"""
from collections import defaultdict
from typing import Dict, List, Optional
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import delete, select
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.errors import is_schema_missing
from app.core.tv_assignments import (
    MAX_BULK_ASSIGN_QUANTITY,
    TVAssignmentService,
    build_client_assignment,
    label_assignments,
)
from app.core.validation import parse_date_input, parse_sold_at
from app.models.client_service import ClientService
from app.models.cloud_access import CloudAccess
from app.models.service import Service
from app.models.tv_slot import PlanType, SlotStatus, TVSlot
from app.schemas.client import CloudSetup, ServiceSelection, TVSetup
from app.schemas.tv import ClientTVAssignment, TVAssignRequest

CLOUD_SERVICE_KEYWORDS = ("cloud", "hub", "hubplay", "telemedicina", "telepet")


def is_tv_service(name: Optional[str]) -> bool:
    return "tv" in (name or "").lower()


def is_cloud_service(name: Optional[str]) -> bool:
    lowered = (name or "").lower()
    return any(keyword in lowered for keyword in CLOUD_SERVICE_KEYWORDS)


class ClientSyncService:

    @staticmethod
    async def fetch_services_by_ids(db: AsyncSession, service_ids) -> Dict[UUID, Service]:
        ids = list({service_id for service_id in service_ids})
        if not ids:
            return {}
        result = await db.execute(select(Service).where(Service.id.in_(ids)))
        return {service.id: service for service in result.scalars().all()}

    @staticmethod
    async def sync_client_services(
        db: AsyncSession,
        client_id: UUID,
        selections: List[ServiceSelection],
    ) -> None:
        """
        Replace the client's contracted services with `selections`.

        Repeated service ids are collapsed; the last selection wins.

        Raises:
            HTTPException 400: If a selected service does not exist
        """
        unique: Dict[UUID, ServiceSelection] = {}
        for selection in selections:
            unique[selection.service_id] = selection

        services = await ClientSyncService.fetch_services_by_ids(db, unique.keys())
        missing = [str(service_id) for service_id in unique if service_id not in services]
        if missing:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unknown service(s): {', '.join(missing)}",
            )

        await db.execute(delete(ClientService).where(ClientService.client_id == client_id))
        for selection in unique.values():
            db.add(ClientService(
                client_id=client_id,
                service_id=selection.service_id,
                custom_price=selection.custom_price,
                custom_price_essencial=selection.custom_price_essencial,
                custom_price_premium=selection.custom_price_premium,
                sold_by=(selection.sold_by or "").strip() or None,
            ))
        await db.commit()

    @staticmethod
    async def _current_plan_counts(db: AsyncSession, client_id: UUID) -> Dict[PlanType, int]:
        counts = {PlanType.ESSENCIAL: 0, PlanType.PREMIUM: 0}
        try:
            result = await db.execute(
                select(TVSlot.plan_type)
                .where(TVSlot.client_id == client_id)
                .where(TVSlot.status == SlotStatus.ASSIGNED)
            )
        except DBAPIError as exc:
            if not is_schema_missing(exc):
                raise
            await db.rollback()
            return counts
        for plan_type in result.scalars().all():
            counts[plan_type or PlanType.ESSENCIAL] += 1
        return counts

    @staticmethod
    def _desired_plan_counts(
        tv_setup: TVSetup,
        current: Dict[PlanType, int],
        service_plan: PlanType,
    ) -> Dict[PlanType, int]:
        fields = tv_setup.model_fields_set
        if "quantity_essencial" in fields or "quantity_premium" in fields:
            return {
                PlanType.ESSENCIAL: min(MAX_BULK_ASSIGN_QUANTITY, tv_setup.quantity_essencial or 0),
                PlanType.PREMIUM: min(MAX_BULK_ASSIGN_QUANTITY, tv_setup.quantity_premium or 0),
            }

        if tv_setup.quantity is not None:
            plan = tv_setup.plan_type or service_plan
            desired = {PlanType.ESSENCIAL: 0, PlanType.PREMIUM: 0}
            desired[plan] = min(MAX_BULK_ASSIGN_QUANTITY, tv_setup.quantity)
            return desired

        # No quantity given: keep what the client has, or start with one seat
        if sum(current.values()) == 0:
            return {
                PlanType.ESSENCIAL: 1 if service_plan == PlanType.ESSENCIAL else 0,
                PlanType.PREMIUM: 1 if service_plan == PlanType.PREMIUM else 0,
            }
        return dict(current)

    @staticmethod
    async def handle_tv_service_for_client(
        db: AsyncSession,
        client_id: UUID,
        selections: List[ServiceSelection],
        tv_setup: Optional[TVSetup],
    ) -> None:
        """
        Bring the client's TV slots in line with the selected services.

        Without a TV service every slot of the client is released. With one,
        slots are only added or removed when the setup names a seller and an
        expiration date; otherwise the current assignment is left alone.
        """
        services = await ClientSyncService.fetch_services_by_ids(
            db, [selection.service_id for selection in selections]
        )
        tv_services = [service for service in services.values() if is_tv_service(service.name)]

        if not tv_services:
            await TVAssignmentService.release_slots_for_client(db, client_id)
            return

        if tv_setup is None:
            return

        sold_by = (tv_setup.sold_by or "").strip()
        expires_at = (tv_setup.expires_at or "").strip()
        if not sold_by or len(expires_at) < 8:
            print(f"[CLIENTS] TV setup for client {client_id} lacks seller or expiration, skipping slots")
            return

        service_plan = (
            PlanType.PREMIUM if "premium" in tv_services[0].name.lower() else PlanType.ESSENCIAL
        )
        current = await ClientSyncService._current_plan_counts(db, client_id)
        desired = ClientSyncService._desired_plan_counts(tv_setup, current, service_plan)
        notes = (tv_setup.notes or "").strip() or None

        custom_email = tv_setup.custom_email
        for plan in (PlanType.ESSENCIAL, PlanType.PREMIUM):
            difference = desired[plan] - current[plan]
            if difference > 0:
                params = TVAssignRequest(
                    client_id=client_id,
                    sold_by=sold_by,
                    sold_at=tv_setup.sold_at,
                    starts_at=tv_setup.starts_at,
                    expires_at=expires_at,
                    notes=notes,
                    plan_type=plan,
                    has_telephony=tv_setup.has_telephony,
                    custom_email=custom_email if current[plan] == 0 else None,
                )
                await TVAssignmentService.assign_multiple_slots_to_client(db, params, difference)
                custom_email = None
            elif difference < 0:
                await TVAssignmentService.reduce_client_slots(db, client_id, plan, -difference)

        values = {
            "sold_by": sold_by,
            "expires_at": parse_date_input(expires_at, "expires_at"),
            "notes": notes,
            "has_telephony": tv_setup.has_telephony,
        }
        if tv_setup.sold_at:
            values["sold_at"] = parse_sold_at(tv_setup.sold_at)
        if tv_setup.starts_at:
            values["starts_at"] = parse_date_input(tv_setup.starts_at, "starts_at")
        await TVAssignmentService.update_client_sale_details(db, client_id, values)

    @staticmethod
    async def sync_cloud_accesses(
        db: AsyncSession,
        client_id: UUID,
        selected_service_ids: Optional[List[UUID]],
        cloud_setups: Optional[List[CloudSetup]],
    ) -> None:
        """
        Upsert the client's cloud accesses and drop the ones no longer selected.

        When `selected_service_ids` is None only the given setups are applied.

        Raises:
            HTTPException 400: If a selected cloud service has no expiration
                date or a date is malformed
        """
        setups = {setup.service_id: setup for setup in (cloud_setups or [])}
        selected = set(selected_service_ids) if selected_service_ids is not None else None

        candidate_ids = selected if selected is not None else set(setups)
        services = await ClientSyncService.fetch_services_by_ids(db, candidate_ids)
        cloud_ids = {service_id for service_id, service in services.items() if is_cloud_service(service.name)}

        try:
            result = await db.execute(
                select(CloudAccess).where(CloudAccess.client_id == client_id)
            )
            existing = {access.service_id: access for access in result.scalars().all()}
        except DBAPIError as exc:
            if not is_schema_missing(exc):
                raise
            await db.rollback()
            print("[CLIENTS] [WARNING] cloud_accesses unavailable, skipping cloud sync")
            return

        if selected:
            missing = [
                services[service_id].name
                for service_id in selected
                if service_id in cloud_ids and service_id not in setups and service_id not in existing
            ]
            if missing:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Provide the expiration date for these services: {', '.join(sorted(missing))}",
                )

        targets = [
            setup for service_id, setup in setups.items()
            if service_id in cloud_ids and (selected is None or service_id in selected)
        ]
        for setup in targets:
            expires_text = setup.expires_at.strip()
            if len(expires_text) < 8:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Invalid service expiration date",
                )
            expires_at = parse_date_input(expires_text, "expires_at")
            notes = (setup.notes or "").strip() or None

            access = existing.get(setup.service_id)
            if access is None:
                db.add(CloudAccess(
                    client_id=client_id,
                    service_id=setup.service_id,
                    expires_at=expires_at,
                    is_test=bool(setup.is_test),
                    notes=notes,
                ))
            else:
                access.expires_at = expires_at
                access.is_test = bool(setup.is_test)
                access.notes = notes

        if selected is not None:
            stale = [service_id for service_id in existing if service_id not in selected]
            if stale:
                await db.execute(
                    delete(CloudAccess)
                    .where(CloudAccess.client_id == client_id)
                    .where(CloudAccess.service_id.in_(stale))
                )

        await db.commit()

    @staticmethod
    async def fetch_tv_assignments_for_clients(
        db: AsyncSession,
        client_ids: List[UUID],
        include_history: bool = False,
    ) -> Dict[UUID, List[ClientTVAssignment]]:
        """
        Load the TV profiles of several clients at once.

        Returns an empty mapping when the TV tables are missing.
        """
        assignments: Dict[UUID, List[ClientTVAssignment]] = defaultdict(list)
        if not client_ids:
            return assignments

        try:
            async with db.begin_nested():
                result = await db.execute(
                    select(TVSlot)
                    .options(selectinload(TVSlot.account))
                    .where(TVSlot.client_id.in_(client_ids))
                    .execution_options(populate_existing=True)
                )
                slots = result.scalars().all()
        except DBAPIError as exc:
            if not is_schema_missing(exc):
                raise
            print("[CLIENTS] [WARNING] TV tables unavailable, clients listed without TV data")
            return assignments

        histories = {}
        if include_history:
            histories = await TVAssignmentService.fetch_history_for_slots(db, [slot.id for slot in slots])

        for slot in slots:
            assignments[slot.client_id].append(build_client_assignment(slot, histories.get(slot.id)))

        for items in assignments.values():
            label_assignments(items)
        return assignments
