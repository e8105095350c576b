"""
Service layer for contracts.

This module renders contract content from templates and drives the
signature lifecycle (DRAFT -> SENT -> SIGNED, or CANCELLED) through a
simulated e-signature provider.
"""
import asyncio
import os
import re
from datetime import datetime
from typing import Dict, Optional
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.database import utc_now
from app.models.client import Client
from app.models.contract import Contract, ContractStatus
from app.models.contract_template import ContractTemplate
from app.models.line import LineType
from app.schemas.contract import ContractCreate
from app.schemas.user import CurrentUser

DEFAULT_TEMPLATE = "Contrato para {{clientName}} gerado em {{currentDate}}"

ESIGN_SIGN_URL = "https://app.zapsign.com/simulator/{contract_id}"
ESIGN_DELAY_SECONDS = float(os.getenv("ESIGN_SIMULATOR_DELAY", "0.5"))

_PLACEHOLDER = re.compile(r"{{\s*([a-zA-Z0-9_]+)\s*}}")


def render_contract(template: str, fields: Dict[str, Optional[str]]) -> str:
    """
    Replace {{ key }} placeholders with values from `fields`.

    Unknown keys and None values render as an empty string.

    Example:
        >>> render_contract("Hello {{ name }}", {"name": "Ana"})
        'Hello Ana'
    """
    def substitute(match):
        value = fields.get(match.group(1))
        return "" if value is None else str(value)

    return _PLACEHOLDER.sub(substitute, template)


def format_lines_list(lines) -> str:
    entries = []
    for line in lines:
        label = "Titular" if line.type == LineType.TITULAR else "Dependente"
        extra = " · ".join(part for part in (line.nickname, line.document) if part)
        entries.append(f"{label}: {line.phone_number}" + (f" ({extra})" if extra else ""))
    return "\n".join(entries)


def build_field_map(client: Client, custom_fields: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """Placeholder values for a client; custom_fields override them."""
    fields = {
        "clientName": client.name,
        "clientEmail": client.email,
        "clientDocument": client.document,
        "clientPhone": client.phone or "",
        "companyName": client.company_name or "",
        "clientAddress": client.address or "",
        "clientCity": client.city or "",
        "clientState": client.state or "",
        "linesList": format_lines_list(client.lines),
        "currentDate": datetime.now().strftime("%d/%m/%Y"),
    }
    fields.update(custom_fields or {})
    return fields


class ESignSimulator:
    """
    Stand-in for the e-signature provider. Returns deterministic ids and URLs.
    """

    @staticmethod
    async def send(contract: Contract, client_name: str) -> dict:
        await asyncio.sleep(ESIGN_DELAY_SECONDS)
        return {
            "external_id": f"zap-{contract.id}",
            "sign_url": ESIGN_SIGN_URL.format(contract_id=contract.id),
            "message": f"Contract '{contract.title}' sent to {client_name}",
        }


class ContractService:
    """
    Service class for contract generation and status transitions.
    """

    @staticmethod
    async def get_contract(db: AsyncSession, contract_id: UUID) -> Contract:
        """
        Load a contract with its client (and the client's lines) and template.

        Raises:
            HTTPException 404: If the contract does not exist
        """
        result = await db.execute(
            select(Contract)
            .options(
                selectinload(Contract.client).selectinload(Client.lines),
                selectinload(Contract.template),
            )
            .where(Contract.id == contract_id)
            .execution_options(populate_existing=True)
        )
        contract = result.scalar_one_or_none()
        if not contract:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Contract not found"
            )
        return contract

    @staticmethod
    async def create_contract(db: AsyncSession, payload: ContractCreate, user: CurrentUser) -> Contract:
        """
        Generate a DRAFT contract for a client.

        Content comes from content_override if given, else from the template
        (or the default one) rendered with the client's fields.

        Raises:
            HTTPException 404: If the client or the template does not exist
        """
        result = await db.execute(
            select(Client).options(selectinload(Client.lines)).where(Client.id == payload.client_id)
        )
        client = result.scalar_one_or_none()
        if not client:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")

        template = None
        if payload.template_id:
            template = await db.get(ContractTemplate, payload.template_id)
            if not template:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template not found")

        if payload.content_override:
            content = payload.content_override
        else:
            fields = build_field_map(client, payload.custom_fields)
            content = render_contract(template.content if template else DEFAULT_TEMPLATE, fields)

        contract = Contract(
            title=payload.title,
            status=ContractStatus.DRAFT,
            content=content,
            client_id=client.id,
            template_id=template.id if template else None,
            created_by=user.id,
        )
        db.add(contract)
        await db.commit()

        print(f"[CONTRACTS] Contract {contract.id} created for client {client.id}")
        return await ContractService.get_contract(db, contract.id)

    @staticmethod
    async def send_contract(db: AsyncSession, contract: Contract) -> str:
        """
        Send a contract for signature.

        Returns:
            str: Provider message

        Raises:
            HTTPException 400: If the contract is cancelled
        """
        if contract.status == ContractStatus.CANCELLED:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="A cancelled contract cannot be sent"
            )

        client_name = contract.client.name if contract.client else ""
        result = await ESignSimulator.send(contract, client_name)

        contract.status = ContractStatus.SENT
        contract.sent_at = utc_now()
        contract.sign_url = result["sign_url"]
        contract.external_id = result["external_id"]
        await db.commit()

        print(f"[CONTRACTS] Contract {contract.id} sent ({contract.external_id})")
        return result["message"]

    @staticmethod
    async def sign_contract(db: AsyncSession, contract: Contract) -> None:
        """
        Raises:
            HTTPException 400: If the contract was not sent yet
        """
        if contract.status != ContractStatus.SENT:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Only sent contracts can be signed"
            )
        contract.status = ContractStatus.SIGNED
        contract.signed_at = utc_now()
        await db.commit()
        print(f"[CONTRACTS] Contract {contract.id} signed")

    @staticmethod
    async def cancel_contract(db: AsyncSession, contract: Contract) -> None:
        contract.status = ContractStatus.CANCELLED
        await db.commit()
        print(f"[CONTRACTS] Contract {contract.id} cancelled")
