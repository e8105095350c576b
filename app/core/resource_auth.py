"""
Ownership checks for clients and contracts.

Admins can reach every record. Regular users can reach records they created
and legacy records with no recorded owner.
"""
from fastapi import HTTPException, status

from app.models.client import Client
from app.models.contract import Contract
from app.schemas.user import CurrentUser


def _owns(owner_id: str | None, user: CurrentUser) -> bool:
    return user.is_admin or owner_id is None or owner_id == user.id


def ensure_client_access(client: Client, user: CurrentUser) -> None:
    """
    Raises:
        HTTPException 403: If the user neither is admin nor opened the client
    """
    if not _owns(client.opened_by, user):
        print(f"[AUTH] User {user.id} denied access to client {client.id}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to this client"
        )


def ensure_contract_access(contract: Contract, user: CurrentUser) -> None:
    """
    Raises:
        HTTPException 403: If the user neither is admin nor created the contract
    """
    if not _owns(contract.created_by, user):
        print(f"[AUTH] User {user.id} denied access to contract {contract.id}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to this contract"
        )
