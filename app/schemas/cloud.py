from pydantic import BaseModel
from typing import Optional, List
from datetime import date, datetime
from uuid import UUID

from app.schemas.service import ServiceBrief


class CloudAccessResponse(BaseModel):
    id: UUID
    client_id: UUID
    service_id: UUID
    expires_at: date
    is_test: bool
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    service: Optional[ServiceBrief] = None

    class Config:
        from_attributes = True


class CloudClientBrief(BaseModel):
    id: UUID
    name: str
    email: Optional[str] = None
    document: Optional[str] = None

    class Config:
        from_attributes = True


class CloudAccessListItem(CloudAccessResponse):
    client: Optional[CloudClientBrief] = None


class CloudAccessPage(BaseModel):
    data: List[CloudAccessListItem]
    page: int
    limit: int
    total: int
    total_pages: int


class CloudAccessUpdate(BaseModel):
    """At least one field is required."""
    expires_at: Optional[date] = None
    is_test: Optional[bool] = None
    notes: Optional[str] = None
