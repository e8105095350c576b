"""
Pydantic schemas for contract templates and contracts.
"""
from pydantic import BaseModel, Field
from typing import Optional, List, Dict
from datetime import datetime
from uuid import UUID

from app.models.contract import ContractStatus
from app.schemas.line import LineResponse


# ------------------------------------------------------------------
# TEMPLATES
# ------------------------------------------------------------------
class TemplateBase(BaseModel):
    name: str = Field(..., min_length=3, max_length=255)
    content: str = Field(..., min_length=10)


class TemplateCreate(TemplateBase):
    active: bool = True


class TemplateUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=3, max_length=255)
    content: Optional[str] = Field(None, min_length=10)
    active: Optional[bool] = None


class TemplateDeleteRequest(BaseModel):
    """Password confirmation required to delete a template."""
    password: str = Field(..., min_length=1)


class TemplateResponse(TemplateBase):
    id: UUID
    active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# ------------------------------------------------------------------
# CONTRACTS
# ------------------------------------------------------------------
class ContractCreate(BaseModel):
    """
    Contract generation request.

    custom_fields are merged over the client-derived placeholders;
    content_override replaces the template body entirely.
    """
    title: str = Field(..., min_length=3, max_length=255)
    client_id: UUID
    template_id: Optional[UUID] = None
    custom_fields: Optional[Dict[str, str]] = None
    content_override: Optional[str] = None


class ContractResponse(BaseModel):
    id: UUID
    title: str
    status: ContractStatus
    content: str
    sign_url: Optional[str] = None
    external_id: Optional[str] = None
    sent_at: Optional[datetime] = None
    signed_at: Optional[datetime] = None
    storage_location: Optional[str] = None
    client_id: UUID
    template_id: Optional[UUID] = None
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ContractClient(BaseModel):
    id: UUID
    name: str
    email: str
    phone: Optional[str] = None
    document: str
    company_name: Optional[str] = None
    lines: List[LineResponse] = []

    class Config:
        from_attributes = True


class ContractDetailResponse(ContractResponse):
    client: Optional[ContractClient] = None
    template: Optional[TemplateResponse] = None


class ContractActionResponse(BaseModel):
    contract: ContractResponse
    message: str


class ContractSummary(BaseModel):
    status_counts: Dict[str, int]


class ContractListResponse(BaseModel):
    data: List[ContractResponse]
    page: int
    limit: int
    total: int
    total_pages: int
    summary: ContractSummary
