"""
Pydantic schemas for clients and the service/TV/cloud setup sent with them.
"""
from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List
from datetime import datetime
from uuid import UUID

from app.models.client import CostCenter
from app.models.tv_slot import PlanType
from app.schemas.service import ClientServiceResponse
from app.schemas.cloud import CloudAccessResponse
from app.schemas.contract import ContractResponse
from app.schemas.tv import ClientTVAssignment


# ------------------------------------------------------------------
# SETUP PAYLOADS
# ------------------------------------------------------------------
class ServiceSelection(BaseModel):
    """A contracted service with optional negotiated prices."""
    service_id: UUID
    custom_price: Optional[float] = Field(None, ge=0)
    custom_price_essencial: Optional[float] = Field(None, ge=0)
    custom_price_premium: Optional[float] = Field(None, ge=0)
    sold_by: Optional[str] = Field(None, min_length=1)


class TVSetup(BaseModel):
    """
    TV access configuration for a client.

    quantity/plan_type is the single-plan form; quantity_essencial and
    quantity_premium take precedence when present.
    """
    quantity: Optional[int] = Field(None, ge=1, le=50)
    plan_type: Optional[PlanType] = None
    quantity_essencial: Optional[int] = Field(None, ge=0, le=50)
    quantity_premium: Optional[int] = Field(None, ge=0, le=50)
    custom_email: Optional[EmailStr] = None
    sold_by: Optional[str] = None
    sold_at: Optional[str] = None
    starts_at: Optional[str] = None
    expires_at: Optional[str] = None
    notes: Optional[str] = None
    has_telephony: Optional[bool] = None


class CloudSetup(BaseModel):
    service_id: UUID
    expires_at: str = Field(..., min_length=8)
    is_test: Optional[bool] = None
    notes: Optional[str] = None


# ------------------------------------------------------------------
# CLIENT INPUT
# ------------------------------------------------------------------
class ClientBase(BaseModel):
    phone: Optional[str] = Field(None, max_length=50)
    company_name: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None
    address: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=120)
    state: Optional[str] = Field(None, max_length=50)


class ClientSetupFields(BaseModel):
    service_ids: Optional[List[UUID]] = None
    service_selections: Optional[List[ServiceSelection]] = None
    tv_setup: Optional[TVSetup] = None
    cloud_setups: Optional[List[CloudSetup]] = None

    def selections(self) -> Optional[List[ServiceSelection]]:
        """Normalize service_ids/service_selections into one list (None when neither was sent)."""
        if self.service_selections is not None:
            return self.service_selections
        if self.service_ids is not None:
            return [ServiceSelection(service_id=service_id) for service_id in self.service_ids]
        return None


class ClientCreate(ClientBase, ClientSetupFields):
    name: str = Field(..., min_length=2, max_length=255)
    email: EmailStr
    document: str = Field(..., min_length=5)
    cost_center: CostCenter
    opened_by: Optional[str] = None


class ClientUpdate(ClientBase, ClientSetupFields):
    """Partial update; only fields present in the body are written."""
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    email: Optional[EmailStr] = None
    document: Optional[str] = Field(None, min_length=5)
    cost_center: Optional[CostCenter] = None
    opened_by: Optional[str] = None


# ------------------------------------------------------------------
# CLIENT OUTPUT
# ------------------------------------------------------------------
class ClientResponse(ClientBase):
    id: UUID
    name: str
    email: str
    document: str
    cost_center: CostCenter
    opened_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    services: List[ClientServiceResponse] = []
    cloud_accesses: List[CloudAccessResponse] = []
    tv_assignments: List[ClientTVAssignment] = []


class ClientDetailResponse(ClientResponse):
    contracts: List[ContractResponse] = []


class ClientListResponse(BaseModel):
    data: List[ClientResponse]
    page: int
    limit: int
    total: int
    total_pages: int


class CNPJLookupResponse(BaseModel):
    document: str
    name: Optional[str] = None
    company_name: Optional[str] = None
    trade_name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    phone: Optional[str] = None
    postal_code: Optional[str] = None
    email: Optional[str] = None
    opening_date: Optional[str] = None
