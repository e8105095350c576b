from pydantic import BaseModel
from typing import Optional, List, Literal
from datetime import date
from uuid import UUID

ReportCategory = Literal["TV", "HUB", "TELE", "CLOUD", "OTHER"]


class ServiceReportRow(BaseModel):
    """
    One sold item: a TV profile, a cloud access or a plain client service.
    """
    id: str
    category: ReportCategory
    client_id: UUID
    client_name: str
    client_document: str
    client_email: Optional[str] = None
    service_id: Optional[str] = None
    service_name: str
    identifier: str
    plan_type: Optional[str] = None
    responsible: Optional[str] = None
    status: Optional[str] = None
    starts_at: Optional[date] = None
    expires_at: Optional[date] = None
    notes: Optional[str] = None
    client_vendor_name: Optional[str] = None
    service_vendor_name: Optional[str] = None
    service_value: Optional[float] = None


class ServiceReport(BaseModel):
    data: List[ServiceReportRow]
    total: int
