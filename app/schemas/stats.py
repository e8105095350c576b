from pydantic import BaseModel
from typing import Dict, List, Literal

from app.schemas.contract import ContractResponse


class DashboardStats(BaseModel):
    total_clients: int
    total_contracts: int
    active_tv_slots: int
    active_cloud_accesses: int


class SegmentMetrics(BaseModel):
    """Client counts of a segment, split by document type."""
    cpf: int = 0
    cnpj: int = 0
    total: int = 0
    last_month: int = 0


class PlanSummary(BaseModel):
    plan: str
    clients: int
    slots: int


class TVUsage(BaseModel):
    goal: int
    used: int
    available: int
    percentage: float


class Segment(BaseModel):
    key: str
    label: str
    metrics: SegmentMetrics


class StatsOverview(BaseModel):
    metrics: Dict[str, SegmentMetrics]
    plan_summary: List[PlanSummary]
    tv_usage: TVUsage
    recent_contracts: List[ContractResponse]
    segments: List[Segment]


class SalesRange(BaseModel):
    start: str
    end: str


class SalesService(BaseModel):
    key: str
    name: str
    group: Literal["TV", "SERVICO"]


class SalesPoint(BaseModel):
    month: str
    label: str
    totals: Dict[str, int]
    total: int


class SalesReport(BaseModel):
    range: SalesRange
    services: List[SalesService]
    selected_services: List[str]
    points: List[SalesPoint]
    total_sales: int
