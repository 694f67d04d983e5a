# backend/mining_intel/schemas/company.py
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_serializer

from ..models.company import CompanyStatus


class ProcessRequest(BaseModel):
    # Comma-delimited list of company names, e.g. "BHP, Rio Tinto, Vale"
    companies: str


class ProcessAccepted(BaseModel):
    message: str
    companies_queued: int


class ProcessingStatus(BaseModel):
    is_processing: bool
    pending_jobs: int


class ExecutiveOut(BaseModel):
    id: UUID
    name: str
    expertise: list[str] = []
    technical_summary: list[str] = []

    model_config = ConfigDict(from_attributes=True)


class AssetOut(BaseModel):
    id: UUID
    name: str
    commodities: list[str] = []
    status: str | None = None
    country: str | None = None
    state_province: str | None = None
    town: str | None = None
    latitude: Decimal | None = None
    longitude: Decimal | None = None

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("latitude", "longitude")
    def _as_float(self, v: Decimal | None) -> float | None:
        return float(v) if v is not None else None


class CompanyOut(BaseModel):
    id: UUID
    name: str
    status: CompanyStatus
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CompanyDetailOut(CompanyOut):
    executives: list[ExecutiveOut] = []
    assets: list[AssetOut] = []


class CompanyPage(BaseModel):
    data: list[CompanyOut]
    current_page: int
    last_page: int
    per_page: int
    total: int
