from typing import Literal
from uuid import UUID
from datetime import datetime
from pydantic import BaseModel, Field


class ReportCreate(BaseModel):
    assessment_id: UUID
    title: str = Field(min_length=1, max_length=500)
    summary: str | None = None
    is_public: bool = False
    format: Literal["pdf", "html", "json"] = "pdf"


class ReportResponse(BaseModel):
    id: UUID
    assessment_id: UUID
    company_id: UUID
    created_by: UUID | None
    created_at: datetime
    title: str
    summary: str | None
    report_data: dict
    format: str
    status: str
    is_public: bool

    model_config = {"from_attributes": True}


class ReportSummary(BaseModel):
    id: UUID
    assessment_id: UUID
    title: str
    format: str
    is_public: bool
    created_at: datetime
    compliance_score: float | None = None
    risk_level: str | None = None
