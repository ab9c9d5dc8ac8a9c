from typing import Literal
from uuid import UUID
from datetime import datetime
from pydantic import BaseModel, Field

ResultStatus = Literal["implemented", "partially_implemented", "not_implemented", "not_applicable"]


class AssessmentCreate(BaseModel):
    framework_id: UUID
    name: str = Field(min_length=1, max_length=255)


class AssessmentResponse(BaseModel):
    id: UUID
    company_id: UUID
    framework_id: UUID
    name: str
    status: str
    score: float | None
    start_date: datetime
    completion_date: datetime | None
    updated_at: datetime
    result_count: int = 0

    model_config = {"from_attributes": True}


class ControlResultUpdate(BaseModel):
    status: ResultStatus
    evidence: str | None = None
    comments: str | None = None


class ControlResultResponse(BaseModel):
    id: UUID
    assessment_id: UUID
    control_id: UUID
    control_identifier: str = ""
    control_name: str = ""
    domain_name: str = ""
    status: str
    evidence: str | None
    comments: str | None
    updated_at: datetime

    model_config = {"from_attributes": True}
