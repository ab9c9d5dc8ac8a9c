from uuid import UUID
from pydantic import BaseModel


class ControlResponse(BaseModel):
    id: UUID
    control_id: str
    name: str
    description: str
    guidance: str | None
    maturity_level: int | None
    subdomain_id: UUID | None

    model_config = {"from_attributes": True}


class SubdomainResponse(BaseModel):
    id: UUID
    name: str
    display_name: str
    order: int

    model_config = {"from_attributes": True}


class DomainResponse(BaseModel):
    id: UUID
    name: str
    display_name: str
    description: str | None
    order: int
    subdomains: list[SubdomainResponse] = []
    controls: list[ControlResponse] = []


class FrameworkResponse(BaseModel):
    id: UUID
    name: str
    display_name: str
    description: str | None
    version: str

    model_config = {"from_attributes": True}


class FrameworkDetail(FrameworkResponse):
    domains: list[DomainResponse] = []
