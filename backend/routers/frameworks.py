from uuid import UUID

from fastapi import APIRouter, Depends

from core.exceptions import NotFound
from core.security import get_current_user
from models.user import User
from schemas.framework import ControlResponse, DomainResponse, FrameworkDetail, FrameworkResponse, SubdomainResponse
from services.storage import ComplianceStorage, get_storage

router = APIRouter(prefix="/frameworks", tags=["frameworks"])


@router.get("", response_model=list[FrameworkResponse])
async def list_frameworks(user: User = Depends(get_current_user), storage: ComplianceStorage = Depends(get_storage)):
    return await storage.get_frameworks()


@router.get("/{framework_id}", response_model=FrameworkDetail)
async def get_framework(framework_id: UUID, user: User = Depends(get_current_user), storage: ComplianceStorage = Depends(get_storage)):
    framework = await storage.get_framework_by_id(framework_id)
    if not framework:
        raise NotFound("Framework not found")

    domains = []
    for domain in await storage.get_domains_by_framework_id(framework.id):
        subdomains = await storage.get_subdomains_by_domain_id(domain.id)
        controls = await storage.get_controls_by_domain_id(domain.id)
        domains.append(DomainResponse(
            id=domain.id, name=domain.name, display_name=domain.display_name,
            description=domain.description, order=domain.order,
            subdomains=[SubdomainResponse.model_validate(s) for s in subdomains],
            controls=[ControlResponse.model_validate(c) for c in controls],
        ))

    return FrameworkDetail(**FrameworkResponse.model_validate(framework).model_dump(), domains=domains)
