import logging
from uuid import UUID

from fastapi import APIRouter, Depends

from core.exceptions import Forbidden, NotFound
from core.security import ensure_company_access, get_current_user
from models.assessment import Assessment
from models.control_result import NOT_IMPLEMENTED, ControlResult
from models.user import User
from schemas.assessment import AssessmentCreate, AssessmentResponse, ControlResultResponse, ControlResultUpdate
from services.scoring import compliance_score
from services.storage import ComplianceStorage, get_storage

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/assessments", tags=["assessments"])


async def _get_owned_assessment(assessment_id: UUID, user: User, storage: ComplianceStorage) -> Assessment:
    assessment = await storage.get_assessment_by_id(assessment_id)
    if not assessment:
        raise NotFound("Assessment not found")
    ensure_company_access(user, assessment.company_id)
    return assessment


async def _control_index(framework_id: UUID, storage: ComplianceStorage) -> dict:
    """control id -> (control, domain) for every control of the framework."""
    index = {}
    for domain in await storage.get_domains_by_framework_id(framework_id):
        for control in await storage.get_controls_by_domain_id(domain.id):
            index[control.id] = (control, domain)
    return index


def _result_response(result: ControlResult, index: dict) -> ControlResultResponse:
    resp = ControlResultResponse.model_validate(result)
    control, domain = index.get(result.control_id, (None, None))
    if control:
        resp.control_identifier = control.control_id
        resp.control_name = control.name
    if domain:
        resp.domain_name = domain.name
    return resp


@router.get("", response_model=list[AssessmentResponse])
async def list_assessments(user: User = Depends(get_current_user), storage: ComplianceStorage = Depends(get_storage)):
    if user.company_id is None:
        return []
    return await storage.get_assessments_by_company_id(user.company_id)


@router.post("", response_model=AssessmentResponse, status_code=201)
async def create_assessment(req: AssessmentCreate, user: User = Depends(get_current_user), storage: ComplianceStorage = Depends(get_storage)):
    if user.company_id is None:
        raise Forbidden("User is not attached to a company")
    framework = await storage.get_framework_by_id(req.framework_id)
    if not framework:
        raise NotFound("Framework not found")

    assessment = await storage.create_assessment(user.company_id, framework.id, req.name, created_by=user.id)

    # Every control of the framework starts as not implemented
    index = await _control_index(framework.id, storage)
    for control_id in index:
        await storage.save_control_result(assessment.id, control_id, NOT_IMPLEMENTED, updated_by=user.id)
    await storage.commit()
    logger.info("Assessment %s created for framework %s with %d controls", assessment.id, framework.name, len(index))

    resp = AssessmentResponse.model_validate(assessment)
    resp.result_count = len(index)
    return resp


@router.get("/{assessment_id}", response_model=AssessmentResponse)
async def get_assessment(assessment_id: UUID, user: User = Depends(get_current_user), storage: ComplianceStorage = Depends(get_storage)):
    assessment = await _get_owned_assessment(assessment_id, user, storage)
    results = await storage.get_assessment_results_by_assessment_id(assessment.id)
    resp = AssessmentResponse.model_validate(assessment)
    resp.result_count = len(results)
    return resp


@router.get("/{assessment_id}/results", response_model=list[ControlResultResponse])
async def list_results(assessment_id: UUID, user: User = Depends(get_current_user), storage: ComplianceStorage = Depends(get_storage)):
    assessment = await _get_owned_assessment(assessment_id, user, storage)
    index = await _control_index(assessment.framework_id, storage)
    results = await storage.get_assessment_results_by_assessment_id(assessment.id)
    responses = [_result_response(r, index) for r in results]
    domain_order = {domain.id: domain.order for _, domain in index.values()}

    def sort_key(resp: ControlResultResponse):
        _, domain = index.get(resp.control_id, (None, None))
        return (domain_order.get(domain.id, 0) if domain else 0, resp.control_identifier)

    return sorted(responses, key=sort_key)


@router.put("/{assessment_id}/results/{control_id}", response_model=ControlResultResponse)
async def save_result(
    assessment_id: UUID,
    control_id: UUID,
    req: ControlResultUpdate,
    user: User = Depends(get_current_user),
    storage: ComplianceStorage = Depends(get_storage),
):
    assessment = await _get_owned_assessment(assessment_id, user, storage)
    index = await _control_index(assessment.framework_id, storage)
    if control_id not in index:
        raise NotFound("Control not found in this assessment's framework")

    result = await storage.save_control_result(
        assessment.id, control_id, req.status,
        evidence=req.evidence, comments=req.comments, updated_by=user.id,
    )
    await storage.commit()
    return _result_response(result, index)


@router.post("/{assessment_id}/complete", response_model=AssessmentResponse)
async def complete_assessment(assessment_id: UUID, user: User = Depends(get_current_user), storage: ComplianceStorage = Depends(get_storage)):
    assessment = await _get_owned_assessment(assessment_id, user, storage)
    results = await storage.get_assessment_results_by_assessment_id(assessment.id)
    score = round(compliance_score(results), 1)

    assessment = await storage.update_assessment_status(assessment.id, "completed", score)
    await storage.commit()
    logger.info("Assessment %s completed with score %.1f", assessment.id, score)

    resp = AssessmentResponse.model_validate(assessment)
    resp.result_count = len(results)
    return resp
