import logging
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from core.exceptions import NotFound
from core.security import ensure_company_access, get_current_user
from models.compliance_report import ComplianceReport
from models.share_link import ReportShareLink
from models.user import User
from schemas.report import ReportCreate, ReportResponse, ReportSummary
from schemas.share_link import ShareLinkCreate, ShareLinkResponse
from services.export_service import export_report_to_csv, export_report_to_excel, export_report_to_html, export_report_to_pdf
from services.report_builder import ReportBuilder
from services.share_links import ShareLinkManager, link_state
from services.storage import ComplianceStorage, get_storage

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/reports", tags=["reports"])

EXPORT_MEDIA_TYPES = {
    "pdf": "application/pdf",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "csv": "text/csv",
    "html": "text/html",
    "json": "application/json",
}


async def _get_owned_report(report_id: UUID, user: User, storage: ComplianceStorage) -> ComplianceReport:
    report = await storage.get_compliance_report_by_id(report_id)
    if not report:
        raise NotFound("Report not found")
    ensure_company_access(user, report.company_id)
    return report


def _summarize(report: ComplianceReport) -> ReportSummary:
    summary = (report.report_data or {}).get("summary", {})
    return ReportSummary(
        id=report.id, assessment_id=report.assessment_id, title=report.title,
        format=report.format, is_public=report.is_public, created_at=report.created_at,
        compliance_score=summary.get("compliance_score"), risk_level=summary.get("risk_level"),
    )


def _link_response(link: ReportShareLink) -> ShareLinkResponse:
    resp = ShareLinkResponse.model_validate(link)
    resp.state = link_state(link)
    return resp


@router.post("", response_model=ReportResponse, status_code=201)
async def create_report(req: ReportCreate, user: User = Depends(get_current_user), storage: ComplianceStorage = Depends(get_storage)):
    assessment = await storage.get_assessment_by_id(req.assessment_id)
    if not assessment:
        raise NotFound("Assessment not found")
    ensure_company_access(user, assessment.company_id)

    return await ReportBuilder(storage).build_report(
        assessment.id, req.title, summary=req.summary, format=req.format,
        is_public=req.is_public, created_by=user.id,
    )


# Token routes are registered before /{report_id} routes; no authentication on purpose
@router.get("/share/{token}", response_model=ReportResponse)
async def access_shared_report(
    token: str,
    password: str | None = Query(default=None),
    storage: ComplianceStorage = Depends(get_storage),
):
    return await ShareLinkManager(storage).resolve_share_link(token, password)


@router.post("/share/{link_id}/deactivate", response_model=ShareLinkResponse)
async def deactivate_share_link(link_id: UUID, user: User = Depends(get_current_user), storage: ComplianceStorage = Depends(get_storage)):
    manager = ShareLinkManager(storage)
    link = await manager.get_share_link(link_id)
    await _get_owned_report(link.report_id, user, storage)
    return _link_response(await manager.deactivate(link_id))


@router.get("/company/{company_id}", response_model=list[ReportSummary])
async def list_company_reports(company_id: UUID, user: User = Depends(get_current_user), storage: ComplianceStorage = Depends(get_storage)):
    ensure_company_access(user, company_id)
    reports = await ReportBuilder(storage).list_reports_for_company(company_id)
    return [_summarize(r) for r in reports]


@router.get("/assessment/{assessment_id}", response_model=list[ReportSummary])
async def list_assessment_reports(assessment_id: UUID, user: User = Depends(get_current_user), storage: ComplianceStorage = Depends(get_storage)):
    assessment = await storage.get_assessment_by_id(assessment_id)
    if not assessment:
        raise NotFound("Assessment not found")
    ensure_company_access(user, assessment.company_id)
    reports = await ReportBuilder(storage).list_reports_for_assessment(assessment_id)
    return [_summarize(r) for r in reports]


@router.get("/{report_id}", response_model=ReportResponse)
async def get_report(report_id: UUID, user: User = Depends(get_current_user), storage: ComplianceStorage = Depends(get_storage)):
    return await _get_owned_report(report_id, user, storage)


@router.get("/{report_id}/export/{fmt}")
async def export_report(
    report_id: UUID,
    fmt: Literal["pdf", "xlsx", "csv", "html", "json"],
    user: User = Depends(get_current_user),
    storage: ComplianceStorage = Depends(get_storage),
):
    report = await _get_owned_report(report_id, user, storage)
    if fmt == "pdf":
        content = export_report_to_pdf(report.title, report.report_data)
    elif fmt == "xlsx":
        content = export_report_to_excel(report.title, report.report_data)
    elif fmt == "csv":
        content = export_report_to_csv(report.report_data)
    elif fmt == "html":
        content = export_report_to_html(report.title, report.report_data)
    else:
        content = ReportResponse.model_validate(report).model_dump_json().encode("utf-8")

    logger.info("Report %s exported as %s", report.id, fmt)
    return Response(
        content=content,
        media_type=EXPORT_MEDIA_TYPES[fmt],
        headers={"Content-Disposition": f"attachment; filename=compliance_report_{report_id}.{fmt}"},
    )


@router.post("/{report_id}/share", response_model=ShareLinkResponse, status_code=201)
async def create_share_link(
    report_id: UUID,
    req: ShareLinkCreate,
    user: User = Depends(get_current_user),
    storage: ComplianceStorage = Depends(get_storage),
):
    report = await _get_owned_report(report_id, user, storage)
    link = await ShareLinkManager(storage).create_share_link(
        report.id,
        password=req.password or None,
        expires_at=req.expires_at,
        max_views=req.max_views,
        created_by=user.id,
    )
    return _link_response(link)


@router.get("/{report_id}/share", response_model=list[ShareLinkResponse])
async def list_share_links(report_id: UUID, user: User = Depends(get_current_user), storage: ComplianceStorage = Depends(get_storage)):
    report = await _get_owned_report(report_id, user, storage)
    links = await ShareLinkManager(storage).list_share_links(report.id)
    return [_link_response(link) for link in links]
