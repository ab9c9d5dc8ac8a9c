"""Builds immutable compliance report snapshots from an assessment's control results."""

import logging
from uuid import UUID

from core.exceptions import NotFound, ValidationError
from models.assessment import Assessment
from models.compliance_report import REPORT_FORMATS, ComplianceReport
from models.control import Control
from models.control_result import NOT_IMPLEMENTED
from models.domain import Domain
from services.scoring import (
    aggregate_by_domain,
    count_statuses,
    needs_remediation,
    priority_for_maturity,
    risk_level,
    score_from_counts,
)
from services.storage import ComplianceStorage

logger = logging.getLogger(__name__)


def _id(value) -> str | None:
    return str(value) if value is not None else None


def recommendation_text(status: str, control: Control | None) -> str:
    name = control.name if control else None
    description = control.description if control else None
    if status == NOT_IMPLEMENTED:
        return f"Implement {name} to address {description}"
    return f"Complete the implementation of {name} to fully address {description}"


class ReportBuilder:
    def __init__(self, storage: ComplianceStorage):
        self.storage = storage

    async def build_report(
        self,
        assessment_id: UUID,
        title: str,
        summary: str | None = None,
        format: str = "pdf",
        is_public: bool = False,
        created_by: UUID | None = None,
    ) -> ComplianceReport:
        """Persist a new report for the assessment and finalize the assessment if still in progress.

        Every lookup runs before the single insert; on any failure the transaction is
        rolled back so no partial report is written.
        """
        if format not in REPORT_FORMATS:
            raise ValidationError(f"Invalid report format: {format}. Valid: {', '.join(REPORT_FORMATS)}")
        if not title or not title.strip():
            raise ValidationError("Title is required")

        assessment = await self.storage.get_assessment_by_id(assessment_id)
        if not assessment:
            raise NotFound("Assessment not found")

        try:
            report_data = await self.assemble_report_data(assessment)
            report = await self.storage.create_compliance_report(
                assessment_id=assessment.id,
                company_id=assessment.company_id,
                created_by=created_by,
                title=title.strip(),
                summary=summary or "",
                format=format,
                is_public=is_public,
                status="generated",
                report_data=report_data,
            )
            if assessment.status != "completed":
                score = round(report_data["summary"]["compliance_score"], 1)
                await self.storage.update_assessment_status(assessment.id, "completed", score)
            await self.storage.commit()
        except Exception:
            await self.storage.rollback()
            raise

        logger.info(
            "Report %s generated for assessment %s (score=%.1f, risk=%s)",
            report.id, assessment.id,
            report_data["summary"]["compliance_score"], report_data["summary"]["risk_level"],
        )
        return report

    async def assemble_report_data(self, assessment: Assessment) -> dict:
        results = await self.storage.get_assessment_results_by_assessment_id(assessment.id)
        framework = await self.storage.get_framework_by_id(assessment.framework_id)
        domains = await self.storage.get_domains_by_framework_id(assessment.framework_id)

        controls: dict[UUID, Control] = {}
        domains_by_id: dict[UUID, Domain] = {d.id: d for d in domains}
        for domain in domains:
            for control in await self.storage.get_controls_by_domain_id(domain.id):
                controls[control.id] = control

        # Results may reference controls outside the framework's current domain tree
        for r in results:
            if r.control_id in controls:
                continue
            control = await self.storage.get_control_by_id(r.control_id)
            if control is None:
                continue
            controls[control.id] = control
            if control.domain_id not in domains_by_id:
                domain = await self.storage.get_domain_by_id(control.domain_id)
                if domain is not None:
                    domains_by_id[domain.id] = domain

        def domain_of(result) -> UUID | None:
            control = controls.get(result.control_id)
            return control.domain_id if control else None

        counts = count_statuses(results)
        score = score_from_counts(counts)
        domain_scores = aggregate_by_domain(results, domain_of, [d.id for d in domains])

        return {
            "framework": {
                "id": _id(framework.id) if framework else None,
                "name": framework.name if framework else None,
                "display_name": framework.display_name if framework else None,
                "version": framework.version if framework else None,
            },
            "summary": {
                "compliance_score": score,
                "risk_level": risk_level(score),
                "implemented_controls": counts.implemented,
                "partially_implemented_controls": counts.partially_implemented,
                "not_implemented_controls": counts.not_implemented,
                "not_applicable_controls": counts.not_applicable,
                "total_controls": counts.total,
            },
            "domain_risk_levels": [
                {
                    "domain_id": _id(domain.id),
                    "domain_name": domain.name,
                    "display_name": domain.display_name,
                    "compliance_score": domain_scores[domain.id].score,
                    "risk_level": domain_scores[domain.id].risk_level,
                    "implemented_controls": domain_scores[domain.id].counts.implemented,
                    "partially_implemented_controls": domain_scores[domain.id].counts.partially_implemented,
                    "not_implemented_controls": domain_scores[domain.id].counts.not_implemented,
                    "not_applicable_controls": domain_scores[domain.id].counts.not_applicable,
                    "total_controls": domain_scores[domain.id].counts.total,
                }
                for domain in domains
            ],
            "detailed_results": [self._detailed_result(r, controls, domains_by_id) for r in results],
            "recommendations": [
                self._recommendation(r, controls, domains_by_id) for r in results if needs_remediation(r.status)
            ],
        }

    @staticmethod
    def _identity(result, controls: dict, domains: dict) -> dict:
        control = controls.get(result.control_id)
        domain = domains.get(control.domain_id) if control else None
        return {
            "control_id": _id(result.control_id),
            "control_identifier": control.control_id if control else "",
            "control_name": control.name if control else "",
            "domain_id": _id(domain.id) if domain else None,
            "domain_name": domain.name if domain else "",
        }

    def _detailed_result(self, result, controls: dict, domains: dict) -> dict:
        return {
            "result_id": _id(result.id),
            **self._identity(result, controls, domains),
            "status": result.status,
            "evidence": result.evidence,
            "comments": result.comments,
        }

    def _recommendation(self, result, controls: dict, domains: dict) -> dict:
        control = controls.get(result.control_id)
        return {
            **self._identity(result, controls, domains),
            "status": result.status,
            "priority": priority_for_maturity(control.maturity_level if control else None),
            "recommendation": recommendation_text(result.status, control),
        }

    async def list_reports_for_company(self, company_id: UUID) -> list[ComplianceReport]:
        return await self.storage.get_compliance_reports_by_company_id(company_id)

    async def list_reports_for_assessment(self, assessment_id: UUID) -> list[ComplianceReport]:
        return await self.storage.get_compliance_reports_by_assessment_id(assessment_id)
