"""Storage collaborator used by the report services.

``ComplianceStorage`` is the lookup/persistence surface the scoring, report and
share-link services depend on; ``SQLAlchemyStorage`` implements it on top of a
request-scoped ``AsyncSession``. Writes are flushed, never committed, until the
calling service invokes ``commit()``.
"""

import functools
import logging
import uuid
from datetime import datetime, timezone
from uuid import UUID

from fastapi import Depends
from sqlalchemy import or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import StorageFailure
from database import get_db
from models.assessment import Assessment
from models.compliance_report import ComplianceReport
from models.control import Control
from models.control_result import ControlResult
from models.domain import Domain, Subdomain
from models.framework import Framework
from models.share_link import ReportShareLink
from models.user import User

logger = logging.getLogger(__name__)


class ComplianceStorage:
    async def get_assessment_by_id(self, assessment_id: UUID) -> Assessment | None:
        raise NotImplementedError

    async def get_assessments_by_company_id(self, company_id: UUID) -> list[Assessment]:
        raise NotImplementedError

    async def create_assessment(self, company_id: UUID, framework_id: UUID, name: str, created_by: UUID | None = None) -> Assessment:
        raise NotImplementedError

    async def update_assessment_status(self, assessment_id: UUID, status: str, score: float | None = None) -> Assessment | None:
        raise NotImplementedError

    async def get_assessment_results_by_assessment_id(self, assessment_id: UUID) -> list[ControlResult]:
        raise NotImplementedError

    async def save_control_result(
        self,
        assessment_id: UUID,
        control_id: UUID,
        status: str,
        evidence: str | None = None,
        comments: str | None = None,
        updated_by: UUID | None = None,
    ) -> ControlResult:
        """Create or update the single result row for (assessment, control)."""
        raise NotImplementedError

    async def get_frameworks(self) -> list[Framework]:
        raise NotImplementedError

    async def get_framework_by_id(self, framework_id: UUID) -> Framework | None:
        raise NotImplementedError

    async def get_domains_by_framework_id(self, framework_id: UUID) -> list[Domain]:
        raise NotImplementedError

    async def get_subdomains_by_domain_id(self, domain_id: UUID) -> list[Subdomain]:
        raise NotImplementedError

    async def get_controls_by_domain_id(self, domain_id: UUID) -> list[Control]:
        raise NotImplementedError

    async def get_control_by_id(self, control_id: UUID) -> Control | None:
        raise NotImplementedError

    async def get_domain_by_id(self, domain_id: UUID) -> Domain | None:
        raise NotImplementedError

    async def create_compliance_report(self, **fields) -> ComplianceReport:
        raise NotImplementedError

    async def get_compliance_report_by_id(self, report_id: UUID) -> ComplianceReport | None:
        raise NotImplementedError

    async def get_compliance_reports_by_company_id(self, company_id: UUID) -> list[ComplianceReport]:
        raise NotImplementedError

    async def get_compliance_reports_by_assessment_id(self, assessment_id: UUID) -> list[ComplianceReport]:
        raise NotImplementedError

    async def create_report_share_link(self, **fields) -> ReportShareLink:
        raise NotImplementedError

    async def get_report_share_link_by_token(self, token: str) -> ReportShareLink | None:
        raise NotImplementedError

    async def get_report_share_link_by_id(self, link_id: UUID) -> ReportShareLink | None:
        raise NotImplementedError

    async def get_report_share_links_by_report_id(self, report_id: UUID) -> list[ReportShareLink]:
        raise NotImplementedError

    async def increment_share_link_view_count(self, link_id: UUID) -> bool:
        """Atomically add one view if the link is active and under its cap; False when no view was granted."""
        raise NotImplementedError

    async def deactivate_share_link(self, link_id: UUID) -> ReportShareLink | None:
        raise NotImplementedError

    async def get_user_by_id(self, user_id: UUID) -> User | None:
        raise NotImplementedError

    async def commit(self) -> None:
        raise NotImplementedError

    async def rollback(self) -> None:
        raise NotImplementedError


def _storage_call(func):
    @functools.wraps(func)
    async def wrapper(self, *args, **kwargs):
        try:
            return await func(self, *args, **kwargs)
        except SQLAlchemyError as e:
            logger.exception("Storage call %s failed", func.__name__)
            raise StorageFailure() from e
    return wrapper


class SQLAlchemyStorage(ComplianceStorage):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _first(self, stmt):
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def _all(self, stmt) -> list:
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    @_storage_call
    async def get_user_by_id(self, user_id):
        return await self._first(select(User).where(User.id == user_id))

    # Assessments

    @_storage_call
    async def get_assessment_by_id(self, assessment_id):
        return await self._first(select(Assessment).where(Assessment.id == assessment_id))

    @_storage_call
    async def get_assessments_by_company_id(self, company_id):
        return await self._all(
            select(Assessment).where(Assessment.company_id == company_id).order_by(Assessment.updated_at.desc())
        )

    @_storage_call
    async def create_assessment(self, company_id, framework_id, name, created_by=None):
        assessment = Assessment(
            company_id=company_id,
            framework_id=framework_id,
            name=name,
            status="in_progress",
            created_by=created_by,
        )
        self.db.add(assessment)
        await self.db.flush()
        return assessment

    @_storage_call
    async def update_assessment_status(self, assessment_id, status, score=None):
        assessment = await self._first(select(Assessment).where(Assessment.id == assessment_id))
        if not assessment:
            return None
        now = datetime.now(timezone.utc)
        assessment.status = status
        assessment.updated_at = now
        if status == "completed":
            assessment.completion_date = now
        if score is not None:
            assessment.score = score
        await self.db.flush()
        return assessment

    @_storage_call
    async def get_assessment_results_by_assessment_id(self, assessment_id):
        return await self._all(
            select(ControlResult)
            .join(Control, Control.id == ControlResult.control_id)
            .where(ControlResult.assessment_id == assessment_id)
            .order_by(Control.control_id, ControlResult.id)
            .execution_options(populate_existing=True)
        )

    @_storage_call
    async def save_control_result(self, assessment_id, control_id, status, evidence=None, comments=None, updated_by=None):
        now = datetime.now(timezone.utc)
        dialect = self.db.bind.dialect.name
        insert = pg_insert if dialect == "postgresql" else sqlite_insert
        stmt = insert(ControlResult).values(
            id=uuid.uuid4(),
            assessment_id=assessment_id,
            control_id=control_id,
            status=status,
            evidence=evidence,
            comments=comments,
            updated_by=updated_by,
            updated_at=now,
        )
        changes = {"status": status, "updated_by": updated_by, "updated_at": now}
        if evidence is not None:
            changes["evidence"] = evidence
        if comments is not None:
            changes["comments"] = comments
        stmt = stmt.on_conflict_do_update(index_elements=["assessment_id", "control_id"], set_=changes)
        await self.db.execute(stmt)
        return await self._first(
            select(ControlResult)
            .where(ControlResult.assessment_id == assessment_id, ControlResult.control_id == control_id)
            .execution_options(populate_existing=True)
        )

    # Framework metadata

    @_storage_call
    async def get_frameworks(self):
        return await self._all(select(Framework).order_by(Framework.name))

    @_storage_call
    async def get_framework_by_id(self, framework_id):
        return await self._first(select(Framework).where(Framework.id == framework_id))

    @_storage_call
    async def get_domains_by_framework_id(self, framework_id):
        return await self._all(select(Domain).where(Domain.framework_id == framework_id).order_by(Domain.order, Domain.name))

    @_storage_call
    async def get_subdomains_by_domain_id(self, domain_id):
        return await self._all(select(Subdomain).where(Subdomain.domain_id == domain_id).order_by(Subdomain.order, Subdomain.name))

    @_storage_call
    async def get_controls_by_domain_id(self, domain_id):
        return await self._all(select(Control).where(Control.domain_id == domain_id).order_by(Control.control_id))

    @_storage_call
    async def get_control_by_id(self, control_id):
        return await self._first(select(Control).where(Control.id == control_id))

    @_storage_call
    async def get_domain_by_id(self, domain_id):
        return await self._first(select(Domain).where(Domain.id == domain_id))

    # Reports

    @_storage_call
    async def create_compliance_report(self, **fields):
        report = ComplianceReport(**fields)
        self.db.add(report)
        await self.db.flush()
        return report

    @_storage_call
    async def get_compliance_report_by_id(self, report_id):
        return await self._first(select(ComplianceReport).where(ComplianceReport.id == report_id))

    @_storage_call
    async def get_compliance_reports_by_company_id(self, company_id):
        return await self._all(
            select(ComplianceReport).where(ComplianceReport.company_id == company_id).order_by(ComplianceReport.created_at.desc())
        )

    @_storage_call
    async def get_compliance_reports_by_assessment_id(self, assessment_id):
        return await self._all(
            select(ComplianceReport).where(ComplianceReport.assessment_id == assessment_id).order_by(ComplianceReport.created_at.desc())
        )

    # Share links

    @_storage_call
    async def create_report_share_link(self, **fields):
        link = ReportShareLink(**fields)
        self.db.add(link)
        await self.db.flush()
        return link

    @_storage_call
    async def get_report_share_link_by_token(self, token):
        return await self._first(
            select(ReportShareLink).where(ReportShareLink.share_token == token).execution_options(populate_existing=True)
        )

    @_storage_call
    async def get_report_share_link_by_id(self, link_id):
        return await self._first(
            select(ReportShareLink).where(ReportShareLink.id == link_id).execution_options(populate_existing=True)
        )

    @_storage_call
    async def get_report_share_links_by_report_id(self, report_id):
        return await self._all(
            select(ReportShareLink)
            .where(ReportShareLink.report_id == report_id)
            .order_by(ReportShareLink.created_at.desc())
            .execution_options(populate_existing=True)
        )

    @_storage_call
    async def increment_share_link_view_count(self, link_id):
        links = ReportShareLink.__table__.c
        # Check and increment in one statement so concurrent readers cannot both take the last view
        stmt = (
            update(ReportShareLink.__table__)
            .where(
                links.id == link_id,
                links.is_active == True,  # noqa: E712
                or_(links.max_views.is_(None), links.view_count < links.max_views),
            )
            .values(view_count=links.view_count + 1)
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    @_storage_call
    async def deactivate_share_link(self, link_id):
        links = ReportShareLink.__table__.c
        await self.db.execute(update(ReportShareLink.__table__).where(links.id == link_id).values(is_active=False))
        return await self.get_report_share_link_by_id(link_id)

    @_storage_call
    async def commit(self):
        await self.db.commit()

    @_storage_call
    async def rollback(self):
        await self.db.rollback()


async def get_storage(db: AsyncSession = Depends(get_db)) -> ComplianceStorage:
    """FastAPI dependency: request-scoped storage over the request's session."""
    return SQLAlchemyStorage(db)
