"""Capability links that grant anonymous read access to one compliance report.

A link is either deactivated (stored, terminal) or evaluated at access time for
expiry and view exhaustion. Only a successful access writes: it consumes one
view through an atomic increment-and-check in storage.
"""

import logging
from datetime import datetime, timezone
from uuid import UUID

from core.exceptions import (
    Deactivated,
    Expired,
    InvalidPassword,
    NotFound,
    PasswordRequired,
    ValidationError,
    ViewLimitExceeded,
)
from core.security import generate_share_token, hash_share_password, verify_share_password
from models.compliance_report import ComplianceReport
from models.share_link import ReportShareLink
from services.storage import ComplianceStorage

logger = logging.getLogger(__name__)

ACTIVE = "active"
EXPIRED = "expired"
EXHAUSTED = "exhausted"
DEACTIVATED = "deactivated"


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_expired(link: ReportShareLink, now: datetime) -> bool:
    return link.expires_at is not None and _as_utc(link.expires_at) < now


def is_exhausted(link: ReportShareLink) -> bool:
    return link.max_views is not None and link.view_count >= link.max_views


def link_state(link: ReportShareLink, now: datetime | None = None) -> str:
    now = _as_utc(now or datetime.now(timezone.utc))
    if not link.is_active:
        return DEACTIVATED
    if is_expired(link, now):
        return EXPIRED
    if is_exhausted(link):
        return EXHAUSTED
    return ACTIVE


def _token_hint(token: str) -> str:
    return token[:6] + "..."


class ShareLinkManager:
    def __init__(self, storage: ComplianceStorage):
        self.storage = storage

    async def create_share_link(
        self,
        report_id: UUID,
        password: str | None = None,
        expires_at: datetime | None = None,
        max_views: int | None = None,
        created_by: UUID | None = None,
    ) -> ReportShareLink:
        if max_views is not None and max_views < 1:
            raise ValidationError("max_views must be a positive integer")

        report = await self.storage.get_compliance_report_by_id(report_id)
        if not report:
            raise NotFound("Report not found")

        link = await self.storage.create_report_share_link(
            report_id=report.id,
            share_token=generate_share_token(),
            created_by=created_by,
            created_at=datetime.now(timezone.utc),
            expires_at=_as_utc(expires_at) if expires_at else None,
            password_hash=hash_share_password(password) if password else None,
            view_count=0,
            max_views=max_views,
            is_active=True,
        )
        await self.storage.commit()
        logger.info(
            "Share link %s created for report %s (password=%s, expires_at=%s, max_views=%s)",
            link.id, report.id, link.has_password, link.expires_at, link.max_views,
        )
        return link

    async def resolve_share_link(
        self, token: str, password: str | None = None, now: datetime | None = None
    ) -> ComplianceReport:
        """Return the shared report or raise the specific reason access is refused.

        Checks run in a fixed order so an expired or exhausted link is reported as
        such before any password prompt.
        """
        now = _as_utc(now or datetime.now(timezone.utc))

        link = await self.storage.get_report_share_link_by_token(token)
        if not link:
            raise NotFound("Shared report link not found")
        if not link.is_active:
            raise Deactivated()
        if is_expired(link, now):
            raise Expired()
        if is_exhausted(link):
            raise ViewLimitExceeded()
        if link.password_hash:
            if not password:
                raise PasswordRequired()
            if not verify_share_password(password, link.password_hash):
                logger.info("Rejected password for share link %s", _token_hint(token))
                raise InvalidPassword()

        report = await self.storage.get_compliance_report_by_id(link.report_id)
        if not report:
            raise NotFound("Report not found")

        if not await self.storage.increment_share_link_view_count(link.id):
            # Another request consumed the last view (or deactivated the link) since our read
            await self.storage.rollback()
            raise ViewLimitExceeded()
        await self.storage.commit()

        logger.info("Share link %s served report %s", _token_hint(token), report.id)
        return report

    async def deactivate(self, link_id: UUID) -> ReportShareLink:
        """Idempotent: deactivating an inactive link succeeds and leaves it inactive."""
        link = await self.storage.deactivate_share_link(link_id)
        if not link:
            raise NotFound("Share link not found")
        await self.storage.commit()
        logger.info("Share link %s deactivated", link.id)
        return link

    async def get_share_link(self, link_id: UUID) -> ReportShareLink:
        link = await self.storage.get_report_share_link_by_id(link_id)
        if not link:
            raise NotFound("Share link not found")
        return link

    async def list_share_links(self, report_id: UUID) -> list[ReportShareLink]:
        return await self.storage.get_report_share_links_by_report_id(report_id)
