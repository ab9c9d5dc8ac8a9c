from uuid import UUID
from datetime import datetime
from pydantic import BaseModel, Field


class ShareLinkCreate(BaseModel):
    password: str | None = None
    expires_at: datetime | None = None
    max_views: int | None = Field(default=None, ge=1)


class ShareLinkResponse(BaseModel):
    """Share link as returned to the report owner. The password hash never leaves the server."""
    id: UUID
    report_id: UUID
    share_token: str
    created_at: datetime
    expires_at: datetime | None
    view_count: int
    max_views: int | None
    is_active: bool
    has_password: bool
    state: str = "active"  # active, expired, exhausted, deactivated

    model_config = {"from_attributes": True}
