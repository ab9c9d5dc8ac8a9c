"""Domain errors raised by the report services and translated to HTTP responses in main.py."""


class ComplianceError(Exception):
    status_code = 500
    code = "error"
    default_detail = "Unexpected error"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class NotFound(ComplianceError):
    status_code = 404
    code = "not_found"
    default_detail = "Not found"


class Forbidden(ComplianceError):
    status_code = 403
    code = "forbidden"
    default_detail = "Access denied"


class ValidationError(ComplianceError):
    status_code = 400
    code = "validation_error"
    default_detail = "Invalid request"


class StorageFailure(ComplianceError):
    status_code = 500
    code = "storage_failure"
    default_detail = "Internal storage error"


class ShareLinkError(ComplianceError):
    """Base for the share-link resolution outcomes."""

    status_code = 403


class Deactivated(ShareLinkError):
    code = "deactivated"
    default_detail = "This share link has been deactivated"


class Expired(ShareLinkError):
    code = "expired"
    default_detail = "This share link has expired"


class ViewLimitExceeded(ShareLinkError):
    code = "view_limit_exceeded"
    default_detail = "This share link has reached its maximum view count"


class PasswordRequired(ShareLinkError):
    status_code = 401
    code = "password_required"
    # Clients match on this literal to re-prompt for the password
    default_detail = "password_required"


class InvalidPassword(ShareLinkError):
    status_code = 401
    code = "invalid_password"
    default_detail = "Invalid password"
