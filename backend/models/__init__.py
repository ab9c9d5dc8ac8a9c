from models.company import Company
from models.user import User
from models.framework import Framework
from models.domain import Domain, Subdomain
from models.control import Control
from models.assessment import Assessment
from models.control_result import ControlResult
from models.compliance_report import ComplianceReport
from models.share_link import ReportShareLink

__all__ = [
    "Company",
    "User",
    "Framework",
    "Domain",
    "Subdomain",
    "Control",
    "Assessment",
    "ControlResult",
    "ComplianceReport",
    "ReportShareLink",
]
