"""SQLAlchemy models."""
from track_inspector.models.base import Base
from track_inspector.models.report import Report, ReportComment
from track_inspector.models.user import User

__all__ = [
    "Base",
    "Report",
    "ReportComment",
    "User",
]
