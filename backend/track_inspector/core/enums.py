"""Shared enums used across all modules - THE source of truth for all status/type values."""
from enum import Enum


# ─── Report Lifecycle ──────────────────────────────────────────
class ReportStatus(str, Enum):
    PENDING = "Pending"
    ASSIGNED = "Assigned"
    IN_PROGRESS = "In Progress"
    RESOLVED = "Resolved"
    CLOSED = "Closed"


class RiskLevel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


# ─── Users ─────────────────────────────────────────────────────
class UserRole(str, Enum):
    ADMIN = "admin"
    MAINTENANCE = "maintenance"
    ENGINEER = "engineer"
    TEAM = "team"
    INSPECTOR = "inspector"


# ─── Media ─────────────────────────────────────────────────────
class MediaBackend(str, Enum):
    CLOUDINARY = "cloudinary"
    LOCAL = "local"
