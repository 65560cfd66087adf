"""Sample data for development and demos (``POST /api/seed``)."""
from datetime import datetime, timezone
import logging

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from track_inspector.core.enums import ReportStatus, RiskLevel, UserRole
from track_inspector.core.security import hash_password
from track_inspector.models.report import Report, ReportComment
from track_inspector.models.user import User

logger = logging.getLogger(__name__)

SAMPLE_REPORTS = [
    {
        "defect_type": "Rail Crack",
        "location": "Sector A-12",
        "report_date": datetime(2025, 3, 12, tzinfo=timezone.utc),
        "risk_level": RiskLevel.HIGH,
        "description": "Severe lateral crack observed in rail joint",
        "status": ReportStatus.PENDING,
    },
    {
        "defect_type": "Loose Fastener",
        "location": "Junction B-5",
        "report_date": datetime(2025, 3, 10, tzinfo=timezone.utc),
        "risk_level": RiskLevel.MEDIUM,
        "description": "Multiple loose fasteners detected in curve section",
        "status": ReportStatus.IN_PROGRESS,
    },
    {
        "defect_type": "Surface Wear",
        "location": "Section C-8",
        "report_date": datetime(2025, 3, 8, tzinfo=timezone.utc),
        "risk_level": RiskLevel.LOW,
        "description": "Minor surface wear observed over 2m section",
        "status": ReportStatus.PENDING,
    },
    {
        "defect_type": "Ballast Contamination",
        "location": "Track D-3",
        "report_date": datetime(2025, 3, 5, tzinfo=timezone.utc),
        "risk_level": RiskLevel.MEDIUM,
        "description": "Mud pumping observed in ballast bed",
        "status": ReportStatus.RESOLVED,
    },
    {
        "defect_type": "Broken Sleeper",
        "location": "Station Approach E-1",
        "report_date": datetime(2025, 3, 1, tzinfo=timezone.utc),
        "risk_level": RiskLevel.HIGH,
        "description": "Concrete sleeper cracked at center",
        "status": ReportStatus.IN_PROGRESS,
    },
]

SAMPLE_USERS = [
    {"name": "John Maintenance", "email": "john@cgr.com", "role": UserRole.MAINTENANCE},
    {"name": "Sarah Engineer", "email": "sarah@cgr.com", "role": UserRole.ENGINEER},
    {"name": "Mike Team", "email": "mike@cgr.com", "role": UserRole.TEAM},
]
SAMPLE_PASSWORD = "password123"


async def seed_sample_data(db: AsyncSession) -> None:
    """Replace all reports with the samples; add sample users only to an empty user table."""
    try:
        await db.execute(delete(ReportComment))
        await db.execute(delete(Report))

        for sample in SAMPLE_REPORTS:
            db.add(Report(
                defect_type=sample["defect_type"],
                location=sample["location"],
                report_date=sample["report_date"],
                risk_level=sample["risk_level"].value,
                description=sample["description"],
                status=sample["status"].value,
                reported_by="Track Inspector",
                comments=[],
            ))

        user_count = (await db.execute(select(func.count()).select_from(User))).scalar_one()
        if user_count == 0:
            hashed = hash_password(SAMPLE_PASSWORD)
            for sample in SAMPLE_USERS:
                db.add(User(
                    name=sample["name"],
                    email=sample["email"],
                    role=sample["role"].value,
                    expertise=[],
                    hashed_password=hashed,
                ))

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        f"Seeded {len(SAMPLE_REPORTS)} reports"
        + (f" and {len(SAMPLE_USERS)} users" if user_count == 0 else "")
    )
