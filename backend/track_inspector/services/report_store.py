"""Report store - persistence, lifecycle and dashboard queries for defect reports."""
from typing import List, Optional
from uuid import UUID
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from track_inspector.core.enums import ReportStatus, RiskLevel
from track_inspector.core.exceptions import NotFoundError
from track_inspector.db.predicates import count_where, eq, ne
from track_inspector.models.base import utcnow
from track_inspector.models.report import Report, ReportComment
from track_inspector.schemas.shared import (
    CommentCreate,
    CommentResponse,
    DashboardStats,
    ReportCreate,
    ReportResponse,
    ReportUpdate,
    StatusBreakdown,
)
from track_inspector.services.media_gateway import MediaGateway

logger = logging.getLogger(__name__)


class ReportStore:
    """Service for the Report lifecycle.

    The web console calls these records reports and the mobile app calls
    them defects; ``noun`` only changes the wording of messages.
    """

    def __init__(self, db: AsyncSession, media: Optional[MediaGateway], noun: str = "Report"):
        self.db = db
        self.media = media
        self.noun = noun

    async def list_reports(self) -> List[ReportResponse]:
        """All reports, newest reportDate first."""
        result = await self.db.execute(
            select(Report).order_by(Report.report_date.desc())
        )
        return [self._to_response(report) for report in result.scalars().all()]

    async def get_report(self, report_id: str) -> ReportResponse:
        report = await self._get_or_404(report_id)
        return self._to_response(report)

    async def create_report(self, data: ReportCreate) -> ReportResponse:
        """
        Create a report; status defaults to Pending and reportDate to now.

        Args:
            data: Validated creation payload

        Returns:
            ReportResponse for the stored report
        """
        report = Report(
            defect_type=data.defect_type,
            location=data.location,
            report_date=data.report_date or utcnow(),
            risk_level=data.risk_level.value,
            description=data.description,
            image_url=data.image_url,
            status=data.status.value,
            assigned_to=data.assigned_to,
            reported_by=data.reported_by,
            due_date=data.due_date,
            comments=[self._new_comment(comment) for comment in data.comments],
        )

        self.db.add(report)
        await self._commit()

        logger.info(f"Created {self.noun.lower()} {report.id} ({report.defect_type} at {report.location})")
        return self._to_response(report)

    async def update_report(self, report_id: str, data: ReportUpdate) -> ReportResponse:
        """Overwrite only the fields present in the payload."""
        report = await self._get_or_404(report_id)

        for field, value in data.model_dump(exclude_unset=True).items():
            if isinstance(value, (ReportStatus, RiskLevel)):
                value = value.value
            setattr(report, field, value)

        await self._commit()
        return self._to_response(report)

    async def update_status(self, report_id: str, status: ReportStatus) -> ReportResponse:
        report = await self._get_or_404(report_id)
        report.status = status.value
        await self._commit()

        logger.info(f"{self.noun} {report.id} status -> {status.value}")
        return self._to_response(report)

    async def add_comment(self, report_id: str, data: CommentCreate) -> ReportResponse:
        """Append one comment; earlier comments are never touched."""
        report = await self._get_or_404(report_id)
        report.comments.append(self._new_comment(data))
        await self._commit()
        return self._to_response(report)

    async def delete_report(self, report_id: str) -> None:
        """
        Delete a report, then make a best-effort attempt to delete its image.

        A failed image delete is logged and never undoes the report delete.
        """
        report = await self._get_or_404(report_id)
        image_url = report.image_url
        deleted_id = report.id

        await self.db.delete(report)
        await self._commit()
        logger.info(f"Deleted {self.noun.lower()} {deleted_id}")

        if image_url:
            await self._cleanup_media(deleted_id, image_url)

    async def dashboard_stats(self) -> DashboardStats:
        resolved = ReportStatus.RESOLVED.value
        return DashboardStats(
            pending=await count_where(self.db, Report, ne("status", resolved)),
            resolved=await count_where(self.db, Report, eq("status", resolved)),
            high_risk=await count_where(self.db, Report, eq("risk_level", RiskLevel.HIGH.value)),
        )

    async def status_breakdown(self) -> StatusBreakdown:
        return StatusBreakdown(
            pending=await count_where(self.db, Report, eq("status", ReportStatus.PENDING.value)),
            resolved=await count_where(self.db, Report, eq("status", ReportStatus.RESOLVED.value)),
            inprogress=await count_where(self.db, Report, eq("status", ReportStatus.IN_PROGRESS.value)),
        )

    # ─── helpers ──────────────────────────────────────────────

    async def _get_or_404(self, report_id: str) -> Report:
        try:
            report_uuid = UUID(str(report_id))
        except ValueError:
            raise NotFoundError(f"{self.noun} not found")

        report = await self.db.get(Report, report_uuid)
        if report is None:
            raise NotFoundError(f"{self.noun} not found")
        return report

    async def _commit(self) -> None:
        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

    async def _cleanup_media(self, report_id: UUID, image_url: str) -> None:
        if self.media is None:
            logger.warning(
                f"No media gateway configured; image of {self.noun.lower()} {report_id} left in place",
                extra={"report_id": str(report_id), "image_url": image_url},
            )
            return

        public_id = self.media.public_id_for_url(image_url)
        try:
            await self.media.delete(public_id)
        except Exception as e:
            logger.warning(
                f"Media cleanup failed for {self.noun.lower()} {report_id}: {e}",
                extra={"report_id": str(report_id), "media_public_id": public_id},
            )

    @staticmethod
    def _new_comment(data: CommentCreate) -> ReportComment:
        return ReportComment(
            text=data.text,
            author=data.author,
            timestamp=data.timestamp or utcnow(),
        )

    @staticmethod
    def _to_response(report: Report) -> ReportResponse:
        return ReportResponse(
            id=report.id,
            defect_type=report.defect_type,
            location=report.location,
            report_date=report.report_date,
            risk_level=report.risk_level,
            description=report.description,
            image_url=report.image_url,
            status=report.status,
            assigned_to=report.assigned_to,
            reported_by=report.reported_by,
            due_date=report.due_date,
            comments=[
                CommentResponse(text=c.text, author=c.author, timestamp=c.timestamp)
                for c in report.comments
            ],
        )
