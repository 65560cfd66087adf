"""SQLAlchemy models for defect Reports and their comments."""
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Text, Uuid
from sqlalchemy.orm import relationship
from uuid import uuid4

from track_inspector.models.base import Base, utcnow


class Report(Base):
    """Report model - one track-defect observation (a "defect" to the mobile app)."""
    __tablename__ = "reports"

    id = Column(Uuid, primary_key=True, default=uuid4)

    # Observation
    defect_type = Column(String(255), nullable=False)
    location = Column(String(255), nullable=False)
    report_date = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    risk_level = Column(String(10), nullable=False, index=True)
    description = Column(Text, nullable=True)
    image_url = Column(String(1024), nullable=True)

    # Workflow
    status = Column(String(20), nullable=False, default="Pending", index=True)
    assigned_to = Column(String(255), nullable=True)
    reported_by = Column(String(255), nullable=True)
    due_date = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    comments = relationship(
        "ReportComment",
        back_populates="report",
        cascade="all, delete-orphan",
        order_by="ReportComment.id",
        lazy="selectin",
    )


class ReportComment(Base):
    """Comment appended to a report; rows are only ever added."""
    __tablename__ = "report_comments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    report_id = Column(Uuid, ForeignKey("reports.id", ondelete="CASCADE"), nullable=False, index=True)

    text = Column(Text, nullable=True)
    author = Column(String(255), nullable=True)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    report = relationship("Report", back_populates="comments")
