"""
TrabajaTecnico Backend — Project Application Model
===================================================

What:  ORM model for ``project_applications``: a technician's request to
       work on a project, with a lifecycle status.
Who:   Owned by ApplicationService; never mutated directly by routes.

Lifecycle:
    pending ──(company)────▶ accepted | rejected
    pending ──(technician)─▶ withdrawn

The unique constraint on (project_id, technician_id) is the authoritative
guard against duplicate applications; the service's pre-check only exists
to return a friendlier error on the common path.
"""

from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from trabajatecnico.database import Base


class ProjectApplication(Base):
    __tablename__ = "project_applications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    technician_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    cover_letter: Mapped[str] = mapped_column(Text, nullable=False)
    proposed_rate: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    availability_start: Mapped[date | None] = mapped_column(Date, nullable=True)
    availability_end: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="pending",
        server_default=text("'pending'"),
        comment="pending, accepted, rejected, withdrawn",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )

    __table_args__ = (
        UniqueConstraint("project_id", "technician_id", name="uq_application_project_technician"),
        Index("idx_applications_technician_id", "technician_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<ProjectApplication(id={self.id}, project_id={self.project_id}, "
            f"technician_id={self.technician_id}, status='{self.status}')>"
        )
