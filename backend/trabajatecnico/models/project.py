"""
TrabajaTecnico Backend — Project Model
=======================================

What:  ORM model for ``projects``, the short-term jobs companies post.
Who:   Created and listed by ProjectService; read by the application
       lifecycle (eligibility + ownership checks).

A project accepts applications only while ``status = 'open'`` and its
``application_deadline`` has not passed.
"""

from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    false,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from trabajatecnico.database import Base

PROJECT_STATUSES = ("open", "in_progress", "completed", "cancelled")


class Project(Base):
    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        comment="Owning company (users.id with user_type = 'company')",
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    daily_pay: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    # Duration in days
    min_duration: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_duration: Mapped[int | None] = mapped_column(Integer, nullable=True)
    required_technicians: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1, server_default=text("1")
    )
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="open",
        server_default=text("'open'"),
        comment="open, in_progress, completed, cancelled",
    )
    application_deadline: Mapped[date] = mapped_column(Date, nullable=False)
    applications_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    views_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    is_featured: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )

    __table_args__ = (
        Index("idx_projects_company_id", "company_id"),
        Index("idx_projects_status_deadline", "status", "application_deadline"),
    )

    def accepts_applications(self, today: date) -> bool:
        return self.status == "open" and self.application_deadline >= today

    def __repr__(self) -> str:
        return f"<Project(id={self.id}, status='{self.status}')>"
