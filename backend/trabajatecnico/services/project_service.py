"""
TrabajaTecnico Backend — Project Service
=========================================

What:  Publishes projects for companies and serves the project listings.
How:   Stateless apart from the date source; every call receives the
       session it works on. Creation commits on its own, like the
       application lifecycle.
Who:   /api/projects routes.

Public listing:
    status = 'open' AND application_deadline >= today AND company active
    ordered featured first, then newest
"""

import logging
import math
from datetime import date
from typing import Callable, Optional

from sqlalchemy import case, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from trabajatecnico.auth import CurrentUser
from trabajatecnico.exceptions import DatabaseError, ForbiddenError, ValidationError
from trabajatecnico.models.project import Project
from trabajatecnico.models.user import CompanyProfile, User
from trabajatecnico.schemas.common import Pagination
from trabajatecnico.schemas.project import (
    MyProjectsResponse,
    ProjectCreate,
    ProjectItem,
    ProjectListResponse,
    ProjectStats,
)

logger = logging.getLogger(__name__)


class ProjectService:
    """
    Args:
        today: date source for the deadline filter and ``days_remaining``
    """

    def __init__(self, today: Callable[[], date] = date.today):
        self.today = today

    def _item(self, project: Project, company_name: Optional[str] = None) -> ProjectItem:
        return ProjectItem(
            id=project.id,
            title=project.title,
            description=project.description,
            daily_pay=project.daily_pay,
            min_duration=project.min_duration,
            max_duration=project.max_duration,
            required_technicians=project.required_technicians,
            location=project.location,
            application_deadline=project.application_deadline,
            status=project.status,
            is_featured=project.is_featured,
            views_count=project.views_count,
            applications_count=project.applications_count,
            created_at=project.created_at,
            days_remaining=(project.application_deadline - self.today()).days,
            company_name=company_name,
        )

    # ══════════════════════════════════════════════════════════════════════
    # Public Listing
    # ══════════════════════════════════════════════════════════════════════

    async def list_open(
        self, db: AsyncSession, page: int = 1, limit: int = 10
    ) -> ProjectListResponse:
        """Projects still accepting applications from active companies."""
        filters = [
            Project.status == "open",
            Project.application_deadline >= self.today(),
            User.is_active.is_(True),
        ]
        try:
            rows = (
                await db.execute(
                    select(Project, CompanyProfile.company_name)
                    .join(User, User.id == Project.company_id)
                    .outerjoin(CompanyProfile, CompanyProfile.user_id == Project.company_id)
                    .where(*filters)
                    .order_by(
                        Project.is_featured.desc(),
                        Project.created_at.desc(),
                        Project.id.desc(),
                    )
                    .limit(limit)
                    .offset((page - 1) * limit)
                )
            ).all()

            total = (
                await db.execute(
                    select(func.count(Project.id))
                    .select_from(Project)
                    .join(User, User.id == Project.company_id)
                    .where(*filters)
                )
            ).scalar() or 0
        except SQLAlchemyError as e:
            logger.error("Listing open projects failed: %s", e)
            raise DatabaseError() from e

        return ProjectListResponse(
            projects=[self._item(project, company_name) for project, company_name in rows],
            pagination=Pagination(
                page=page,
                limit=limit,
                total=total,
                total_pages=math.ceil(total / limit) if limit else 0,
            ),
        )

    # ══════════════════════════════════════════════════════════════════════
    # Company Side
    # ══════════════════════════════════════════════════════════════════════

    async def list_for_company(
        self, db: AsyncSession, requester: CurrentUser
    ) -> MyProjectsResponse:
        """Every project of the requesting company, any status, newest first."""
        if not requester.is_company:
            raise ForbiddenError(message="Only companies can view their projects")

        projects = (
            await db.execute(
                select(Project)
                .where(Project.company_id == requester.user_id)
                .order_by(Project.created_at.desc(), Project.id.desc())
            )
        ).scalars().all()

        items = [self._item(project) for project in projects]
        return MyProjectsResponse(projects=items, total=len(items))

    async def stats(self, db: AsyncSession, requester: CurrentUser) -> ProjectStats:
        if not requester.is_company:
            raise ForbiddenError(message="Only companies can view project statistics")

        def count_status(status: str):
            return func.coalesce(func.sum(case((Project.status == status, 1), else_=0)), 0)

        row = (
            await db.execute(
                select(
                    func.count(Project.id),
                    count_status("open"),
                    count_status("completed"),
                    count_status("in_progress"),
                    func.coalesce(func.sum(Project.views_count), 0),
                    func.coalesce(func.sum(Project.applications_count), 0),
                ).where(Project.company_id == requester.user_id)
            )
        ).one()

        return ProjectStats(
            total_projects=row[0],
            active_projects=row[1],
            completed_projects=row[2],
            in_progress_projects=row[3],
            total_views=row[4],
            total_applications=row[5],
        )

    async def create(
        self, db: AsyncSession, requester: CurrentUser, payload: ProjectCreate
    ) -> Project:
        """
        Publishes an open project owned by the requesting company.

        Raises:
            ForbiddenError:  requester is not a company
            ValidationError: the application deadline is already past
            DatabaseError:   the insert failed
        """
        if not requester.is_company:
            raise ForbiddenError(message="Only companies can create projects")

        if payload.application_deadline < self.today():
            raise ValidationError(
                message="Application deadline cannot be in the past",
                field="applicationDeadline",
            )

        project = Project(
            company_id=requester.user_id,
            title=payload.title,
            description=payload.description,
            daily_pay=payload.daily_pay,
            min_duration=payload.min_duration,
            max_duration=payload.max_duration,
            required_technicians=payload.required_technicians,
            location=payload.location,
            application_deadline=payload.application_deadline,
            status="open",
        )
        try:
            db.add(project)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Creating project for company %d failed: %s", requester.user_id, e)
            raise DatabaseError(context={"company_id": requester.user_id}) from e

        logger.info("Project %d created by company %d", project.id, requester.user_id)
        return project


# ── Singleton Instance ────────────────────────────────────────────────────
project_service = ProjectService()
