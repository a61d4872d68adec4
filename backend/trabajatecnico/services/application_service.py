"""
TrabajaTecnico Backend — Application Lifecycle Service
=======================================================

What:  Submits applications, changes their status, withdraws them, and
       serves the technician/company listings.
How:   Eligibility is checked with reads, the primary write is committed,
       and only then the notification and mail side effects run as
       post-commit hooks. A failing side effect is logged; it never
       changes the outcome of the request.
Who:   /api/applications routes. Built per request by the
       ``get_application_service`` dependency, with the Mailer from
       ``app.state``.

Orchestration Flow (POST /api/applications):
    ┌───────────┐   ┌──────────────┐   ┌──────────┐   ┌──────────────────────┐
    │ role / CV │──▶│ project open │──▶│ insert + │──▶│ notify technician    │
    │  checks   │   │ no duplicate │   │  commit  │   │ notify company       │
    └───────────┘   └──────────────┘   └──────────┘   │ confirmation email   │
                                                      │ operations email+CV  │
                                                      └──────────────────────┘
State machine:
    pending ──(company, via update_status)──▶ any status allowed by
                                             settings.status_transitions
    pending ──(technician, via withdraw)───▶ withdrawn

Duplicate guard:
    The pre-check gives the common case a clean ``already_applied`` error.
    Two concurrent submissions can both pass it; the unique constraint on
    (project_id, technician_id) then rejects the second insert, which is
    translated to the same ConflictError. Any other constraint failure on
    that write is a DatabaseError.
"""

import logging
from datetime import date, datetime, timezone
from functools import partial
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from sqlalchemy import func, inspect, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from trabajatecnico.auth import CurrentUser
from trabajatecnico.exceptions import (
    ConflictError,
    DatabaseError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    PreconditionFailedError,
    ValidationError,
)
from trabajatecnico.models.application import ProjectApplication
from trabajatecnico.models.project import Project
from trabajatecnico.models.user import CompanyProfile, TechnicianProfile, User
from trabajatecnico.schemas.application import (
    ApplicationCreate,
    ApplicationStats,
    MyApplicationItem,
    MyApplicationsResponse,
    ReceivedApplicationItem,
    ReceivedApplicationsResponse,
)
from trabajatecnico.services.file_service import FileService
from trabajatecnico.services.mailer import Mailer
from trabajatecnico.services.notification_service import (
    NotificationService,
    notification_service,
)
from trabajatecnico.services.post_commit import PostCommitHook, run_post_commit_hooks
from trabajatecnico.services.profile_repository import company_profiles, technician_profiles

logger = logging.getLogger(__name__)

DUPLICATE_APPLICATION_CONSTRAINT = "uq_application_project_technician"


def _is_duplicate_application(error: IntegrityError) -> bool:
    """
    True when the violated constraint is the one-application-per-project rule.

    PostgreSQL names the constraint; SQLite only lists the columns.
    """
    detail = str(error.orig)
    return DUPLICATE_APPLICATION_CONSTRAINT in detail or (
        "UNIQUE" in detail and "project_applications.technician_id" in detail
    )


class ApplicationService:
    """
    Application lifecycle controller.

    Args:
        mailer:             process-wide Mailer (built once in the lifespan)
        upload_root:        directory the stored CV filenames are relative to
        status_transitions: current status → statuses a company may set
        notifications:      notification writer (swappable in tests)
        today:              date source for the deadline check
    """

    def __init__(
        self,
        mailer: Mailer,
        upload_root: str,
        status_transitions: Mapping[str, Iterable[str]],
        notifications: NotificationService = notification_service,
        today: Callable[[], date] = date.today,
    ):
        self.mailer = mailer
        self.files = FileService(upload_root=upload_root)
        self.status_transitions: Dict[str, frozenset] = {
            source: frozenset(targets) for source, targets in status_transitions.items()
        }
        self.notifications = notifications
        self.today = today

    # ══════════════════════════════════════════════════════════════════════
    # Submit
    # ══════════════════════════════════════════════════════════════════════

    async def _cv_path(self, db: AsyncSession, technician_id: int) -> Optional[Path]:
        """Stored CV on disk, or None; a name outside the upload root is skipped."""
        cv_file = await technician_profiles.cv_file(db, technician_id)
        if not cv_file:
            return None
        try:
            return self.files.resolve(cv_file)
        except ValidationError:
            logger.warning("Ignoring CV path outside the upload root: %r", cv_file)
            return None

    async def submit_application(
        self, db: AsyncSession, requester: CurrentUser, payload: ApplicationCreate
    ) -> ProjectApplication:
        """
        Creates a pending application, then fans out notifications and mail.

        Raises, in check order:
            ForbiddenError:          requester is not a technician
            PreconditionFailedError: ``cv_required``
            NotFoundError:           project missing, not open, or past deadline
            ConflictError:           ``already_applied``
            DatabaseError:           the insert failed for another reason

        Availability order is enforced by ApplicationCreate before this runs.
        """
        # ── Step 1: Eligibility (reads only) ──────────────────────────────
        if not requester.is_technician:
            raise ForbiddenError(message="Only technicians can apply to projects")

        if not await technician_profiles.has_cv(db, requester.user_id):
            raise PreconditionFailedError(
                code="cv_required",
                message="You must upload your CV before applying to projects",
            )

        project = (
            await db.execute(select(Project).where(Project.id == payload.project_id))
        ).scalar_one_or_none()
        if project is None or not project.accepts_applications(self.today()):
            raise NotFoundError(
                resource="project",
                resource_id=payload.project_id,
                message="Project not found or no longer accepting applications",
            )

        existing = (
            await db.execute(
                select(ProjectApplication.id).where(
                    ProjectApplication.project_id == project.id,
                    ProjectApplication.technician_id == requester.user_id,
                )
            )
        ).scalar_one_or_none()
        if existing is not None:
            raise ConflictError(
                code="already_applied",
                message="You have already applied to this project",
                context={"application_id": existing},
            )

        company_name = await company_profiles.display_name(db, project.company_id) or ""
        cv_path = await self._cv_path(db, requester.user_id)

        # ── Step 2: Durable write ─────────────────────────────────────────
        application = ProjectApplication(
            project_id=project.id,
            technician_id=requester.user_id,
            cover_letter=payload.cover_letter,
            proposed_rate=payload.proposed_rate,
            availability_start=payload.availability_start,
            availability_end=payload.availability_end,
            status="pending",
        )
        try:
            db.add(application)
            await db.execute(
                update(Project)
                .where(Project.id == project.id)
                .values(applications_count=Project.applications_count + 1)
            )
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            if not _is_duplicate_application(e):
                logger.error("Inserting application violated a constraint: %s", e.orig)
                raise DatabaseError(context={"project_id": project.id}) from e
            logger.info(
                "Duplicate application rejected at write time: project=%d technician=%d",
                project.id,
                requester.user_id,
            )
            raise ConflictError(
                code="already_applied",
                message="You have already applied to this project",
            ) from e
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Inserting application failed: %s", e, exc_info=True)
            raise DatabaseError(context={"project_id": project.id}) from e

        logger.info(
            "Application %d created: project=%d technician=%d",
            application.id,
            project.id,
            requester.user_id,
        )

        # ── Step 3: Best-effort side effects ──────────────────────────────
        await run_post_commit_hooks(
            [
                PostCommitHook(
                    "notify_technician",
                    partial(
                        self.notifications.application_submitted,
                        db,
                        requester.user_id,
                        project.id,
                        project.title,
                    ),
                ),
                PostCommitHook(
                    "notify_company",
                    partial(
                        self.notifications.application_received,
                        db,
                        project.company_id,
                        project.id,
                        project.title,
                        requester.full_name,
                    ),
                ),
                PostCommitHook(
                    "confirmation_email",
                    partial(
                        self.mailer.send_application_confirmation,
                        requester.email,
                        requester.full_name,
                        project.title,
                    ),
                ),
                PostCommitHook(
                    "operations_email",
                    partial(
                        self.mailer.send_job_application,
                        technician_name=requester.full_name,
                        technician_email=requester.email,
                        project_title=project.title,
                        company_name=company_name,
                        cover_letter=application.cover_letter,
                        proposed_rate=application.proposed_rate,
                        cv_path=cv_path,
                    ),
                ),
            ],
            subject=f"application {application.id}",
        )
        if inspect(application).expired:
            # A side effect rolled the session back; reload the committed row
            await db.refresh(application)
        return application

    # ══════════════════════════════════════════════════════════════════════
    # Status Transitions
    # ══════════════════════════════════════════════════════════════════════

    async def _application_with_project(
        self, db: AsyncSession, application_id: int
    ) -> Optional[Tuple[ProjectApplication, Project]]:
        row = (
            await db.execute(
                select(ProjectApplication, Project)
                .join(Project, Project.id == ProjectApplication.project_id)
                .where(ProjectApplication.id == application_id)
            )
        ).first()
        return (row[0], row[1]) if row else None

    async def _persist_status(
        self, db: AsyncSession, application: ProjectApplication, status: str
    ) -> None:
        application.status = status
        application.updated_at = datetime.now(timezone.utc)
        try:
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Updating application %d failed: %s", application.id, e, exc_info=True)
            raise DatabaseError(context={"application_id": application.id}) from e

    async def update_status(
        self,
        db: AsyncSession,
        requester: CurrentUser,
        application_id: int,
        new_status: str,
        note: Optional[str] = None,
    ) -> str:
        """
        Company decision on an application; notifies the technician.

        No email is sent on status changes.
        """
        found = await self._application_with_project(db, application_id)
        if found is None:
            raise NotFoundError(resource="application", resource_id=application_id)
        application, project = found

        if not requester.is_company or project.company_id != requester.user_id:
            raise ForbiddenError(
                message="You do not have permission to modify this application"
            )

        current = application.status
        if new_status not in self.status_transitions.get(current, frozenset()):
            raise InvalidStateError(
                code="status_not_allowed",
                message=f"An application cannot change from '{current}' to '{new_status}'",
                context={"current": current, "requested": new_status},
            )

        await self._persist_status(db, application, new_status)
        logger.info(
            "Application %d status %s → %s by company %d",
            application.id,
            current,
            new_status,
            requester.user_id,
        )

        await run_post_commit_hooks(
            [
                PostCommitHook(
                    "notify_technician",
                    partial(
                        self.notifications.application_status_changed,
                        db,
                        application.technician_id,
                        project.id,
                        project.title,
                        new_status,
                        note,
                    ),
                ),
            ],
            subject=f"application {application.id}",
        )
        return new_status

    async def withdraw(
        self, db: AsyncSession, requester: CurrentUser, application_id: int
    ) -> str:
        """
        Technician withdraws a pending application.

        Someone else's application is reported as not found.
        """
        found = await self._application_with_project(db, application_id)
        if (
            found is None
            or not requester.is_technician
            or found[0].technician_id != requester.user_id
        ):
            raise NotFoundError(resource="application", resource_id=application_id)
        application, project = found

        if application.status != "pending":
            raise InvalidStateError(
                code="not_pending",
                message="Only pending applications can be withdrawn",
                context={"current": application.status},
            )

        await self._persist_status(db, application, "withdrawn")
        logger.info("Application %d withdrawn by technician %d", application.id, requester.user_id)

        await run_post_commit_hooks(
            [
                PostCommitHook(
                    "notify_technician",
                    partial(
                        self.notifications.application_status_changed,
                        db,
                        application.technician_id,
                        project.id,
                        project.title,
                        "withdrawn",
                    ),
                ),
            ],
            subject=f"application {application.id}",
        )
        return "withdrawn"

    # ══════════════════════════════════════════════════════════════════════
    # Listings
    # ══════════════════════════════════════════════════════════════════════

    async def list_for_technician(
        self, db: AsyncSession, requester: CurrentUser
    ) -> MyApplicationsResponse:
        """The requester's own applications, newest first."""
        try:
            rows = (
                await db.execute(
                    select(ProjectApplication, Project.title, CompanyProfile.company_name)
                    .join(Project, Project.id == ProjectApplication.project_id)
                    .outerjoin(CompanyProfile, CompanyProfile.user_id == Project.company_id)
                    .where(ProjectApplication.technician_id == requester.user_id)
                    .order_by(ProjectApplication.created_at.desc(), ProjectApplication.id.desc())
                )
            ).all()
        except SQLAlchemyError as e:
            logger.error("Listing applications for %d failed: %s", requester.user_id, e)
            raise DatabaseError(context={"user_id": requester.user_id}) from e

        items: List[MyApplicationItem] = [
            MyApplicationItem(
                id=application.id,
                project_id=application.project_id,
                status=application.status,
                cover_letter=application.cover_letter,
                proposed_rate=application.proposed_rate,
                created_at=application.created_at,
                project_title=title,
                company_name=company_name,
            )
            for application, title, company_name in rows
        ]
        return MyApplicationsResponse(applications=items, total=len(items))

    async def stats_for_technician(
        self, db: AsyncSession, requester: CurrentUser
    ) -> ApplicationStats:
        rows = (
            await db.execute(
                select(ProjectApplication.status, func.count(ProjectApplication.id))
                .where(ProjectApplication.technician_id == requester.user_id)
                .group_by(ProjectApplication.status)
            )
        ).all()
        counts = {status: count for status, count in rows}
        return ApplicationStats(
            total=sum(counts.values()),
            pending=counts.get("pending", 0),
            accepted=counts.get("accepted", 0),
            rejected=counts.get("rejected", 0),
            withdrawn=counts.get("withdrawn", 0),
        )

    async def list_received(
        self, db: AsyncSession, requester: CurrentUser
    ) -> ReceivedApplicationsResponse:
        """Applications to the requester's projects (companies only)."""
        if not requester.is_company:
            raise ForbiddenError(message="Only companies can view received applications")

        rows = (
            await db.execute(
                select(
                    ProjectApplication,
                    Project.title,
                    User.full_name,
                    User.email,
                    TechnicianProfile.cv_uploaded,
                )
                .join(Project, Project.id == ProjectApplication.project_id)
                .join(User, User.id == ProjectApplication.technician_id)
                .outerjoin(TechnicianProfile, TechnicianProfile.user_id == User.id)
                .where(Project.company_id == requester.user_id)
                .order_by(ProjectApplication.created_at.desc(), ProjectApplication.id.desc())
            )
        ).all()

        items = [
            ReceivedApplicationItem(
                id=application.id,
                project_id=application.project_id,
                technician_id=application.technician_id,
                status=application.status,
                cover_letter=application.cover_letter,
                proposed_rate=application.proposed_rate,
                created_at=application.created_at,
                project_title=title,
                technician_name=name,
                technician_email=email,
                cv_uploaded=bool(cv_uploaded),
            )
            for application, title, name, email, cv_uploaded in rows
        ]
        return ReceivedApplicationsResponse(applications=items, total=len(items))
