"""
TrabajaTecnico Backend — Notification Service
==============================================

What:  Writes in-app notifications for lifecycle events and serves the
       target user's read side (list, mark read, count, delete).
How:   ``create`` inserts inside a savepoint and commits on its own; a
       storage failure rolls back only that savepoint and is reported as
       ``NotificationResult(success=False)`` so the lifecycle can log it
       and carry on with the caller's rows still loaded.
Who:   ApplicationService (writer), /api/notifications routes (read side).

Event templates:
    application_submitted       → technician   (job_application)
    application_received        → company      (new_application)
    application_status_changed  → technician   (application_status)
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from trabajatecnico.exceptions import DatabaseError, NotFoundError
from trabajatecnico.models.notification import (
    APPLICATION_STATUS,
    JOB_APPLICATION,
    NEW_APPLICATION,
    Notification,
)
from trabajatecnico.schemas.notification import (
    NotificationItem,
    NotificationListResponse,
    Pagination,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationResult:
    """Outcome of a write; ``error`` is set only when ``success`` is False."""

    success: bool
    notification_id: Optional[int] = None
    error: Optional[str] = None


# (title, message) per status; ``{title}`` is the project title
_STATUS_TEMPLATES = {
    "accepted": (
        "Application Accepted!",
        'Your application for the project "{title}" has been accepted. Congratulations!',
    ),
    "rejected": (
        "Application Rejected",
        'Your application for the project "{title}" was not selected this time.',
    ),
    "withdrawn": (
        "Application Withdrawn",
        'You have withdrawn your application for the project "{title}".',
    ),
}
_STATUS_FALLBACK = (
    "Application Status Updated",
    'The status of your application for the project "{title}" has been updated.',
)


def status_change_text(
    project_title: str, status: str, note: Optional[str] = None
) -> Tuple[str, str]:
    """Title and message for a status-change notification."""
    title, template = _STATUS_TEMPLATES.get(status, _STATUS_FALLBACK)
    message = template.format(title=project_title)
    if note and note.strip():
        message = f"{message} Message from the company: {note.strip()}"
    return title, message


class NotificationService:
    """Stateless; every call receives the session it works on."""

    # ══════════════════════════════════════════════════════════════════════
    # Writer
    # ══════════════════════════════════════════════════════════════════════

    async def create(
        self,
        db: AsyncSession,
        user_id: int,
        type: str,
        title: str,
        message: str,
        related_id: Optional[int] = None,
    ) -> NotificationResult:
        """
        Inserts one notification and commits it.

        The insert runs in a savepoint, so a failed insert only discards
        the notification; rows the caller already committed stay loaded.
        Never raises for storage failures: the error text is returned in
        the result.
        """
        notification = Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            related_id=related_id,
        )
        try:
            async with db.begin_nested():
                db.add(notification)
                await db.flush()
        except SQLAlchemyError as e:
            logger.warning(
                "Notification insert failed for user %d (%s): %s",
                user_id,
                type,
                e.__class__.__name__,
            )
            return NotificationResult(success=False, error=str(e))

        try:
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.warning(
                "Notification commit failed for user %d (%s): %s",
                user_id,
                type,
                e.__class__.__name__,
            )
            return NotificationResult(success=False, error=str(e))

        logger.debug("Notification %d created for user %d (%s)", notification.id, user_id, type)
        return NotificationResult(success=True, notification_id=notification.id)

    async def application_submitted(
        self, db: AsyncSession, technician_id: int, project_id: int, project_title: str
    ) -> NotificationResult:
        return await self.create(
            db,
            user_id=technician_id,
            type=JOB_APPLICATION,
            title="Application Sent",
            message=f'Your application for the project "{project_title}" has been sent successfully.',
            related_id=project_id,
        )

    async def application_received(
        self,
        db: AsyncSession,
        company_id: int,
        project_id: int,
        project_title: str,
        technician_name: str,
    ) -> NotificationResult:
        return await self.create(
            db,
            user_id=company_id,
            type=NEW_APPLICATION,
            title="New Application Received",
            message=(
                f"You have received a new application from {technician_name} "
                f'for the project "{project_title}".'
            ),
            related_id=project_id,
        )

    async def application_status_changed(
        self,
        db: AsyncSession,
        technician_id: int,
        project_id: int,
        project_title: str,
        status: str,
        note: Optional[str] = None,
    ) -> NotificationResult:
        title, message = status_change_text(project_title, status, note)
        return await self.create(
            db,
            user_id=technician_id,
            type=APPLICATION_STATUS,
            title=title,
            message=message,
            related_id=project_id,
        )

    # ══════════════════════════════════════════════════════════════════════
    # Read Side (owned by the target user)
    # ══════════════════════════════════════════════════════════════════════

    async def list_for_user(
        self,
        db: AsyncSession,
        user_id: int,
        page: int = 1,
        limit: int = 20,
        unread_only: bool = False,
    ) -> NotificationListResponse:
        """Newest first, offset-paginated."""
        filters = [Notification.user_id == user_id]
        if unread_only:
            filters.append(Notification.is_read.is_(False))

        try:
            rows = await db.execute(
                select(Notification)
                .where(*filters)
                .order_by(Notification.created_at.desc(), Notification.id.desc())
                .limit(limit)
                .offset((page - 1) * limit)
            )
            notifications = list(rows.scalars().all())

            total = (
                await db.execute(select(func.count(Notification.id)).where(*filters))
            ).scalar() or 0
        except SQLAlchemyError as e:
            logger.error("Listing notifications for user %d failed: %s", user_id, e)
            raise DatabaseError(context={"user_id": user_id}) from e

        return NotificationListResponse(
            notifications=[NotificationItem.model_validate(n) for n in notifications],
            pagination=Pagination(
                page=page,
                limit=limit,
                total=total,
                total_pages=math.ceil(total / limit) if limit else 0,
            ),
        )

    async def _owned(self, db: AsyncSession, user_id: int, notification_id: int) -> Notification:
        result = await db.execute(
            select(Notification).where(
                Notification.id == notification_id,
                Notification.user_id == user_id,
            )
        )
        notification = result.scalar_one_or_none()
        if notification is None:
            raise NotFoundError(resource="notification", resource_id=notification_id)
        return notification

    async def mark_read(self, db: AsyncSession, user_id: int, notification_id: int) -> None:
        notification = await self._owned(db, user_id, notification_id)
        notification.is_read = True
        await db.flush()

    async def mark_all_read(self, db: AsyncSession, user_id: int) -> int:
        """Returns how many notifications changed."""
        result = await db.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True)
        )
        return result.rowcount or 0

    async def unread_count(self, db: AsyncSession, user_id: int) -> int:
        result = await db.execute(
            select(func.count(Notification.id)).where(
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
        )
        return result.scalar() or 0

    async def delete(self, db: AsyncSession, user_id: int, notification_id: int) -> None:
        notification = await self._owned(db, user_id, notification_id)
        await db.delete(notification)
        await db.flush()

    async def delete_read(self, db: AsyncSession, user_id: int) -> int:
        """Deletes every read notification of the user; returns the count."""
        result = await db.execute(
            delete(Notification).where(
                Notification.user_id == user_id,
                Notification.is_read.is_(True),
            )
        )
        return result.rowcount or 0


# ── Singleton Instance ────────────────────────────────────────────────────
notification_service = NotificationService()
