"""
TrabajaTecnico Backend — Application Lifecycle Tests
=====================================================

What:  ApplicationService against a real (in-memory) database with the
       mailer mocked out.

What we test:
    ✅ Submit preconditions, in order, each with no writes
    ✅ Duplicate applications (pre-check and unique constraint)
    ✅ Other constraint failures on insert → DatabaseError
    ✅ Side effects: two notifications, two mail attempts, failures swallowed
    ✅ A notification rejected by the database keeps the application loaded
    ✅ update_status ownership and configurable transitions
    ✅ withdraw ownership and the pending-only rule
    ✅ Listings and stats
"""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from trabajatecnico.exceptions import (
    ConflictError,
    DatabaseError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    PreconditionFailedError,
)
from trabajatecnico.models.application import ProjectApplication
from trabajatecnico.models.notification import Notification
from trabajatecnico.models.project import Project
from trabajatecnico.schemas.application import ApplicationCreate
from trabajatecnico.services.application_service import ApplicationService
from trabajatecnico.services.mailer import SendResult
from trabajatecnico.services.notification_service import NotificationResult

COVER_LETTER = "Experienced in HVAC installs and repair work"


def _payload(project_id: int, **overrides) -> ApplicationCreate:
    data = {"project_id": project_id, "cover_letter": COVER_LETTER}
    data.update(overrides)
    return ApplicationCreate(**data)


async def _count(db, model, *where) -> int:
    return (await db.execute(select(func.count()).select_from(model).where(*where))).scalar()


class TestSubmitPreconditions:
    """Each precondition fails with its own error and leaves no rows behind."""

    @pytest.mark.asyncio
    async def test_company_cannot_apply(self, db, service, marketplace):
        with pytest.raises(ForbiddenError):
            await service.submit_application(
                db, marketplace.company, _payload(marketplace.open_project.id)
            )
        assert await _count(db, ProjectApplication) == 0

    @pytest.mark.asyncio
    async def test_technician_without_cv_is_rejected(self, db, service, marketplace, mock_mailer):
        with pytest.raises(PreconditionFailedError) as exc_info:
            await service.submit_application(
                db, marketplace.technician_without_cv, _payload(marketplace.open_project.id)
            )

        assert exc_info.value.code == "cv_required"
        assert await _count(db, ProjectApplication) == 0
        assert await _count(db, Notification) == 0
        mock_mailer.send_application_confirmation.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cv_check_runs_before_project_lookup(self, db, service, marketplace):
        """A missing CV wins over a missing project."""
        with pytest.raises(PreconditionFailedError):
            await service.submit_application(
                db, marketplace.technician_without_cv, _payload(999_999)
            )

    @pytest.mark.asyncio
    async def test_unknown_project(self, db, service, marketplace):
        with pytest.raises(NotFoundError) as exc_info:
            await service.submit_application(db, marketplace.technician, _payload(999_999))
        assert exc_info.value.resource == "project"

    @pytest.mark.asyncio
    async def test_project_not_open(self, db, service, marketplace):
        with pytest.raises(NotFoundError):
            await service.submit_application(
                db, marketplace.technician, _payload(marketplace.in_progress_project.id)
            )
        assert await _count(db, ProjectApplication) == 0
        assert await _count(db, Notification) == 0

    @pytest.mark.asyncio
    async def test_project_past_deadline(self, db, service, marketplace):
        with pytest.raises(NotFoundError):
            await service.submit_application(
                db, marketplace.technician, _payload(marketplace.expired_project.id)
            )
        assert await _count(db, ProjectApplication) == 0


class TestSubmitSuccess:

    @pytest.mark.asyncio
    async def test_hvac_scenario(self, db, service, marketplace, mock_mailer):
        """T applies to open project P owned by C."""
        project = marketplace.open_project

        application = await service.submit_application(
            db, marketplace.technician, _payload(project.id, proposed_rate=Decimal("150.00"))
        )

        assert application.id is not None
        assert application.status == "pending"
        assert application.cover_letter == COVER_LETTER

        notifications = (
            await db.execute(select(Notification).order_by(Notification.id))
        ).scalars().all()
        assert len(notifications) == 2
        by_user = {n.user_id: n for n in notifications}
        assert by_user[marketplace.technician.user_id].type == "job_application"
        assert by_user[marketplace.company.user_id].type == "new_application"
        assert "Tomas Quispe Rojas" in by_user[marketplace.company.user_id].message
        assert all(n.related_id == project.id for n in notifications)

        mock_mailer.send_application_confirmation.assert_awaited_once_with(
            "tomas@example.com", "Tomas Quispe Rojas", project.title
        )
        mock_mailer.send_job_application.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_operations_email_carries_details_and_cv(
        self, db, service, marketplace, mock_mailer, upload_root
    ):
        await service.submit_application(
            db, marketplace.technician, _payload(marketplace.open_project.id)
        )

        kwargs = mock_mailer.send_job_application.await_args.kwargs
        assert kwargs["company_name"] == "Acme HVAC"
        assert kwargs["technician_email"] == "tomas@example.com"
        assert kwargs["cover_letter"] == COVER_LETTER
        assert kwargs["proposed_rate"] is None
        assert kwargs["cv_path"] == (upload_root / "cv-tomas.pdf").resolve()

    @pytest.mark.asyncio
    async def test_increments_applications_count(self, db, service, marketplace):
        project = marketplace.open_project
        await service.submit_application(db, marketplace.technician, _payload(project.id))

        count = (
            await db.execute(select(Project.applications_count).where(Project.id == project.id))
        ).scalar()
        assert count == 1

    @pytest.mark.asyncio
    async def test_unconfigured_mailer_still_succeeds(self, db, service, marketplace, mock_mailer):
        """not_configured is treated as a logged failure, not an error."""
        application = await service.submit_application(
            db, marketplace.technician, _payload(marketplace.open_project.id)
        )
        assert application.id is not None
        assert mock_mailer.send_application_confirmation.await_count == 1
        assert mock_mailer.send_job_application.await_count == 1

    @pytest.mark.asyncio
    async def test_mail_exception_does_not_fail_submission(
        self, db, service, marketplace, mock_mailer
    ):
        mock_mailer.send_application_confirmation.side_effect = RuntimeError("smtp down")

        application = await service.submit_application(
            db, marketplace.technician, _payload(marketplace.open_project.id)
        )

        assert application.status == "pending"
        mock_mailer.send_job_application.assert_awaited_once()
        assert await _count(db, ProjectApplication) == 1

    @pytest.mark.asyncio
    async def test_notification_failure_does_not_fail_submission(
        self, db, service, marketplace, mock_mailer
    ):
        with patch.object(
            service.notifications,
            "application_submitted",
            AsyncMock(return_value=NotificationResult(success=False, error="disk full")),
        ):
            await service.submit_application(
                db, marketplace.technician, _payload(marketplace.open_project.id)
            )

        assert await _count(db, ProjectApplication) == 1
        # The company notification and both mails still went out
        assert await _count(db, Notification) == 1
        mock_mailer.send_application_confirmation.assert_awaited_once()
        mock_mailer.send_job_application.assert_awaited_once()


    @pytest.mark.asyncio
    async def test_notification_storage_failure_keeps_application(
        self, db, marketplace, mock_mailer, upload_root, null_title_notifications
    ):
        """A notification row the database rejects leaves the application intact."""
        service = ApplicationService(
            mailer=mock_mailer,
            upload_root=str(upload_root),
            status_transitions={},
            notifications=null_title_notifications,
        )

        application = await service.submit_application(
            db, marketplace.technician, _payload(marketplace.open_project.id)
        )

        assert application.id is not None
        assert application.status == "pending"
        assert await _count(db, ProjectApplication) == 1
        # Only the company notification was stored
        assert await _count(db, Notification) == 1
        assert await _count(
            db, Notification, Notification.user_id == marketplace.company.user_id
        ) == 1
        mock_mailer.send_application_confirmation.assert_awaited_once()
        mock_mailer.send_job_application.assert_awaited_once()
    @pytest.mark.asyncio
    async def test_side_effects_run_after_commit(self, db, service, marketplace, mock_mailer):
        """When the first mail is attempted the application row is already durable."""
        seen = {}

        async def confirm(*args, **kwargs):
            seen["rows"] = await _count(db, ProjectApplication)
            return SendResult(delivered=True, provider_message_id="<1@test>")

        mock_mailer.send_application_confirmation.side_effect = confirm
        await service.submit_application(
            db, marketplace.technician, _payload(marketplace.open_project.id)
        )
        assert seen["rows"] == 1


class TestDuplicateApplications:

    @pytest.mark.asyncio
    async def test_second_application_conflicts(self, db, service, marketplace):
        project_id = marketplace.open_project.id
        await service.submit_application(db, marketplace.technician, _payload(project_id))

        with pytest.raises(ConflictError) as exc_info:
            await service.submit_application(db, marketplace.technician, _payload(project_id))

        assert exc_info.value.code == "already_applied"
        assert await _count(db, ProjectApplication) == 1

    @pytest.mark.asyncio
    async def test_conflict_survives_status_changes(self, db, service, marketplace):
        project_id = marketplace.open_project.id
        application = await service.submit_application(
            db, marketplace.technician, _payload(project_id)
        )
        await service.withdraw(db, marketplace.technician, application.id)

        with pytest.raises(ConflictError):
            await service.submit_application(db, marketplace.technician, _payload(project_id))

    async def _submit_with_commit_error(
        self, mock_db_session, mock_mailer, upload_root, marketplace, driver_message
    ):
        """Pre-checks pass; the commit then fails with ``driver_message``."""
        service = ApplicationService(
            mailer=mock_mailer, upload_root=str(upload_root), status_transitions={}
        )
        project = marketplace.open_project

        mock_db_session.execute.side_effect = [
            MagicMock(**{"scalar_one_or_none.return_value": project}),  # project lookup
            MagicMock(**{"scalar_one_or_none.return_value": None}),  # duplicate pre-check
            MagicMock(),  # applications_count increment
        ]
        mock_db_session.commit.side_effect = IntegrityError(
            "INSERT INTO project_applications", {}, Exception(driver_message)
        )

        technicians = MagicMock()
        technicians.has_cv = AsyncMock(return_value=True)
        technicians.cv_file = AsyncMock(return_value=None)
        companies = MagicMock()
        companies.display_name = AsyncMock(return_value="Acme HVAC")

        with patch(
            "trabajatecnico.services.application_service.technician_profiles", technicians
        ), patch("trabajatecnico.services.application_service.company_profiles", companies):
            await service.submit_application(
                mock_db_session, marketplace.technician, _payload(project.id)
            )

    @pytest.mark.asyncio
    async def test_write_time_unique_violation_maps_to_conflict(
        self, mock_db_session, mock_mailer, upload_root, marketplace
    ):
        """The race where the pre-check passes but the unique constraint fires."""
        with pytest.raises(ConflictError) as exc_info:
            await self._submit_with_commit_error(
                mock_db_session,
                mock_mailer,
                upload_root,
                marketplace,
                'duplicate key value violates unique constraint "uq_application_project_technician"',
            )

        assert exc_info.value.code == "already_applied"
        mock_db_session.rollback.assert_awaited_once()
        mock_mailer.send_application_confirmation.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_other_integrity_errors_are_not_duplicates(
        self, mock_db_session, mock_mailer, upload_root, marketplace
    ):
        """A project deleted mid-request breaks the foreign key, not the unique pair."""
        with pytest.raises(DatabaseError):
            await self._submit_with_commit_error(
                mock_db_session,
                mock_mailer,
                upload_root,
                marketplace,
                'insert or update on table "project_applications" violates foreign key '
                'constraint "project_applications_project_id_fkey"',
            )

        mock_db_session.rollback.assert_awaited_once()
        mock_mailer.send_job_application.assert_not_awaited()


class TestUpdateStatus:

    @pytest.mark.asyncio
    async def test_owner_accepts(self, db, service, marketplace, mock_mailer):
        application = await service.submit_application(
            db, marketplace.technician, _payload(marketplace.open_project.id)
        )
        mock_mailer.reset_mock()

        status = await service.update_status(
            db, marketplace.company, application.id, "accepted"
        )

        assert status == "accepted"
        stored = await db.get(ProjectApplication, application.id)
        assert stored.status == "accepted"

        latest = (
            await db.execute(
                select(Notification)
                .where(Notification.user_id == marketplace.technician.user_id)
                .order_by(Notification.id.desc())
            )
        ).scalars().first()
        assert latest.type == "application_status"
        assert latest.title == "Application Accepted!"
        assert "has been accepted" in latest.message

        # No email on status changes
        mock_mailer.send_application_confirmation.assert_not_awaited()
        mock_mailer.send_job_application.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_note_is_appended_to_notification(self, db, service, marketplace):
        application = await service.submit_application(
            db, marketplace.technician, _payload(marketplace.open_project.id)
        )
        await service.update_status(
            db, marketplace.company, application.id, "rejected", note="We chose a local team."
        )

        latest = (
            await db.execute(select(Notification).order_by(Notification.id.desc()))
        ).scalars().first()
        assert latest.title == "Application Rejected"
        assert latest.message.endswith("We chose a local team.")

    @pytest.mark.asyncio
    async def test_non_owner_company_forbidden(self, db, service, marketplace):
        application = await service.submit_application(
            db, marketplace.technician, _payload(marketplace.open_project.id)
        )

        with pytest.raises(ForbiddenError):
            await service.update_status(
                db, marketplace.other_company, application.id, "accepted"
            )

        stored = await db.get(ProjectApplication, application.id)
        await db.refresh(stored)
        assert stored.status == "pending"

    @pytest.mark.asyncio
    async def test_technician_forbidden(self, db, service, marketplace):
        application = await service.submit_application(
            db, marketplace.technician, _payload(marketplace.open_project.id)
        )
        with pytest.raises(ForbiddenError):
            await service.update_status(db, marketplace.technician, application.id, "accepted")

    @pytest.mark.asyncio
    async def test_missing_application(self, db, service, marketplace):
        with pytest.raises(NotFoundError):
            await service.update_status(db, marketplace.company, 424242, "accepted")

    @pytest.mark.asyncio
    async def test_permissive_default_allows_revising_a_decision(self, db, service, marketplace):
        application = await service.submit_application(
            db, marketplace.technician, _payload(marketplace.open_project.id)
        )
        await service.update_status(db, marketplace.company, application.id, "accepted")
        assert (
            await service.update_status(db, marketplace.company, application.id, "rejected")
            == "rejected"
        )

    @pytest.mark.asyncio
    async def test_strict_transitions_block_terminal_states(
        self, db, marketplace, mock_mailer, upload_root
    ):
        strict = ApplicationService(
            mailer=mock_mailer,
            upload_root=str(upload_root),
            status_transitions={"pending": ["accepted", "rejected"]},
        )
        application = await strict.submit_application(
            db, marketplace.technician, _payload(marketplace.open_project.id)
        )
        await strict.update_status(db, marketplace.company, application.id, "accepted")

        with pytest.raises(InvalidStateError) as exc_info:
            await strict.update_status(db, marketplace.company, application.id, "rejected")
        assert exc_info.value.code == "status_not_allowed"

    @pytest.mark.asyncio
    async def test_status_outside_table_rejected(self, db, service, marketplace):
        application = await service.submit_application(
            db, marketplace.technician, _payload(marketplace.open_project.id)
        )
        with pytest.raises(InvalidStateError):
            await service.update_status(db, marketplace.company, application.id, "withdrawn")


class TestWithdraw:

    @pytest.mark.asyncio
    async def test_withdraw_twice(self, db, service, marketplace):
        application = await service.submit_application(
            db, marketplace.technician, _payload(marketplace.open_project.id)
        )

        assert await service.withdraw(db, marketplace.technician, application.id) == "withdrawn"

        with pytest.raises(InvalidStateError) as exc_info:
            await service.withdraw(db, marketplace.technician, application.id)
        assert exc_info.value.code == "not_pending"

    @pytest.mark.asyncio
    async def test_withdraw_after_accept(self, db, service, marketplace):
        application = await service.submit_application(
            db, marketplace.technician, _payload(marketplace.open_project.id)
        )
        await service.update_status(db, marketplace.company, application.id, "accepted")

        with pytest.raises(InvalidStateError) as exc_info:
            await service.withdraw(db, marketplace.technician, application.id)
        assert exc_info.value.code == "not_pending"

    @pytest.mark.asyncio
    async def test_withdraw_notifies_technician(self, db, service, marketplace):
        application = await service.submit_application(
            db, marketplace.technician, _payload(marketplace.open_project.id)
        )
        await service.withdraw(db, marketplace.technician, application.id)

        latest = (
            await db.execute(select(Notification).order_by(Notification.id.desc()))
        ).scalars().first()
        assert latest.user_id == marketplace.technician.user_id
        assert latest.title == "Application Withdrawn"

    @pytest.mark.asyncio
    async def test_other_users_application_is_hidden(self, db, service, marketplace):
        application = await service.submit_application(
            db, marketplace.technician, _payload(marketplace.open_project.id)
        )

        with pytest.raises(NotFoundError):
            await service.withdraw(db, marketplace.technician_without_cv, application.id)
        with pytest.raises(NotFoundError):
            await service.withdraw(db, marketplace.company, application.id)


class TestListings:

    @pytest.mark.asyncio
    async def test_my_applications_and_stats(self, db, service, marketplace):
        application = await service.submit_application(
            db, marketplace.technician, _payload(marketplace.open_project.id)
        )
        await service.update_status(db, marketplace.company, application.id, "accepted")

        mine = await service.list_for_technician(db, marketplace.technician)
        assert mine.total == 1
        assert mine.applications[0].project_title == "HVAC maintenance - Lima"
        assert mine.applications[0].company_name == "Acme HVAC"

        stats = await service.stats_for_technician(db, marketplace.technician)
        assert stats.total == 1
        assert stats.accepted == 1
        assert stats.pending == 0

    @pytest.mark.asyncio
    async def test_received_for_company(self, db, service, marketplace):
        await service.submit_application(
            db, marketplace.technician, _payload(marketplace.open_project.id)
        )

        received = await service.list_received(db, marketplace.company)
        assert received.total == 1
        item = received.applications[0]
        assert item.technician_email == "tomas@example.com"
        assert item.cv_uploaded is True

        other = await service.list_received(db, marketplace.other_company)
        assert other.total == 0

    @pytest.mark.asyncio
    async def test_received_requires_company(self, db, service, marketplace):
        with pytest.raises(ForbiddenError):
            await service.list_received(db, marketplace.technician)
