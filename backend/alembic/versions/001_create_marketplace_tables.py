"""Create marketplace tables

Revision ID: 001
Revises: None
Create Date: 2026-10-18 00:00:00.000000+00:00

What:  users, technician_profiles, company_profiles, projects,
       project_applications and notifications, with the columns the
       application lifecycle, CV upload and notification inbox use.

Rollback: downgrade() drops every table (destructive).
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.TIMESTAMP(timezone=True),
        server_default=sa.text("CURRENT_TIMESTAMP"),
        nullable=False,
    )


def _updated_at() -> sa.Column:
    return sa.Column(
        "updated_at",
        sa.TIMESTAMP(timezone=True),
        server_default=sa.text("CURRENT_TIMESTAMP"),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("user_type", sa.String(20), nullable=False, comment="Role tag: technician, company"),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )

    op.create_table(
        "technician_profiles",
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("cv_uploaded", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column(
            "cv_file",
            sa.String(255),
            nullable=True,
            comment="Stored CV filename, relative to the upload root",
        ),
        _updated_at(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("user_id"),
    )

    op.create_table(
        "company_profiles",
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("company_name", sa.String(255), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("user_id"),
    )

    op.create_table(
        "projects",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column(
            "status",
            sa.String(20),
            server_default=sa.text("'open'"),
            nullable=False,
            comment="open, in_progress, completed, cancelled",
        ),
        sa.Column("application_deadline", sa.Date(), nullable=False),
        sa.Column("applications_count", sa.Integer(), server_default=sa.text("0"), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["company_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_projects_company_id", "projects", ["company_id"])

    op.create_table(
        "project_applications",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("project_id", sa.Integer(), nullable=False),
        sa.Column("technician_id", sa.Integer(), nullable=False),
        sa.Column("cover_letter", sa.Text(), nullable=False),
        sa.Column("proposed_rate", sa.Numeric(10, 2), nullable=True),
        sa.Column("availability_start", sa.Date(), nullable=True),
        sa.Column("availability_end", sa.Date(), nullable=True),
        sa.Column(
            "status",
            sa.String(20),
            server_default=sa.text("'pending'"),
            nullable=False,
            comment="pending, accepted, rejected, withdrawn",
        ),
        _created_at(),
        _updated_at(),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["technician_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        # One application per technician per project; the service maps a
        # violation to the already_applied error
        sa.UniqueConstraint(
            "project_id", "technician_id", name="uq_application_project_technician"
        ),
    )
    op.create_index(
        "idx_applications_technician_id", "project_applications", ["technician_id"]
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("related_id", sa.Integer(), nullable=True),
        sa.Column("is_read", sa.Boolean(), server_default=sa.false(), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    # Inbox query: WHERE user_id = ? ORDER BY created_at DESC
    op.create_index(
        "idx_notifications_user_created", "notifications", ["user_id", "created_at"]
    )


def downgrade() -> None:
    op.drop_index("idx_notifications_user_created", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("idx_applications_technician_id", table_name="project_applications")
    op.drop_table("project_applications")
    op.drop_index("idx_projects_company_id", table_name="projects")
    op.drop_table("projects")
    op.drop_table("company_profiles")
    op.drop_table("technician_profiles")
    op.drop_table("users")
