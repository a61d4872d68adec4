"""Profile and project details

Revision ID: 002
Revises: 001
Create Date: 2026-10-18 00:00:00.000000+00:00

What:  Columns edited through /api/users/profile (phone, technician and
       company profile fields) and the project fields shown by the public
       listing and set by project creation.

Rollback: downgrade() drops the added columns and index (destructive).
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _updated_at() -> sa.Column:
    return sa.Column(
        "updated_at",
        sa.TIMESTAMP(timezone=True),
        server_default=sa.text("CURRENT_TIMESTAMP"),
        nullable=False,
    )


_TECHNICIAN_COLUMNS = (
    ("bio", sa.Text()),
    ("experience_years", sa.Integer()),
    ("skills", sa.JSON()),
    ("hourly_rate", sa.Numeric(10, 2)),
    ("location", sa.String(255)),
)

_COMPANY_COLUMNS = (
    ("company_description", sa.Text()),
    ("industry", sa.String(100)),
    ("website", sa.String(255)),
    ("address", sa.String(255)),
)


def upgrade() -> None:
    # ── users ─────────────────────────────────────────────────────────────
    op.add_column("users", sa.Column("phone", sa.String(30), nullable=True))
    op.add_column("users", _updated_at())

    # ── profiles ──────────────────────────────────────────────────────────
    for name, type_ in _TECHNICIAN_COLUMNS:
        op.add_column("technician_profiles", sa.Column(name, type_, nullable=True))
    for name, type_ in _COMPANY_COLUMNS:
        op.add_column("company_profiles", sa.Column(name, type_, nullable=True))
    op.add_column("company_profiles", _updated_at())

    # ── projects ──────────────────────────────────────────────────────────
    op.add_column("projects", sa.Column("description", sa.Text(), nullable=True))
    op.add_column("projects", sa.Column("daily_pay", sa.Numeric(10, 2), nullable=True))
    op.add_column(
        "projects",
        sa.Column("min_duration", sa.Integer(), nullable=True, comment="Days"),
    )
    op.add_column(
        "projects",
        sa.Column("max_duration", sa.Integer(), nullable=True, comment="Days"),
    )
    op.add_column(
        "projects",
        sa.Column("required_technicians", sa.Integer(), server_default=sa.text("1"), nullable=False),
    )
    op.add_column("projects", sa.Column("location", sa.String(255), nullable=True))
    op.add_column(
        "projects",
        sa.Column("views_count", sa.Integer(), server_default=sa.text("0"), nullable=False),
    )
    op.add_column(
        "projects",
        sa.Column("is_featured", sa.Boolean(), server_default=sa.false(), nullable=False),
    )
    op.create_index(
        "idx_projects_status_deadline", "projects", ["status", "application_deadline"]
    )


def downgrade() -> None:
    op.drop_index("idx_projects_status_deadline", table_name="projects")
    for name in (
        "is_featured",
        "views_count",
        "location",
        "required_technicians",
        "max_duration",
        "min_duration",
        "daily_pay",
        "description",
    ):
        op.drop_column("projects", name)

    op.drop_column("company_profiles", "updated_at")
    for name, _ in reversed(_COMPANY_COLUMNS):
        op.drop_column("company_profiles", name)
    for name, _ in reversed(_TECHNICIAN_COLUMNS):
        op.drop_column("technician_profiles", name)

    op.drop_column("users", "updated_at")
    op.drop_column("users", "phone")
