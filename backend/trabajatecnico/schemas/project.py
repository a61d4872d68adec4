"""
TrabajaTecnico Backend — Project Schemas
=========================================

What:  Request bodies and responses for /api/projects.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field, field_validator, model_validator

from trabajatecnico.schemas.common import CamelModel, Pagination


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class ProjectCreate(CamelModel):
    """Body of POST /api/projects. Durations are in days."""

    title: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1, max_length=10_000)
    daily_pay: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    min_duration: int = Field(ge=1)
    max_duration: int = Field(ge=1)
    required_technicians: int = Field(default=1, ge=1)
    location: Optional[str] = Field(default=None, max_length=255)
    application_deadline: date

    @field_validator("title", "description")
    @classmethod
    def not_blank(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("This field is required")
        return stripped

    @model_validator(mode="after")
    def durations_in_order(self) -> "ProjectCreate":
        if self.max_duration < self.min_duration:
            raise ValueError("maxDuration must not be less than minDuration")
        return self


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class ProjectItem(CamelModel):
    """One project card; ``company_name`` is set only in the public listing."""

    id: int
    title: str
    description: Optional[str] = None
    daily_pay: Optional[Decimal] = None
    min_duration: Optional[int] = None
    max_duration: Optional[int] = None
    required_technicians: int
    location: Optional[str] = None
    application_deadline: date
    status: str
    is_featured: bool
    views_count: int
    applications_count: int
    created_at: datetime
    days_remaining: int
    company_name: Optional[str] = None


class ProjectListResponse(CamelModel):
    projects: List[ProjectItem]
    pagination: Pagination


class MyProjectsResponse(CamelModel):
    projects: List[ProjectItem]
    total: int


class ProjectCreatedResponse(CamelModel):
    message: str
    project_id: int


class ProjectStats(CamelModel):
    total_projects: int = 0
    active_projects: int = 0
    completed_projects: int = 0
    in_progress_projects: int = 0
    total_views: int = 0
    total_applications: int = 0
