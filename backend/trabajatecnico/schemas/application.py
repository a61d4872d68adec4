"""
TrabajaTecnico Backend — Application Schemas
=============================================

What:  Request bodies and responses for /api/applications.
How:   FastAPI validates bodies against these models; malformed input is
       answered with 400 validation_error before any query runs.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import Field, field_validator, model_validator

from trabajatecnico.schemas.common import CamelModel

ApplicationStatus = Literal["pending", "accepted", "rejected", "withdrawn"]


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class ApplicationCreate(CamelModel):
    """Body of POST /api/applications."""

    project_id: int = Field(gt=0, description="Project to apply to")
    cover_letter: str = Field(min_length=1, max_length=10_000)
    proposed_rate: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    availability_start: Optional[date] = None
    availability_end: Optional[date] = None

    @field_validator("cover_letter")
    @classmethod
    def cover_letter_not_blank(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("Cover letter is required")
        return stripped

    @model_validator(mode="after")
    def availability_in_order(self) -> "ApplicationCreate":
        if (
            self.availability_start
            and self.availability_end
            and self.availability_end < self.availability_start
        ):
            raise ValueError("availabilityEnd must not be before availabilityStart")
        return self


class StatusUpdate(CamelModel):
    """Body of PUT /api/applications/{id}/status."""

    status: ApplicationStatus
    message: Optional[str] = Field(default=None, max_length=2_000)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class ApplicationCreatedResponse(CamelModel):
    message: str
    application_id: int


class StatusUpdateResponse(CamelModel):
    message: str
    status: ApplicationStatus


class MyApplicationItem(CamelModel):
    """One row of GET /api/applications/my."""

    id: int
    project_id: int
    status: ApplicationStatus
    cover_letter: str
    proposed_rate: Optional[Decimal] = None
    created_at: datetime
    project_title: str
    company_name: Optional[str] = None


class MyApplicationsResponse(CamelModel):
    applications: List[MyApplicationItem]
    total: int


class ReceivedApplicationItem(CamelModel):
    """One row of GET /api/applications/received (company view)."""

    id: int
    project_id: int
    technician_id: int
    status: ApplicationStatus
    cover_letter: str
    proposed_rate: Optional[Decimal] = None
    created_at: datetime
    project_title: str
    technician_name: str
    technician_email: str
    cv_uploaded: bool


class ReceivedApplicationsResponse(CamelModel):
    applications: List[ReceivedApplicationItem]
    total: int


class ApplicationStats(CamelModel):
    total: int = 0
    pending: int = 0
    accepted: int = 0
    rejected: int = 0
    withdrawn: int = 0
