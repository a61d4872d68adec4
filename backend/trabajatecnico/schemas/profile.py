"""
TrabajaTecnico Backend — Profile Schemas
=========================================

What:  Bodies of GET/PUT /api/users/profile.
How:   One update body carries the account fields and both roles' profile
       fields; the repository for the caller's role picks the ones it owns
       and ignores the rest.
"""

import re
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, FrozenSet, List, Optional, Union

from pydantic import Field, field_validator

from trabajatecnico.schemas.common import CamelModel

# Peruvian mobile: nine digits starting with 9, optional +51 prefix
_PHONE_RE = re.compile(r"^(\+?51)?9\d{8}$")


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class ProfileUpdate(CamelModel):
    """Body of PUT /api/users/profile; every field is optional."""

    # ── Account (users) ──
    full_name: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=30)

    # ── Technician ──
    bio: Optional[str] = Field(default=None, max_length=5_000)
    experience_years: Optional[int] = Field(default=None, ge=0, le=80)
    skills: Optional[List[str]] = Field(default=None, max_length=50)
    hourly_rate: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    location: Optional[str] = Field(default=None, max_length=255)

    # ── Company ──
    company_name: Optional[str] = Field(default=None, max_length=255)
    company_description: Optional[str] = Field(default=None, max_length=5_000)
    industry: Optional[str] = Field(default=None, max_length=100)
    website: Optional[str] = Field(default=None, max_length=255)
    address: Optional[str] = Field(default=None, max_length=255)

    @field_validator("full_name")
    @classmethod
    def full_name_length(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Name must be at least 2 characters")
        return v

    @field_validator("phone")
    @classmethod
    def phone_is_mobile(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        compact = re.sub(r"[\s-]", "", v)
        if not _PHONE_RE.match(compact):
            raise ValueError("Invalid phone number")
        return compact

    @field_validator("skills")
    @classmethod
    def skills_trimmed(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return v
        return [skill.strip() for skill in v if skill.strip()]

    def changes(self, fields: FrozenSet[str]) -> Dict[str, Any]:
        """Fields the client actually sent, restricted to ``fields``."""
        return {
            name: value
            for name, value in self.model_dump(exclude_unset=True).items()
            if name in fields
        }


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class UserSummary(CamelModel):
    id: int
    email: str
    full_name: str
    user_type: str
    phone: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class TechnicianProfileOut(CamelModel):
    user_id: int
    cv_uploaded: bool
    bio: Optional[str] = None
    experience_years: Optional[int] = None
    skills: Optional[List[str]] = None
    hourly_rate: Optional[Decimal] = None
    location: Optional[str] = None
    updated_at: datetime


class CompanyProfileOut(CamelModel):
    user_id: int
    company_name: str
    company_description: Optional[str] = None
    industry: Optional[str] = None
    website: Optional[str] = None
    address: Optional[str] = None
    updated_at: datetime


ProfileOut = Union[TechnicianProfileOut, CompanyProfileOut]


class ProfileResponse(CamelModel):
    """GET body: the account plus the role profile (null until created)."""

    user: UserSummary
    profile: Optional[ProfileOut] = None


class ProfileUpdatedResponse(ProfileResponse):
    message: str
