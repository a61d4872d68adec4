"""
TrabajaTecnico Backend — Profile Repositories
==============================================

What:  Role-specific access to ``technician_profiles`` and ``company_profiles``,
       plus the account fields on ``users`` that the profile page edits.
How:   One ProfileRepository implementation per role; callers pick one with
       ``profile_repository_for(user_type)`` instead of building table names
       from the role string.
Who:   ApplicationService (CV precondition, display names for notifications
       and mail), the CV upload route (record_cv), /api/users/profile
       (get, update).
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from trabajatecnico.database import Base
from trabajatecnico.exceptions import NotFoundError, ValidationError
from trabajatecnico.models.user import CompanyProfile, TechnicianProfile, User

logger = logging.getLogger(__name__)


def _apply(row: Base, changes: Mapping[str, Any]) -> None:
    for name, value in changes.items():
        setattr(row, name, value)
    row.updated_at = datetime.now(timezone.utc)


class ProfileRepository(ABC):
    """
    Contract shared by every role's profile store.

    Implementations:
        - TechnicianProfileRepository: CV state, name from ``users``
        - CompanyProfileRepository:    display name is the company name
    """

    role: str
    editable_fields: FrozenSet[str]

    @abstractmethod
    async def get(self, db: AsyncSession, user_id: int) -> Optional[Base]:
        """Returns the profile row, or None when the user has none yet."""
        ...

    @abstractmethod
    async def display_name(self, db: AsyncSession, user_id: int) -> Optional[str]:
        """Name shown to other users in notifications and mail."""
        ...

    @abstractmethod
    async def update(
        self, db: AsyncSession, user_id: int, changes: Mapping[str, Any]
    ) -> Optional[Base]:
        """
        Applies ``changes`` (already restricted to ``editable_fields``).

        Flushes but does not commit. Returns the profile row, or None when
        the user has no profile and the changes cannot create one.
        """
        ...


class TechnicianProfileRepository(ProfileRepository):
    role = "technician"
    editable_fields = frozenset(
        {"bio", "experience_years", "skills", "hourly_rate", "location"}
    )

    async def get(self, db: AsyncSession, user_id: int) -> Optional[TechnicianProfile]:
        result = await db.execute(
            select(TechnicianProfile).where(TechnicianProfile.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def display_name(self, db: AsyncSession, user_id: int) -> Optional[str]:
        result = await db.execute(select(User.full_name).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def has_cv(self, db: AsyncSession, user_id: int) -> bool:
        profile = await self.get(db, user_id)
        return bool(profile and profile.cv_uploaded)

    async def cv_file(self, db: AsyncSession, user_id: int) -> Optional[str]:
        """Stored CV filename (relative to the upload root), if any."""
        profile = await self.get(db, user_id)
        if profile is None or not profile.cv_uploaded:
            return None
        return profile.cv_file

    async def _get_or_create(self, db: AsyncSession, user_id: int) -> TechnicianProfile:
        profile = await self.get(db, user_id)
        if profile is None:
            profile = TechnicianProfile(user_id=user_id)
            db.add(profile)
        return profile

    async def record_cv(
        self, db: AsyncSession, user_id: int, filename: str
    ) -> TechnicianProfile:
        """
        Marks the technician's CV as uploaded, creating the profile if missing.

        Flushes but does not commit; the request session commits.
        Returns the updated profile.
        """
        profile = await self._get_or_create(db, user_id)
        profile.cv_uploaded = True
        profile.cv_file = filename
        profile.updated_at = datetime.now(timezone.utc)
        await db.flush()

        logger.info("CV recorded for technician %d: %s", user_id, filename)
        return profile

    async def update(
        self, db: AsyncSession, user_id: int, changes: Mapping[str, Any]
    ) -> Optional[TechnicianProfile]:
        """Any field may be cleared with null; a missing profile is created."""
        if not changes:
            return await self.get(db, user_id)

        profile = await self._get_or_create(db, user_id)
        _apply(profile, changes)
        await db.flush()

        logger.info("Technician %d updated profile fields: %s", user_id, sorted(changes))
        return profile


class CompanyProfileRepository(ProfileRepository):
    role = "company"
    editable_fields = frozenset(
        {"company_name", "company_description", "industry", "website", "address"}
    )
    # Sent as null or empty, these keep their stored value
    _kept_when_blank = frozenset({"company_name", "industry", "website", "address"})

    async def get(self, db: AsyncSession, user_id: int) -> Optional[CompanyProfile]:
        result = await db.execute(
            select(CompanyProfile).where(CompanyProfile.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def display_name(self, db: AsyncSession, user_id: int) -> Optional[str]:
        result = await db.execute(
            select(CompanyProfile.company_name).where(CompanyProfile.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def update(
        self, db: AsyncSession, user_id: int, changes: Mapping[str, Any]
    ) -> Optional[CompanyProfile]:
        """
        Only ``company_description`` can be cleared. A company without a
        profile gets one once ``company_name`` is supplied.
        """
        changes = {
            name: value
            for name, value in changes.items()
            if value or name not in self._kept_when_blank
        }
        profile = await self.get(db, user_id)
        if not changes:
            return profile

        if profile is None:
            if "company_name" not in changes:
                logger.warning("Company %d has no profile and sent no company name", user_id)
                return None
            profile = CompanyProfile(user_id=user_id, company_name=changes["company_name"])
            db.add(profile)

        _apply(profile, changes)
        await db.flush()

        logger.info("Company %d updated profile fields: %s", user_id, sorted(changes))
        return profile


class AccountRepository:
    """The ``users`` columns a signed-in user may edit about themselves."""

    editable_fields = frozenset({"full_name", "phone"})

    async def get(self, db: AsyncSession, user_id: int) -> User:
        user = (await db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
        if user is None:
            raise NotFoundError(resource="user", resource_id=user_id)
        return user

    async def update(self, db: AsyncSession, user_id: int, changes: Mapping[str, Any]) -> User:
        """Null or empty values are ignored; both columns keep their value."""
        user = await self.get(db, user_id)
        changes = {name: value for name, value in changes.items() if value}
        if changes:
            _apply(user, changes)
            await db.flush()
        return user


# ── Registry ──────────────────────────────────────────────────────────────
technician_profiles = TechnicianProfileRepository()
company_profiles = CompanyProfileRepository()
accounts = AccountRepository()

_REPOSITORIES: Dict[str, ProfileRepository] = {
    technician_profiles.role: technician_profiles,
    company_profiles.role: company_profiles,
}


def profile_repository_for(role: str) -> ProfileRepository:
    """Selects the repository for a role tag; unknown roles are a ValidationError."""
    try:
        return _REPOSITORIES[role]
    except KeyError:
        raise ValidationError(
            message=f"Unknown user role '{role}'",
            field="userType",
            context={"allowed": sorted(_REPOSITORIES)},
        ) from None
