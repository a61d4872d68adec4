"""
TrabajaTecnico Backend — User Profile Route Handlers
=====================================================

What:  The signed-in user's own account and role profile.
How:   The account columns go through AccountRepository; the role profile
       goes through ``profile_repository_for(user.role)``, which decides
       which fields of the body apply.

    GET /api/users/profile  → {user, profile}
    PUT /api/users/profile  → {message, user, profile}
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from trabajatecnico.auth import CurrentUser, get_current_user
from trabajatecnico.database import Base, get_db_session
from trabajatecnico.schemas.common import ErrorResponse
from trabajatecnico.schemas.profile import (
    CompanyProfileOut,
    ProfileOut,
    ProfileResponse,
    ProfileUpdate,
    ProfileUpdatedResponse,
    TechnicianProfileOut,
    UserSummary,
)
from trabajatecnico.services.profile_repository import accounts, profile_repository_for

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"])

_PROFILE_SCHEMAS = {
    "technician": TechnicianProfileOut,
    "company": CompanyProfileOut,
}


def _profile_out(role: str, profile: Optional[Base]) -> Optional[ProfileOut]:
    if profile is None:
        return None
    return _PROFILE_SCHEMAS[role].model_validate(profile)


@router.get(
    "/profile",
    response_model=ProfileResponse,
    responses={401: {"description": "Missing or invalid token", "model": ErrorResponse}},
    summary="Get my profile",
)
async def get_profile(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProfileResponse:
    repository = profile_repository_for(user.role)
    account = await accounts.get(db, user.user_id)
    profile = await repository.get(db, user.user_id)
    return ProfileResponse(
        user=UserSummary.model_validate(account),
        profile=_profile_out(user.role, profile),
    )


@router.put(
    "/profile",
    response_model=ProfileUpdatedResponse,
    responses={
        400: {"description": "Invalid field value", "model": ErrorResponse},
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
    },
    summary="Update my profile",
)
async def update_profile(
    payload: ProfileUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProfileUpdatedResponse:
    """Fields that belong to the other role are ignored."""
    repository = profile_repository_for(user.role)
    account = await accounts.update(
        db, user.user_id, payload.changes(accounts.editable_fields)
    )
    profile = await repository.update(
        db, user.user_id, payload.changes(repository.editable_fields)
    )
    return ProfileUpdatedResponse(
        message="Profile updated successfully",
        user=UserSummary.model_validate(account),
        profile=_profile_out(user.role, profile),
    )
