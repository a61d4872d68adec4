"""
TrabajaTecnico Backend — Authentication Dependency
===================================================

What:  Resolves the caller of a protected route from its bearer token.
How:   Verifies ``Authorization: Bearer <jwt>`` with PyJWT, reads the user
       id from ``sub`` (or the legacy ``userId`` claim), then loads the
       active user row.
Who:   Every protected route (applications, notifications, uploads,
       project publishing, the user profile).

Tokens are issued by the login service; this module only verifies them.
Every failure produces the same AuthenticationError so the response never
says why a token was refused.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from trabajatecnico.config import settings
from trabajatecnico.database import get_db_session
from trabajatecnico.exceptions import AuthenticationError
from trabajatecnico.models.user import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CurrentUser:
    """The authenticated requester; ``role`` is the user_type tag."""

    user_id: int
    email: str
    full_name: str
    role: str

    @property
    def is_technician(self) -> bool:
        return self.role == "technician"

    @property
    def is_company(self) -> bool:
        return self.role == "company"


def _bearer_token(request: Request) -> str:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError()
    return token.strip()


def decode_token(token: str) -> Dict[str, Any]:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.InvalidTokenError as exc:
        logger.debug("Rejected bearer token: %s", exc.__class__.__name__)
        raise AuthenticationError() from exc


def _user_id_from_claims(claims: Dict[str, Any]) -> int:
    raw: Optional[Any] = claims.get("sub", claims.get("userId"))
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise AuthenticationError() from exc


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> CurrentUser:
    """FastAPI dependency: 401 unless the token maps to an active user."""
    claims = decode_token(_bearer_token(request))
    user_id = _user_id_from_claims(claims)

    result = await db.execute(
        select(User).where(User.id == user_id, User.is_active.is_(True))
    )
    user = result.scalar_one_or_none()
    if user is None:
        raise AuthenticationError()

    return CurrentUser(
        user_id=user.id,
        email=user.email,
        full_name=user.full_name,
        role=user.user_type,
    )
