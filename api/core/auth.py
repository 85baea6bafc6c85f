"""Bearer-token authentication.

API tokens are issued by ``python -m cli issue-token``. Only the SHA-256
digest of a token is stored; a request is authenticated by digesting the
presented token and looking the digest up on ``users.api_token_hash``.
"""

from __future__ import annotations

import hashlib
import secrets
from typing import Annotated

from fastapi import Depends, HTTPException, Request

from core.database import DbSession
from core.logger import get_logger
from core.wide_event import set_wide_event_fields
from models import User
from repositories.user_repository import UserRepository

logger = get_logger(__name__)

_BEARER_PREFIX = "bearer "


def generate_api_token() -> str:
    return secrets.token_urlsafe(32)


def hash_api_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _extract_bearer_token(request: Request) -> str | None:
    header = request.headers.get("authorization", "")
    if not header.lower().startswith(_BEARER_PREFIX):
        return None
    token = header[len(_BEARER_PREFIX) :].strip()
    return token or None


async def get_user_from_request(request: Request, db: DbSession) -> User | None:
    """Resolve the bearer token to a user, or None."""
    token = _extract_bearer_token(request)
    if token is None:
        return None

    user = await UserRepository(db).get_by_token_hash(hash_api_token(token))
    if user is None:
        # Unknown or revoked token - expected, don't log the token
        set_wide_event_fields(auth_error="unknown_token")
    return user


async def require_auth(request: Request, db: DbSession) -> User:
    """Raises 401 if not authenticated. Sets request.state.user_id."""
    user = await get_user_from_request(request, db)
    if user is None:
        raise HTTPException(
            status_code=401,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )

    request.state.user_id = user.id
    set_wide_event_fields(user_id=user.id, user_role=user.role.value)
    return user


async def require_admin(user: Annotated[User, Depends(require_auth)]) -> User:
    """Raises 403 unless the user is an admin or super-admin."""
    if not user.role.is_admin:
        logger.warning("auth.admin.denied", user_id=user.id, role=user.role.value)
        raise HTTPException(status_code=403, detail="Admin access required")
    return user


CurrentUser = Annotated[User, Depends(require_auth)]
AdminUser = Annotated[User, Depends(require_admin)]
