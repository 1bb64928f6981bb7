"""
Application-wide dependencies for FastAPI.

The session boundary: tokens are resolved to a ``User`` here, and the
resolved identity is handed to services as an explicit argument.
"""
from typing import Optional

from fastapi import Depends, Query
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from .db import get_db
from .errors import UnauthorizedError
from .models import User
from .security import decode_token
from .services.email_service import EmailSender, get_email_sender
from .services.logging_service import user_id_var
from .services.media_storage import MediaStorage, get_media_storage
from .services.pagination import PageParams

bearer_scheme = HTTPBearer(auto_error=False)


async def _resolve_user(
    credentials: Optional[HTTPAuthorizationCredentials],
    db: AsyncSession,
) -> Optional[User]:
    if credentials is None:
        return None

    user_id = decode_token(credentials.credentials)
    if user_id is None:
        raise UnauthorizedError("Invalid access token")

    user = await db.get(User, user_id)
    if user is None:
        raise UnauthorizedError("Invalid access token")

    user_id_var.set(str(user.id))
    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the viewer; the request is rejected when there is none."""
    user = await _resolve_user(credentials, db)
    if user is None:
        raise UnauthorizedError("Unauthorized request")
    return user


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """Resolve the viewer if a token was sent; anonymous requests get None."""
    return await _resolve_user(credentials, db)


def get_storage() -> MediaStorage:
    return get_media_storage()


def get_mailer() -> EmailSender:
    return get_email_sender()


def get_page_params(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
) -> PageParams:
    """Page and limit arrive as raw strings so bad values are clamped rather than rejected."""
    return PageParams.from_raw(page, limit)
