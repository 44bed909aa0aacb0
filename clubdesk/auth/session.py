"""
Session identity

The session token is a JWT carrying the profile id in `sub`. It arrives as
`Authorization: Bearer <token>` or in the session cookie.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Request
from jose import JWTError, jwt
from loguru import logger
from pydantic import BaseModel

from clubdesk.config import get_auth_settings
from clubdesk.engine.errors import Unauthorized


class SessionUser(BaseModel):
    """Decoded session"""
    profile_id: str
    email: Optional[str] = None


def create_access_token(profile_id: str, expires_delta: Optional[timedelta] = None, **claims) -> str:
    """JWT token for a profile"""
    settings = get_auth_settings()
    to_encode = {"sub": profile_id, **claims}

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})
    return jwt.encode(
        to_encode,
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM
    )


def _token_from_request(request: Request) -> Optional[str]:
    settings = get_auth_settings()
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1].strip()
    return request.cookies.get(settings.SESSION_COOKIE_NAME)


async def get_session_user(request: Request) -> SessionUser:
    """
    Current session, 401 when missing or invalid
    """
    settings = get_auth_settings()
    token = _token_from_request(request)
    if not token:
        raise Unauthorized()

    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM]
        )
    except JWTError as e:
        logger.debug(f"Rejected session token: {e}")
        raise Unauthorized()

    profile_id = payload.get("sub")
    if not profile_id:
        raise Unauthorized()
    return SessionUser(profile_id=str(profile_id), email=payload.get("email"))
