"""JWT authentication for users (Supabase tokens) and the admin console."""

import hmac
from datetime import datetime, timedelta, timezone
from typing import Annotated, Optional, Tuple

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from app.core.config import settings

# Cookie names shared with the frontend
USER_TOKEN_COOKIE = "sb-access-token"
ADMIN_TOKEN_COOKIE = "admin_token"

ADMIN_ROLE = "admin"
JWT_ALGORITHM = "HS256"


class SupabaseUser(BaseModel):
    """Authenticated user from a Supabase access token."""

    user_id: str
    email: Optional[str] = None
    role: Optional[str] = None


class AdminSession(BaseModel):
    """Authenticated admin from an admin session token."""

    email: str
    expires_at: datetime


def decode_user_token(token: str) -> SupabaseUser:
    """Verify a Supabase access token and return its user.

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired or
            authentication is not configured.
    """
    if not settings.SUPABASE_JWT_SECRET:
        raise jwt.InvalidTokenError("User authentication is not configured")

    issuer = f"{settings.SUPABASE_URL.rstrip('/')}/auth/v1" if settings.SUPABASE_URL else None
    payload = jwt.decode(
        token,
        settings.SUPABASE_JWT_SECRET,
        algorithms=[JWT_ALGORITHM],
        audience="authenticated",
        issuer=issuer,
    )
    subject = payload.get("sub")
    if not subject:
        raise jwt.InvalidTokenError("Token missing subject")

    return SupabaseUser(
        user_id=subject,
        email=payload.get("email"),
        role=payload.get("role"),
    )


security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> SupabaseUser:
    """Validate the Supabase JWT and return the authenticated user.

    Args:
        credentials: Bearer token from Authorization header

    Returns:
        SupabaseUser with user information

    Raises:
        HTTPException: If authentication fails
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return decode_user_token(credentials.credentials)
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except jwt.InvalidTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_optional_session_user(
    request: Request,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> Optional[SupabaseUser]:
    """Get the current user if authenticated, otherwise return None.

    Accepts the Bearer token or the Supabase session cookie. Use this for
    routes that work with or without authentication.
    """
    token = credentials.credentials if credentials else request.cookies.get(USER_TOKEN_COOKIE)
    if not token:
        return None
    try:
        return decode_user_token(token)
    except jwt.InvalidTokenError:
        return None


def verify_admin_credentials(email: str, password: str) -> bool:
    """Check a login attempt against the configured admin account."""
    if not settings.ADMIN_EMAIL or not settings.ADMIN_PASSWORD:
        return False
    email_ok = hmac.compare_digest(
        email.strip().lower().encode(),
        settings.ADMIN_EMAIL.strip().lower().encode(),
    )
    password_ok = hmac.compare_digest(password.encode(), settings.ADMIN_PASSWORD.encode())
    return email_ok and password_ok


def create_admin_token(email: str) -> Tuple[str, datetime]:
    """Issue a signed admin session token.

    Returns:
        Tuple of (token, expiry time).
    """
    expires_at = datetime.now(timezone.utc) + timedelta(hours=settings.ADMIN_TOKEN_TTL_HOURS)
    token = jwt.encode(
        {
            "sub": email,
            "role": ADMIN_ROLE,
            "exp": expires_at,
        },
        settings.ADMIN_JWT_SECRET,
        algorithm=JWT_ALGORITHM,
    )
    return token, expires_at


def decode_admin_token(token: Optional[str]) -> Optional[AdminSession]:
    """Return the admin session for a valid token, None otherwise."""
    if not token or not settings.ADMIN_JWT_SECRET:
        return None

    try:
        payload = jwt.decode(
            token,
            settings.ADMIN_JWT_SECRET,
            algorithms=[JWT_ALGORITHM],
        )
    except jwt.InvalidTokenError:
        return None

    if payload.get("role") != ADMIN_ROLE:
        return None

    return AdminSession(
        email=payload.get("sub", ""),
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
    )


async def get_optional_admin(
    request: Request,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> Optional[AdminSession]:
    """Get the admin session if the request carries a valid admin token.

    The Authorization header is checked first, then the admin cookie.
    """
    if credentials:
        admin = decode_admin_token(credentials.credentials)
        if admin:
            return admin
    return decode_admin_token(request.cookies.get(ADMIN_TOKEN_COOKIE))


async def get_current_admin(
    admin: Annotated[Optional[AdminSession], Depends(get_optional_admin)],
) -> AdminSession:
    """Require an admin session.

    Raises:
        HTTPException: 401 if the request is not from the admin.
    """
    if admin is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return admin


# Type aliases for dependency injection
CurrentUser = Annotated[SupabaseUser, Depends(get_current_user)]
SessionUser = Annotated[Optional[SupabaseUser], Depends(get_optional_session_user)]
AdminUser = Annotated[AdminSession, Depends(get_current_admin)]
OptionalAdmin = Annotated[Optional[AdminSession], Depends(get_optional_admin)]
