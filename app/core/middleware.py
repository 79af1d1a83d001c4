"""Site access rules: coming-soon mode and page-level auth redirects."""

from typing import Optional
from urllib.parse import urlencode

import jwt
from fastapi import Request
from fastapi.responses import RedirectResponse

from app.core.auth import ADMIN_TOKEN_COOKIE, USER_TOKEN_COOKIE, decode_admin_token, decode_user_token
from app.core.config import settings

COMING_SOON_PATH = "/coming-soon"
COMING_SOON_ALLOWED_PREFIXES = (
    COMING_SOON_PATH,
    "/api/",
    "/_next/",
    "/favicon.ico",
    "/docs",
    "/redoc",
    "/openapi.json",
)

USER_PROTECTED_PREFIXES = ("/dashboard", "/profile", "/settings", "/my-audits")
AUTH_PAGES = ("/login", "/signup")

ADMIN_PREFIX = "/admin"
ADMIN_LOGIN_PATH = "/admin/login"


def _has_user_session(request: Request) -> bool:
    token = request.cookies.get(USER_TOKEN_COOKIE)
    if not token:
        return False
    try:
        decode_user_token(token)
    except jwt.InvalidTokenError:
        return False
    return True


def _has_admin_session(request: Request) -> bool:
    return decode_admin_token(request.cookies.get(ADMIN_TOKEN_COOKIE)) is not None


def redirect_target(
    path: str,
    has_user: bool,
    has_admin: bool,
    coming_soon: bool = False,
) -> Optional[str]:
    """Where a page request for ``path`` should be redirected, if anywhere.

    Admin pages are checked first and are exempt from coming-soon mode.
    API routes enforce their own auth and are never redirected here.
    """
    if path == ADMIN_PREFIX or path.startswith(ADMIN_PREFIX + "/"):
        if path == ADMIN_LOGIN_PATH:
            return ADMIN_PREFIX if has_admin else None
        return None if has_admin else ADMIN_LOGIN_PATH

    if coming_soon and not path.startswith(COMING_SOON_ALLOWED_PREFIXES):
        return COMING_SOON_PATH

    if path.startswith(USER_PROTECTED_PREFIXES) and not has_user:
        return f"/login?{urlencode({'redirect': path})}"

    if path in AUTH_PAGES and has_user:
        return "/dashboard"

    return None


async def site_access_middleware(request: Request, call_next):
    """Redirect page requests that the visitor may not see yet."""
    path = request.url.path
    if path.startswith("/api/"):
        return await call_next(request)

    target = redirect_target(
        path,
        has_user=_has_user_session(request),
        has_admin=_has_admin_session(request),
        coming_soon=settings.COMING_SOON_MODE,
    )
    if target is not None:
        return RedirectResponse(target, status_code=307)
    return await call_next(request)
