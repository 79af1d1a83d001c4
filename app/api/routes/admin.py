"""Admin console routes: login, dashboard stats and listings."""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, HTTPException, Query, Response, status

from app.api.deps import DatabaseDep
from app.core.auth import (
    ADMIN_TOKEN_COOKIE,
    AdminUser,
    create_admin_token,
    verify_admin_credentials,
)
from app.core.config import settings
from app.schemas.admin import (
    AdminLoginRequest,
    AdminLoginResponse,
    AuditListResponse,
    DashboardResponse,
    SubscriptionListResponse,
    UserListResponse,
)
from app.services.admin_service import admin_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/login", response_model=AdminLoginResponse)
async def admin_login(body: AdminLoginRequest, response: Response) -> AdminLoginResponse:
    """Exchange the admin credentials for a session token.

    The token is returned and also set as an HTTP-only cookie.
    """
    if not settings.ADMIN_JWT_SECRET:
        logger.error("[Admin] Login attempted but ADMIN_JWT_SECRET is not set")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Admin auth not configured",
        )

    if not verify_admin_credentials(body.email, body.password):
        logger.warning("[Admin] Failed login attempt")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    token, expires_at = create_admin_token(body.email)
    response.set_cookie(
        ADMIN_TOKEN_COOKIE,
        token,
        max_age=settings.ADMIN_TOKEN_TTL_HOURS * 3600,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )
    return AdminLoginResponse(token=token, expires_at=expires_at)


@router.get("/stats", response_model=DashboardResponse)
async def get_stats(admin: AdminUser, db: DatabaseDep) -> DashboardResponse:
    """Dashboard totals, recent audits and audits per weekday."""
    return await admin_service.get_dashboard(db)


@router.get("/audits", response_model=AuditListResponse)
async def list_audits(
    admin: AdminUser,
    db: DatabaseDep,
    page: int = Query(1, ge=1),
    limit: int = Query(25, ge=1, le=100),
    filter: Literal["all", "admin", "user"] = "all",
    sort: Literal["date", "score"] = "date",
    direction: Literal["asc", "desc"] = "desc",
) -> AuditListResponse:
    """Paginated audit log.

    Args:
        filter: ``admin`` for admin-run audits, ``user`` for everything else.
        sort: Order by creation date or overall score (nulls last).
        direction: Sort direction.
    """
    return await admin_service.list_audits(
        db,
        page=page,
        limit=limit,
        audit_filter=filter,
        sort=sort,
        direction=direction,
    )


@router.get("/subscriptions", response_model=SubscriptionListResponse)
async def list_subscriptions(admin: AdminUser, db: DatabaseDep) -> SubscriptionListResponse:
    """Subscribed profiles with status counts and MRR."""
    return await admin_service.list_subscriptions(db)


@router.get("/users", response_model=UserListResponse)
async def list_users(
    admin: AdminUser,
    db: DatabaseDep,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    tier: Optional[str] = None,
) -> UserListResponse:
    """Paginated user profiles, searchable by email or name."""
    return await admin_service.list_users(db, page=page, limit=limit, search=search, tier=tier)
