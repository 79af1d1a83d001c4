"""FastAPI dependencies for route handlers."""

from typing import Annotated, Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db

# Type alias for database session dependency
DatabaseDep = Annotated[AsyncSession, Depends(get_db)]


def get_client_ip(request: Request) -> Optional[str]:
    """Best-effort client IP from proxy headers.

    Takes the first x-forwarded-for entry, then x-real-ip.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        ip = forwarded.split(",")[0].strip()
        if ip:
            return ip
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return None


def get_user_agent(request: Request) -> Optional[str]:
    """User agent header, if present."""
    return request.headers.get("user-agent")
