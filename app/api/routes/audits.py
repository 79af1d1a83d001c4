"""Audit endpoints: the streaming audit and the one-shot test audit."""

import asyncio
import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import DatabaseDep, get_client_ip, get_user_agent
from app.api.sse import format_sse, sse_response
from app.core.auth import OptionalAdmin, SessionUser
from app.core.pricing import ALL_CATEGORIES, category_names
from app.services.audit_logger import audit_logger
from app.services.audit_runner import AuditOptions, audit_runner
from app.services.usage_service import usage_service
from app.services.website_type_service import InvalidWebsiteTypeError, website_type_service

logger = logging.getLogger(__name__)

router = APIRouter()


def _split(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


async def _apply_website_type(db: AsyncSession, options: AuditOptions, slug: Optional[str]) -> None:
    try:
        options.apply_website_type(await website_type_service.resolve_for_audit(db, slug))
    except InvalidWebsiteTypeError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/audit-stream")
async def audit_stream(
    request: Request,
    db: DatabaseDep,
    user: SessionUser,
    admin: OptionalAdmin,
    url: Optional[str] = None,
    pages: int = 1,
    categories: Optional[str] = None,
    websiteType: Optional[str] = None,
):
    """Run an audit and stream its progress as Server-Sent Events.

    Signed-in users are held to their plan: the audit is refused when no
    audits remain, pages are capped and categories are limited to the
    plan's set. Audits started with an admin token are not metered.
    """
    if not url:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="URL required")

    is_admin = admin is not None
    category_ids = _split(categories) or list(ALL_CATEGORIES)
    max_pages = max(1, pages)
    user_id: Optional[UUID] = None

    if user and not is_admin:
        usage = await usage_service.check_user_usage(db, user.user_id)
        if not usage.allowed:
            return JSONResponse(
                status_code=status.HTTP_403_FORBIDDEN,
                content={
                    "error": usage.reason or "Usage limit exceeded",
                    "upgradeUrl": "/pricing",
                    "auditsRemaining": usage.audits_remaining,
                    "auditsLimit": usage.audits_limit,
                },
            )
        max_pages = min(max_pages, usage.pages_limit)
        category_ids = [cid for cid in category_ids if cid in usage.allowed_categories]
        user_id = UUID(user.user_id)

    options = AuditOptions(
        url=url,
        max_pages=max_pages,
        category_names=category_names(category_ids),
        source_ip=get_client_ip(request),
        user_agent=get_user_agent(request),
        user_id=user_id,
        is_admin=is_admin,
    )
    await _apply_website_type(db, options, websiteType)
    logger.info(
        f"[Audit] Stream requested for {url} (pages={options.max_pages}, "
        f"categories={len(options.category_names)}, admin={is_admin})"
    )

    async def event_stream():
        queue: asyncio.Queue = asyncio.Queue()

        async def emit(event: str, payload) -> None:
            await queue.put(format_sse(event, payload))

        task = asyncio.create_task(audit_runner.run_stream(options, emit))
        task.add_done_callback(lambda _: queue.put_nowait(None))
        try:
            while True:
                frame = await queue.get()
                if frame is None:
                    break
                yield frame
        finally:
            if not task.done():
                task.cancel()

    return sse_response(event_stream())


@router.get("/test-audit")
async def test_audit(
    request: Request,
    db: DatabaseDep,
    background_tasks: BackgroundTasks,
    url: Optional[str] = None,
    pages: int = 1,
    categories: Optional[str] = None,
    format: str = "markdown",
    additionalUrls: Optional[str] = None,
    websiteType: Optional[str] = None,
):
    """Run a complete audit and return the report in one response."""
    if not url:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="URL required. Use ?url=example.com",
        )

    category_ids = _split(categories)
    selected = category_names(category_ids) if category_ids else category_names(ALL_CATEGORIES)
    options = AuditOptions(
        url=url,
        max_pages=max(1, pages),
        category_names=selected,
        additional_urls=_split(additionalUrls),
    )
    await _apply_website_type(db, options, websiteType)

    source_ip = get_client_ip(request)
    user_agent = get_user_agent(request)

    try:
        scraped, result = await audit_runner.run_once(options)
    except Exception as e:
        message = str(e) or "Unknown error occurred"
        logger.error(f"[Audit] Test audit failed for {url}: {message}")
        background_tasks.add_task(audit_logger.log_failed_audit, url, message, source_ip, user_agent)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": message},
            background=background_tasks,
        )

    background_tasks.add_task(audit_logger.log_audit, result, source_ip, user_agent)
    return JSONResponse(
        content={
            "success": True,
            "result": result.model_dump(by_alias=True, mode="json"),
            "options": {
                "maxPages": options.max_pages,
                "selectedCategories": selected,
                "format": format,
            },
            "scraped": {
                "url": scraped.url,
                "finalUrl": scraped.technical.final_url,
                "title": scraped.technical.title,
                "loadTime": scraped.technical.load_time,
                "ssl": scraped.technical.ssl,
                "mobileViewport": scraped.technical.mobile_viewport,
                "h1": scraped.content.h1,
                "ctaButtons": scraped.content.cta_buttons,
            },
        },
        background=background_tasks,
    )
