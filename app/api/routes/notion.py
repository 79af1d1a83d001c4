"""Notion subscriber database setup and manual sync."""

import logging

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from app.core.auth import AdminUser
from app.schemas.subscriber import NotionSyncRequest
from app.services.notion_service import notion_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notion")


@router.get("/setup")
async def setup_notion(admin: AdminUser):
    """Find or create the "Email Subscribers" database."""
    try:
        database_id = await notion_service.get_or_create_email_database()
    except Exception as e:
        logger.error(f"[Notion] Setup failed: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": str(e) or "Failed to setup Notion database"},
        )

    return {"success": True, "message": "Notion database ready", "databaseId": database_id}


@router.post("/setup")
async def sync_email(body: NotionSyncRequest, admin: AdminUser):
    """Push one address to Notion, e.g. to test the integration."""
    result = await notion_service.add_email_to_notion(body.email, body.source, body.audit_url)
    if not result.get("success"):
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=result)
    return result
