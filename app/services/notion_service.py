"""Notion sync for email subscribers."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)

DATABASE_TITLE = "Email Subscribers"


class NotionError(Exception):
    """The Notion API rejected a request or is not configured."""


def format_page_id(page_id: str) -> str:
    """Hyphenate a 32-character Notion id as 8-4-4-4-12."""
    if "-" in page_id:
        return page_id
    return f"{page_id[:8]}-{page_id[8:12]}-{page_id[12:16]}-{page_id[16:20]}-{page_id[20:]}"


def _select_options(*pairs: tuple) -> Dict[str, Any]:
    return {"select": {"options": [{"name": name, "color": color} for name, color in pairs]}}


DATABASE_PROPERTIES: Dict[str, Any] = {
    "Email": {"title": {}},
    "Source": _select_options(("audit", "blue"), ("waitlist", "green"), ("newsletter", "purple")),
    "Audit URL": {"url": {}},
    "Submitted At": {"date": {}},
    "Status": _select_options(
        ("New", "yellow"),
        ("Contacted", "blue"),
        ("Converted", "green"),
        ("Unsubscribed", "red"),
    ),
}


class NotionService:
    """Keeps an "Email Subscribers" database in Notion up to date.

    The database id is resolved once and cached for the process.
    """

    BASE_URL = "https://api.notion.com/v1"
    API_VERSION = "2022-06-28"
    REQUEST_TIMEOUT = 15.0  # seconds

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        """Initialize the Notion service.

        Args:
            transport: Optional httpx transport, used by tests.
        """
        self.transport = transport
        self.database_id: Optional[str] = None

    def _get_headers(self) -> Dict[str, str]:
        if not settings.NOTION_API_KEY:
            raise NotionError("NOTION_API_KEY not configured")
        return {
            "Authorization": f"Bearer {settings.NOTION_API_KEY}",
            "Notion-Version": self.API_VERSION,
            "Content-Type": "application/json",
        }

    async def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        async with httpx.AsyncClient(timeout=self.REQUEST_TIMEOUT, transport=self.transport) as client:
            response = await client.request(
                method, f"{self.BASE_URL}{path}", headers=self._get_headers(), json=json
            )
        if not response.is_success:
            try:
                message = response.json().get("message") or response.text
            except ValueError:
                message = response.text
            raise NotionError(f"Notion API error {response.status_code}: {message}")
        return response.json()

    async def get_or_create_email_database(self) -> str:
        """Id of the subscribers database under NOTION_PAGE_ID, creating it if needed.

        Raises:
            NotionError: If Notion is not configured or the API call fails.
        """
        if self.database_id:
            return self.database_id

        page_id = format_page_id(settings.NOTION_PAGE_ID)
        children = await self._request("GET", f"/blocks/{page_id}/children")
        for block in children.get("results", []):
            if block.get("type") != "child_database":
                continue
            if (block.get("child_database") or {}).get("title") == DATABASE_TITLE:
                self.database_id = block["id"]
                return self.database_id

        logger.info(f"[Notion] Creating '{DATABASE_TITLE}' database")
        database = await self._request("POST", "/databases", json={
            "parent": {"type": "page_id", "page_id": page_id},
            "title": [{"type": "text", "text": {"content": DATABASE_TITLE}}],
            "properties": DATABASE_PROPERTIES,
        })
        self.database_id = database["id"]
        return self.database_id

    async def add_email_to_notion(
        self,
        email: str,
        source: str,
        audit_url: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Add or update a subscriber row.

        Returns:
            {"success": True, "pageId": ...} or {"success": False, "error": ...}.
        """
        email = email.lower().strip()
        try:
            database_id = await self.get_or_create_email_database()

            existing = await self._request("POST", f"/databases/{database_id}/query", json={
                "filter": {"property": "Email", "title": {"equals": email}},
            })
            results = existing.get("results", [])
            if results:
                page_id = results[0]["id"]
                if audit_url:
                    await self._request("PATCH", f"/pages/{page_id}", json={
                        "properties": {"Audit URL": {"url": audit_url}},
                    })
                return {"success": True, "pageId": page_id}

            page = await self._request("POST", "/pages", json={
                "parent": {"database_id": database_id},
                "properties": {
                    "Email": {"title": [{"text": {"content": email}}]},
                    "Source": {"select": {"name": source}},
                    "Audit URL": {"url": audit_url or None},
                    "Submitted At": {"date": {"start": datetime.now(timezone.utc).isoformat()}},
                    "Status": {"select": {"name": "New"}},
                },
            })
            return {"success": True, "pageId": page["id"]}

        except Exception as e:
            logger.error(f"[Notion] Sync error for {email}: {e}")
            return {"success": False, "error": str(e) or "Failed to sync to Notion"}


notion_service = NotionService()
