"""Admin contact discovery over a list of websites."""

import json
import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, status

from app.api.sse import format_sse, sse_response
from app.core.auth import AdminUser
from app.schemas.admin import ContactScrapeRequest
from app.services.contact_scraper import contact_scraper

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contact-scraper")


def _parse_urls(raw: str) -> List[str]:
    try:
        urls = json.loads(raw)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No valid URLs provided")
    if not isinstance(urls, list):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No valid URLs provided")
    return [str(url) for url in urls if str(url).strip()]


@router.get("")
async def stream_contacts(admin: AdminUser, urls: Optional[str] = None):
    """Scrape each URL in turn, streaming progress as Server-Sent Events.

    Args:
        urls: JSON-encoded list of URLs.
    """
    if not urls:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No URLs provided")

    url_list = _parse_urls(urls)
    if not url_list:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No valid URLs provided")

    logger.info(f"[ContactScraper] Streaming {len(url_list)} URL(s)")

    async def event_stream():
        async for event, payload in contact_scraper.stream(url_list):
            yield format_sse(event, payload)

    return sse_response(event_stream())


@router.post("")
async def scrape_contacts(body: ContactScrapeRequest, admin: AdminUser) -> dict:
    """Scrape every URL and return all results at once."""
    if not body.urls:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No valid URLs provided")

    results = await contact_scraper.scrape_batch(body.urls)
    return {"results": [result.model_dump(by_alias=True, exclude_none=True) for result in results]}
