"""Bulk contact discovery: emails and social links for a list of sites."""

import asyncio
import logging
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

from pydantic import Field

from app.schemas.common import CamelModel
from app.services.scraper import WebsiteScraper, website_scraper

logger = logging.getLogger(__name__)

SCRAPE_TIMEOUT = 30.0  # seconds per URL
URL_DELAY = 0.5  # seconds between URLs


class ContactResult(CamelModel):
    url: str
    status: str
    emails: List[str] = Field(default_factory=list)
    social_links: List[str] = Field(default_factory=list)
    error: Optional[str] = None


def normalize_contact_url(url: str) -> str:
    url = url.strip()
    if not url.startswith(("http://", "https://")):
        url = f"https://{url}"
    return url


class ContactScraper:
    """Scrapes entry pages one at a time for contact details."""

    def __init__(self, scraper: Optional[WebsiteScraper] = None, delay: float = URL_DELAY):
        self.scraper = scraper or website_scraper
        self.delay = delay

    async def scrape_one(self, url: str, timeout: Optional[float] = SCRAPE_TIMEOUT) -> ContactResult:
        """Contacts for one site; failures become an error result."""
        normalized = normalize_contact_url(url)
        try:
            if timeout is None:
                content = await self.scraper.scrape_content(normalized)
            else:
                content = await asyncio.wait_for(self.scraper.scrape_content(normalized), timeout)
        except asyncio.TimeoutError:
            return ContactResult(url=url, status="error", error="Timeout")
        except Exception as e:
            logger.warning(f"[ContactScraper] {normalized} failed: {e}")
            return ContactResult(url=url, status="error", error=str(e) or "Unknown error")

        return ContactResult(
            url=normalized,
            status="success",
            emails=content.emails,
            social_links=content.social_links,
        )

    async def stream(self, urls: List[str]) -> AsyncIterator[Tuple[str, Dict[str, Any]]]:
        """Yield (event, payload) pairs while scraping ``urls`` in order."""
        total = len(urls)
        successful = 0
        try:
            yield "start", {"total": total}
            for index, url in enumerate(urls):
                yield "progress", {"current": index + 1, "total": total, "url": url}

                result = await self.scrape_one(url)
                if result.status == "success":
                    successful += 1
                yield "result", result.model_dump(by_alias=True, exclude_none=True)

                if index < total - 1:
                    await asyncio.sleep(self.delay)

            yield "complete", {"total": total, "successful": successful, "failed": total - successful}
        except Exception as e:
            logger.error(f"[ContactScraper] Stream failed: {e}")
            yield "error", {"message": str(e) or "Unknown error"}

    async def scrape_batch(self, urls: List[str]) -> List[ContactResult]:
        """Non-streaming variant for small lists."""
        return [await self.scrape_one(url, timeout=None) for url in urls]


contact_scraper = ContactScraper()
