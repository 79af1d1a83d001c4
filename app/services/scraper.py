"""Website scraper: entry page technical facts, content and the full scrape.

``scrape_website`` fetches the entry page once and runs the sub-scrapers
concurrently. Technical and content extraction are required; traffic,
extended content, design and multi-page crawling degrade to empty results
when they fail.
"""

import asyncio
import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, Awaitable, List, Optional, TypeVar
from urllib.parse import urljoin, urlparse

import httpx
from bs4 import BeautifulSoup

from app.schemas.scraped import ContentData, ScrapedData, TechnicalData
from app.services.design_analysis import analyze_design
from app.services.page_crawler import crawl_pages
from app.services.page_fetcher import FetchedPage, create_client, fetch_entry_page
from app.services.site_signals import scrape_extended_content, scrape_traffic_signals

logger = logging.getLogger(__name__)

T = TypeVar("T")

EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")

# Matches that look like emails but are assets, placeholders or vendor addresses
EXCLUDED_EMAIL_PATTERNS = [
    re.compile(r"\.(png|jpg|jpeg|gif|svg|webp|ico)$", re.IGNORECASE),
    re.compile(r"@example\.(com|org|net)$", re.IGNORECASE),
    re.compile(r"@(?:[\w-]+\.)*(sentry|wixpress|wordpress|cloudflare)\.(io|com)$", re.IGNORECASE),
    re.compile(r"no-?reply@", re.IGNORECASE),
    re.compile(r"^test@", re.IGNORECASE),
    re.compile(r"@.*\.(local|test|invalid)$", re.IGNORECASE),
]

SOCIAL_LINK_PATTERN = re.compile(r"facebook|twitter|linkedin|instagram|youtube|tiktok|x\.com", re.IGNORECASE)

CTA_SELECTOR = 'button, a.btn, a.button, [class*="cta"], [class*="btn"], [role="button"]'
NAV_SELECTOR = 'nav a, header a, [class*="nav"] a, [class*="menu"] a'
ANALYTICS_MARKERS = ("googletagmanager", "google-analytics", "gtag(", "datalayer")
HIDDEN_TEXT_TAGS = ["script", "style", "noscript", "svg", "template"]

MAX_EMAILS = 10
BODY_TEXT_LIMIT = 5000


class ScrapeError(Exception):
    """The site could not be scraped."""


def normalize_url(url: str) -> str:
    """Add a scheme if missing and validate the URL.

    Raises:
        ScrapeError: If the result is not a usable http(s) URL.
    """
    url = (url or "").strip()
    if not url.startswith("http"):
        url = f"https://{url}"

    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc or "." not in parsed.netloc:
        raise ScrapeError("Invalid URL format")
    return url


def filter_emails(candidates: List[str]) -> List[str]:
    """Lowercase, dedupe and drop false-positive email matches."""
    seen = []
    for email in candidates:
        email = email.strip().lower()
        if not email or email in seen:
            continue
        if any(pattern.search(email) for pattern in EXCLUDED_EMAIL_PATTERNS):
            continue
        seen.append(email)
    return seen[:MAX_EMAILS]


def _unique(values: List[str], limit: int) -> List[str]:
    return list(dict.fromkeys(values))[:limit]


def _element_text(el) -> str:
    return " ".join(el.get_text(" ", strip=True).split())


def _meta_content(soup: BeautifulSoup, **attrs) -> Optional[str]:
    tag = soup.find("meta", attrs=attrs)
    if tag and tag.get("content"):
        return tag["content"].strip()
    return None


def _link_href(soup: BeautifulSoup, rel: str, base_url: str) -> Optional[str]:
    for link in soup.find_all("link", href=True):
        rels = " ".join(link.get("rel") or []).lower()
        if rels == rel:
            return urljoin(base_url, link["href"])
    return None


def _json_ld_logo(soup: BeautifulSoup) -> Optional[str]:
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        try:
            data = json.loads(script.string or "")
        except (TypeError, ValueError):
            continue
        items = data if isinstance(data, list) else [data]
        for item in items:
            if not isinstance(item, dict):
                continue
            candidates = [item] + [g for g in item.get("@graph", []) if isinstance(g, dict)]
            for candidate in candidates:
                logo = candidate.get("logo")
                if isinstance(logo, str):
                    return logo
                if isinstance(logo, dict) and logo.get("url"):
                    return logo["url"]
    return None


def visible_text(page: FetchedPage, limit: int = BODY_TEXT_LIMIT) -> str:
    """Readable body text without scripts, styles and inline SVG."""
    soup = page.fresh_soup()
    for tag in soup(HIDDEN_TEXT_TAGS):
        tag.decompose()
    root = soup.body or soup
    return " ".join(root.get_text(" ", strip=True).split())[:limit]


def extract_technical(page: FetchedPage) -> TechnicalData:
    """Head-level and transport facts for the entry page."""
    soup = page.soup
    base_url = page.final_url

    title = soup.title.get_text(strip=True) if soup.title else ""
    viewport = _meta_content(soup, name="viewport") or ""

    favicon = any(
        "icon" in " ".join(link.get("rel") or []).lower()
        for link in soup.find_all("link")
    )
    favicon_url = (
        _link_href(soup, "apple-touch-icon", base_url)
        or _link_href(soup, "icon", base_url)
        or _link_href(soup, "shortcut icon", base_url)
    )
    og_image = _meta_content(soup, property="og:image")
    twitter_image = _meta_content(soup, name="twitter:image")
    logo_url = og_image or twitter_image or _json_ld_logo(soup) or favicon_url

    scripts = " ".join(
        (script.get("src") or "") + " " + (script.string or "")
        for script in soup.find_all("script")
    ).lower()

    return TechnicalData(
        final_url=page.final_url,
        load_time=page.load_time,
        status_code=page.status_code,
        ssl=page.final_url.startswith("https"),
        ssl_error=page.ssl_error,
        title=title,
        meta_description=_meta_content(soup, name="description") or "",
        mobile_viewport="width=device-width" in viewport,
        favicon=favicon,
        favicon_url=favicon_url,
        og_image_url=og_image,
        logo_url=logo_url,
        image_count=len(soup.find_all("img")),
        content_length=len(page.html),
        has_analytics=any(marker in scripts for marker in ANALYTICS_MARKERS),
        has_forms=soup.find("form") is not None,
        broken_links=[],
    )


def extract_content(page: FetchedPage) -> ContentData:
    """Headings, visible copy, calls to action, navigation and contacts."""
    soup = page.soup
    body_text = visible_text(page)

    h1 = [t for t in (_element_text(el) for el in soup.find_all("h1")) if t]
    h2 = [t for t in (_element_text(el) for el in soup.find_all("h2")) if t]

    cta_buttons = [
        text for text in (_element_text(el) for el in soup.select(CTA_SELECTOR))
        if 0 < len(text) < 50
    ]
    nav_links = [
        text for text in (_element_text(el) for el in soup.select(NAV_SELECTOR))
        if 0 < len(text) < 30
    ]
    social_links = [
        urljoin(page.final_url, a["href"])
        for a in soup.find_all("a", href=True)
        if SOCIAL_LINK_PATTERN.search(a["href"])
    ]

    mailto = [
        a["href"][len("mailto:"):].split("?")[0]
        for a in soup.select('a[href^="mailto:"]')
    ]
    text_emails = EMAIL_PATTERN.findall(body_text)
    footer_emails = []
    for footer in soup.select('footer, [class*="footer"]'):
        footer_emails.extend(EMAIL_PATTERN.findall(footer.get_text(" ")))

    return ContentData(
        h1=h1,
        h2=h2[:10],
        body_text=body_text,
        cta_buttons=_unique(cta_buttons, 10),
        nav_links=_unique(nav_links, 15),
        social_links=list(dict.fromkeys(social_links)),
        emails=filter_emails(mailto + text_emails + footer_emails),
    )


class WebsiteScraper:
    """Scrapes a website over plain HTTP and parses it with BeautifulSoup."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        """Initialize the scraper.

        Args:
            transport: Optional httpx transport, used by tests.
        """
        self.transport = transport

    async def _optional(self, name: str, awaitable: Awaitable[T], default: T) -> T:
        try:
            return await awaitable
        except Exception as e:
            logger.warning(f"[Scraper] {name} scrape failed: {e}")
            return default

    async def _analyze_design(self, page: FetchedPage):
        return analyze_design(page)

    async def scrape_website(
        self,
        url: str,
        max_pages: int = 1,
        additional_urls: Optional[List[str]] = None,
    ) -> ScrapedData:
        """Collect everything the analysis needs about a site.

        Args:
            url: Site URL, with or without scheme.
            max_pages: Pages to crawl, including the entry page.
            additional_urls: Pages the user asked to include.

        Returns:
            ScrapedData for the site.

        Raises:
            ScrapeError: If the URL is invalid or the entry page cannot
                be fetched or parsed.
        """
        url = normalize_url(url)
        logger.info(f"[Scraper] Scraping {url} (max_pages={max_pages})")

        async with create_client(transport=self.transport) as client:
            try:
                page = await fetch_entry_page(client, url, transport=self.transport)
                technical = extract_technical(page)
            except Exception as e:
                raise ScrapeError(f"Technical scrape failed: {e}") from e

            try:
                content = extract_content(page)
            except Exception as e:
                raise ScrapeError(f"Content scrape failed: {e}") from e

            traffic, extended, design, pages = await asyncio.gather(
                self._optional("Traffic", scrape_traffic_signals(client, page), None),
                self._optional("Extended content", scrape_extended_content(client, page), None),
                self._optional("Design", self._analyze_design(page), None),
                self._optional(
                    "Pages",
                    crawl_pages(client, page, max_pages, additional_urls or []),
                    [],
                ),
            )

        return ScrapedData(
            url=url,
            technical=technical,
            content=content,
            traffic=traffic,
            extended=extended,
            design=design,
            pages=pages,
            scraped_at=datetime.now(timezone.utc).isoformat(),
        )

    async def scrape_content(self, url: str) -> ContentData:
        """Fetch one page and extract its content only.

        Raises:
            ScrapeError: If the URL is invalid or the page cannot be fetched.
        """
        url = normalize_url(url)
        async with create_client(transport=self.transport) as client:
            try:
                page = await fetch_entry_page(client, url, transport=self.transport)
            except httpx.HTTPError as e:
                raise ScrapeError(f"Content scrape failed: {e}") from e
        return extract_content(page)

    async def quick_check(self, url: str, timeout: float = 5.0) -> dict:
        """Cheap HEAD request used to report early progress.

        Returns:
            Dict with finalUrl and ssl, falling back to the input URL.
        """
        url = normalize_url(url)
        try:
            async with create_client(transport=self.transport, timeout=timeout) as client:
                response = await client.head(url)
            final_url = str(response.url)
        except httpx.HTTPError:
            final_url = url
        return {"url": url, "finalUrl": final_url, "ssl": final_url.startswith("https")}


website_scraper = WebsiteScraper()
