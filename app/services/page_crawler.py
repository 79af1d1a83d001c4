"""Multi-page crawling and per-page scoring."""

import logging
import re
from typing import List, Optional, Tuple
from urllib.parse import urljoin, urlparse

import httpx

from app.schemas.scraped import PageData
from app.services.page_fetcher import FetchedPage, fetch_page

logger = logging.getLogger(__name__)

# Pages worth auditing first when discovered
PRIORITY_PATHS = [
    "/about",
    "/about-us",
    "/pricing",
    "/contact",
    "/contact-us",
    "/services",
    "/products",
    "/features",
    "/blog",
    "/team",
    "/careers",
    "/faq",
]

ASSET_PATTERN = re.compile(r"\.(jpg|jpeg|png|gif|svg|pdf|css|js|ico)$", re.IGNORECASE)
CTA_SELECTOR = 'button, a.btn, a.button, [class*="cta"], [class*="btn-primary"], [role="button"]'


def _origin(url: str) -> str:
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}"


def page_data_from(page: FetchedPage, path: str) -> PageData:
    """Summarize a fetched page."""
    soup = page.soup
    title = soup.title.get_text(strip=True) if soup.title else ""
    meta = soup.find("meta", attrs={"name": "description"})
    h1 = [h.get_text(" ", strip=True) for h in soup.find_all("h1")]

    text_soup = page.fresh_soup()
    for tag in text_soup(["script", "style", "noscript", "svg", "template"]):
        tag.decompose()
    words = (text_soup.body or text_soup).get_text(" ", strip=True).split()

    return PageData(
        url=page.url,
        path=path,
        title=title,
        meta_description=(meta.get("content") or "").strip() if meta else "",
        h1=[h for h in h1 if h],
        load_time=page.load_time,
        word_count=len(words),
        image_count=len(soup.find_all("img")),
        has_form=soup.find("form") is not None,
        has_cta=bool(soup.select(CTA_SELECTOR)),
    )


def resolve_additional_url(origin: str, value: str) -> Tuple[str, str]:
    """Full URL and path for a user-supplied page (URL, /path or bare path)."""
    value = value.strip()
    if value.startswith(("http://", "https://")):
        return value, urlparse(value).path or "/"
    if value.startswith("/"):
        return f"{origin}{value}", value
    return f"{origin}/{value}", f"/{value}"


def discover_links(page: FetchedPage) -> List[str]:
    """Same-origin page paths linked from a page, in document order."""
    origin = _origin(page.final_url)
    seen: List[str] = []
    for anchor in page.soup.find_all("a", href=True):
        href = anchor["href"].strip()
        if href.startswith("http"):
            full = href
        elif href.startswith("/") and not href.startswith("//"):
            full = urljoin(origin, href)
        else:
            continue

        parsed = urlparse(full)
        if f"{parsed.scheme}://{parsed.netloc}" != origin:
            continue
        path = parsed.path
        if path in ("", "/"):
            continue
        if ASSET_PATTERN.search(path) or "wp-admin" in path or "wp-login" in path:
            continue

        clean = path.rstrip("/")
        if clean and clean not in seen:
            seen.append(clean)
    return seen


def sort_by_priority(links: List[str]) -> List[str]:
    """Put well-known pages (about, pricing, contact...) first."""
    prioritized: List[str] = []
    for priority in PRIORITY_PATHS:
        match = next(
            (
                link for link in links
                if link.lower() == priority
                or link.lower().startswith(priority + "/")
                or priority in link.lower()
            ),
            None,
        )
        if match and match not in prioritized:
            prioritized.append(match)
    return prioritized + [link for link in links if link not in prioritized]


async def _scrape_page(client: httpx.AsyncClient, url: str, path: str) -> Optional[PageData]:
    try:
        page = await fetch_page(client, url)
    except httpx.HTTPError as e:
        logger.warning(f"[Pages] Failed to scrape {url}: {e}")
        return None
    if page.status_code >= 400:
        logger.warning(f"[Pages] {url} returned {page.status_code}")
        return None
    return page_data_from(page, path)


async def crawl_pages(
    client: httpx.AsyncClient,
    entry: FetchedPage,
    max_pages: int = 1,
    additional_urls: Optional[List[str]] = None,
) -> List[PageData]:
    """Summaries of the entry page plus up to ``max_pages - 1`` others.

    User-supplied pages are scraped before auto-discovered ones.
    """
    origin = _origin(entry.final_url)
    pages = [page_data_from(entry, "/")]

    for value in additional_urls or []:
        if len(pages) >= max_pages:
            break
        url, path = resolve_additional_url(origin, value)
        page = await _scrape_page(client, url, path)
        if page:
            pages.append(page)

    if len(pages) < max_pages:
        scraped = {p.path.rstrip("/") for p in pages}
        for path in sort_by_priority(discover_links(entry)):
            if len(pages) >= max_pages:
                break
            if path in scraped:
                continue
            logger.info(f"[Pages] Auto-scraping {path}")
            page = await _scrape_page(client, f"{origin}{path}", path)
            if page:
                pages.append(page)
                scraped.add(path)

    return pages


def calculate_page_score(page: PageData) -> int:
    """Score a page from 0-100, weighting load time most heavily."""
    score = 100

    if page.load_time >= 10000:
        score -= 50
    elif page.load_time >= 7000:
        score -= 40
    elif page.load_time >= 5000:
        score -= 30
    elif page.load_time >= 3000:
        score -= 20
    elif page.load_time >= 2000:
        score -= 10

    if not page.title:
        score -= 15
    elif len(page.title) < 30 or len(page.title) > 60:
        score -= 5

    if not page.meta_description:
        score -= 10
    elif len(page.meta_description) < 120 or len(page.meta_description) > 160:
        score -= 3

    if not page.h1:
        score -= 10
    elif len(page.h1) > 1:
        score -= 5

    if page.word_count < 100:
        score -= 10
    elif page.word_count < 300:
        score -= 5

    if not page.has_cta:
        score -= 5

    return min(100, max(0, score))
