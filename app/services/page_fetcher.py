"""HTTP fetching shared by the scraper components."""

import logging
import time
from typing import Optional

import httpx
from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; WebCoreAuditBot/1.0; +https://webcoreaudit.com)"
REQUEST_TIMEOUT = 30.0  # seconds


class FetchedPage:
    """An HTML page fetched over HTTP.

    Attributes:
        url: URL that was requested.
        final_url: URL after redirects.
        status_code: HTTP status of the final response.
        html: Response body.
        load_time: Milliseconds from request to full body.
        ssl_error: Certificate error text if verification failed.
    """

    def __init__(
        self,
        url: str,
        final_url: str,
        status_code: int,
        html: str,
        load_time: int,
        ssl_error: Optional[str] = None,
    ):
        self.url = url
        self.final_url = final_url
        self.status_code = status_code
        self.html = html
        self.load_time = load_time
        self.ssl_error = ssl_error
        self._soup: Optional[BeautifulSoup] = None

    @property
    def soup(self) -> BeautifulSoup:
        """Parsed document, built on first access."""
        if self._soup is None:
            self._soup = BeautifulSoup(self.html, "html.parser")
        return self._soup

    def fresh_soup(self) -> BeautifulSoup:
        """A new parse of the document that callers may mutate."""
        return BeautifulSoup(self.html, "html.parser")


def create_client(
    transport: Optional[httpx.AsyncBaseTransport] = None,
    verify: bool = True,
    timeout: float = REQUEST_TIMEOUT,
) -> httpx.AsyncClient:
    """HTTP client configured like a regular browser visit."""
    return httpx.AsyncClient(
        timeout=timeout,
        follow_redirects=True,
        verify=verify,
        transport=transport,
        headers={
            "User-Agent": USER_AGENT,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        },
    )


def _is_certificate_error(error: Exception) -> bool:
    message = str(error).lower()
    return "certificate" in message or "ssl" in message


async def fetch_page(client: httpx.AsyncClient, url: str) -> FetchedPage:
    """GET a page and time it.

    Raises:
        httpx.HTTPError: On network failure.
    """
    start = time.monotonic()
    response = await client.get(url)
    load_time = int((time.monotonic() - start) * 1000)
    return FetchedPage(
        url=url,
        final_url=str(response.url),
        status_code=response.status_code,
        html=response.text,
        load_time=load_time,
    )


async def fetch_entry_page(
    client: httpx.AsyncClient,
    url: str,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FetchedPage:
    """Fetch the page an audit starts from.

    A certificate failure is recorded on the page and the fetch is
    repeated without verification so the audit can still report on it.
    """
    try:
        return await fetch_page(client, url)
    except httpx.ConnectError as e:
        if not _is_certificate_error(e):
            raise
        logger.warning(f"[Scraper] Certificate problem for {url}: {e}")
        async with create_client(transport=transport, verify=False) as insecure:
            page = await fetch_page(insecure, url)
        page.ssl_error = str(e)
        return page


async def fetch_text(client: httpx.AsyncClient, url: str) -> Optional[str]:
    """Body of a successful GET, None on any failure."""
    try:
        response = await client.get(url)
    except httpx.HTTPError:
        return None
    if response.status_code >= 400:
        return None
    return response.text
