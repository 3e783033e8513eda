"""
Retrieval of original PDF templates over HTTP.
"""

import re
from typing import Optional

import httpx

from modules.order_forms.core.exceptions import PDFFetchError
from shared.utils.config import settings
from shared.utils.logger import setup_logger

logger = setup_logger(__name__)


def template_url(manufacturer: str, product_type: str, base_url: Optional[str] = None) -> str:
    """
    Build the URL of a manufacturer's order form template.

    Names are upper-cased with whitespace runs replaced by hyphens.

    Example:
        >>> template_url("Hilti", "HIT Elements", "https://cdn.example.com")
        'https://cdn.example.com/HILTI-HIT-ELEMENTS.pdf'
    """
    base = (base_url or settings.template_base_url).rstrip("/")
    manufacturer_part = re.sub(r"\s+", "-", manufacturer.strip().upper())
    product_part = re.sub(r"\s+", "-", product_type.strip().upper())
    return f"{base}/{manufacturer_part}-{product_part}.pdf"


class PDFFetcher:
    """
    Download PDF bytes.

    Usable as an async context manager; otherwise call ``close()``.

    Example:
        >>> async with PDFFetcher() as fetcher:
        ...     pdf_bytes = await fetcher.fetch(url)
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None
    ):
        """
        Initialize fetcher.

        Args:
            client: Preconfigured client (e.g. with a mock transport)
            timeout: Request timeout in seconds (defaults to
                settings.PDF_FETCH_TIMEOUT, then to the httpx default)
        """
        timeout = timeout if timeout is not None else settings.PDF_FETCH_TIMEOUT
        if client is not None:
            self.client = client
        elif timeout is not None:
            self.client = httpx.AsyncClient(timeout=httpx.Timeout(timeout), follow_redirects=True)
        else:
            self.client = httpx.AsyncClient(follow_redirects=True)
        self._owns_client = client is None

    async def fetch(self, url: str) -> bytes:
        """
        Fetch a PDF.

        Args:
            url: Absolute URL of the PDF

        Returns:
            Response body

        Raises:
            PDFFetchError: On transport errors or non-success status codes
        """
        try:
            logger.info(f"Fetching PDF: {url}")
            response = await self.client.get(url)
        except httpx.TimeoutException as e:
            logger.error(f"PDF fetch timeout: {e}")
            raise PDFFetchError(url, f"request timed out: {e}") from e
        except httpx.HTTPError as e:
            logger.error(f"PDF fetch HTTP error: {e}")
            raise PDFFetchError(url, str(e)) from e

        if response.is_error:
            raise PDFFetchError(
                url,
                f"{response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )

        content_type = response.headers.get("content-type", "")
        if "pdf" not in content_type.lower():
            logger.warning(f"Unexpected content type for {url}: {content_type or 'none'}")

        logger.debug(f"Fetched {len(response.content)} bytes from {url}")
        return response.content

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "PDFFetcher":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
