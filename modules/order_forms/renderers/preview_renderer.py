"""
On-screen preview of PDF templates.

Rasterizes pages of the original (unfilled) PDF with pdfplumber. The
preview is a small state machine:

    idle -> loading -> ready | error

Page navigation and zoom redraw a single page, passing through loading
again. A failing page is recorded on its own and leaves the document and
earlier renders intact.
"""

from enum import Enum
from io import BytesIO
from typing import Dict, Optional
import logging

import pdfplumber
from PIL import Image

from modules.order_forms.core.exceptions import PageRenderError, PDFFetchError, PDFParseError
from modules.order_forms.data_providers.pdf_fetcher import PDFFetcher
from shared.utils.config import settings

logger = logging.getLogger(__name__)

POINTS_PER_INCH = 72


class PreviewState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class PDFPreview:
    """
    Paged, zoomable raster preview of one PDF.

    Example:
        >>> preview = PDFPreview()
        >>> preview.load_bytes(pdf_bytes)
        >>> image = preview.render_page(1, scale=1.0)
        >>> preview.next_page()
        >>> preview.zoom_in()
        >>> await preview.aclose()
    """

    def __init__(
        self,
        fetcher: Optional[PDFFetcher] = None,
        min_scale: Optional[float] = None,
        max_scale: Optional[float] = None,
        scale_step: Optional[float] = None
    ):
        self.fetcher = fetcher
        self._owns_fetcher = fetcher is None
        self.min_scale = min_scale or settings.PREVIEW_MIN_SCALE
        self.max_scale = max_scale or settings.PREVIEW_MAX_SCALE
        self.scale_step = scale_step or settings.PREVIEW_SCALE_STEP

        self.state = PreviewState.IDLE
        self.error: Optional[str] = None
        self.url: Optional[str] = None
        self.current_page = 1
        self.total_pages = 0
        self.scale = 1.0

        # Last successful render and last failure, per page number
        self.renders: Dict[int, Image.Image] = {}
        self.page_errors: Dict[int, str] = {}

        self._document = None
        # Bumped by every load and by close(); stale loads compare against it
        self._generation = 0

    # ==========================================================================
    # LOADING
    # ==========================================================================

    async def load_url(self, url: str) -> bool:
        """
        Fetch and open a PDF.

        Returns:
            True if the document was loaded, False if the result was
            discarded because another load started or the preview closed

        Raises:
            PDFFetchError: If the PDF cannot be retrieved
            PDFParseError: If the PDF cannot be parsed
        """
        self._generation += 1
        generation = self._generation
        self.url = url
        self.state = PreviewState.LOADING
        self.error = None

        if self.fetcher is None:
            self.fetcher = PDFFetcher()

        try:
            pdf_bytes = await self.fetcher.fetch(url)
        except PDFFetchError:
            if generation != self._generation:
                logger.debug(f"Discarding failed stale load of {url}")
                return False
            self._fail(
                "Failed to load PDF file. Please ensure the form template "
                "exists for this product type."
            )
            raise

        if generation != self._generation:
            logger.debug(f"Discarding stale load of {url}")
            return False

        self._open(pdf_bytes)
        return True

    def load_bytes(self, pdf_bytes: bytes) -> None:
        """
        Open a PDF from bytes.

        Raises:
            PDFParseError: If the PDF cannot be parsed
        """
        self._generation += 1
        self.state = PreviewState.LOADING
        self.error = None
        self._open(pdf_bytes)

    def _open(self, pdf_bytes: bytes) -> None:
        try:
            document = pdfplumber.open(BytesIO(pdf_bytes))
            total_pages = len(document.pages)
        except Exception as e:
            self._fail(f"Failed to parse PDF: {e}")
            raise PDFParseError(f"Failed to parse PDF: {e}") from e

        self._close_document()
        self._document = document
        self.total_pages = total_pages
        self.current_page = 1
        self.renders = {}
        self.page_errors = {}
        self.state = PreviewState.READY
        logger.info(f"Preview loaded: {total_pages} pages")

    def _fail(self, message: str) -> None:
        logger.error(message)
        self.state = PreviewState.ERROR
        self.error = message

    # ==========================================================================
    # RENDERING
    # ==========================================================================

    def render_page(self, page_number: Optional[int] = None, scale: Optional[float] = None) -> Image.Image:
        """
        Rasterize one page.

        Args:
            page_number: 1-based page (defaults to the current page)
            scale: Zoom factor, 1.0 = 72 dpi (defaults to the current scale)

        Returns:
            PIL image of the page

        Raises:
            PageRenderError: If the page cannot be rendered
            RuntimeError: If no document is loaded
        """
        if self._document is None or self.state not in (PreviewState.READY, PreviewState.LOADING):
            raise RuntimeError(f"No document loaded (state: {self.state.value})")

        page_number = self.current_page if page_number is None else page_number
        scale = self.scale if scale is None else scale

        self.state = PreviewState.LOADING
        try:
            if not 1 <= page_number <= self.total_pages:
                raise IndexError(f"page out of range 1..{self.total_pages}")

            page = self._document.pages[page_number - 1]
            image = page.to_image(resolution=POINTS_PER_INCH * scale).original
        except Exception as e:
            self.page_errors[page_number] = str(e)
            self.state = PreviewState.READY
            logger.error(f"Error rendering page {page_number}: {e}")
            raise PageRenderError(page_number, str(e)) from e

        self.current_page = page_number
        self.scale = scale
        self.renders[page_number] = image
        self.page_errors.pop(page_number, None)
        self.state = PreviewState.READY
        return image

    # ==========================================================================
    # NAVIGATION
    # ==========================================================================

    def next_page(self) -> Image.Image:
        return self.render_page(min(self.current_page + 1, self.total_pages))

    def previous_page(self) -> Image.Image:
        return self.render_page(max(self.current_page - 1, 1))

    def zoom_in(self) -> Image.Image:
        return self.render_page(scale=min(round(self.scale + self.scale_step, 2), self.max_scale))

    def zoom_out(self) -> Image.Image:
        return self.render_page(scale=max(round(self.scale - self.scale_step, 2), self.min_scale))

    # ==========================================================================
    # TEARDOWN
    # ==========================================================================

    def _close_document(self) -> None:
        if self._document is not None:
            self._document.close()
            self._document = None

    def close(self) -> None:
        """Release the document; in-flight loads are discarded."""
        self._generation += 1
        self._close_document()
        self.state = PreviewState.IDLE
        self.total_pages = 0
        self.current_page = 1
        self.renders = {}
        self.page_errors = {}

    async def aclose(self) -> None:
        """Close the preview and the HTTP client it created for itself."""
        self.close()
        if self._owns_fetcher and self.fetcher is not None:
            await self.fetcher.close()
            self.fetcher = None

    async def __aenter__(self) -> "PDFPreview":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
