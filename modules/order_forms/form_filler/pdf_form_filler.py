"""
PDF Form Filler - AcroForm field population.

Fills the text fields of a manufacturer's fillable order form using pypdf
and returns the filled document as bytes with a download filename.
"""

from io import BytesIO
from pathlib import PurePosixPath
from typing import Dict, List, Optional, Tuple
from urllib.parse import unquote, urlparse
import logging

from pypdf import PageObject, PdfReader, PdfWriter
from pypdf.generic import BooleanObject, NameObject
from reportlab.lib.colors import black
from reportlab.pdfgen import canvas

from modules.order_forms.core.diagnostics import (
    Diagnostic,
    DiagnosticKind,
    DiagnosticsSink,
    default_sink,
)
from modules.order_forms.core.exceptions import ExportIOError, PDFParseError
from modules.order_forms.core.types import ExportResult, PDFFieldDescriptor, PDFFieldType
from modules.order_forms.form_filler.field_inspector import (
    describe_widget,
    extract_reader_fields,
    open_pdf,
)
from shared.utils.config import settings

logger = logging.getLogger(__name__)

DEFAULT_DOCUMENT_NAME = "document.pdf"


def filled_filename(source: Optional[str], prefix: Optional[str] = None) -> str:
    """
    Derive the download filename from the original PDF's URL or path.

    Example:
        >>> filled_filename("https://cdn.example.com/forms/HILTI-HIT%20Elements.pdf")
        'filled-HILTI-HIT Elements.pdf'
    """
    prefix = settings.FILLED_FILENAME_PREFIX if prefix is None else prefix

    basename = ""
    if source:
        path = urlparse(source).path if "://" in source else source
        basename = PurePosixPath(unquote(path).replace("\\", "/")).name

    if not basename:
        basename = DEFAULT_DOCUMENT_NAME
    elif not basename.lower().endswith(".pdf"):
        basename = f"{basename}.pdf"

    return f"{prefix}{basename}"


class PDFFormFiller:
    """
    Fill AcroForm fields in fillable PDF forms.

    Only text fields are written. Other field kinds are reported as
    unsupported and left untouched; names missing from the form are
    reported and skipped.

    Example:
        >>> filler = PDFFormFiller()
        >>> result = await filler.fill_and_export(
        ...     original_pdf_bytes=pdf_bytes,
        ...     resolved_fields={"projectName": "Tower A"},
        ...     source_name="https://cdn.example.com/HILTI-HIT-ELEMENTS.pdf",
        ... )
        >>> result.filename
        'filled-HILTI-HIT-ELEMENTS.pdf'
    """

    def __init__(
        self,
        diagnostics: Optional[DiagnosticsSink] = None,
        filename_prefix: Optional[str] = None
    ):
        """
        Initialize PDF form filler.

        Args:
            diagnostics: Sink for per-field events (defaults to logging)
            filename_prefix: Prefix of output filenames (defaults to settings)
        """
        self.diagnostics = diagnostics or default_sink()
        self.filename_prefix = filename_prefix

    async def fill_and_export(
        self,
        original_pdf_bytes: bytes,
        resolved_fields: Dict[str, str],
        source_name: Optional[str] = None,
        flatten: Optional[bool] = None
    ) -> ExportResult:
        """
        Fill PDF form fields with resolved values.

        Args:
            original_pdf_bytes: Blank fillable PDF
            resolved_fields: {pdf_field_name: value}
            source_name: URL or path of the original PDF, for the filename
            flatten: Bake values into page content and drop the form
                (defaults to settings.FLATTEN_BY_DEFAULT)

        Returns:
            ExportResult with the filled bytes and a download filename

        Raises:
            PDFParseError: If the original PDF cannot be parsed
            ExportIOError: If the filled PDF cannot be written
        """
        flatten = settings.FLATTEN_BY_DEFAULT if flatten is None else flatten

        logger.info(f"Filling form: source={source_name}, fields={len(resolved_fields)}")

        reader = open_pdf(original_pdf_bytes)
        form_fields = self._get_form_fields(extract_reader_fields(reader))
        logger.info(f"Found {len(form_fields)} form fields in PDF")

        text_values, result = self._partition(resolved_fields, form_fields)

        try:
            writer = PdfWriter(clone_from=reader)
        except Exception as e:
            raise PDFParseError(f"Failed to load PDF form: {e}") from e

        try:
            if flatten:
                # Bake every text field, keeping current values of unmapped ones
                values = {
                    name: descriptor.value or ""
                    for name, descriptor in form_fields.items()
                    if descriptor.type == PDFFieldType.TEXT
                }
                values.update(text_values)
                self._fill_fields(writer, values, flatten=True)
                self._flatten_form(writer)
            elif text_values:
                self._fill_fields(writer, text_values)
                self._set_need_appearances(writer)
        except Exception as e:
            raise ExportIOError(f"Failed to fill PDF form: {e}") from e

        result.content = self._save(writer)
        result.filename = filled_filename(source_name, self.filename_prefix)

        logger.info(
            f"Filled {len(result.filled)}/{len(resolved_fields)} fields "
            f"({len(result.missing)} missing, {len(result.unsupported)} unsupported)"
        )
        return result

    def _get_form_fields(self, fields: List[PDFFieldDescriptor]) -> Dict[str, PDFFieldDescriptor]:
        """
        Index discovered fields by name.

        Returns:
            Dictionary of {field_name: first widget descriptor}
        """
        form_fields: Dict[str, PDFFieldDescriptor] = {}
        for descriptor in fields:
            form_fields.setdefault(descriptor.name, descriptor)
        return form_fields

    def _partition(
        self,
        resolved_fields: Dict[str, str],
        form_fields: Dict[str, PDFFieldDescriptor]
    ) -> Tuple[Dict[str, str], ExportResult]:
        """Split resolved values into fillable text values and reported leftovers."""
        text_values: Dict[str, str] = {}
        result = ExportResult(content=b"", filename="")

        for field_name, value in resolved_fields.items():
            descriptor = form_fields.get(field_name)

            if descriptor is None:
                result.missing.append(field_name)
                self.diagnostics(Diagnostic(
                    kind=DiagnosticKind.PDF_FIELD_NOT_FOUND,
                    message=f"✗ Field '{field_name}' not in PDF",
                    field=field_name,
                ))
                continue

            if descriptor.type != PDFFieldType.TEXT:
                result.unsupported.append(field_name)
                self.diagnostics(Diagnostic(
                    kind=DiagnosticKind.UNSUPPORTED_FIELD_TYPE,
                    message=f"Field '{field_name}' is a {descriptor.type.value} field; only text fields are filled",
                    field=field_name,
                ))
                continue

            text_values[field_name] = "" if value is None else str(value)
            result.filled.append(field_name)
            logger.debug(f"✓ Filled: {field_name} = {text_values[field_name][:50]}")

        return text_values, result

    def _fill_fields(self, writer: PdfWriter, values: Dict[str, str], flatten: bool = False) -> None:
        """Write values into the widgets of every page that has annotations."""
        for page in writer.pages:
            if "/Annots" not in page:
                continue
            if flatten:
                writer.update_page_form_field_values(page, values, auto_regenerate=False, flatten=True)
            else:
                writer.update_page_form_field_values(page, values, auto_regenerate=False)

    def _set_need_appearances(self, writer: PdfWriter) -> None:
        """Ask viewers to regenerate field appearances from the new values."""
        if "/AcroForm" in writer._root_object:
            acro_form = writer._root_object["/AcroForm"]
            acro_form.update({
                NameObject("/NeedAppearances"): BooleanObject(True)
            })

    def _flatten_form(self, writer: PdfWriter) -> None:
        """
        Remove the interactive form after values were baked into the pages.

        Checkbox, radio and dropdown states are drawn onto their pages
        first so they survive the removal of the widgets.

        Args:
            writer: PdfWriter instance
        """
        for page_number, page in enumerate(writer.pages, start=1):
            overlay = self._create_state_overlay(page, page_number)
            if overlay is not None:
                page.merge_page(PdfReader(overlay).pages[0])

        writer.remove_annotations(subtypes="/Widget")
        if "/AcroForm" in writer._root_object:
            del writer._root_object["/AcroForm"]
        logger.info("Form flattened successfully")

    def _create_state_overlay(self, page: PageObject, page_number: int) -> Optional[BytesIO]:
        """
        Draw the current state of the page's non-text widgets.

        Returns:
            Single-page overlay PDF, or None if there is nothing to draw
        """
        annotations = page.get("/Annots")
        if annotations is None:
            return None

        width = float(page.mediabox.width)
        height = float(page.mediabox.height)
        buffer = BytesIO()
        c = canvas.Canvas(buffer, pagesize=(width, height))

        drawn = 0
        for ref in annotations.get_object():
            annotation = ref.get_object()
            if annotation.get("/Subtype") != "/Widget":
                continue

            descriptor = describe_widget(page_number, annotation, drawn)
            rect = descriptor.rect
            if rect is None:
                continue

            if descriptor.type == PDFFieldType.DROPDOWN and descriptor.value:
                font_size = max(6, min(12, rect.height * 0.6))
                c.setFont("Helvetica", font_size)
                c.setFillColor(black)
                c.drawString(rect.x + 2, rect.y + (rect.height - font_size) / 2 + 1, descriptor.value)
                drawn += 1
            elif descriptor.type in (PDFFieldType.CHECKBOX, PDFFieldType.RADIO):
                state = annotation.get("/AS")
                if state is None or state == "/Off":
                    continue
                c.setStrokeColor(black)
                c.setFillColor(black)
                if descriptor.type == PDFFieldType.RADIO:
                    radius = min(rect.width, rect.height) / 4
                    c.circle(rect.x + rect.width / 2, rect.y + rect.height / 2, radius, stroke=0, fill=1)
                else:
                    c.setLineWidth(max(1, rect.height * 0.12))
                    c.line(rect.x + 2, rect.y + 2, rect.x + rect.width - 2, rect.y + rect.height - 2)
                    c.line(rect.x + 2, rect.y + rect.height - 2, rect.x + rect.width - 2, rect.y + 2)
                drawn += 1

        if not drawn:
            return None

        c.save()
        buffer.seek(0)
        logger.debug(f"Baked {drawn} widget states on page {page_number}")
        return buffer

    def _save(self, writer: PdfWriter) -> bytes:
        """
        Serialize the filled document.

        Raises:
            ExportIOError: If writing fails; no partial bytes are returned
        """
        buffer = BytesIO()
        try:
            writer.write(buffer)
        except Exception as e:
            logger.error(f"Saving filled PDF failed: {e}", exc_info=True)
            raise ExportIOError(f"Failed to save filled PDF: {e}") from e
        return buffer.getvalue()
