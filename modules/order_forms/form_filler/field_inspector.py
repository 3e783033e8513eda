"""
PDF form field introspection.

Discovers the interactive fields of a fillable PDF (names, kinds, flags,
options, geometry) and proposes a starting field mapping from their names.
"""

from io import BytesIO
from typing import Any, Iterator, List, Optional, Tuple
import logging
import re

from pypdf import PdfReader
from pypdf.generic import ArrayObject, DictionaryObject

from modules.order_forms.core.exceptions import PDFParseError
from modules.order_forms.core.types import (
    CustomRule,
    FieldMapping,
    FieldRect,
    FormMappingConfig,
    MappingSource,
    PDFFieldDescriptor,
    PDFFieldType,
)

logger = logging.getLogger(__name__)

# Field flag bits (PDF 32000-1, 12.7.3.1 and 12.7.4)
FF_READ_ONLY = 1 << 0
FF_REQUIRED = 1 << 1
FF_RADIO = 1 << 15
FF_PUSHBUTTON = 1 << 16

_FIELD_TYPES = {
    "/Tx": PDFFieldType.TEXT,
    "/Ch": PDFFieldType.DROPDOWN,
    "/Sig": PDFFieldType.SIGNATURE,
}


def open_pdf(pdf_bytes: bytes) -> PdfReader:
    """
    Parse PDF bytes.

    Raises:
        PDFParseError: If the bytes are not a readable PDF
    """
    try:
        reader = PdfReader(BytesIO(pdf_bytes))
        # Force the page tree to load so broken documents fail here
        len(reader.pages)
        return reader
    except Exception as e:
        raise PDFParseError(f"Failed to parse PDF: {e}") from e


def _inherited(node: DictionaryObject, key: str) -> Any:
    """Value of an inheritable field attribute, walking /Parent."""
    while node is not None:
        if key in node:
            return node[key]
        node = node["/Parent"] if "/Parent" in node else None
    return None


def qualified_field_name(annotation: DictionaryObject) -> Optional[str]:
    """Walk the /Parent chain to build a dotted field name."""
    parts = []
    node = annotation
    while node is not None:
        if "/T" in node and node["/T"]:
            parts.append(str(node["/T"]))
        node = node["/Parent"] if "/Parent" in node else None
    return ".".join(reversed(parts)) if parts else None


def classify_field(field_type: Any, flags: int) -> PDFFieldType:
    """Map a /FT value and /Ff flags onto PDFFieldType."""
    if field_type == "/Btn":
        if flags & FF_PUSHBUTTON:
            return PDFFieldType.BUTTON
        if flags & FF_RADIO:
            return PDFFieldType.RADIO
        return PDFFieldType.CHECKBOX
    return _FIELD_TYPES.get(str(field_type) if field_type is not None else None, PDFFieldType.UNKNOWN)


def _options(opt: Any) -> List[str]:
    """Display values of a /Opt array (plain strings or [export, display] pairs)."""
    options = []
    for entry in opt.get_object() if opt is not None else []:
        entry = entry.get_object()
        if isinstance(entry, ArrayObject) and len(entry) == 2:
            options.append(str(entry[1]))
        else:
            options.append(str(entry))
    return options


def _rect(annotation: DictionaryObject) -> Optional[FieldRect]:
    rect = annotation.get("/Rect")
    if rect is None:
        return None
    x1, y1, x2, y2 = (float(v) for v in rect.get_object())
    return FieldRect(
        x=min(x1, x2),
        y=min(y1, y2),
        width=abs(x2 - x1),
        height=abs(y2 - y1),
    )


def _value(raw: Any) -> Optional[str]:
    if raw is None:
        return None
    raw = raw.get_object()
    if isinstance(raw, ArrayObject):
        return ", ".join(str(v) for v in raw)
    text = str(raw)
    return text[1:] if text.startswith("/") else text


def iter_widgets(reader: PdfReader) -> Iterator[Tuple[int, DictionaryObject]]:
    """Yield (1-based page number, widget annotation) for every page."""
    for page_number, page in enumerate(reader.pages, start=1):
        annotations = page.get("/Annots")
        if annotations is None:
            continue
        for ref in annotations.get_object():
            annotation = ref.get_object()
            if annotation.get("/Subtype") == "/Widget":
                yield page_number, annotation


def describe_widget(page_number: int, annotation: DictionaryObject, index: int) -> PDFFieldDescriptor:
    """Build the descriptor of one widget annotation."""
    flags = int(_inherited(annotation, "/Ff") or 0)
    field_type = classify_field(_inherited(annotation, "/FT"), flags)

    descriptor = PDFFieldDescriptor(
        name=qualified_field_name(annotation) or f"unknown_field_{index}",
        type=field_type,
        value=_value(_inherited(annotation, "/V")),
        required=bool(flags & FF_REQUIRED),
        read_only=bool(flags & FF_READ_ONLY),
        rect=_rect(annotation),
        page=page_number,
    )

    if field_type == PDFFieldType.DROPDOWN:
        descriptor.options = _options(_inherited(annotation, "/Opt"))

    return descriptor


def extract_form_fields(pdf_bytes: bytes) -> List[PDFFieldDescriptor]:
    """
    Extract form field information from PDF bytes.

    One descriptor is produced per widget annotation, in page order.

    Args:
        pdf_bytes: Raw PDF document

    Returns:
        List of field descriptors (empty for PDFs without a form)

    Raises:
        PDFParseError: If the document cannot be parsed
    """
    reader = open_pdf(pdf_bytes)
    return extract_reader_fields(reader)


def extract_reader_fields(reader: PdfReader) -> List[PDFFieldDescriptor]:
    """Extract field descriptors from an already opened document."""
    try:
        fields: List[PDFFieldDescriptor] = []
        for page_number, annotation in iter_widgets(reader):
            fields.append(describe_widget(page_number, annotation, len(fields)))
    except Exception as e:
        raise PDFParseError(f"Failed to read form fields: {e}") from e

    logger.info(f"Found {len(fields)} form fields in PDF")
    return fields


# ==============================================================================
# MAPPING TEMPLATE
# ==============================================================================

def _guess(lower_name: str, candidates: List[Tuple[str, str]], default: str) -> str:
    for keyword, field in candidates:
        if keyword in lower_name:
            return field
    return default


def guess_field_mapping(pdf_field: str) -> FieldMapping:
    """
    Guess source and field for a PDF field from keywords in its name.

    Best effort only: results usually need manual correction.
    """
    lower_name = pdf_field.lower()

    if "project" in lower_name:
        source = MappingSource.PROJECT
        field = _guess(lower_name, [
            ("name", "name"),
            ("number", "projectNumber"),
            ("address", "address"),
            ("manager", "projectManager"),
            ("designer", "designer"),
        ], "name")
    elif "part" in lower_name:
        source = MappingSource.PART
        field = _guess(lower_name, [
            ("name", "name"),
            ("number", "partNumber"),
        ], "name")
    elif "list" in lower_name or "order" in lower_name:
        source = MappingSource.ORDER_LIST
        field = _guess(lower_name, [
            ("name", "name"),
            ("number", "listNumber"),
            ("manufacturer", "manufacturer"),
            ("type", "type"),
        ], "name")
    elif "date" in lower_name:
        source = MappingSource.CUSTOM
        field = CustomRule.CURRENT_DATE.value
    else:
        source = MappingSource.CUSTOM
        field = re.sub(r"[^a-zA-Z0-9]", "_", pdf_field).lower()

    return FieldMapping(pdf_field=pdf_field, source=source, field=field)


def build_mapping_template(fields: List[PDFFieldDescriptor]) -> FormMappingConfig:
    """
    Create a starting mapping from discovered PDF fields.

    Args:
        fields: Output of extract_form_fields

    Returns:
        One guessed mapping per distinct field name
    """
    template: FormMappingConfig = {}
    for descriptor in fields:
        template[descriptor.name] = guess_field_mapping(descriptor.name)
    return template


def find_unmapped_fields(config: FormMappingConfig, fields: List[PDFFieldDescriptor]) -> List[str]:
    """
    Mapped PDF field names that do not exist in the form.

    Args:
        config: Field mapping config
        fields: Fields discovered in the target PDF

    Returns:
        Sorted list of missing PDF field names
    """
    known = {descriptor.name for descriptor in fields}
    return sorted(name for name in config if name not in known)
