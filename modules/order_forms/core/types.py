"""
Type definitions for the Order Form module.

This module defines the mapping, introspection and export types used
throughout the order form system.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union


class MappingSource(str, Enum):
    """Domain object a field mapping is read from."""

    PROJECT = "project"
    PART = "part"
    ORDER_LIST = "orderList"
    ITEM = "item"
    CUSTOM = "custom"

    @classmethod
    def parse(cls, value: Any) -> Optional["MappingSource"]:
        """Return the matching member, or None for unknown values."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


class CustomRule(str, Enum):
    """Computed values available to ``custom`` mappings."""

    CURRENT_DATE = "currentDate"
    COMPOSITE_PART_NUMBER = "compositePartNumber"
    COMPOSITE_ORDER_LIST_NUMBER = "compositeOrderListNumber"
    ENGINEER_FORMATTED_ADDRESS = "engineerFormattedAddress"
    ENGINEER_FORMATTED_CITY = "engineerFormattedCity"
    MASONRY_FORMATTED_ADDRESS = "masonryFormattedAddress"
    MASONRY_FORMATTED_CITY = "masonryFormattedCity"
    ARCHITECT_FORMATTED_ADDRESS = "architectFormattedAddress"
    ARCHITECT_FORMATTED_CITY = "architectFormattedCity"
    OWNER_FORMATTED_ADDRESS = "ownerFormattedAddress"
    OWNER_FORMATTED_CITY = "ownerFormattedCity"


class PDFFieldType(str, Enum):
    """Kinds of interactive PDF form fields."""

    TEXT = "text"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    DROPDOWN = "dropdown"
    BUTTON = "button"
    SIGNATURE = "signature"
    UNKNOWN = "unknown"


Transform = Callable[[Any], Any]


@dataclass(frozen=True)
class FieldMapping:
    """
    Mapping configuration for a single PDF field.

    Attributes:
        pdf_field: Name of field in PDF form
        source: Domain object the value comes from. Mappings decoded from
            user-authored JSON may carry an unrecognized source string.
        field: Property name (dot notation) or custom rule name
        transform: Optional callable applied to the raw value
    """
    pdf_field: str
    source: Union[MappingSource, str]
    field: str
    transform: Optional[Transform] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON authoring format."""
        data: Dict[str, Any] = {
            "source": self.source.value if isinstance(self.source, MappingSource) else self.source,
            "field": self.field,
        }
        describe = getattr(self.transform, "to_dict", None)
        if describe is not None:
            data["transform"] = describe()
        return data


FormMappingConfig = Dict[str, FieldMapping]


@dataclass(frozen=True)
class FieldRect:
    """Widget bounding box in PDF user space."""
    x: float
    y: float
    width: float
    height: float


@dataclass
class PDFFieldDescriptor:
    """
    Form field discovered in a PDF.

    Attributes:
        name: Fully qualified field name
        type: Field kind
        value: Current value, if any
        options: Choices for dropdown fields
        required: Required flag
        read_only: Read-only flag
        rect: Widget bounding box
        page: 1-based page number of the widget
    """
    name: str
    type: PDFFieldType
    value: Optional[str] = None
    options: Optional[List[str]] = None
    required: bool = False
    read_only: bool = False
    rect: Optional[FieldRect] = None
    page: Optional[int] = None

    def dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "name": self.name,
            "type": self.type.value,
            "value": self.value,
            "options": self.options,
            "required": self.required,
            "read_only": self.read_only,
            "rect": None if self.rect is None else {
                "x": self.rect.x,
                "y": self.rect.y,
                "width": self.rect.width,
                "height": self.rect.height,
            },
            "page": self.page,
        }


@dataclass
class ExportResult:
    """
    Result of a PDF fill and export operation.

    Attributes:
        content: Bytes of the filled PDF
        filename: Suggested download filename
        filled: PDF fields that received a value
        unsupported: Mapped fields whose PDF kind is not filled
        missing: Mapped fields absent from the PDF form
    """
    content: bytes
    filename: str
    filled: List[str] = field(default_factory=list)
    unsupported: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)

    media_type: str = "application/pdf"


@dataclass
class FormAnalysis:
    """
    Fields discovered in a PDF plus a generated starting mapping.

    Attributes:
        fields: One descriptor per widget
        mapping_template: Guessed mapping, one entry per field name
        unmapped: Names the current mapping expects but the PDF lacks
    """
    fields: List[PDFFieldDescriptor]
    mapping_template: FormMappingConfig
    unmapped: List[str] = field(default_factory=list)
