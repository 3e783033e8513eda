"""
Core components for order form module.
"""

from modules.order_forms.core.types import (
    MappingSource,
    CustomRule,
    PDFFieldType,
    FieldMapping,
    FormMappingConfig,
    FieldRect,
    PDFFieldDescriptor,
    ExportResult,
    FormAnalysis,
)

from modules.order_forms.core.diagnostics import (
    Diagnostic,
    DiagnosticKind,
    DiagnosticsSink,
    LoggingDiagnosticsSink,
    CollectingDiagnosticsSink,
)

from modules.order_forms.core.exceptions import (
    OrderFormException,
    MappingException,
    MappingValidationError,
    MappingParseError,
    FieldResolutionError,
    TransformError,
    PDFException,
    PDFFetchError,
    PDFParseError,
    ExportIOError,
    PageRenderError,
)

__all__ = [
    # Types
    "MappingSource",
    "CustomRule",
    "PDFFieldType",
    "FieldMapping",
    "FormMappingConfig",
    "FieldRect",
    "PDFFieldDescriptor",
    "ExportResult",
    "FormAnalysis",
    # Diagnostics
    "Diagnostic",
    "DiagnosticKind",
    "DiagnosticsSink",
    "LoggingDiagnosticsSink",
    "CollectingDiagnosticsSink",
    # Exceptions
    "OrderFormException",
    "MappingException",
    "MappingValidationError",
    "MappingParseError",
    "FieldResolutionError",
    "TransformError",
    "PDFException",
    "PDFFetchError",
    "PDFParseError",
    "ExportIOError",
    "PageRenderError",
]
