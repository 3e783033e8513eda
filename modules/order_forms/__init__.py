"""
Order Forms Module

Fills manufacturers' fillable PDF order forms with project, part, order
list and item data, driven by per-manufacturer field mappings.
"""

__version__ = "1.0.0"

from modules.order_forms.core.engine import OrderFormEngine

from modules.order_forms.core.types import (
    MappingSource,
    CustomRule,
    PDFFieldType,
    FieldMapping,
    FormMappingConfig,
    PDFFieldDescriptor,
    ExportResult,
    FormAnalysis,
)

from modules.order_forms.core.diagnostics import (
    Diagnostic,
    DiagnosticKind,
    CollectingDiagnosticsSink,
)

from modules.order_forms.mappers.registry import MappingRegistry
from modules.order_forms.mappers.field_mapper import MappingResolver, resolve

__all__ = [
    # Engine
    "OrderFormEngine",
    # Types
    "MappingSource",
    "CustomRule",
    "PDFFieldType",
    "FieldMapping",
    "FormMappingConfig",
    "PDFFieldDescriptor",
    "ExportResult",
    "FormAnalysis",
    # Diagnostics
    "Diagnostic",
    "DiagnosticKind",
    "CollectingDiagnosticsSink",
    # Mapping
    "MappingRegistry",
    "MappingResolver",
    "resolve",
]
