"""
AcroForm inspection and filling.
"""

from modules.order_forms.form_filler.field_inspector import (
    extract_form_fields,
    build_mapping_template,
    find_unmapped_fields,
)
from modules.order_forms.form_filler.pdf_form_filler import PDFFormFiller, filled_filename

__all__ = [
    "extract_form_fields",
    "build_mapping_template",
    "find_unmapped_fields",
    "PDFFormFiller",
    "filled_filename",
]
