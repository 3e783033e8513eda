"""
Custom exceptions for the order form module.
"""


class OrderFormException(Exception):
    """Base exception for order form module."""
    pass


# ==============================================================================
# MAPPING ERRORS
# ==============================================================================

class MappingException(OrderFormException):
    """Exception raised by the mapping layer."""
    pass


class MappingValidationError(MappingException):
    """Exception raised when a registry entry is not a valid field mapping."""
    pass


class MappingParseError(MappingException):
    """Exception raised when a persisted field mapping cannot be decoded."""
    pass


class FieldResolutionError(MappingException):
    """Exception raised when a single PDF field value cannot be computed."""

    def __init__(self, pdf_field: str, message: str):
        super().__init__(f"{pdf_field}: {message}")
        self.pdf_field = pdf_field


class TransformError(MappingException):
    """Exception raised when a declared transform fails."""

    def __init__(self, pdf_field: str, message: str):
        super().__init__(f"{pdf_field}: {message}")
        self.pdf_field = pdf_field


# ==============================================================================
# DOCUMENT ERRORS
# ==============================================================================

class PDFException(OrderFormException):
    """Exception raised for document-level failures."""
    pass


class PDFFetchError(PDFException):
    """Exception raised when the original PDF cannot be retrieved."""

    def __init__(self, url: str, message: str, status_code: int | None = None):
        super().__init__(f"Failed to fetch PDF from {url}: {message}")
        self.url = url
        self.status_code = status_code


class PDFParseError(PDFException):
    """Exception raised when PDF bytes cannot be parsed."""
    pass


class ExportIOError(PDFException):
    """Exception raised when the filled PDF cannot be written."""
    pass


class PageRenderError(PDFException):
    """Exception raised when a single preview page fails to render."""

    def __init__(self, page_number: int, message: str):
        super().__init__(f"Page {page_number}: {message}")
        self.page_number = page_number
