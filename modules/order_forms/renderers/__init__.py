"""
PDF Renderers for Order Forms Module.

- PDFPreview: paged, zoomable raster preview of the original template
"""

from modules.order_forms.renderers.preview_renderer import PDFPreview, PreviewState

__all__ = ["PDFPreview", "PreviewState"]
