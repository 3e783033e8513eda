"""
Data providers for order form module.
"""

from modules.order_forms.data_providers.pdf_fetcher import PDFFetcher, template_url

__all__ = ["PDFFetcher", "template_url"]
