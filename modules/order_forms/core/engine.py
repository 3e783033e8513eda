"""
Order Form Engine.

Main orchestrator for the order form module. Coordinates mapping lookup,
value resolution, PDF retrieval and form filling.
"""

from typing import Any, Dict, List, Optional

from modules.order_forms.core.diagnostics import DiagnosticsSink, default_sink
from modules.order_forms.core.models import PdfTemplate
from modules.order_forms.core.types import ExportResult, FormAnalysis, FormMappingConfig
from modules.order_forms.data_providers.pdf_fetcher import PDFFetcher, template_url
from modules.order_forms.form_filler.field_inspector import (
    build_mapping_template,
    extract_form_fields,
    find_unmapped_fields,
)
from modules.order_forms.form_filler.pdf_form_filler import PDFFormFiller
from modules.order_forms.mappers.context import get_nested_value
from modules.order_forms.mappers.field_mapper import MappingResolver
from modules.order_forms.mappers.mapping_loader import parse_field_mapping
from modules.order_forms.mappers.registry import MappingRegistry
from shared.utils.logger import setup_logger

logger = setup_logger(__name__)


class OrderFormEngine:
    """
    Order Form Engine.

    Orchestrates the complete order form workflow:
    1. Pick the field mapping (template mapping or registry entry)
    2. Resolve it against project, part, order list and items
    3. Fetch the manufacturer's fillable PDF
    4. Fill its text fields and return the download

    Example:
        >>> engine = OrderFormEngine()
        >>> result = await engine.export(
        ...     project=project, part=part, order_list=order_list, items=items
        ... )
        >>> print(f"Generated: {result.filename}")
    """

    def __init__(
        self,
        registry: Optional[MappingRegistry] = None,
        resolver: Optional[MappingResolver] = None,
        fetcher: Optional[PDFFetcher] = None,
        filler: Optional[PDFFormFiller] = None,
        diagnostics: Optional[DiagnosticsSink] = None
    ):
        """
        Initialize order form engine.

        Args:
            registry: Mapping registry (defaults to the built-in mappings)
            resolver: Mapping resolver
            fetcher: PDF fetcher
            filler: PDF form filler
            diagnostics: Sink shared by the default components
        """
        self.diagnostics = diagnostics or default_sink()
        self.registry = registry or MappingRegistry.builtin(diagnostics=self.diagnostics)
        self.resolver = resolver or MappingResolver(diagnostics=self.diagnostics)
        self.filler = filler or PDFFormFiller(diagnostics=self.diagnostics)
        self._fetcher = fetcher

        logger.info("OrderFormEngine initialized successfully")

    @property
    def fetcher(self) -> PDFFetcher:
        """Lazy-load PDF fetcher."""
        if self._fetcher is None:
            self._fetcher = PDFFetcher()
        return self._fetcher

    def mapping_for(
        self,
        order_list: Any,
        template: Optional[PdfTemplate] = None
    ) -> FormMappingConfig:
        """
        Pick the field mapping for an order list.

        A non-empty mapping stored on the template wins; otherwise the
        registry entry for the order list's manufacturer and type is used.
        """
        if template is not None and template.field_mapping:
            stored = parse_field_mapping(template.field_mapping, diagnostics=self.diagnostics)
            if stored:
                logger.debug(f"Using stored mapping of template {template.id}")
                return stored

        manufacturer = get_nested_value(order_list, "manufacturer")
        product_type = get_nested_value(order_list, "type")
        return self.registry.get_mapping(manufacturer, product_type)

    def resolve(
        self,
        project: Any = None,
        part: Any = None,
        order_list: Any = None,
        items: Optional[List[Any]] = None,
        template: Optional[PdfTemplate] = None
    ) -> Dict[str, str]:
        """Resolve the order list's mapping into PDF field values."""
        config = self.mapping_for(order_list, template)
        return self.resolver.resolve(config, project, part, order_list, items)

    def pdf_url_for(self, order_list: Any, template: Optional[PdfTemplate] = None) -> str:
        """Template URL if set, otherwise the conventional CDN location."""
        if template is not None and template.pdf_url:
            return template.pdf_url
        manufacturer = get_nested_value(order_list, "manufacturer")
        product_type = get_nested_value(order_list, "type")
        return template_url(manufacturer or "", product_type or "")

    async def export(
        self,
        project: Any = None,
        part: Any = None,
        order_list: Any = None,
        items: Optional[List[Any]] = None,
        template: Optional[PdfTemplate] = None,
        pdf_url: Optional[str] = None,
        flatten: Optional[bool] = None
    ) -> ExportResult:
        """
        Resolve, fetch and fill an order form.

        Args:
            project: Project record
            part: Project part record
            order_list: Order list record
            items: Line items
            template: Registered PDF template, if any
            pdf_url: Explicit PDF location (overrides the template)
            flatten: Make the filled form read-only

        Returns:
            ExportResult with the filled PDF and its download filename

        Raises:
            PDFFetchError: If the PDF cannot be retrieved
            PDFParseError: If the PDF cannot be parsed
            ExportIOError: If the filled PDF cannot be written
        """
        url = pdf_url or self.pdf_url_for(order_list, template)
        logger.info(f"Exporting order form from {url}")

        resolved = self.resolve(project, part, order_list, items, template)
        original = await self.fetcher.fetch(url)

        result = await self.filler.fill_and_export(
            original_pdf_bytes=original,
            resolved_fields=resolved,
            source_name=url,
            flatten=flatten,
        )
        logger.info(f"Order form export complete: {result.filename}")
        return result

    async def analyze(
        self,
        pdf_url: str,
        order_list: Any = None,
        template: Optional[PdfTemplate] = None
    ) -> FormAnalysis:
        """
        Fetch a PDF form and propose a mapping for its fields.

        Args:
            pdf_url: Location of the PDF form
            order_list: If given, its current mapping is checked against the form
            template: Registered PDF template, if any

        Raises:
            PDFFetchError: If the PDF cannot be retrieved
            PDFParseError: If the PDF cannot be parsed
        """
        pdf_bytes = await self.fetcher.fetch(pdf_url)
        fields = extract_form_fields(pdf_bytes)

        unmapped = []
        if order_list is not None:
            unmapped = find_unmapped_fields(self.mapping_for(order_list, template), fields)
            if unmapped:
                logger.warning(f"{len(unmapped)} mapped fields not found in {pdf_url}")

        return FormAnalysis(
            fields=fields,
            mapping_template=build_mapping_template(fields),
            unmapped=unmapped,
        )

    async def close(self) -> None:
        if self._fetcher is not None:
            await self._fetcher.close()
