"""
Field Mapper for the Order Form module.

Resolves a field mapping config against project, part, order list and item
records into the flat {pdf_field_name: value} table used to fill a form.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Mapping, Optional
import logging

from modules.order_forms.core.diagnostics import (
    Diagnostic,
    DiagnosticKind,
    DiagnosticsSink,
    default_sink,
)
from modules.order_forms.core.exceptions import FieldResolutionError, TransformError
from modules.order_forms.core.types import FieldMapping, FormMappingConfig, MappingSource
from modules.order_forms.mappers.context import ResolutionContext, get_nested_value
from modules.order_forms.mappers.custom_rules import get_custom_rule
from shared.utils.config import settings

logger = logging.getLogger(__name__)


class MappingResolver:
    """
    Map domain records to PDF form fields.

    Every entry of the config yields exactly one string value. A failing
    entry degrades to an empty string and is reported to the diagnostics
    sink; it never aborts the other entries.

    Example:
        >>> resolver = MappingResolver()
        >>> resolver.resolve(
        ...     {"partNumber": FieldMapping("partNumber", MappingSource.PART, "partNumber")},
        ...     project=None, part={"partNumber": "X2"}, order_list=None, items=[]
        ... )
        {'partNumber': 'X2'}
    """

    def __init__(
        self,
        diagnostics: Optional[DiagnosticsSink] = None,
        date_format: Optional[str] = None,
        country_prefix: Optional[str] = None,
        clock: Optional[Callable[[], date]] = None
    ):
        """
        Initialize field mapper.

        Args:
            diagnostics: Sink for per-field failures (defaults to logging)
            date_format: strftime format for date values (defaults to settings.DATE_FORMAT)
            country_prefix: Postal code prefix (defaults to settings.POSTAL_COUNTRY_PREFIX)
            clock: Returns today's date for the currentDate rule
        """
        self.diagnostics = diagnostics or default_sink()
        self.date_format = date_format or settings.DATE_FORMAT
        self.country_prefix = country_prefix or settings.POSTAL_COUNTRY_PREFIX
        self.clock = clock or date.today

    def resolve(
        self,
        config: Mapping[str, FieldMapping],
        project: Any = None,
        part: Any = None,
        order_list: Any = None,
        items: Optional[List[Any]] = None
    ) -> Dict[str, str]:
        """
        Resolve every mapping in the config.

        Args:
            config: {pdf_field_name: FieldMapping}
            project: Project record, dict or None
            part: Project part record, dict or None
            order_list: Order list record, dict or None
            items: Line items; repeated item fields bind to successive items

        Returns:
            Dictionary of {pdf_field_name: value}, one key per config entry
        """
        ctx = ResolutionContext.build(
            project, part, order_list, items,
            today=self.clock(),
            country_prefix=self.country_prefix,
        )

        # Occurrences of each item field seen so far in this call
        item_occurrences: Dict[str, int] = {}

        resolved: Dict[str, str] = {}
        for pdf_field, mapping in config.items():
            try:
                raw = self._raw_value(pdf_field, mapping, ctx, item_occurrences)
                resolved[pdf_field] = self._apply_transform(pdf_field, mapping, raw)
            except Exception as e:
                error = e if isinstance(e, FieldResolutionError) else FieldResolutionError(pdf_field, str(e))
                self._report(DiagnosticKind.FIELD_RESOLUTION_ERROR, f"Error resolving field {pdf_field}: {e}", pdf_field, error)
                resolved[pdf_field] = ""

        logger.debug(f"Resolved {len(resolved)} fields")
        return resolved

    def _raw_value(
        self,
        pdf_field: str,
        mapping: FieldMapping,
        ctx: ResolutionContext,
        item_occurrences: Dict[str, int]
    ) -> Any:
        source = MappingSource.parse(mapping.source)

        if source in (MappingSource.PROJECT, MappingSource.PART, MappingSource.ORDER_LIST):
            return get_nested_value(ctx.record_for(source.value), mapping.field)

        if source == MappingSource.ITEM:
            index = item_occurrences.get(mapping.field, 0)
            item_occurrences[mapping.field] = index + 1
            if index >= len(ctx.items):
                return None
            return self._item_value(ctx.items[index], mapping.field)

        if source == MappingSource.CUSTOM:
            rule = get_custom_rule(mapping.field)
            if rule is None:
                logger.debug(f"No custom rule '{mapping.field}' for field {pdf_field}")
                return None
            return rule(ctx)

        self._report(
            DiagnosticKind.UNKNOWN_SOURCE,
            f"Unknown source '{mapping.source}' for field {pdf_field}",
            pdf_field,
        )
        return None

    def _item_value(self, item: Any, field: str) -> Any:
        """Direct item property first, then the item's specifications."""
        value = get_nested_value(item, field)
        if value is not None:
            return value

        specifications = get_nested_value(item, "specifications")
        if isinstance(specifications, Mapping):
            return specifications.get(field)
        return None

    def _apply_transform(self, pdf_field: str, mapping: FieldMapping, raw: Any) -> str:
        if mapping.transform is None:
            return self.to_text(raw)

        try:
            return self.to_text(mapping.transform(raw))
        except Exception as e:
            self._report(
                DiagnosticKind.TRANSFORM_ERROR,
                f"Error transforming field {pdf_field}: {e}",
                pdf_field,
                TransformError(pdf_field, str(e)),
            )
            return self.to_text(raw)

    def to_text(self, value: Any) -> str:
        """
        Coerce a raw value to the string written into the PDF.

        None becomes '', dates use the configured format and integral
        floats drop their trailing '.0'.
        """
        if value is None:
            return ""
        if isinstance(value, str):
            return value
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (datetime, date)):
            return value.strftime(self.date_format)
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        if isinstance(value, Decimal):
            return format(value, "f")
        return str(value)

    def _report(
        self,
        kind: DiagnosticKind,
        message: str,
        pdf_field: Optional[str] = None,
        error: Optional[BaseException] = None
    ) -> None:
        self.diagnostics(Diagnostic(kind=kind, message=message, field=pdf_field, error=error))


def resolve(
    config: FormMappingConfig,
    project: Any = None,
    part: Any = None,
    order_list: Any = None,
    items: Optional[List[Any]] = None,
    diagnostics: Optional[DiagnosticsSink] = None
) -> Dict[str, str]:
    """Resolve a config with a default-configured resolver."""
    return MappingResolver(diagnostics=diagnostics).resolve(config, project, part, order_list, items)
