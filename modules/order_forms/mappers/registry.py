"""
Field mapping registry.

Maps (manufacturer, product type) pairs to the PDF field mapping of the
manufacturer's order form. Lookups are case-insensitive and fall back to
the default mapping when no specific entry exists.
"""

from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional

from modules.order_forms.core.diagnostics import (
    Diagnostic,
    DiagnosticKind,
    DiagnosticsSink,
    default_sink,
)
from modules.order_forms.core.exceptions import MappingValidationError
from modules.order_forms.core.types import (
    CustomRule,
    FieldMapping,
    FormMappingConfig,
    MappingSource,
)
from modules.order_forms.mappers.custom_rules import is_custom_rule
from modules.order_forms.mappers.transforms import constant, prefix
from shared.utils.logger import setup_logger

logger = setup_logger(__name__)


def mapping_config(*mappings: FieldMapping) -> FormMappingConfig:
    """Key field mappings by their PDF field name (last one wins)."""
    return {mapping.pdf_field: mapping for mapping in mappings}


def _m(pdf_field: str, source: MappingSource, field: str, transform=None) -> FieldMapping:
    return FieldMapping(pdf_field=pdf_field, source=source, field=field, transform=transform)


# ==============================================================================
# BUILT-IN MAPPINGS
# ==============================================================================

DEFAULT_MAPPING: FormMappingConfig = mapping_config(
    # Project information
    _m("projectName", MappingSource.PROJECT, "name"),
    _m("projectNumber", MappingSource.PROJECT, "projectNumber"),
    _m("projectAddress", MappingSource.PROJECT, "address"),
    _m("projectDesigner", MappingSource.PROJECT, "designer"),
    _m("projectManager", MappingSource.PROJECT, "projectManager"),

    # Part information
    _m("partName", MappingSource.PART, "name"),
    _m("partNumber", MappingSource.PART, "partNumber"),

    # Order list information
    _m("listNumber", MappingSource.ORDER_LIST, "listNumber"),
    _m("listName", MappingSource.ORDER_LIST, "name"),
    _m("designer", MappingSource.ORDER_LIST, "designer"),
    _m("manager", MappingSource.ORDER_LIST, "projectManager"),

    # Computed values
    _m("date", MappingSource.CUSTOM, CustomRule.CURRENT_DATE.value),
    _m("compositePartNumber", MappingSource.CUSTOM, CustomRule.COMPOSITE_PART_NUMBER.value),
    _m("compositeOrderListNumber", MappingSource.CUSTOM, CustomRule.COMPOSITE_ORDER_LIST_NUMBER.value),

    # Engineer and masonry company
    _m("engineerName", MappingSource.PROJECT, "engineer.name"),
    _m("engineerAddress", MappingSource.CUSTOM, CustomRule.ENGINEER_FORMATTED_ADDRESS.value),
    _m("engineerCity", MappingSource.CUSTOM, CustomRule.ENGINEER_FORMATTED_CITY.value),
    _m("engineerPhone", MappingSource.PROJECT, "engineer.phone"),
    _m("engineerEmail", MappingSource.PROJECT, "engineer.email"),
    _m("masonryName", MappingSource.PROJECT, "masonryCompany.name"),
    _m("masonryAddress", MappingSource.CUSTOM, CustomRule.MASONRY_FORMATTED_ADDRESS.value),
    _m("masonryCity", MappingSource.CUSTOM, CustomRule.MASONRY_FORMATTED_CITY.value),
    _m("masonryPhone", MappingSource.PROJECT, "masonryCompany.phone"),
)


def _with_defaults(*overrides: FieldMapping) -> FormMappingConfig:
    # Overrides replace same-named default entries entirely
    return {**DEFAULT_MAPPING, **mapping_config(*overrides)}


BUILTIN_MAPPINGS: Dict[str, Dict[str, FormMappingConfig]] = {
    "ancotech": {
        "comax-typ-a": _with_defaults(
            _m("productType", MappingSource.ORDER_LIST, "type"),
            _m("productCode", MappingSource.ORDER_LIST, "listNumber", prefix("COMAX-TYP-A-")),
        ),
        "comax-typ-b": _with_defaults(
            _m("productType", MappingSource.ORDER_LIST, "type"),
            _m("productCode", MappingSource.ORDER_LIST, "listNumber", prefix("COMAX-TYP-B-")),
        ),
    },
    "debrunner": {
        "console-acinox": _with_defaults(
            _m("productType", MappingSource.ORDER_LIST, "type"),
            _m("steelGrade", MappingSource.CUSTOM, "steelGrade", constant("S355")),
        ),
    },
    "halfen": {
        "halfen-hta": _with_defaults(
            _m("profileType", MappingSource.ORDER_LIST, "type"),
            _m("steelGrade", MappingSource.CUSTOM, "steelGrade", constant("HCR")),
        ),
    },
    "hilti": {
        "hit-elements": _with_defaults(
            _m("productLine", MappingSource.ORDER_LIST, "type"),
        ),
    },
}


# ==============================================================================
# VALIDATION
# ==============================================================================

def validate_mapping_config(config: Mapping[str, FieldMapping], label: str = "mapping") -> None:
    """
    Check a code-defined mapping config.

    Raises:
        MappingValidationError: If an entry is keyed under another PDF field
            name, uses a source outside MappingSource, or names an unknown
            custom rule without supplying a transform
    """
    for pdf_field, mapping in config.items():
        if not isinstance(mapping, FieldMapping):
            raise MappingValidationError(f"{label}: '{pdf_field}' is not a FieldMapping")
        if mapping.pdf_field != pdf_field:
            raise MappingValidationError(
                f"{label}: entry keyed '{pdf_field}' declares pdf_field '{mapping.pdf_field}'"
            )
        if not isinstance(mapping.source, MappingSource):
            raise MappingValidationError(
                f"{label}: '{pdf_field}' has unknown source '{mapping.source}'. "
                f"Available: {[s.value for s in MappingSource]}"
            )
        if not mapping.field:
            raise MappingValidationError(f"{label}: '{pdf_field}' has an empty field")
        if (
            mapping.source == MappingSource.CUSTOM
            and not is_custom_rule(mapping.field)
            and mapping.transform is None
        ):
            raise MappingValidationError(
                f"{label}: '{pdf_field}' uses unknown custom rule '{mapping.field}' "
                f"and has no transform. Available: {[r.value for r in CustomRule]}"
            )


# ==============================================================================
# REGISTRY
# ==============================================================================

class MappingRegistry:
    """
    Registry of manufacturer order form mappings.

    Example:
        >>> registry = MappingRegistry.builtin()
        >>> config = registry.get_mapping("Hilti", "HIT-Elements")
        >>> config["productLine"].field
        'type'
    """

    def __init__(
        self,
        default_mapping: Mapping[str, FieldMapping],
        mappings: Optional[Mapping[str, Mapping[str, Mapping[str, FieldMapping]]]] = None,
        diagnostics: Optional[DiagnosticsSink] = None
    ):
        """
        Initialize registry.

        Args:
            default_mapping: Config used when no specific entry exists
            mappings: manufacturer -> product type -> config
            diagnostics: Sink for non-fatal lookup events

        Raises:
            MappingValidationError: If any config is invalid or a
                manufacturer/product pair is registered twice after
                case-folding
        """
        validate_mapping_config(default_mapping, "default mapping")
        self._default = MappingProxyType(dict(default_mapping))

        entries: Dict[str, Dict[str, Mapping[str, FieldMapping]]] = {}
        for manufacturer, products in (mappings or {}).items():
            manufacturer_key = manufacturer.lower()
            target = entries.setdefault(manufacturer_key, {})
            for product_type, config in products.items():
                product_key = product_type.lower()
                if product_key in target:
                    raise MappingValidationError(
                        f"Duplicate mapping for {manufacturer_key}/{product_key}"
                    )
                validate_mapping_config(config, f"{manufacturer_key}/{product_key}")
                target[product_key] = MappingProxyType(dict(config))

        self._mappings = entries
        self.diagnostics = diagnostics or default_sink()

        logger.debug(
            f"MappingRegistry initialized with {sum(len(p) for p in entries.values())} "
            f"manufacturer mappings"
        )

    @classmethod
    def builtin(cls, diagnostics: Optional[DiagnosticsSink] = None) -> "MappingRegistry":
        """Registry holding the built-in manufacturer mappings."""
        return cls(DEFAULT_MAPPING, BUILTIN_MAPPINGS, diagnostics=diagnostics)

    @property
    def default_mapping(self) -> FormMappingConfig:
        return dict(self._default)

    def get_mapping(self, manufacturer: Optional[str], product_type: Optional[str]) -> FormMappingConfig:
        """
        Get the mapping for a manufacturer and product type.

        Args:
            manufacturer: Manufacturer name, any case
            product_type: Product type, any case

        Returns:
            Specific config if registered, otherwise the default config
        """
        manufacturer_key = (manufacturer or "").lower()
        product_key = (product_type or "").lower()

        config = self._mappings.get(manufacturer_key, {}).get(product_key)
        if config is not None:
            return dict(config)

        self.diagnostics(Diagnostic(
            kind=DiagnosticKind.MAPPING_NOT_FOUND,
            message=(
                f"No specific mapping found for {manufacturer}/{product_type}, "
                f"using default mapping"
            ),
        ))
        return self.default_mapping

    def has_mapping(self, manufacturer: Optional[str], product_type: Optional[str]) -> bool:
        return (product_type or "").lower() in self._mappings.get((manufacturer or "").lower(), {})

    def manufacturers(self) -> List[str]:
        return sorted(self._mappings)

    def product_types(self, manufacturer: str) -> List[str]:
        return sorted(self._mappings.get(manufacturer.lower(), {}))

    def entries(self) -> Iterable[tuple]:
        """Yield (manufacturer, product type, config) for every specific entry."""
        for manufacturer in self.manufacturers():
            for product_type in self.product_types(manufacturer):
                yield manufacturer, product_type, dict(self._mappings[manufacturer][product_type])
