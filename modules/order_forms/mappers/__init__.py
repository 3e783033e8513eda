"""
Field mappers for order form module.

Mappers turn project, part, order list and item records into PDF field values.
"""

from modules.order_forms.mappers.registry import (
    DEFAULT_MAPPING,
    BUILTIN_MAPPINGS,
    MappingRegistry,
    validate_mapping_config,
)
from modules.order_forms.mappers.field_mapper import MappingResolver, resolve
from modules.order_forms.mappers.mapping_loader import (
    parse_field_mapping,
    serialize_field_mapping,
    load_mapping_file,
)
from modules.order_forms.mappers.transforms import get_transform, available_transforms

__all__ = [
    "DEFAULT_MAPPING",
    "BUILTIN_MAPPINGS",
    "MappingRegistry",
    "validate_mapping_config",
    "MappingResolver",
    "resolve",
    "parse_field_mapping",
    "serialize_field_mapping",
    "load_mapping_file",
    "get_transform",
    "available_transforms",
]
