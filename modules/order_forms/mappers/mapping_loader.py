"""
Encoding and decoding of persisted field mappings.

Templates store their mapping as a JSON string:

    {"projectName": {"source": "project", "field": "name"},
     "code": {"source": "orderList", "field": "listNumber", "transform": "upper"}}

The field mapping editor's row format is accepted as well:

    [{"pdfField": "projectName", "source": "project", "field": "name"}]

Mapping files on disk are YAML (or JSON) with a ``field_mappings`` section.
"""

from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple, Union
import json
import logging

import yaml

from modules.order_forms.core.diagnostics import (
    Diagnostic,
    DiagnosticKind,
    DiagnosticsSink,
    default_sink,
)
from modules.order_forms.core.exceptions import MappingParseError, MappingValidationError
from modules.order_forms.core.types import FieldMapping, FormMappingConfig, MappingSource
from modules.order_forms.mappers.transforms import transform_from_spec

logger = logging.getLogger(__name__)


def mapping_from_data(data: Any, strict: bool = False) -> FormMappingConfig:
    """
    Build a config from decoded JSON/YAML data.

    Args:
        data: Dict keyed by PDF field name, or a list of rows with ``pdfField``
        strict: Raise on invalid entries instead of skipping them

    Returns:
        Field mapping config

    Raises:
        MappingParseError: If the top-level shape is wrong, or (strict) an
            entry is invalid
    """
    if data is None:
        return {}

    config: FormMappingConfig = {}
    for pdf_field, entry in _entries(data):
        try:
            config[pdf_field] = _field_mapping(pdf_field, entry)
        except (MappingParseError, MappingValidationError) as e:
            if strict:
                raise MappingParseError(str(e)) from e
            logger.warning(f"Skipping mapping entry '{pdf_field}': {e}")

    return config


def _entries(data: Any) -> Iterable[Tuple[str, Any]]:
    if isinstance(data, dict):
        return list(data.items())
    if isinstance(data, list):
        rows = []
        for row in data:
            if not isinstance(row, dict) or not row.get("pdfField"):
                raise MappingParseError(f"Mapping row without pdfField: {row!r}")
            rows.append((str(row["pdfField"]), row))
        return rows
    raise MappingParseError(
        f"Field mapping must be an object or a list, got {type(data).__name__}"
    )


def _field_mapping(pdf_field: str, entry: Any) -> FieldMapping:
    if not isinstance(entry, dict):
        raise MappingParseError(f"Entry for '{pdf_field}' must be an object")

    source = entry.get("source")
    field = entry.get("field")
    if not isinstance(source, str) or not source:
        raise MappingParseError(f"Entry for '{pdf_field}' has no source")
    if not isinstance(field, str):
        raise MappingParseError(f"Entry for '{pdf_field}' has no field")

    transform = None
    if entry.get("transform") is not None:
        transform = transform_from_spec(entry["transform"])

    # Unknown sources are kept; the resolver reports them and yields ''
    return FieldMapping(
        pdf_field=pdf_field,
        source=MappingSource.parse(source) or source,
        field=field,
        transform=transform,
    )


def parse_field_mapping(
    raw: Optional[str],
    diagnostics: Optional[DiagnosticsSink] = None,
    strict: bool = False
) -> FormMappingConfig:
    """
    Decode a persisted (JSON string) field mapping.

    Malformed input degrades to an empty mapping and a user-visible
    ``mapping_parse_error`` diagnostic.

    Args:
        raw: JSON string from a template record (None/blank means no mapping)
        diagnostics: Sink for the parse error notice
        strict: Raise MappingParseError instead of degrading

    Returns:
        Field mapping config (empty when missing or malformed)
    """
    if raw is None or not raw.strip():
        return {}

    try:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise MappingParseError(f"Field mapping is not valid JSON: {e}") from e
        return mapping_from_data(data, strict=strict)

    except MappingParseError as e:
        if strict:
            raise
        (diagnostics or default_sink())(Diagnostic(
            kind=DiagnosticKind.MAPPING_PARSE_ERROR,
            message=f"Stored field mapping could not be read and was ignored: {e}",
            error=e,
        ))
        return {}


def serialize_field_mapping(config: FormMappingConfig) -> str:
    """
    Encode a config as the JSON string stored on templates.

    Raises:
        MappingValidationError: If a transform is a plain callable that has
            no JSON form
    """
    data: Dict[str, Any] = {}
    for pdf_field, mapping in config.items():
        if mapping.transform is not None and not hasattr(mapping.transform, "to_dict"):
            raise MappingValidationError(
                f"Transform of '{pdf_field}' is not a named transform and cannot be stored"
            )
        data[pdf_field] = mapping.to_dict()
    return json.dumps(data, ensure_ascii=False)


def load_mapping_file(path: Union[str, Path]) -> FormMappingConfig:
    """
    Load field mapping configuration from YAML or JSON.

    Args:
        path: Path to config file with a ``field_mappings`` section

    Returns:
        Field mapping config

    Raises:
        FileNotFoundError: If config file not found
        MappingParseError: If the file is malformed
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise MappingParseError(f"Invalid mapping file {path}: {e}") from e

    if not isinstance(config, dict) or "field_mappings" not in config:
        raise MappingParseError(
            f"Config file missing 'field_mappings' section: {path}"
        )

    mapping = mapping_from_data(config["field_mappings"], strict=True)
    logger.info(f"Loaded {len(mapping)} field mappings from {path}")
    return mapping
