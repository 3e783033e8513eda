"""
Named value transforms for field mappings.

Mappings written in code may use any callable as a transform. Mappings
persisted as JSON refer to transforms by name, optionally with params:

    {"source": "orderList", "field": "listNumber",
     "transform": {"name": "prefix", "params": {"value": "COMAX-TYP-A-"}}}
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union
import re

from dateutil import parser as date_parser

from modules.order_forms.core.exceptions import MappingValidationError


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _upper(value: Any) -> str:
    return _text(value).upper()


def _lower(value: Any) -> str:
    return _text(value).lower()


def _title(value: Any) -> str:
    return _text(value).title()


def _strip(value: Any) -> str:
    return _text(value).strip()


def _prefix(value: Any, value_prefix: str = "") -> str:
    return f"{value_prefix}{_text(value)}"


def _suffix(value: Any, value_suffix: str = "") -> str:
    return f"{_text(value)}{value_suffix}"


def _constant(value: Any, constant: str = "") -> str:
    return constant


def _max_length(value: Any, length: int = 0) -> str:
    return _text(value)[:length]


def _regex(value: Any, pattern: str = "", group: int = 0) -> str:
    match = re.search(pattern, _text(value))
    if match:
        return match.group(group)
    return _text(value)


def _split_lines(value: Any, separator: str = ",", line_number: int = 1) -> str:
    lines = _text(value).split(separator)
    if 0 < line_number <= len(lines):
        return lines[line_number - 1].strip()
    return _text(value)


def _date_format(
    value: Any,
    output_format: str = "%d.%m.%Y",
    input_formats: Optional[List[str]] = None
) -> str:
    """
    Format a date value.

    Example:
        >>> _date_format("2024-06-15", "%d/%m/%Y")
        "15/06/2024"
    """
    if value is None or value == "":
        return ""

    if isinstance(value, (datetime, date)):
        return value.strftime(output_format)

    value_str = str(value)
    for fmt in input_formats or []:
        try:
            return datetime.strptime(value_str, fmt).strftime(output_format)
        except ValueError:
            continue

    # Raises on unparseable input; the resolver falls back to the raw value
    return date_parser.parse(value_str).strftime(output_format)


def _number_format(
    value: Any,
    decimals: int = 2,
    thousand_separator: str = "'",
    decimal_separator: str = "."
) -> str:
    """
    Format a number value.

    Example:
        >>> _number_format(1234.5)
        "1'234.50"
    """
    if value is None or value == "":
        return ""

    formatted = f"{float(value):,.{decimals}f}"
    if thousand_separator != ",":
        formatted = formatted.replace(",", "\0")
        formatted = formatted.replace(".", decimal_separator)
        return formatted.replace("\0", thousand_separator)
    if decimal_separator != ".":
        formatted = formatted.replace(".", decimal_separator)
    return formatted


# name -> (function, {json param name: function keyword})
_TRANSFORMS: Dict[str, tuple] = {
    "upper": (_upper, {}),
    "lower": (_lower, {}),
    "title": (_title, {}),
    "strip": (_strip, {}),
    "prefix": (_prefix, {"value": "value_prefix"}),
    "suffix": (_suffix, {"value": "value_suffix"}),
    "constant": (_constant, {"value": "constant"}),
    "max_length": (_max_length, {"length": "length"}),
    "regex": (_regex, {"pattern": "pattern", "group": "group"}),
    "split_lines": (_split_lines, {"separator": "separator", "line_number": "line_number"}),
    "date_format": (_date_format, {"output_format": "output_format", "input_formats": "input_formats"}),
    "number_format": (_number_format, {
        "decimals": "decimals",
        "thousand_separator": "thousand_separator",
        "decimal_separator": "decimal_separator",
    }),
}


class NamedTransform:
    """A registered transform bound to its parameters. Serializable."""

    def __init__(self, name: str, params: Optional[Dict[str, Any]] = None):
        if name not in _TRANSFORMS:
            raise MappingValidationError(
                f"Unknown transform '{name}'. Available: {available_transforms()}"
            )
        func, param_names = _TRANSFORMS[name]
        params = dict(params or {})
        unknown = set(params) - set(param_names)
        if unknown:
            raise MappingValidationError(
                f"Transform '{name}' does not accept params: {sorted(unknown)}"
            )

        self.name = name
        self.params = params
        self._func = func
        self._kwargs = {param_names[k]: v for k, v in params.items()}

    def __call__(self, value: Any) -> Any:
        return self._func(value, **self._kwargs)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NamedTransform):
            return NotImplemented
        return self.name == other.name and self.params == other.params

    def __hash__(self) -> int:
        return hash(self.name)

    def __repr__(self) -> str:
        return f"NamedTransform({self.name!r}, {self.params!r})"

    def to_dict(self) -> Union[str, Dict[str, Any]]:
        if not self.params:
            return self.name
        return {"name": self.name, "params": dict(self.params)}


def get_transform(name: str, **params: Any) -> NamedTransform:
    """
    Build a named transform.

    Example:
        >>> get_transform("prefix", value="COMAX-TYP-A-")("12")
        "COMAX-TYP-A-12"
    """
    return NamedTransform(name, params)


def transform_from_spec(spec: Any) -> NamedTransform:
    """
    Build a transform from its JSON form: a name or {"name", "params"}.

    Raises:
        MappingValidationError: If the spec is malformed or names an unknown transform
    """
    if isinstance(spec, str):
        return NamedTransform(spec)
    if isinstance(spec, dict) and isinstance(spec.get("name"), str):
        params = spec.get("params") or {}
        if not isinstance(params, dict):
            raise MappingValidationError(f"Transform params must be an object: {spec!r}")
        return NamedTransform(spec["name"], params)
    raise MappingValidationError(f"Invalid transform spec: {spec!r}")


def available_transforms() -> List[str]:
    return sorted(_TRANSFORMS)


def constant(value: str) -> NamedTransform:
    return get_transform("constant", value=value)


def prefix(value: str) -> NamedTransform:
    return get_transform("prefix", value=value)
