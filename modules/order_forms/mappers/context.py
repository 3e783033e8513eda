"""
Read-only view of the records one resolution runs against.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel


def as_record(obj: Any) -> Any:
    """
    Normalize a collaborator record for dot-path access.

    Pydantic models are dumped with their camelCase aliases so mappings
    address the same names as the application's JSON. Dicts and other
    objects are returned unchanged.
    """
    if isinstance(obj, BaseModel):
        return obj.model_dump(by_alias=True)
    return obj


def get_nested_value(data: Any, path: str) -> Any:
    """
    Get value from nested records using dot notation.

    Args:
        data: Dict, pydantic model or plain object
        path: Dot-separated path (e.g., "engineer.street")

    Returns:
        Value at path or None if any segment is missing

    Example:
        data = {"engineer": {"street": "Main St 1"}}
        path = "engineer.street"
        Returns: "Main St 1"
    """
    if not path:
        return None

    value = as_record(data)
    for key in path.split("."):
        if value is None:
            return None
        if isinstance(value, Mapping):
            value = value.get(key)
        elif isinstance(value, BaseModel):
            value = as_record(value).get(key)
        else:
            value = getattr(value, key, None)

    return value


@dataclass
class ResolutionContext:
    """
    Records and settings visible to one ``resolve`` call.

    Attributes:
        project: Project record (or None)
        part: Project part record (or None)
        order_list: Order list record (or None)
        items: Line items in display order
        today: Date used by the currentDate rule
        country_prefix: Prefix for formatted postal codes
    """
    project: Any = None
    part: Any = None
    order_list: Any = None
    items: List[Any] = field(default_factory=list)
    today: Optional[date] = None
    country_prefix: str = "CH"

    @classmethod
    def build(
        cls,
        project: Any,
        part: Any,
        order_list: Any,
        items: Optional[List[Any]],
        today: date,
        country_prefix: str
    ) -> "ResolutionContext":
        return cls(
            project=as_record(project),
            part=as_record(part),
            order_list=as_record(order_list),
            items=[as_record(item) for item in (items or [])],
            today=today,
            country_prefix=country_prefix,
        )

    def record_for(self, source_name: str) -> Any:
        records: Dict[str, Any] = {
            "project": self.project,
            "part": self.part,
            "orderList": self.order_list,
        }
        return records.get(source_name)
