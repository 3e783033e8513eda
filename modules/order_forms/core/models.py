"""
Pydantic schemas for the records supplied by the CRUD layer.

Field names follow the application's camelCase JSON; snake_case names are
accepted as well. Unknown keys are kept so mappings can address them.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


SpecificationValue = Optional[Union[str, int, float]]


class RecordModel(BaseModel):
    """Base for collaborator records."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


class OrderListStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


# ==============================================================================
# PROJECT SCHEMAS
# ==============================================================================

class Company(RecordModel):
    """Engineer, masonry company, architect or owner of a project."""

    name: Optional[str] = None
    street: Optional[str] = None
    address: Optional[str] = None  # legacy single-line street
    postal_code: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None


class Project(RecordModel):
    """Construction project."""

    id: Optional[str] = None
    name: Optional[str] = None
    project_number: Optional[str] = None
    address: Optional[str] = None
    designer: Optional[str] = None
    project_manager: Optional[str] = None
    engineer: Optional[Company] = None
    masonry_company: Optional[Company] = None
    architect: Optional[Company] = None
    owner: Optional[Company] = None


class ProjectPart(RecordModel):
    """Sub-part of a project."""

    id: Optional[str] = None
    name: Optional[str] = None
    part_number: Optional[str] = None
    designer: Optional[str] = None
    project_manager: Optional[str] = None
    project_id: Optional[str] = None


# ==============================================================================
# ORDER LIST SCHEMAS
# ==============================================================================

class OrderList(RecordModel):
    """Manufacturer order list of a project part."""

    id: Optional[str] = None
    list_number: Optional[str] = None
    name: Optional[str] = None
    manufacturer: Optional[str] = None
    type: Optional[str] = None
    designer: Optional[str] = None
    project_manager: Optional[str] = None
    status: OrderListStatus = OrderListStatus.DRAFT
    submission_date: Optional[datetime] = None


class Item(RecordModel):
    """Line item of an order list."""

    id: Optional[str] = None
    article: Optional[str] = None
    quantity: Optional[Union[int, float]] = None
    type: Optional[str] = None
    position: Optional[int] = None
    specifications: Dict[str, SpecificationValue] = Field(default_factory=dict)


class PdfTemplate(RecordModel):
    """Fillable PDF registered for a manufacturer and product type."""

    id: Optional[str] = None
    manufacturer: str
    product_type: str
    pdf_url: Optional[str] = None
    field_mapping: Optional[str] = None  # JSON-encoded mapping

