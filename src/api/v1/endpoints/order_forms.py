"""
Order Form API Endpoints.

REST API for resolving, filling and analyzing manufacturer PDF order forms.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import Response
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, Optional, Dict, Any
from urllib.parse import quote
import logging

from modules.order_forms.core.diagnostics import CollectingDiagnosticsSink, LoggingDiagnosticsSink
from modules.order_forms.core.engine import OrderFormEngine
from modules.order_forms.core.exceptions import (
    ExportIOError,
    OrderFormException,
    PDFFetchError,
    PDFParseError,
)
from modules.order_forms.core.models import Item, OrderList, PdfTemplate, Project, ProjectPart
from modules.order_forms.data_providers.pdf_fetcher import PDFFetcher
from modules.order_forms.mappers.custom_rules import CUSTOM_RULES
from modules.order_forms.mappers.registry import MappingRegistry
from shared.utils.logger import log_error

logger = logging.getLogger(__name__)

# Create API router
router = APIRouter(
    prefix="/order-forms",
    tags=["order-forms"],
    responses={
        422: {"description": "PDF could not be parsed"},
        502: {"description": "PDF could not be fetched"},
        500: {"description": "Internal server error"}
    }
)

# Shared HTTP client for PDF downloads (singleton)
_pdf_fetcher: Optional[PDFFetcher] = None


def get_pdf_fetcher() -> PDFFetcher:
    """
    Get or create the shared PDF fetcher.

    Returns:
        PDFFetcher instance
    """
    global _pdf_fetcher

    if _pdf_fetcher is None:
        _pdf_fetcher = PDFFetcher()
        logger.info("PDF fetcher initialized")

    return _pdf_fetcher


async def close_pdf_fetcher() -> None:
    global _pdf_fetcher

    if _pdf_fetcher is not None:
        await _pdf_fetcher.close()
        _pdf_fetcher = None


def build_engine(fetcher: PDFFetcher, diagnostics: CollectingDiagnosticsSink) -> OrderFormEngine:
    """Engine whose diagnostics are collected for one request."""
    return OrderFormEngine(fetcher=fetcher, diagnostics=diagnostics)


# ==============================================================================
# REQUEST/RESPONSE MODELS
# ==============================================================================

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ResolveRequest(CamelModel):
    """
    Request model for field value resolution.

    Example:
        {
            "project": {"name": "Tower A", "projectNumber": "P-100"},
            "part": {"partNumber": "02"},
            "orderList": {"listNumber": "7", "manufacturer": "Hilti", "type": "HIT-Elements"},
            "items": [{"article": "HIT-1", "quantity": 4}]
        }
    """

    project: Optional[Project] = Field(None, description="Project record")
    part: Optional[ProjectPart] = Field(None, description="Project part record")
    order_list: OrderList = Field(..., description="Order list record")
    items: List[Item] = Field(default_factory=list, description="Line items in display order")
    template: Optional[PdfTemplate] = Field(
        None,
        description="Registered PDF template; its stored mapping wins over the registry"
    )


class ExportRequest(ResolveRequest):
    """Request model for filling and downloading an order form."""

    pdf_url: Optional[str] = Field(
        None,
        description="Location of the blank form (defaults to the template or CDN URL)"
    )
    flatten: Optional[bool] = Field(
        None,
        description="Make filled PDF read-only (flatten form fields)"
    )


class AnalyzeRequest(CamelModel):
    """Request model for PDF form analysis."""

    pdf_url: str = Field(..., description="Location of the PDF form to analyze")
    order_list: Optional[OrderList] = Field(
        None,
        description="If given, its current mapping is checked against the form"
    )
    template: Optional[PdfTemplate] = Field(None, description="Registered PDF template")


class ResolveResponse(BaseModel):
    """Resolved field values plus the notices raised while computing them."""

    fields: Dict[str, str] = Field(..., description="PDF field name to value")
    diagnostics: List[Dict[str, Any]] = Field(default_factory=list, description="Non-fatal events")


class AnalyzeResponse(BaseModel):
    """Fields discovered in a PDF and a proposed mapping for them."""

    fields: List[Dict[str, Any]] = Field(..., description="Discovered form fields")
    mapping_template: Dict[str, Dict[str, Any]] = Field(..., description="Guessed field mapping")
    unmapped: List[str] = Field(default_factory=list, description="Mapped fields missing from the PDF")


class MappingInfo(BaseModel):
    """A registered manufacturer mapping."""

    manufacturer: str = Field(..., description="Manufacturer key (lower-case)")
    product_type: str = Field(..., description="Product type key (lower-case)")
    fields: Dict[str, Dict[str, Any]] = Field(..., description="PDF field name to mapping")


class HealthCheckResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Overall status (healthy/degraded/unhealthy)")
    components: Dict[str, str] = Field(..., description="Component health status")


def _document_error(e: OrderFormException) -> HTTPException:
    """Translate document-level failures into HTTP errors."""
    if isinstance(e, PDFFetchError):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    if isinstance(e, PDFParseError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    if isinstance(e, ExportIOError):
        return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def _content_disposition(filename: str) -> str:
    fallback = filename.encode("ascii", "replace").decode("ascii").replace('"', "")
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"


# ==============================================================================
# API ENDPOINTS
# ==============================================================================

@router.post(
    "/resolve",
    response_model=ResolveResponse,
    summary="Resolve PDF field values for an order list",
    description="""
    Pick the field mapping for the order list (stored template mapping, else
    the manufacturer/product type registry entry, else the default mapping)
    and compute one string value per mapped PDF field.
    """
)
async def resolve_fields(request: ResolveRequest, fetcher: PDFFetcher = Depends(get_pdf_fetcher)):
    diagnostics = CollectingDiagnosticsSink(forward=LoggingDiagnosticsSink())
    engine = build_engine(fetcher, diagnostics)

    fields = engine.resolve(
        project=request.project,
        part=request.part,
        order_list=request.order_list,
        items=request.items,
        template=request.template,
    )
    logger.info(f"Resolved {len(fields)} fields for order list {request.order_list.id}")

    return ResolveResponse(
        fields=fields,
        diagnostics=[d.dict() for d in diagnostics.diagnostics],
    )


@router.post(
    "/export",
    summary="Fill the manufacturer's PDF form and download it",
    description="""
    Fetch the blank order form, fill its text fields with the resolved values
    and return the PDF as an attachment named after the original file.
    """,
    response_class=Response,
    responses={200: {"content": {"application/pdf": {}}}}
)
async def export_form(request: ExportRequest, fetcher: PDFFetcher = Depends(get_pdf_fetcher)):
    """
    Fill and download an order form.

    Raises:
        HTTPException: 502 if the PDF cannot be fetched, 422 if it cannot be
            parsed, 500 if the filled PDF cannot be written
    """
    diagnostics = CollectingDiagnosticsSink(forward=LoggingDiagnosticsSink())
    engine = build_engine(fetcher, diagnostics)

    try:
        result = await engine.export(
            project=request.project,
            part=request.part,
            order_list=request.order_list,
            items=request.items,
            template=request.template,
            pdf_url=request.pdf_url,
            flatten=request.flatten,
        )
    except OrderFormException as e:
        log_error(logger, e, "Order form export failed")
        raise _document_error(e)

    return Response(
        content=result.content,
        media_type=result.media_type,
        headers={
            "Content-Disposition": _content_disposition(result.filename),
            "X-Filled-Fields": str(len(result.filled)),
            "X-Missing-Fields": str(len(result.missing)),
            "X-Unsupported-Fields": str(len(result.unsupported)),
        }
    )


@router.post(
    "/analyze",
    response_model=AnalyzeResponse,
    summary="Discover the fields of a PDF form",
    description="List the interactive fields of a PDF and propose a starting field mapping."
)
async def analyze_form(request: AnalyzeRequest, fetcher: PDFFetcher = Depends(get_pdf_fetcher)):
    engine = build_engine(fetcher, CollectingDiagnosticsSink(forward=LoggingDiagnosticsSink()))

    try:
        analysis = await engine.analyze(request.pdf_url, request.order_list, request.template)
    except OrderFormException as e:
        log_error(logger, e, "Form analysis failed")
        raise _document_error(e)

    return AnalyzeResponse(
        fields=[descriptor.dict() for descriptor in analysis.fields],
        mapping_template={
            name: mapping.to_dict() for name, mapping in analysis.mapping_template.items()
        },
        unmapped=analysis.unmapped,
    )


@router.get(
    "/mappings",
    response_model=List[MappingInfo],
    summary="List registered manufacturer mappings"
)
async def list_mappings():
    registry = MappingRegistry.builtin()
    mappings = [
        MappingInfo(
            manufacturer=manufacturer,
            product_type=product_type,
            fields={name: mapping.to_dict() for name, mapping in config.items()},
        )
        for manufacturer, product_type, config in registry.entries()
    ]

    logger.info(f"Listed {len(mappings)} manufacturer mappings")
    return mappings


@router.get(
    "/health",
    response_model=HealthCheckResponse,
    summary="Health check for order form module"
)
async def health_check():
    try:
        registry = MappingRegistry.builtin()
        components = {
            "registry": f"healthy ({len(list(registry.entries()))} mappings)",
            "custom_rules": f"healthy ({len(CUSTOM_RULES)} rules)",
        }
    except Exception as e:
        logger.error(f"Health check failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Health check failed: {str(e)}"
        )

    return HealthCheckResponse(status="healthy", components=components)
