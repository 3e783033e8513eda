"""
Tests for the order form engine.
"""

import io
import json

import httpx
import pytest
from pypdf import PdfReader

from modules.order_forms.core.diagnostics import DiagnosticKind
from modules.order_forms.core.engine import OrderFormEngine
from modules.order_forms.core.exceptions import PDFFetchError
from modules.order_forms.core.models import PdfTemplate
from modules.order_forms.core.types import MappingSource
from modules.order_forms.data_providers.pdf_fetcher import PDFFetcher
from modules.order_forms.mappers.field_mapper import MappingResolver
from modules.order_forms.mappers.registry import DEFAULT_MAPPING

BASE_URL = "https://cdn.example.com"


@pytest.fixture
def served():
    """URL -> PDF bytes served by the mock transport."""
    return {}


@pytest.fixture
def engine(served, diagnostics):
    def handler(request):
        body = served.get(str(request.url))
        if body is None:
            return httpx.Response(404)
        return httpx.Response(200, content=body, headers={"content-type": "application/pdf"})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    engine = OrderFormEngine(
        fetcher=PDFFetcher(client=client),
        resolver=MappingResolver(diagnostics=diagnostics),
        diagnostics=diagnostics,
    )
    return engine


def test_registry_mapping_is_used(engine, order_list):
    config = engine.mapping_for(order_list)

    assert config["productLine"].source == MappingSource.ORDER_LIST


def test_stored_template_mapping_wins(engine, order_list):
    template = PdfTemplate(
        manufacturer="Hilti",
        productType="HIT-Elements",
        fieldMapping=json.dumps({"projectName": {"source": "project", "field": "projectNumber"}}),
    )

    config = engine.mapping_for(order_list, template)

    assert list(config) == ["projectName"]
    assert config["projectName"].field == "projectNumber"


def test_malformed_template_mapping_falls_back(engine, order_list, diagnostics):
    template = PdfTemplate(manufacturer="Hilti", productType="HIT-Elements", fieldMapping="{oops")

    config = engine.mapping_for(order_list, template)

    assert "productLine" in config
    assert [d.kind for d in diagnostics.user_notices] == [DiagnosticKind.MAPPING_PARSE_ERROR]


def test_unknown_product_uses_default(engine, diagnostics):
    config = engine.mapping_for({"manufacturer": "Acme", "type": "Bolt"})

    assert config == DEFAULT_MAPPING
    assert diagnostics.of_kind(DiagnosticKind.MAPPING_NOT_FOUND)


def test_resolve(engine, project, part, order_list, items):
    resolved = engine.resolve(project, part, order_list, items)

    assert resolved["compositeOrderListNumber"] == "P1-X2.7"
    assert resolved["productLine"] == "HIT-Elements"


def test_pdf_url_for(engine, order_list):
    assert engine.pdf_url_for(order_list).endswith("/HILTI-HIT-ELEMENTS.pdf")

    template = PdfTemplate(manufacturer="Hilti", productType="HIT-Elements", pdfUrl=f"{BASE_URL}/custom.pdf")
    assert engine.pdf_url_for(order_list, template) == f"{BASE_URL}/custom.pdf"


@pytest.mark.asyncio
async def test_export(engine, served, form_pdf, project, part, order_list, items):
    url = f"{BASE_URL}/forms/HILTI-HIT-ELEMENTS.pdf"
    served[url] = form_pdf

    result = await engine.export(project, part, order_list, items, pdf_url=url, flatten=False)

    values = PdfReader(io.BytesIO(result.content)).get_form_text_fields()
    assert values["projectName"] == "Tower A"
    assert values["compositeOrderListNumber"] == "P1-X2.7"
    assert result.filename == "filled-HILTI-HIT-ELEMENTS.pdf"
    assert "productLine" in result.missing


@pytest.mark.asyncio
async def test_export_with_stored_item_mapping(engine, served, form_pdf, order_list, items):
    url = f"{BASE_URL}/custom.pdf"
    served[url] = form_pdf
    template = PdfTemplate(
        manufacturer="Hilti",
        productType="HIT-Elements",
        pdfUrl=url,
        fieldMapping=json.dumps([
            {"pdfField": "article_1", "source": "item", "field": "article"},
            {"pdfField": "article_2", "source": "item", "field": "article"},
        ]),
    )

    result = await engine.export(order_list=order_list, items=items, template=template, flatten=False)

    values = PdfReader(io.BytesIO(result.content)).get_form_text_fields()
    assert (values["article_1"], values["article_2"]) == ("A", "B")
    assert result.filled == ["article_1", "article_2"]


@pytest.mark.asyncio
async def test_export_fetch_failure(engine, order_list):
    with pytest.raises(PDFFetchError) as excinfo:
        await engine.export(order_list=order_list, pdf_url=f"{BASE_URL}/missing.pdf")

    assert excinfo.value.status_code == 404


@pytest.mark.asyncio
async def test_analyze(engine, served, form_pdf):
    url = f"{BASE_URL}/analyze.pdf"
    served[url] = form_pdf

    analysis = await engine.analyze(url)

    assert {"projectName", "urgent", "finish", "delivery", "remarks"} <= {f.name for f in analysis.fields}
    assert analysis.mapping_template["projectName"].source == MappingSource.PROJECT


@pytest.mark.asyncio
async def test_analyze_reports_unmapped_fields(engine, served, form_pdf, order_list):
    url = f"{BASE_URL}/analyze.pdf"
    served[url] = form_pdf

    analysis = await engine.analyze(url, order_list)

    assert "productLine" in analysis.unmapped
    assert "projectName" not in analysis.unmapped
    assert analysis.unmapped == sorted(analysis.unmapped)


@pytest.mark.asyncio
async def test_close_leaves_injected_client_open(engine):
    await engine.close()

    assert not engine.fetcher.client.is_closed
