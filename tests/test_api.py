"""
Tests for the order form HTTP endpoints.
"""

import io

import httpx
import pytest
from fastapi.testclient import TestClient
from pypdf import PdfReader

from modules.order_forms.data_providers.pdf_fetcher import PDFFetcher
from src.api.main import app
from src.api.v1.endpoints.order_forms import get_pdf_fetcher

PREFIX = "/api/v1/order-forms"
FORM_URL = "https://cdn.example.com/HILTI-HIT-ELEMENTS.pdf"


@pytest.fixture
def client(form_pdf):
    def handler(request):
        url = str(request.url)
        if url == FORM_URL:
            return httpx.Response(200, content=form_pdf, headers={"content-type": "application/pdf"})
        if url.endswith("broken.pdf"):
            return httpx.Response(200, content=b"garbage", headers={"content-type": "application/pdf"})
        return httpx.Response(404)

    fetcher = PDFFetcher(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    app.dependency_overrides[get_pdf_fetcher] = lambda: fetcher
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def payload():
    return {
        "project": {
            "name": "Tower A",
            "projectNumber": "P1",
            "engineer": {"address": "Main St 1", "postalCode": "1000", "city": "Lausanne"},
        },
        "part": {"partNumber": "X2"},
        "orderList": {"listNumber": "7", "manufacturer": "Hilti", "type": "HIT-Elements"},
        "items": [{"article": "A"}, {"article": "B"}],
    }


def test_resolve(client, payload):
    response = client.post(f"{PREFIX}/resolve", json=payload)

    assert response.status_code == 200
    body = response.json()
    assert body["fields"]["compositeOrderListNumber"] == "P1-X2.7"
    assert body["fields"]["engineerCity"] == "CH-1000 Lausanne"
    assert body["fields"]["productLine"] == "HIT-Elements"
    assert body["diagnostics"] == []


def test_resolve_reports_malformed_template_mapping(client, payload):
    payload["template"] = {"manufacturer": "Hilti", "productType": "HIT-Elements", "fieldMapping": "{oops"}

    body = client.post(f"{PREFIX}/resolve", json=payload).json()

    assert body["fields"]["productLine"] == "HIT-Elements"
    assert [d["kind"] for d in body["diagnostics"]] == ["mapping_parse_error"]


def test_resolve_requires_order_list(client):
    assert client.post(f"{PREFIX}/resolve", json={}).status_code == 422


def test_export(client, payload):
    payload.update({"pdfUrl": FORM_URL, "flatten": False})

    response = client.post(f"{PREFIX}/export", json=payload)

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert 'filename="filled-HILTI-HIT-ELEMENTS.pdf"' in response.headers["content-disposition"]
    values = PdfReader(io.BytesIO(response.content)).get_form_text_fields()
    assert values["projectName"] == "Tower A"
    assert int(response.headers["x-missing-fields"]) > 0


@pytest.mark.parametrize("pdf_url, status_code", [
    ("https://cdn.example.com/missing.pdf", 502),
    ("https://cdn.example.com/broken.pdf", 422),
])
def test_export_document_errors(client, payload, pdf_url, status_code):
    payload["pdfUrl"] = pdf_url

    response = client.post(f"{PREFIX}/export", json=payload)

    assert response.status_code == status_code
    assert response.json()["detail"]


def test_analyze(client):
    response = client.post(f"{PREFIX}/analyze", json={"pdfUrl": FORM_URL})

    assert response.status_code == 200
    body = response.json()
    types = {field["name"]: field["type"] for field in body["fields"]}
    assert types["projectName"] == "text"
    assert types["delivery"] == "radio"
    assert body["mapping_template"]["projectName"] == {"source": "project", "field": "name"}


def test_list_mappings(client):
    response = client.get(f"{PREFIX}/mappings")

    assert response.status_code == 200
    keys = {(m["manufacturer"], m["product_type"]) for m in response.json()}
    assert ("hilti", "hit-elements") in keys
    assert len(keys) == 5


def test_health(client):
    assert client.get(f"{PREFIX}/health").json()["status"] == "healthy"
    body = client.get("/health").json()
    assert body == {"status": "healthy", "version": "1.0.0"}


def test_analyze_against_current_mapping(client, payload):
    response = client.post(
        f"{PREFIX}/analyze",
        json={"pdfUrl": FORM_URL, "orderList": payload["orderList"]},
    )

    assert "productLine" in response.json()["unmapped"]
