"""
Shared fixtures: fillable PDFs built with reportlab and sample records.
"""

import io

import pytest
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from modules.order_forms.core.diagnostics import CollectingDiagnosticsSink
from modules.order_forms.core.models import Company, Item, OrderList, Project, ProjectPart

TEXT_FIELDS = [
    "projectName",
    "projectNumber",
    "partNumber",
    "compositeOrderListNumber",
    "date",
    "article_1",
    "article_2",
]


def build_form_pdf(
    text_fields=TEXT_FIELDS,
    with_buttons: bool = True,
    extra_page: bool = True
) -> bytes:
    """Build a small AcroForm PDF with text, checkbox, choice and radio fields."""
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4)
    form = c.acroForm

    c.drawString(50, 800, "Order Form")
    y = 760
    for name in text_fields:
        c.drawString(50, y + 5, name)
        form.textfield(name=name, x=200, y=y, width=200, height=20)
        y -= 30

    form.textfield(name="listNumber", x=200, y=y, width=200, height=20, fieldFlags="required")
    y -= 30
    form.textfield(name="engineerName", x=200, y=y, width=200, height=20, fieldFlags="readOnly")
    y -= 30

    if with_buttons:
        form.checkbox(name="urgent", x=200, y=y, buttonStyle="check", checked=False)
        y -= 30
        form.choice(
            name="finish",
            value="galvanized",
            options=["galvanized", "stainless"],
            x=200, y=y, width=120, height=20,
        )
        y -= 30
        form.radio(name="delivery", value="pickup", selected=True, x=200, y=y, size=14)
        form.radio(name="delivery", value="truck", selected=False, x=230, y=y, size=14)

    c.showPage()

    if extra_page:
        c.drawString(50, 800, "Remarks")
        form.textfield(name="remarks", x=50, y=700, width=300, height=40)
        c.showPage()

    c.save()
    return buffer.getvalue()


def build_plain_pdf(pages: int = 3) -> bytes:
    """Build a PDF without a form."""
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4)
    for page in range(1, pages + 1):
        c.drawString(72, 760, f"Page {page}")
        c.showPage()
    c.save()
    return buffer.getvalue()


@pytest.fixture
def form_pdf() -> bytes:
    return build_form_pdf()


@pytest.fixture
def plain_pdf() -> bytes:
    return build_plain_pdf()


@pytest.fixture
def make_form_pdf():
    return build_form_pdf


@pytest.fixture
def diagnostics() -> CollectingDiagnosticsSink:
    return CollectingDiagnosticsSink()


@pytest.fixture
def project() -> Project:
    return Project(
        id="prj-1",
        name="Tower A",
        projectNumber="P1",
        address="Rue du Lac 3, Lausanne",
        designer="Anna Keller",
        projectManager="Marc Weber",
        engineer=Company(
            name="Ingenieure AG",
            address="Main St 1",
            postalCode="1000",
            city="Lausanne",
            phone="+41 21 000 00 00",
            email="office@ingenieure.ch",
        ),
        masonryCompany=Company(
            name="Mauer GmbH",
            street="Baustrasse 9",
            city="Bern",
        ),
    )


@pytest.fixture
def part() -> ProjectPart:
    return ProjectPart(id="part-1", name="Basement", partNumber="X2", projectId="prj-1")


@pytest.fixture
def order_list() -> OrderList:
    return OrderList(
        id="ol-1",
        listNumber="7",
        name="Anchors",
        manufacturer="Hilti",
        type="HIT-Elements",
        designer="Anna Keller",
        projectManager="Marc Weber",
    )


@pytest.fixture
def items() -> list:
    return [
        Item(id="i-1", article="A", quantity=4, specifications={"diameter": "M12"}),
        Item(id="i-2", article="B", quantity=2.0, specifications={"diameter": "M16"}),
    ]
