import io

import pytest
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas


@pytest.fixture()
def contract_pdf_bytes() -> bytes:
    """Generate a single-page contract PDF with known text content."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Supply Agreement")
    c.drawString(72, 700, "Payment terms: Net 30")
    c.drawString(72, 680, "Product: Widget A")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def empty_pdf_bytes() -> bytes:
    """Generate a valid PDF with no text content (blank page)."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture()
def csv_bytes() -> bytes:
    return b"date,product,units,price\n2024-01-02,Widget A,120,9.50\n"
