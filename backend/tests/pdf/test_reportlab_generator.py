"""
Tests du générateur PDF ReportLab pour les devis et les factures.
"""
from datetime import datetime
from decimal import Decimal

import pytest

from primeur.pdf.config import PDFSettings
from primeur.pdf.models import PDFDocumentLine, PDFInvoiceData, PDFQuoteData, PDFShopInfo
from primeur.pdf.reportlab_generator import ReportLabPDFGenerator

pytestmark = pytest.mark.asyncio


def _quote_data(**overrides) -> PDFQuoteData:
    values = dict(
        quote_number="DEV-202405-0042",
        created_at=datetime(2024, 5, 2, 9, 30),
        valid_until=datetime(2024, 5, 17),
        shop=PDFShopInfo(name="Primeur du Marché", address="1 rue des Halles", postal_code="69001", city="Lyon"),
        items=[
            PDFDocumentLine(
                product_name="Pommes", unit="kg", quantity=Decimal("2.500"),
                price_ht=Decimal("10.00"), tva_rate=Decimal("5.5"), total_ttc=Decimal("26.38"),
            ),
        ],
        total_ht=Decimal("25.00"),
        total_tva=Decimal("1.38"),
        total_ttc=Decimal("26.38"),
        notes="Livraison avant 7h",
    )
    values.update(overrides)
    return PDFQuoteData(**values)


async def test_generate_quote_pdf_without_logo(tmp_path):
    settings = PDFSettings(LOGO_PATH=str(tmp_path / "absent.png"))
    content = await ReportLabPDFGenerator(settings).generate_quote_pdf(_quote_data())
    assert content.startswith(b"%PDF")
    assert len(content) > 1000


async def test_generate_quote_pdf_without_notes(tmp_path):
    settings = PDFSettings(LOGO_PATH=str(tmp_path / "absent.png"))
    content = await ReportLabPDFGenerator(settings).generate_quote_pdf(_quote_data(notes=None, items=[]))
    assert content.startswith(b"%PDF")


async def test_generate_invoice_pdf_with_discount(tmp_path):
    settings = PDFSettings(LOGO_PATH=str(tmp_path / "absent.png"))
    data = PDFInvoiceData(
        invoice_number="FAC-202405-0007",
        generated_at=datetime(2024, 5, 20, 14, 0),
        order_number="CMD-202405-1234",
        order_date=datetime(2024, 5, 18, 8, 15),
        shop=PDFShopInfo(
            name="Primeur du Marché", address="1 rue des Halles", postal_code="69001", city="Lyon", phone="0478000000"
        ),
        items=[
            PDFDocumentLine(
                product_name="Poires", unit="kg", quantity=Decimal("4"),
                price_ht=Decimal("5.00"), tva_rate=Decimal("5.5"), total_ttc=Decimal("21.10"),
            ),
        ],
        total_ht=Decimal("20.00"),
        total_tva=Decimal("1.10"),
        total_ttc=Decimal("16.10"),
        discount_amount=Decimal("5.00"),
    )
    content = await ReportLabPDFGenerator(settings).generate_invoice_pdf(data)
    assert content.startswith(b"%PDF")
