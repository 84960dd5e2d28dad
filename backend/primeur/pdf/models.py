"""Données mises en forme pour les documents PDF (indépendantes des tables)."""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel


class PDFShopInfo(BaseModel):
    name: str
    address: str
    postal_code: str
    city: str
    phone: Optional[str] = None


class PDFDocumentLine(BaseModel):
    product_name: str
    unit: str
    quantity: Decimal
    price_ht: Decimal
    tva_rate: Decimal
    total_ttc: Decimal


class PDFQuoteData(BaseModel):
    quote_number: str
    created_at: datetime
    valid_until: datetime
    shop: PDFShopInfo
    items: List[PDFDocumentLine]
    total_ht: Decimal
    total_tva: Decimal
    total_ttc: Decimal
    notes: Optional[str] = None


class PDFInvoiceData(BaseModel):
    invoice_number: str
    generated_at: datetime
    order_number: str
    order_date: datetime
    shop: PDFShopInfo
    items: List[PDFDocumentLine]
    total_ht: Decimal
    total_tva: Decimal
    total_ttc: Decimal
    discount_amount: Decimal = Decimal("0")
