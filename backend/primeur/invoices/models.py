from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlmodel import Field, SQLModel

from primeur.core.schemas import Pagination
from primeur.core.utils import utcnow
from primeur.orders.models import OrderItemRead
from primeur.shops.models import ShopSummary


class Invoice(SQLModel, table=True):
    """Facture d'une commande livrée. Les montants sont une copie de ceux de la commande."""
    __tablename__ = "invoices"

    id: Optional[int] = Field(default=None, primary_key=True)
    invoice_number: str = Field(unique=True, index=True, max_length=40)
    order_id: int = Field(foreign_key="orders.id", unique=True, index=True)
    shop_id: int = Field(foreign_key="shops.id", index=True)
    order_number: str = Field(max_length=40)
    total_ht: Decimal = Field(max_digits=12, decimal_places=2)
    total_tva: Decimal = Field(max_digits=12, decimal_places=2)
    total_ttc: Decimal = Field(max_digits=12, decimal_places=2)
    discount_amount: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    generated_at: datetime = Field(default_factory=utcnow)
    sent_at: Optional[datetime] = Field(default=None)
    created_by: Optional[int] = Field(default=None, foreign_key="users.id")
    created_at: datetime = Field(default_factory=utcnow, index=True)


# --- Schémas API ---

class InvoiceRead(SQLModel):
    id: int
    invoice_number: str
    order_id: int
    shop_id: int
    order_number: str
    total_ht: Decimal
    total_tva: Decimal
    total_ttc: Decimal
    discount_amount: Decimal
    generated_at: datetime
    sent_at: Optional[datetime] = None
    created_at: datetime


class InvoiceReadWithDetails(InvoiceRead):
    shop: Optional[ShopSummary] = None
    items: List[OrderItemRead] = []


class InvoiceListResponse(SQLModel):
    success: bool = True
    invoices: List[InvoiceReadWithDetails]
    pagination: Pagination


class InvoiceDetailResponse(SQLModel):
    success: bool = True
    invoice: InvoiceReadWithDetails


class InvoiceMutationResponse(SQLModel):
    success: bool = True
    message: str
    invoice: InvoiceReadWithDetails
