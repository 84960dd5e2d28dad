from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import field_validator
from sqlmodel import Field, SQLModel

from primeur.core.schemas import Pagination
from primeur.core.utils import as_naive_utc, utcnow
from primeur.orders.models import OrderReadWithItems
from primeur.pricing.models import PriceTier
from primeur.shops.models import ShopSummary


class QuoteStatus(str, Enum):
    DRAFT = "DRAFT"
    SENT = "SENT"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"
    CONVERTED = "CONVERTED"


class Quote(SQLModel, table=True):
    """Devis. Les montants et les lignes sont figés à la création ou au remplacement des lignes."""
    __tablename__ = "quotes"

    id: Optional[int] = Field(default=None, primary_key=True)
    quote_number: str = Field(unique=True, index=True, max_length=40)
    shop_id: int = Field(foreign_key="shops.id", index=True)
    status: str = Field(default=QuoteStatus.DRAFT.value, max_length=20, index=True)
    pricing_type: str = Field(default="T1", max_length=2)
    total_ht: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    total_tva: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    total_ttc: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    valid_until: datetime
    notes: Optional[str] = Field(default=None)
    sent_at: Optional[datetime] = Field(default=None)
    responded_at: Optional[datetime] = Field(default=None)
    converted_to_order_id: Optional[int] = Field(default=None, foreign_key="orders.id", unique=True)
    created_by: Optional[int] = Field(default=None, foreign_key="users.id")
    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)


class QuoteItem(SQLModel, table=True):
    """Ligne de devis: instantané du produit et du prix au moment du chiffrage."""
    __tablename__ = "quote_items"

    id: Optional[int] = Field(default=None, primary_key=True)
    quote_id: int = Field(foreign_key="quotes.id", index=True)
    product_id: int = Field(foreign_key="products.id", index=True)
    product_name: str = Field(max_length=200)
    unit: str = Field(default="kg", max_length=20)
    quantity: Decimal = Field(max_digits=12, decimal_places=3)
    price_ht: Decimal = Field(max_digits=10, decimal_places=2)
    tva_rate: Decimal = Field(max_digits=5, decimal_places=2)
    total_ht: Decimal = Field(max_digits=12, decimal_places=2)
    total_tva: Decimal = Field(max_digits=12, decimal_places=2)
    total_ttc: Decimal = Field(max_digits=12, decimal_places=2)
    price_source: str = Field(default="BASE", max_length=10)


# --- Schémas API ---

class QuoteItemCreate(SQLModel):
    product_id: int
    quantity: Decimal = Field(ge=Decimal("0.01"), max_digits=12, decimal_places=3)


class QuoteCreate(SQLModel):
    shop_id: int
    items: List[QuoteItemCreate] = Field(min_length=1)
    valid_until: datetime
    pricing_type: PriceTier = PriceTier.T1
    notes: Optional[str] = None

    @field_validator("valid_until")
    @classmethod
    def normalize_valid_until(cls, value: datetime) -> datetime:
        return as_naive_utc(value)


class QuoteUpdate(SQLModel):
    items: Optional[List[QuoteItemCreate]] = Field(default=None, min_length=1)
    valid_until: Optional[datetime] = None
    notes: Optional[str] = None
    status: Optional[QuoteStatus] = None

    @field_validator("valid_until")
    @classmethod
    def normalize_valid_until(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_naive_utc(value)


class QuoteItemRead(SQLModel):
    id: int
    product_id: int
    product_name: str
    unit: str
    quantity: Decimal
    price_ht: Decimal
    tva_rate: Decimal
    total_ht: Decimal
    total_tva: Decimal
    total_ttc: Decimal
    price_source: str


class QuoteRead(SQLModel):
    id: int
    quote_number: str
    shop_id: int
    status: str
    pricing_type: str
    total_ht: Decimal
    total_tva: Decimal
    total_ttc: Decimal
    valid_until: datetime
    notes: Optional[str] = None
    sent_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None
    converted_to_order_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime


class QuoteReadWithItems(QuoteRead):
    shop: Optional[ShopSummary] = None
    items: List[QuoteItemRead] = []


class QuoteListResponse(SQLModel):
    success: bool = True
    quotes: List[QuoteReadWithItems]
    pagination: Pagination


class QuoteDetailResponse(SQLModel):
    success: bool = True
    quote: QuoteReadWithItems


class QuoteMutationResponse(SQLModel):
    success: bool = True
    message: str
    quote: QuoteReadWithItems


class QuoteConvertResponse(SQLModel):
    success: bool = True
    message: str
    quote: QuoteReadWithItems
    order: OrderReadWithItems
