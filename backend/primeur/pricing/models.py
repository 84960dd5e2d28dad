from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import model_validator
from sqlmodel import Field, SQLModel

from primeur.core.schemas import Pagination
from primeur.core.utils import as_naive_utc, utcnow
from primeur.users.models import UserSummary


class PriceTier(str, Enum):
    T1 = "T1"
    T2 = "T2"


class PriceSource(str, Enum):
    CLIENT = "client"
    VOLUME = "volume"
    BASE = "base"


class PriceChangeType(str, Enum):
    MANUAL = "manual"
    BULK = "bulk"


class BulkAction(str, Enum):
    INCREASE = "increase"
    DECREASE = "decrease"
    SET = "set"


class BulkValueType(str, Enum):
    PERCENT = "percent"
    ABSOLUTE = "absolute"


# --- Tarifs dégressifs ---

class VolumePricingBase(SQLModel):
    product_id: int = Field(foreign_key="products.id", index=True)
    min_quantity: Decimal = Field(max_digits=12, decimal_places=3)
    max_quantity: Optional[Decimal] = Field(default=None, max_digits=12, decimal_places=3)
    price_ht: Decimal = Field(max_digits=10, decimal_places=2)
    discount_percent: Optional[Decimal] = Field(default=None, max_digits=5, decimal_places=2)
    is_active: bool = Field(default=True)


class VolumePricing(VolumePricingBase, table=True):
    """Tranche de prix par quantité pour un produit."""
    __tablename__ = "volume_pricing"

    id: Optional[int] = Field(default=None, primary_key=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class VolumePricingCreate(SQLModel):
    product_id: int
    min_quantity: Decimal = Field(ge=0, max_digits=12, decimal_places=3)
    max_quantity: Optional[Decimal] = Field(default=None, ge=0, max_digits=12, decimal_places=3)
    price_ht: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    discount_percent: Optional[Decimal] = Field(default=None, ge=0, le=100, max_digits=5, decimal_places=2)
    is_active: bool = True

    @model_validator(mode="after")
    def check_bracket(self):
        if self.max_quantity is not None and self.max_quantity <= self.min_quantity:
            raise ValueError("La quantité maximum doit être supérieure à la quantité minimum")
        return self


class VolumePricingUpdate(SQLModel):
    min_quantity: Optional[Decimal] = Field(default=None, ge=0, max_digits=12, decimal_places=3)
    max_quantity: Optional[Decimal] = Field(default=None, ge=0, max_digits=12, decimal_places=3)
    price_ht: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    discount_percent: Optional[Decimal] = Field(default=None, ge=0, le=100, max_digits=5, decimal_places=2)
    is_active: Optional[bool] = None


class VolumePricingRead(VolumePricingBase):
    id: int
    created_at: datetime
    product_name: Optional[str] = None


# --- Tarifs clients ---

class ClientPricingBase(SQLModel):
    product_id: int = Field(foreign_key="products.id", index=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    price_ht: Decimal = Field(max_digits=10, decimal_places=2)
    price_ht_t2: Optional[Decimal] = Field(default=None, max_digits=10, decimal_places=2)
    valid_from: datetime = Field(default_factory=utcnow)
    valid_until: Optional[datetime] = Field(default=None)
    notes: Optional[str] = Field(default=None)
    is_active: bool = Field(default=True)


class ClientPricing(ClientPricingBase, table=True):
    """Prix négocié pour un couple (produit, client)."""
    __tablename__ = "client_pricing"

    id: Optional[int] = Field(default=None, primary_key=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class ClientPricingCreate(SQLModel):
    product_id: int
    user_id: int
    price_ht: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    price_ht_t2: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    notes: Optional[str] = None
    is_active: bool = True

    @model_validator(mode="after")
    def check_window(self):
        self.valid_from = as_naive_utc(self.valid_from) or utcnow()
        self.valid_until = as_naive_utc(self.valid_until)
        if self.valid_until is not None and self.valid_until <= self.valid_from:
            raise ValueError("La date de fin doit être postérieure à la date de début")
        return self


class ClientPricingUpdate(SQLModel):
    price_ht: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    price_ht_t2: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None

    @model_validator(mode="after")
    def normalize_dates(self):
        self.valid_from = as_naive_utc(self.valid_from)
        self.valid_until = as_naive_utc(self.valid_until)
        return self


class ClientPricingRead(ClientPricingBase):
    id: int
    created_at: datetime
    product_name: Optional[str] = None
    user: Optional[UserSummary] = None


# --- Historique des prix (append-only) ---

class PriceHistory(SQLModel, table=True):
    """Trace immuable d'un changement de prix."""
    __tablename__ = "price_history"

    id: Optional[int] = Field(default=None, primary_key=True)
    product_id: int = Field(foreign_key="products.id", index=True)
    old_price_ht: Optional[Decimal] = Field(default=None, max_digits=10, decimal_places=2)
    new_price_ht: Decimal = Field(max_digits=10, decimal_places=2)
    old_price_ht_t2: Optional[Decimal] = Field(default=None, max_digits=10, decimal_places=2)
    new_price_ht_t2: Optional[Decimal] = Field(default=None, max_digits=10, decimal_places=2)
    change_type: str = Field(default=PriceChangeType.MANUAL.value, max_length=20)
    reason: Optional[str] = Field(default=None, max_length=255)
    changed_by: Optional[int] = Field(default=None, foreign_key="users.id")
    changed_at: datetime = Field(default_factory=utcnow, index=True)


class PriceHistoryRead(SQLModel):
    id: int
    product_id: int
    old_price_ht: Optional[Decimal] = None
    new_price_ht: Decimal
    old_price_ht_t2: Optional[Decimal] = None
    new_price_ht_t2: Optional[Decimal] = None
    change_type: str
    reason: Optional[str] = None
    changed_by: Optional[int] = None
    changed_at: datetime


# --- Modification en masse ---

class BulkPriceUpdateRequest(SQLModel):
    product_ids: List[int] = Field(min_length=1)
    action: BulkAction
    value: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    value_type: BulkValueType = BulkValueType.PERCENT
    reason: Optional[str] = Field(default=None, max_length=255)


class BulkPriceUpdateResponse(SQLModel):
    success: bool = True
    message: str
    updated_count: int


# --- Liste des prix ---

class PriceListItem(SQLModel):
    id: int
    name: str
    reference: Optional[str] = None
    unit: str
    price_ht: Decimal
    price_ht_t2: Optional[Decimal] = None
    tva_rate: Decimal
    category_id: Optional[int] = None
    last_change_at: Optional[datetime] = None
    price_change: Optional[Decimal] = None
    price_change_percent: Optional[Decimal] = None
    has_volume_pricing: bool = False
    has_client_pricing: bool = False


class PriceStats(SQLModel):
    total_products: int = 0
    avg_price: Decimal = Decimal("0")
    min_price: Decimal = Decimal("0")
    max_price: Decimal = Decimal("0")
    products_with_volume_pricing: int = 0
    products_with_client_pricing: int = 0
    recent_changes: int = 0


class PriceListResponse(SQLModel):
    success: bool = True
    products: List[PriceListItem]
    stats: PriceStats
    pagination: Pagination


class PriceHistoryResponse(SQLModel):
    success: bool = True
    history: List[PriceHistoryRead]


class VolumePricingListResponse(SQLModel):
    success: bool = True
    volume_pricing: List[VolumePricingRead]


class ClientPricingListResponse(SQLModel):
    success: bool = True
    client_pricing: List[ClientPricingRead]


class ResolvedPrice(SQLModel):
    """Prix unitaire HT retenu pour un produit, une quantité et un client."""
    product_id: int
    quantity: Decimal
    tier: PriceTier
    unit_price_ht: Decimal
    tva_rate: Decimal
    source: PriceSource
