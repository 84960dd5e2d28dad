from typing import Optional, List
from decimal import Decimal
from datetime import datetime

from sqlmodel import SQLModel, Field
from pydantic import ConfigDict

from primeur.core.schemas import Pagination
from primeur.core.utils import utcnow


class ProductBase(SQLModel):
    """Champs communs d'un produit du catalogue (fruits et légumes)."""
    name: str = Field(index=True, max_length=200)
    reference: Optional[str] = Field(default=None, max_length=50, index=True)
    description: Optional[str] = Field(default=None)
    unit: str = Field(default="kg", max_length=20)
    price_ht: Decimal = Field(default=Decimal("0"), max_digits=10, decimal_places=2)
    price_ht_t2: Optional[Decimal] = Field(default=None, max_digits=10, decimal_places=2)
    tva_rate: Decimal = Field(default=Decimal("5.5"), max_digits=5, decimal_places=2)
    stock: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=3)
    stock_alert: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=3)
    category_id: Optional[int] = Field(default=None, foreign_key="categories.id", index=True)
    sub_category_id: Optional[int] = Field(default=None, foreign_key="sub_categories.id", index=True)
    is_active: bool = Field(default=True)


class Product(ProductBase, table=True):
    """Modèle de table pour les produits."""
    __tablename__ = "products"

    id: Optional[int] = Field(default=None, primary_key=True)
    deleted_at: Optional[datetime] = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(from_attributes=True)


# --- Schémas API ---

class ProductCreate(SQLModel):
    name: str = Field(min_length=1, max_length=200)
    reference: Optional[str] = Field(default=None, max_length=50)
    description: Optional[str] = None
    unit: str = Field(default="kg", max_length=20)
    price_ht: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    price_ht_t2: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    tva_rate: Decimal = Field(default=Decimal("5.5"), ge=0, le=100, max_digits=5, decimal_places=2)
    stock: Decimal = Field(default=Decimal("0"), ge=0, max_digits=12, decimal_places=3)
    stock_alert: Decimal = Field(default=Decimal("0"), ge=0, max_digits=12, decimal_places=3)
    category_id: Optional[int] = None
    sub_category_id: Optional[int] = None
    is_active: bool = True


class ProductUpdate(SQLModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    reference: Optional[str] = Field(default=None, max_length=50)
    description: Optional[str] = None
    unit: Optional[str] = Field(default=None, max_length=20)
    price_ht: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    price_ht_t2: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    tva_rate: Optional[Decimal] = Field(default=None, ge=0, le=100, max_digits=5, decimal_places=2)
    stock_alert: Optional[Decimal] = Field(default=None, ge=0, max_digits=12, decimal_places=3)
    category_id: Optional[int] = None
    sub_category_id: Optional[int] = None
    is_active: Optional[bool] = None
    # Motif enregistré dans l'historique des prix en cas de changement de tarif
    price_change_reason: Optional[str] = Field(default=None, max_length=255)


class ProductRead(ProductBase):
    id: int
    deleted_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class ProductListResponse(SQLModel):
    success: bool = True
    products: List[ProductRead]
    pagination: Pagination
