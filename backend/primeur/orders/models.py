from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from sqlmodel import Field, SQLModel

from primeur.core.schemas import Pagination
from primeur.core.utils import utcnow
from primeur.pricing.models import PriceTier


class OrderStatus(str, Enum):
    NEW = "NEW"
    AGGREGATED = "AGGREGATED"
    SUPPLIER_ORDERED = "SUPPLIER_ORDERED"
    PREPARATION = "PREPARATION"
    LIVRAISON = "LIVRAISON"
    LIVREE = "LIVREE"
    ANNULEE = "ANNULEE"


class PaymentStatus(str, Enum):
    EN_ATTENTE = "EN_ATTENTE"
    PAYE = "PAYE"
    EN_RETARD = "EN_RETARD"
    IMPAYE = "IMPAYE"


class Order(SQLModel, table=True):
    """Commande d'un magasin. Les montants sont figés à la création."""
    __tablename__ = "orders"

    id: Optional[int] = Field(default=None, primary_key=True)
    order_number: str = Field(unique=True, index=True, max_length=40)
    shop_id: int = Field(foreign_key="shops.id", index=True)
    status: str = Field(default=OrderStatus.NEW.value, max_length=30, index=True)
    payment_status: str = Field(default=PaymentStatus.EN_ATTENTE.value, max_length=20)
    pricing_type: str = Field(default="T1", max_length=2)
    total_ht: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    total_tva: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    total_ttc: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    discount_amount: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    promotion_id: Optional[int] = Field(default=None, foreign_key="promotions.id")
    promotion_code: Optional[str] = Field(default=None, max_length=50)
    quote_id: Optional[int] = Field(default=None, index=True)
    notes: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)


class OrderItem(SQLModel, table=True):
    __tablename__ = "order_items"

    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(foreign_key="orders.id", index=True)
    product_id: int = Field(foreign_key="products.id", index=True)
    product_name: str = Field(max_length=200)
    unit: str = Field(default="kg", max_length=20)
    quantity: Decimal = Field(max_digits=12, decimal_places=3)
    price_ht: Decimal = Field(max_digits=10, decimal_places=2)
    tva_rate: Decimal = Field(max_digits=5, decimal_places=2)
    total_ht: Decimal = Field(max_digits=12, decimal_places=2)
    total_tva: Decimal = Field(max_digits=12, decimal_places=2)
    total_ttc: Decimal = Field(max_digits=12, decimal_places=2)


# --- Schémas API ---

class OrderItemCreate(SQLModel):
    product_id: int
    quantity: Decimal = Field(ge=Decimal("0.01"), max_digits=12, decimal_places=3)


class OrderCreate(SQLModel):
    items: List[OrderItemCreate] = Field(min_length=1)
    shop_id: Optional[int] = Field(default=None, description="Obligatoire pour un admin, ignoré pour un client")
    pricing_type: PriceTier = PriceTier.T1
    promotion_code: Optional[str] = Field(default=None, max_length=50)
    notes: Optional[str] = None


class OrderStatusUpdate(SQLModel):
    status: OrderStatus


class OrderItemRead(SQLModel):
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


class OrderRead(SQLModel):
    id: int
    order_number: str
    shop_id: int
    status: str
    payment_status: str
    pricing_type: str
    total_ht: Decimal
    total_tva: Decimal
    total_ttc: Decimal
    discount_amount: Decimal
    promotion_code: Optional[str] = None
    quote_id: Optional[int] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class OrderReadWithItems(OrderRead):
    items: List[OrderItemRead] = []


class OrderListResponse(SQLModel):
    success: bool = True
    orders: List[OrderReadWithItems]
    pagination: Pagination


class OrderMutationResponse(SQLModel):
    success: bool = True
    message: str
    order: OrderReadWithItems
