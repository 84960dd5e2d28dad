from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import EmailStr
from sqlmodel import Field, SQLModel

from primeur.core.utils import utcnow


class SupplierOrderStatus(str, Enum):
    DRAFT = "DRAFT"
    SENT = "SENT"
    CONFIRMED = "CONFIRMED"
    IN_TRANSIT = "IN_TRANSIT"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


# Statuts bloquant la suppression d'un fournisseur
ACTIVE_ORDER_STATUSES = (SupplierOrderStatus.SENT, SupplierOrderStatus.CONFIRMED, SupplierOrderStatus.IN_TRANSIT)


class SupplierSortBy(str, Enum):
    CREATED_AT = "created_at"
    NAME = "name"
    RATING = "rating"
    TOTAL_ORDERS = "total_orders"


class SupplierBase(SQLModel):
    name: str = Field(index=True, max_length=200)
    contact: str = Field(default="", max_length=200)
    email: str = Field(unique=True, index=True, max_length=255)
    phone: str = Field(max_length=30)
    address: Optional[str] = Field(default=None, max_length=255)
    city: Optional[str] = Field(default=None, max_length=100)
    postal_code: Optional[str] = Field(default=None, max_length=10)
    country: str = Field(default="France", max_length=100)
    siret: Optional[str] = Field(default=None, max_length=20)
    vat_number: Optional[str] = Field(default=None, max_length=30)
    payment_terms: str = Field(default="Net 30 jours", max_length=100)
    average_delivery_days: int = Field(default=2)
    min_order_amount: Decimal = Field(default=Decimal("0"), max_digits=10, decimal_places=2)
    website: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = Field(default=None)
    is_active: bool = Field(default=True)


class Supplier(SupplierBase, table=True):
    """Fournisseur (suppression logique via deleted_at)."""
    __tablename__ = "suppliers"

    id: Optional[int] = Field(default=None, primary_key=True)
    rating: Optional[float] = Field(default=None)
    total_orders: int = Field(default=0)
    total_spent: Decimal = Field(default=Decimal("0"), max_digits=14, decimal_places=2)
    deleted_at: Optional[datetime] = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class SupplierProduct(SQLModel, table=True):
    """Entrée du catalogue d'un fournisseur, éventuellement reliée à un produit du catalogue."""
    __tablename__ = "supplier_products"

    id: Optional[int] = Field(default=None, primary_key=True)
    supplier_id: int = Field(foreign_key="suppliers.id", index=True)
    product_id: Optional[int] = Field(default=None, foreign_key="products.id")
    product_name: str = Field(max_length=200)
    reference: Optional[str] = Field(default=None, max_length=50)
    unit_price: Decimal = Field(max_digits=10, decimal_places=2)
    unit: str = Field(default="kg", max_length=20)
    min_order_qty: Decimal = Field(default=Decimal("1"), max_digits=12, decimal_places=3)
    package_size: Optional[Decimal] = Field(default=None, max_digits=12, decimal_places=3)
    delivery_days: int = Field(default=2)
    is_available: bool = Field(default=True)
    notes: Optional[str] = Field(default=None)
    last_price_update: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class SupplierOrder(SQLModel, table=True):
    __tablename__ = "supplier_orders"

    id: Optional[int] = Field(default=None, primary_key=True)
    order_number: str = Field(unique=True, index=True, max_length=20)
    supplier_id: int = Field(foreign_key="suppliers.id", index=True)
    user_id: Optional[int] = Field(default=None, foreign_key="users.id")
    status: str = Field(default=SupplierOrderStatus.SENT.value, max_length=20, index=True)
    order_date: datetime = Field(default_factory=utcnow)
    expected_date: Optional[datetime] = Field(default=None)
    delivered_date: Optional[datetime] = Field(default=None)
    total_ht: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    total_ttc: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    tracking_number: Optional[str] = Field(default=None, max_length=100)
    invoice_number: Optional[str] = Field(default=None, max_length=100)
    invoice_url: Optional[str] = Field(default=None, max_length=255)
    is_paid: bool = Field(default=False)
    paid_at: Optional[datetime] = Field(default=None)
    payment_method: Optional[str] = Field(default=None, max_length=50)
    notes: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class SupplierOrderItem(SQLModel, table=True):
    __tablename__ = "supplier_order_items"

    id: Optional[int] = Field(default=None, primary_key=True)
    supplier_order_id: int = Field(foreign_key="supplier_orders.id", index=True)
    supplier_product_id: Optional[int] = Field(default=None, foreign_key="supplier_products.id")
    product_name: str = Field(max_length=200)
    reference: Optional[str] = Field(default=None, max_length=50)
    quantity: Decimal = Field(max_digits=12, decimal_places=3)
    unit: str = Field(default="kg", max_length=20)
    unit_price: Decimal = Field(max_digits=10, decimal_places=2)
    total_ht: Decimal = Field(max_digits=12, decimal_places=2)


class SupplierEvaluation(SQLModel, table=True):
    __tablename__ = "supplier_evaluations"

    id: Optional[int] = Field(default=None, primary_key=True)
    supplier_id: int = Field(foreign_key="suppliers.id", index=True)
    user_id: Optional[int] = Field(default=None, foreign_key="users.id")
    order_id: Optional[int] = Field(default=None, foreign_key="supplier_orders.id")
    rating: int = Field(ge=1, le=5)
    quality_score: Optional[int] = Field(default=None)
    delivery_score: Optional[int] = Field(default=None)
    service_score: Optional[int] = Field(default=None)
    price_score: Optional[int] = Field(default=None)
    comment: Optional[str] = Field(default=None)
    would_recommend: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utcnow)


# --- Schémas API: fournisseurs ---

class SupplierCreate(SupplierBase):
    name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    phone: str = Field(min_length=1, max_length=30)
    average_delivery_days: int = Field(default=2, ge=0)
    min_order_amount: Decimal = Field(default=Decimal("0"), ge=0, max_digits=10, decimal_places=2)


class SupplierUpdate(SQLModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    contact: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, min_length=1, max_length=30)
    address: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    siret: Optional[str] = None
    vat_number: Optional[str] = None
    payment_terms: Optional[str] = None
    average_delivery_days: Optional[int] = Field(default=None, ge=0)
    min_order_amount: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    website: Optional[str] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None


class SupplierRead(SupplierBase):
    id: int
    rating: Optional[float] = None
    total_orders: int
    total_spent: Decimal
    created_at: datetime
    updated_at: datetime


class SupplierListItem(SupplierRead):
    products_count: int = 0
    orders_count: int = 0
    evaluations_count: int = 0


class SupplierStats(SQLModel):
    total: int
    active: int
    total_orders: int
    total_spent: Decimal
    avg_rating: float


# --- Catalogue fournisseur ---

class SupplierProductCreate(SQLModel):
    product_id: Optional[int] = None
    product_name: str = Field(min_length=1, max_length=200)
    reference: Optional[str] = Field(default=None, max_length=50)
    unit_price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    unit: str = Field(default="kg", max_length=20)
    min_order_qty: Decimal = Field(default=Decimal("1"), gt=0, max_digits=12, decimal_places=3)
    package_size: Optional[Decimal] = Field(default=None, gt=0, max_digits=12, decimal_places=3)
    delivery_days: int = Field(default=2, ge=0)
    is_available: bool = True
    notes: Optional[str] = None


class SupplierProductUpdate(SQLModel):
    product_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    reference: Optional[str] = Field(default=None, max_length=50)
    unit_price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    unit: Optional[str] = Field(default=None, max_length=20)
    min_order_qty: Optional[Decimal] = Field(default=None, gt=0, max_digits=12, decimal_places=3)
    package_size: Optional[Decimal] = Field(default=None, gt=0, max_digits=12, decimal_places=3)
    delivery_days: Optional[int] = Field(default=None, ge=0)
    is_available: Optional[bool] = None
    notes: Optional[str] = None


class SupplierProductRead(SQLModel):
    id: int
    supplier_id: int
    product_id: Optional[int] = None
    product_name: str
    reference: Optional[str] = None
    unit_price: Decimal
    unit: str
    min_order_qty: Decimal
    package_size: Optional[Decimal] = None
    delivery_days: int
    is_available: bool
    notes: Optional[str] = None
    last_price_update: Optional[datetime] = None


# --- Commandes fournisseurs ---

class SupplierOrderItemCreate(SQLModel):
    supplier_product_id: Optional[int] = None
    product_name: str = Field(min_length=1, max_length=200)
    reference: Optional[str] = Field(default=None, max_length=50)
    quantity: Decimal = Field(gt=0, max_digits=12, decimal_places=3)
    unit: str = Field(default="kg", max_length=20)
    unit_price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)


class SupplierOrderCreate(SQLModel):
    items: List[SupplierOrderItemCreate] = Field(min_length=1)
    expected_date: Optional[datetime] = None
    notes: Optional[str] = None


class SupplierOrderUpdate(SQLModel):
    status: Optional[SupplierOrderStatus] = None
    expected_date: Optional[datetime] = None
    delivered_date: Optional[datetime] = None
    tracking_number: Optional[str] = None
    invoice_number: Optional[str] = None
    invoice_url: Optional[str] = None
    is_paid: Optional[bool] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None


class SupplierOrderItemRead(SQLModel):
    id: int
    supplier_product_id: Optional[int] = None
    product_name: str
    reference: Optional[str] = None
    quantity: Decimal
    unit: str
    unit_price: Decimal
    total_ht: Decimal


class SupplierOrderRead(SQLModel):
    id: int
    order_number: str
    supplier_id: int
    user_id: Optional[int] = None
    status: str
    order_date: datetime
    expected_date: Optional[datetime] = None
    delivered_date: Optional[datetime] = None
    total_ht: Decimal
    total_ttc: Decimal
    tracking_number: Optional[str] = None
    invoice_number: Optional[str] = None
    invoice_url: Optional[str] = None
    is_paid: bool
    paid_at: Optional[datetime] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None
    items: List[SupplierOrderItemRead] = []


# --- Évaluations ---

class SupplierEvaluationCreate(SQLModel):
    order_id: Optional[int] = None
    rating: int = Field(ge=1, le=5)
    quality_score: Optional[int] = Field(default=None, ge=1, le=5)
    delivery_score: Optional[int] = Field(default=None, ge=1, le=5)
    service_score: Optional[int] = Field(default=None, ge=1, le=5)
    price_score: Optional[int] = Field(default=None, ge=1, le=5)
    comment: Optional[str] = None
    would_recommend: bool = True


class SupplierEvaluationRead(SQLModel):
    id: int
    supplier_id: int
    user_id: Optional[int] = None
    order_id: Optional[int] = None
    rating: int
    quality_score: Optional[int] = None
    delivery_score: Optional[int] = None
    service_score: Optional[int] = None
    price_score: Optional[int] = None
    comment: Optional[str] = None
    would_recommend: bool
    created_at: datetime


class SupplierReadWithDetails(SupplierListItem):
    """Fournisseur avec catalogue disponible, dernières commandes et dernières évaluations."""
    products: List[SupplierProductRead] = []
    orders: List[SupplierOrderRead] = []
    evaluations: List[SupplierEvaluationRead] = []


# --- Réponses ---

class SupplierListResponse(SQLModel):
    success: bool = True
    suppliers: List[SupplierListItem]
    stats: SupplierStats


class SupplierDetailResponse(SQLModel):
    success: bool = True
    supplier: SupplierReadWithDetails


class SupplierMutationResponse(SQLModel):
    success: bool = True
    message: str
    supplier: SupplierRead


class SupplierProductListResponse(SQLModel):
    success: bool = True
    products: List[SupplierProductRead]


class SupplierProductMutationResponse(SQLModel):
    success: bool = True
    message: str
    product: SupplierProductRead


class SupplierOrderListResponse(SQLModel):
    success: bool = True
    orders: List[SupplierOrderRead]


class SupplierOrderMutationResponse(SQLModel):
    success: bool = True
    message: str
    order: SupplierOrderRead


class SupplierEvaluationListResponse(SQLModel):
    success: bool = True
    evaluations: List[SupplierEvaluationRead]


class SupplierEvaluationMutationResponse(SQLModel):
    success: bool = True
    message: str
    evaluation: SupplierEvaluationRead
    rating: Optional[float] = None
