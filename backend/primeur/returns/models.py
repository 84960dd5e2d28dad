from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic import Field as PydanticField
from sqlmodel import Field, SQLModel

from primeur.core.utils import utcnow


class ReturnStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    REFUNDED = "REFUNDED"


class RefundMethod(str, Enum):
    CREDIT_NOTE = "CREDIT_NOTE"
    REFUND = "REFUND"
    REPLACEMENT = "REPLACEMENT"


class CreditNoteStatus(str, Enum):
    PENDING = "PENDING"
    ISSUED = "ISSUED"
    USED = "USED"


class CreditNote(SQLModel, table=True):
    """Avoir émis à l'approbation d'un retour remboursé par avoir."""
    __tablename__ = "credit_notes"

    id: Optional[int] = Field(default=None, primary_key=True)
    credit_note_number: str = Field(unique=True, index=True, max_length=40)
    order_id: int = Field(foreign_key="orders.id", index=True)
    amount: Decimal = Field(max_digits=12, decimal_places=2)
    reason: str = Field(max_length=255)
    status: str = Field(default=CreditNoteStatus.PENDING.value, max_length=20)
    created_at: datetime = Field(default_factory=utcnow)


class Return(SQLModel, table=True):
    __tablename__ = "returns"

    id: Optional[int] = Field(default=None, primary_key=True)
    return_number: str = Field(unique=True, index=True, max_length=40)
    order_id: int = Field(foreign_key="orders.id", index=True)
    shop_id: int = Field(foreign_key="shops.id", index=True)
    status: str = Field(default=ReturnStatus.PENDING.value, max_length=20, index=True)
    reason: str = Field(max_length=100, index=True)
    description: Optional[str] = Field(default=None)
    total_amount: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    photo_url: Optional[str] = Field(default=None, max_length=255)
    refund_method: Optional[str] = Field(default=None, max_length=20)
    credit_note_id: Optional[int] = Field(default=None, foreign_key="credit_notes.id")
    notes: Optional[str] = Field(default=None)
    requested_by: Optional[int] = Field(default=None, foreign_key="users.id")
    processed_by: Optional[int] = Field(default=None, foreign_key="users.id")
    processed_at: Optional[datetime] = Field(default=None)
    requested_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)


class ReturnItem(SQLModel, table=True):
    __tablename__ = "return_items"

    id: Optional[int] = Field(default=None, primary_key=True)
    return_id: int = Field(foreign_key="returns.id", index=True)
    product_id: Optional[int] = Field(default=None, foreign_key="products.id")
    product_name: str = Field(max_length=200)
    quantity: Decimal = Field(max_digits=12, decimal_places=3)
    unit_price: Decimal = Field(max_digits=10, decimal_places=2)
    total_price: Decimal = Field(max_digits=12, decimal_places=2)
    reason: Optional[str] = Field(default=None, max_length=100)
    notes: Optional[str] = Field(default=None)


# --- Schémas API ---

class ReturnItemCreate(SQLModel):
    product_id: Optional[int] = None
    product_name: str = Field(min_length=1, max_length=200)
    quantity: Decimal = Field(gt=0, max_digits=12, decimal_places=3)
    unit_price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    reason: Optional[str] = Field(default=None, max_length=100)
    notes: Optional[str] = None


class ReturnCreate(SQLModel):
    """Champs de la demande de retour (reçus en multipart, ``items`` en JSON)."""
    order_id: int
    reason: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    items: List[ReturnItemCreate] = Field(min_length=1)


class ReturnApprove(SQLModel):
    refund_method: RefundMethod
    notes: Optional[str] = None


class ReturnReject(SQLModel):
    reason: str = Field(min_length=1)


class ReturnItemRead(SQLModel):
    id: int
    product_id: Optional[int] = None
    product_name: str
    quantity: Decimal
    unit_price: Decimal
    total_price: Decimal
    reason: Optional[str] = None
    notes: Optional[str] = None


class CreditNoteRead(SQLModel):
    id: int
    credit_note_number: str
    order_id: int
    amount: Decimal
    reason: str
    status: str
    created_at: datetime


class ReturnRead(SQLModel):
    id: int
    return_number: str
    order_id: int
    shop_id: int
    status: str
    reason: str
    description: Optional[str] = None
    total_amount: Decimal
    photo_url: Optional[str] = None
    refund_method: Optional[str] = None
    credit_note_id: Optional[int] = None
    notes: Optional[str] = None
    requested_by: Optional[int] = None
    processed_by: Optional[int] = None
    processed_at: Optional[datetime] = None
    requested_at: datetime


class ReturnReadWithDetails(ReturnRead):
    order_number: Optional[str] = None
    shop_name: Optional[str] = None
    items: List[ReturnItemRead] = []
    credit_note: Optional[CreditNoteRead] = None


class ReturnStats(SQLModel):
    total: int
    pending: int
    approved: int
    rejected: int
    refunded: int
    total_amount: Decimal
    by_reason: Dict[str, int]


# ``return`` est un mot réservé: alias pour garder la clé JSON attendue par le frontend
class ReturnDetailResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    return_: ReturnReadWithDetails = PydanticField(alias="return")


class ReturnMutationResponse(ReturnDetailResponse):
    message: str


class ReturnListResponse(SQLModel):
    success: bool = True
    returns: List[ReturnReadWithDetails]


class ReturnStatsResponse(SQLModel):
    success: bool = True
    stats: ReturnStats
