import re
from datetime import datetime
from typing import List, Optional

from pydantic import EmailStr, field_validator
from sqlmodel import Field, SQLModel

from primeur.core.utils import utcnow
from primeur.orders.models import OrderRead
from primeur.users.models import UserSummary

POSTAL_CODE_PATTERN = re.compile(r"^\d{5}$")


def check_postal_code(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    # Format français: 5 chiffres
    if not POSTAL_CODE_PATTERN.match(value):
        raise ValueError("Le code postal doit contenir 5 chiffres")
    return value


class ShopBase(SQLModel):
    name: str = Field(index=True, max_length=200)
    address: str = Field(max_length=255)
    city: str = Field(max_length=100)
    postal_code: str = Field(max_length=5)
    phone: Optional[str] = Field(default=None, max_length=30)
    is_active: bool = Field(default=True)


class Shop(ShopBase, table=True):
    """Magasin client, rattaché à un unique compte utilisateur propriétaire."""
    __tablename__ = "shops"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", unique=True, index=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


# --- Schémas API ---

class ShopCreate(SQLModel):
    """Création combinée du magasin et de son compte utilisateur."""
    shop_name: str = Field(min_length=1, max_length=200)
    address: str = Field(min_length=1, max_length=255)
    city: str = Field(min_length=1, max_length=100)
    postal_code: str
    phone: Optional[str] = Field(default=None, max_length=30)
    user_name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(min_length=6)
    user_phone: Optional[str] = Field(default=None, max_length=30)

    @field_validator("postal_code")
    @classmethod
    def validate_postal_code(cls, v):
        return check_postal_code(v)


class ShopUpdate(SQLModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    address: Optional[str] = Field(default=None, min_length=1, max_length=255)
    city: Optional[str] = Field(default=None, min_length=1, max_length=100)
    postal_code: Optional[str] = None
    phone: Optional[str] = Field(default=None, max_length=30)
    is_active: Optional[bool] = None
    user_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    user_phone: Optional[str] = Field(default=None, max_length=30)

    @field_validator("postal_code")
    @classmethod
    def validate_postal_code(cls, v):
        return check_postal_code(v)


class ShopRead(ShopBase):
    id: int
    user_id: int
    created_at: datetime


class ShopReadWithOwner(ShopRead):
    user: Optional[UserSummary] = None
    orders_count: int = 0


class ShopReadWithDetails(ShopReadWithOwner):
    orders: List[OrderRead] = []


class ShopListResponse(SQLModel):
    success: bool = True
    shops: List[ShopReadWithOwner]


class ShopDetailResponse(SQLModel):
    success: bool = True
    shop: ShopReadWithDetails


class ShopMutationResponse(SQLModel):
    success: bool = True
    message: str
    shop: ShopReadWithOwner


class ShopSummary(SQLModel):
    """Résumé d'un magasin embarqué dans les devis, commandes et retours."""
    id: int
    name: str
    city: str
