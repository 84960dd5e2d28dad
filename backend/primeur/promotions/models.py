from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import field_validator, model_validator
from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from primeur.core.utils import as_naive_utc, utcnow


class PromotionType(str, Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED_AMOUNT = "FIXED_AMOUNT"
    FREE_SHIPPING = "FREE_SHIPPING"


class PromotionScope(str, Enum):
    ENTIRE_ORDER = "ENTIRE_ORDER"
    SPECIFIC_PRODUCTS = "SPECIFIC_PRODUCTS"
    CATEGORY = "CATEGORY"


class PromotionBase(SQLModel):
    code: str = Field(index=True, unique=True, max_length=50)
    name: str = Field(max_length=200)
    description: Optional[str] = Field(default=None)
    type: str = Field(max_length=20)
    value: Decimal = Field(max_digits=10, decimal_places=2)
    min_amount: Optional[Decimal] = Field(default=None, max_digits=10, decimal_places=2)
    max_discount: Optional[Decimal] = Field(default=None, max_digits=10, decimal_places=2)
    valid_from: datetime
    valid_to: datetime
    usage_limit: Optional[int] = Field(default=None)
    usage_count: int = Field(default=0)
    applies_to: str = Field(default=PromotionScope.ENTIRE_ORDER.value, max_length=30)
    is_active: bool = Field(default=True)


class Promotion(PromotionBase, table=True):
    """Code promotionnel (code unique, en majuscules)."""
    __tablename__ = "promotions"

    id: Optional[int] = Field(default=None, primary_key=True)
    product_ids: List[int] = Field(default_factory=list, sa_column=Column(JSON, nullable=False, default=list))
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


def _check_promotion_values(promo_type: Optional[PromotionType], value: Optional[Decimal]) -> None:
    if promo_type == PromotionType.PERCENTAGE and value is not None and value > 100:
        raise ValueError("Une remise en pourcentage ne peut pas dépasser 100")


class PromotionCreate(SQLModel):
    code: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    type: PromotionType
    value: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    min_amount: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    max_discount: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    valid_from: datetime
    valid_to: datetime
    usage_limit: Optional[int] = Field(default=None, ge=1)
    applies_to: PromotionScope = PromotionScope.ENTIRE_ORDER
    product_ids: List[int] = Field(default_factory=list)
    is_active: bool = True

    @field_validator("code")
    @classmethod
    def uppercase_code(cls, value: str) -> str:
        return value.strip().upper()

    @model_validator(mode="after")
    def check_consistency(self):
        self.valid_from = as_naive_utc(self.valid_from)
        self.valid_to = as_naive_utc(self.valid_to)
        if self.valid_to <= self.valid_from:
            raise ValueError("La date de fin doit être postérieure à la date de début")
        _check_promotion_values(self.type, self.value)
        return self


class PromotionUpdate(SQLModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    type: Optional[PromotionType] = None
    value: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    min_amount: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    max_discount: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    valid_from: Optional[datetime] = None
    valid_to: Optional[datetime] = None
    usage_limit: Optional[int] = Field(default=None, ge=1)
    applies_to: Optional[PromotionScope] = None
    product_ids: Optional[List[int]] = None
    is_active: Optional[bool] = None

    @model_validator(mode="after")
    def normalize(self):
        self.valid_from = as_naive_utc(self.valid_from)
        self.valid_to = as_naive_utc(self.valid_to)
        _check_promotion_values(self.type, self.value)
        return self


class PromotionRead(PromotionBase):
    id: int
    product_ids: List[int] = []
    created_at: datetime


class PromotionListResponse(SQLModel):
    success: bool = True
    promotions: List[PromotionRead]


class PromotionMutationResponse(SQLModel):
    success: bool = True
    message: str
    promotion: PromotionRead


class AppliedPromotion(SQLModel):
    id: int
    code: str
    name: str
    type: str
    value: Decimal
    discount: str


class PromotionValidationResponse(SQLModel):
    success: bool = True
    promotion: AppliedPromotion
