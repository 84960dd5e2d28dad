"""Schémas API du module stock (le stock est porté par la table products)."""
from decimal import Decimal
from typing import List, Optional

from sqlmodel import Field, SQLModel


class StockValidationRequest(SQLModel):
    product_id: int = Field(ge=1)
    quantity: Decimal = Field(gt=0, max_digits=12, decimal_places=3)


class StockValidationResult(SQLModel):
    success: bool = True
    valid: bool = True
    product_id: int
    product_name: str
    available_stock: Decimal
    unit: str


class StockOperationCheck(SQLModel):
    product_id: int
    current_stock: Decimal
    new_stock: Decimal


class StockAdjustRequest(SQLModel):
    quantity: Decimal = Field(max_digits=12, decimal_places=3, description="Variation signée du stock")
    reason: Optional[str] = Field(default=None, max_length=255)


class StockUpdateRequest(SQLModel):
    stock: Decimal = Field(ge=0, max_digits=12, decimal_places=3)
    stock_alert: Optional[Decimal] = Field(default=None, ge=0, max_digits=12, decimal_places=3)


class StockLevel(SQLModel):
    id: int
    name: str
    stock: Decimal
    stock_alert: Decimal
    unit: str
    category_id: Optional[int] = None
    is_low_stock: bool = False


class StockMutationResponse(SQLModel):
    success: bool = True
    message: str
    product: StockLevel


class StockListResponse(SQLModel):
    success: bool = True
    count: int
    products: List[StockLevel]
