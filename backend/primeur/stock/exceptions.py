"""Exceptions du module stock."""
from decimal import Decimal
from typing import Optional


class StockException(Exception):
    """Classe de base: la quantité demandée ne peut pas être servie ou appliquée."""
    def __init__(self, message: str, product_id: Optional[int] = None, available_stock: Optional[Decimal] = None):
        self.message = message
        self.product_id = product_id
        self.available_stock = available_stock
        super().__init__(self.message)


class StockProductNotFoundException(StockException):
    pass


class InsufficientStockException(StockException):
    pass
