"""
Garde-fous de stock.

``validate_stock`` et ``validate_stock_operation`` sont des contrôles en lecture;
les écritures passent par ``decrement_stock`` / ``adjust_stock`` qui reposent sur un
UPDATE conditionnel, seul garant que le stock ne devient jamais négatif.
"""
import logging
from decimal import Decimal
from typing import List, Optional

from primeur.audit.service import AuditTrail
from primeur.products.models import Product
from primeur.stock.constants import (
    AUDIT_ENTITY_STOCK,
    ERROR_INSUFFICIENT_STOCK,
    ERROR_NEGATIVE_STOCK,
    ERROR_OPERATION_IMPOSSIBLE,
    ERROR_PRODUCT_DELETED,
    ERROR_PRODUCT_NOT_FOUND,
)
from primeur.stock.exceptions import InsufficientStockException, StockException, StockProductNotFoundException
from primeur.stock.interfaces.repositories import AbstractStockRepository
from primeur.stock.models import StockLevel, StockOperationCheck
from primeur.stock.utils import format_delta, format_quantity

logger = logging.getLogger(__name__)


def to_stock_level(product: Product) -> StockLevel:
    return StockLevel(
        id=product.id,
        name=product.name,
        stock=product.stock,
        stock_alert=product.stock_alert,
        unit=product.unit,
        category_id=product.category_id,
        is_low_stock=product.stock <= product.stock_alert,
    )


class StockService:

    def __init__(self, repository: AbstractStockRepository, audit: Optional[AuditTrail] = None):
        self.repository = repository
        self.audit = audit

    async def validate_stock(self, product_id: int, requested_quantity: Decimal) -> Product:
        """Vérifie que le produit existe, n'est pas supprimé et dispose d'assez de stock."""
        product = await self.repository.get_product(product_id)
        if product is None:
            raise StockProductNotFoundException(ERROR_PRODUCT_NOT_FOUND, product_id)
        if product.deleted_at is not None:
            raise StockException(ERROR_PRODUCT_DELETED, product_id)
        if product.stock < 0:
            logger.warning(
                f"[StockService] Stock négatif détecté: produit {product_id} ({product.name}) stock={product.stock}"
            )
            raise StockException(ERROR_NEGATIVE_STOCK, product_id, product.stock)
        if product.stock < requested_quantity:
            raise InsufficientStockException(
                ERROR_INSUFFICIENT_STOCK.format(name=product.name, stock=format_quantity(product.stock), unit=product.unit),
                product_id,
                product.stock,
            )
        return product

    async def validate_stock_operation(self, product_id: int, quantity_change: Decimal) -> StockOperationCheck:
        """Vérifie qu'une variation de stock ne le rendrait pas négatif."""
        product = await self.repository.get_product(product_id)
        if product is None:
            raise StockProductNotFoundException(ERROR_PRODUCT_NOT_FOUND, product_id)
        new_stock = product.stock + quantity_change
        if new_stock < 0:
            raise InsufficientStockException(
                ERROR_OPERATION_IMPOSSIBLE.format(
                    stock=format_quantity(product.stock), unit=product.unit, delta=format_delta(quantity_change)
                ),
                product_id,
                product.stock,
            )
        return StockOperationCheck(product_id=product_id, current_stock=product.stock, new_stock=new_stock)

    async def decrement_stock(self, product_id: int, quantity: Decimal) -> None:
        """Retire ``quantity`` du stock dans la transaction courante (sans commit)."""
        if not await self.repository.apply_delta(product_id, -quantity):
            # Relecture pour un message d'erreur précis
            product = await self.validate_stock(product_id, quantity)
            raise InsufficientStockException(
                ERROR_INSUFFICIENT_STOCK.format(name=product.name, stock=format_quantity(product.stock), unit=product.unit),
                product_id,
                product.stock,
            )

    async def adjust_stock(self, product_id: int, delta: Decimal, reason: Optional[str] = None, user_id: Optional[int] = None) -> StockLevel:
        check = await self.validate_stock_operation(product_id, delta)
        try:
            if not await self.repository.apply_delta(product_id, delta):
                await self.repository.rollback()
                await self.validate_stock_operation(product_id, delta)
                raise StockException(ERROR_PRODUCT_DELETED, product_id)
            await self.repository.commit()
        except StockException:
            raise
        except Exception:
            await self.repository.rollback()
            raise

        product = await self.repository.get_product(product_id)
        logger.info(f"[StockService] Stock produit {product_id}: {check.current_stock} -> {product.stock}")
        if self.audit:
            await self.audit.log_action(
                "STOCK_ADJUST", AUDIT_ENTITY_STOCK, product_id, user_id,
                {"delta": delta, "old_stock": check.current_stock, "new_stock": product.stock, "reason": reason},
            )
        return to_stock_level(product)

    async def set_stock(self, product_id: int, stock: Decimal, stock_alert: Optional[Decimal] = None, user_id: Optional[int] = None) -> StockLevel:
        product = await self.repository.get_product(product_id)
        if product is None or product.deleted_at is not None:
            raise StockProductNotFoundException(ERROR_PRODUCT_NOT_FOUND, product_id)
        old_stock = product.stock
        product = await self.repository.set_levels(product, stock, stock_alert)
        await self.repository.commit()
        if self.audit:
            await self.audit.log_action(
                "STOCK_UPDATE", AUDIT_ENTITY_STOCK, product_id, user_id, {"old_stock": old_stock, "new_stock": stock}
            )
        return to_stock_level(product)

    async def list_stock(self, low_stock_only: bool = False, category_id: Optional[int] = None) -> List[StockLevel]:
        return [to_stock_level(p) for p in await self.repository.list_levels(low_stock_only, category_id)]

    async def list_alerts(self) -> List[StockLevel]:
        return await self.list_stock(low_stock_only=True)
