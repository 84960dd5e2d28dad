import logging
from collections import defaultdict
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from primeur.core.repositories import SQLAlchemySessionRepository
from primeur.core.utils import utcnow
from primeur.suppliers.interfaces.repositories import AbstractSupplierRepository
from primeur.suppliers.models import (
    Supplier,
    SupplierEvaluation,
    SupplierOrder,
    SupplierOrderItem,
    SupplierProduct,
    SupplierSortBy,
)

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    SupplierSortBy.CREATED_AT: (Supplier.created_at.desc(),),
    SupplierSortBy.NAME: (Supplier.name.asc(),),
    SupplierSortBy.RATING: (Supplier.rating.desc(),),
    SupplierSortBy.TOTAL_ORDERS: (Supplier.total_orders.desc(),),
}


class SQLAlchemySupplierRepository(SQLAlchemySessionRepository, AbstractSupplierRepository):

    def __init__(self, db_session: AsyncSession):
        super().__init__(db_session)

    async def get_by_id(self, supplier_id: int) -> Optional[Supplier]:
        # Cumuls et note sont modifiés par UPDATE direct: relecture forcée
        supplier = await self.db.get(Supplier, supplier_id, populate_existing=True)
        if supplier is None or supplier.deleted_at is not None:
            return None
        return supplier

    async def list(
        self,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
        min_rating: Optional[float] = None,
        sort_by: SupplierSortBy = SupplierSortBy.CREATED_AT,
    ) -> List[Supplier]:
        query = select(Supplier).where(Supplier.deleted_at.is_(None))
        if is_active is not None:
            query = query.where(Supplier.is_active.is_(is_active))
        if min_rating is not None:
            query = query.where(Supplier.rating >= min_rating)
        if search:
            pattern = f"%{search.lower()}%"
            query = query.where(or_(
                func.lower(Supplier.name).like(pattern),
                func.lower(Supplier.contact).like(pattern),
                func.lower(Supplier.email).like(pattern),
            ))
        query = query.order_by(*SORT_COLUMNS[sort_by], Supplier.id).execution_options(populate_existing=True)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def _count_by_supplier(self, model, supplier_ids: List[int]) -> Dict[int, int]:
        result = await self.db.execute(
            select(model.supplier_id, func.count(model.id))
            .where(model.supplier_id.in_(supplier_ids))
            .group_by(model.supplier_id)
        )
        return {supplier_id: count for supplier_id, count in result.all()}

    async def get_counts(self, supplier_ids: List[int]) -> Dict[int, Dict[str, int]]:
        if not supplier_ids:
            return {}
        products = await self._count_by_supplier(SupplierProduct, supplier_ids)
        orders = await self._count_by_supplier(SupplierOrder, supplier_ids)
        evaluations = await self._count_by_supplier(SupplierEvaluation, supplier_ids)
        return {
            sid: {
                "products_count": products.get(sid, 0),
                "orders_count": orders.get(sid, 0),
                "evaluations_count": evaluations.get(sid, 0),
            }
            for sid in supplier_ids
        }

    async def email_exists(self, email: str, exclude_id: Optional[int] = None) -> bool:
        query = select(Supplier.id).where(func.lower(Supplier.email) == email.lower())
        if exclude_id is not None:
            query = query.where(Supplier.id != exclude_id)
        return (await self.db.execute(query.limit(1))).first() is not None

    async def save(self, instance):
        if hasattr(instance, "updated_at"):
            instance.updated_at = utcnow()
        self.db.add(instance)
        await self.db.flush()
        return instance

    async def count_orders_in_status(self, supplier_id: int, statuses: List[str]) -> int:
        return await self.db.scalar(
            select(func.count(SupplierOrder.id)).where(
                SupplierOrder.supplier_id == supplier_id, SupplierOrder.status.in_(statuses)
            )
        ) or 0

    async def list_products(self, supplier_id: int, available_only: bool = False) -> List[SupplierProduct]:
        query = select(SupplierProduct).where(SupplierProduct.supplier_id == supplier_id)
        if available_only:
            query = query.where(SupplierProduct.is_available.is_(True))
        result = await self.db.execute(query.order_by(SupplierProduct.product_name))
        return list(result.scalars().all())

    async def get_product(self, supplier_id: int, supplier_product_id: int) -> Optional[SupplierProduct]:
        product = await self.db.get(SupplierProduct, supplier_product_id)
        if product is None or product.supplier_id != supplier_id:
            return None
        return product

    async def delete_product(self, supplier_product: SupplierProduct) -> None:
        await self.db.delete(supplier_product)
        await self.db.flush()

    async def list_orders(self, supplier_id: int, limit: Optional[int] = None) -> List[SupplierOrder]:
        query = (
            select(SupplierOrder)
            .where(SupplierOrder.supplier_id == supplier_id)
            .order_by(SupplierOrder.order_date.desc(), SupplierOrder.id.desc())
        )
        if limit:
            query = query.limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_order(self, supplier_id: int, order_id: int) -> Optional[SupplierOrder]:
        order = await self.db.get(SupplierOrder, order_id)
        if order is None or order.supplier_id != supplier_id:
            return None
        return order

    async def get_order_items(self, order_ids: List[int]) -> Dict[int, List[SupplierOrderItem]]:
        items: Dict[int, List[SupplierOrderItem]] = defaultdict(list)
        if not order_ids:
            return items
        result = await self.db.execute(
            select(SupplierOrderItem)
            .where(SupplierOrderItem.supplier_order_id.in_(order_ids))
            .order_by(SupplierOrderItem.id)
        )
        for item in result.scalars().all():
            items[item.supplier_order_id].append(item)
        return items

    async def last_order_number(self) -> Optional[str]:
        # Numéros à largeur fixe: l'ordre lexicographique suit l'ordre numérique
        return await self.db.scalar(select(func.max(SupplierOrder.order_number)))

    async def create_order(self, order: SupplierOrder, items: List[SupplierOrderItem]) -> SupplierOrder:
        self.db.add(order)
        await self.db.flush()
        for item in items:
            item.supplier_order_id = order.id
        self.db.add_all(items)
        await self.db.flush()
        logger.debug(f"[SupplierRepository] Commande {order.order_number} ajoutée ({len(items)} lignes)")
        return order

    async def increment_totals(self, supplier_id: int, amount: Decimal) -> None:
        await self.db.execute(
            update(Supplier)
            .where(Supplier.id == supplier_id)
            .values(
                total_orders=Supplier.total_orders + 1,
                total_spent=Supplier.total_spent + amount,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )

    async def list_evaluations(self, supplier_id: int, limit: Optional[int] = None) -> List[SupplierEvaluation]:
        query = (
            select(SupplierEvaluation)
            .where(SupplierEvaluation.supplier_id == supplier_id)
            .order_by(SupplierEvaluation.created_at.desc(), SupplierEvaluation.id.desc())
        )
        if limit:
            query = query.limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def refresh_rating(self, supplier_id: int) -> Optional[float]:
        average = await self.db.scalar(
            select(func.avg(SupplierEvaluation.rating)).where(SupplierEvaluation.supplier_id == supplier_id)
        )
        rating = float(average) if average is not None else None
        await self.db.execute(
            update(Supplier)
            .where(Supplier.id == supplier_id)
            .values(rating=rating, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return rating
