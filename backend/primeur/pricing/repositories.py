import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from fastcrud import FastCRUD
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from primeur.core.repositories import SQLAlchemySessionRepository
from primeur.core.utils import utcnow
from primeur.pricing.interfaces.repositories import AbstractPricingRepository
from primeur.pricing.models import ClientPricing, PriceHistory, PriceHistoryRead, VolumePricing
from primeur.products.models import Product
from primeur.users.models import User

logger = logging.getLogger(__name__)


class SQLAlchemyPricingRepository(SQLAlchemySessionRepository, AbstractPricingRepository):
    """Implémentation SQLAlchemy du repository des tarifs."""

    def __init__(self, db_session: AsyncSession):
        super().__init__(db_session)
        self.crud_history = FastCRUD(PriceHistory)

    async def get_product(self, product_id: int) -> Optional[Product]:
        return await self.db.get(Product, product_id)

    async def get_user(self, user_id: int) -> Optional[User]:
        return await self.db.get(User, user_id)

    async def list_priced_products(
        self,
        category_id: Optional[int] = None,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
        search: Optional[str] = None,
    ) -> List[Product]:
        stmt = select(Product).where(Product.is_active.is_(True), Product.deleted_at.is_(None))
        if category_id is not None:
            stmt = stmt.where(Product.category_id == category_id)
        if min_price is not None:
            stmt = stmt.where(Product.price_ht >= min_price)
        if max_price is not None:
            stmt = stmt.where(Product.price_ht <= max_price)
        if search:
            pattern = f"%{search.lower()}%"
            stmt = stmt.where(or_(func.lower(Product.name).like(pattern), func.lower(Product.reference).like(pattern)))
        result = await self.db.execute(stmt.order_by(Product.name))
        return list(result.scalars().all())

    async def get_last_changes(self, product_ids: Sequence[int]) -> Dict[int, PriceHistory]:
        if not product_ids:
            return {}
        latest_ids = (
            select(func.max(PriceHistory.id))
            .where(PriceHistory.product_id.in_(product_ids))
            .group_by(PriceHistory.product_id)
        )
        result = await self.db.execute(select(PriceHistory).where(PriceHistory.id.in_(latest_ids)))
        return {row.product_id: row for row in result.scalars().all()}

    async def get_products_with_volume_pricing(self, product_ids: Sequence[int]) -> Set[int]:
        if not product_ids:
            return set()
        result = await self.db.execute(
            select(VolumePricing.product_id)
            .where(VolumePricing.product_id.in_(product_ids), VolumePricing.is_active.is_(True))
            .distinct()
        )
        return set(result.scalars().all())

    async def get_products_with_client_pricing(self, product_ids: Sequence[int]) -> Set[int]:
        if not product_ids:
            return set()
        result = await self.db.execute(
            select(ClientPricing.product_id)
            .where(ClientPricing.product_id.in_(product_ids), ClientPricing.is_active.is_(True))
            .distinct()
        )
        return set(result.scalars().all())

    async def get_history(self, product_id: int, limit: int) -> List[PriceHistoryRead]:
        result = await self.crud_history.get_multi(
            self.db,
            offset=0,
            limit=limit,
            sort_columns=["changed_at", "id"],
            sort_orders=["desc", "desc"],
            return_as_model=True,
            schema_to_select=PriceHistoryRead,
            product_id=product_id,
        )
        return result.get("data", [])

    async def get_products_for_update(self, product_ids: Sequence[int]) -> List[Product]:
        stmt = (
            select(Product)
            .where(Product.id.in_(product_ids), Product.deleted_at.is_(None))
            .order_by(Product.id)
            .with_for_update()
        )
        return list((await self.db.execute(stmt)).scalars().all())

    async def set_product_price(self, product: Product, new_price_ht: Decimal) -> None:
        product.price_ht = new_price_ht
        product.updated_at = utcnow()
        self.db.add(product)

    async def add_history(self, entries: List[PriceHistory]) -> None:
        self.db.add_all(entries)
        await self.db.flush()

    # --- Tarifs dégressifs ---

    async def list_volume_pricing(self, product_id: Optional[int] = None) -> List[Tuple[VolumePricing, str]]:
        stmt = (
            select(VolumePricing, Product.name)
            .join(Product, Product.id == VolumePricing.product_id)
            .where(VolumePricing.is_active.is_(True))
        )
        if product_id is not None:
            stmt = stmt.where(VolumePricing.product_id == product_id)
        stmt = stmt.order_by(VolumePricing.product_id, VolumePricing.min_quantity)
        return [(row[0], row[1]) for row in (await self.db.execute(stmt)).all()]

    async def get_volume_pricing(self, volume_id: int) -> Optional[VolumePricing]:
        return await self.db.get(VolumePricing, volume_id)

    async def find_overlapping_bracket(
        self,
        product_id: int,
        min_quantity: Decimal,
        max_quantity: Optional[Decimal],
        exclude_id: Optional[int] = None,
    ) -> Optional[VolumePricing]:
        # Deux tranches qui se touchent (max de l'une = min de l'autre) ne se chevauchent pas
        stmt = select(VolumePricing).where(
            VolumePricing.product_id == product_id,
            VolumePricing.is_active.is_(True),
            or_(VolumePricing.max_quantity.is_(None), VolumePricing.max_quantity > min_quantity),
        )
        if max_quantity is not None:
            stmt = stmt.where(VolumePricing.min_quantity < max_quantity)
        if exclude_id is not None:
            stmt = stmt.where(VolumePricing.id != exclude_id)
        return (await self.db.execute(stmt.limit(1))).scalars().first()

    async def find_volume_bracket(self, product_id: int, quantity: Decimal) -> Optional[VolumePricing]:
        stmt = (
            select(VolumePricing)
            .where(
                VolumePricing.product_id == product_id,
                VolumePricing.is_active.is_(True),
                VolumePricing.min_quantity <= quantity,
                or_(VolumePricing.max_quantity.is_(None), VolumePricing.max_quantity >= quantity),
            )
            .order_by(VolumePricing.min_quantity.desc())
            .limit(1)
        )
        return (await self.db.execute(stmt)).scalars().first()

    async def save(self, instance: Any) -> Any:
        if hasattr(instance, "updated_at") and instance.id is not None:
            instance.updated_at = utcnow()
        self.db.add(instance)
        await self.db.flush()
        return instance

    async def delete(self, instance: Any) -> None:
        await self.db.delete(instance)
        await self.db.flush()

    # --- Tarifs clients ---

    async def list_client_pricing(
        self, product_id: Optional[int] = None, user_id: Optional[int] = None
    ) -> List[Tuple[ClientPricing, str, User]]:
        stmt = (
            select(ClientPricing, Product.name, User)
            .join(Product, Product.id == ClientPricing.product_id)
            .join(User, User.id == ClientPricing.user_id)
            .where(ClientPricing.is_active.is_(True))
        )
        if product_id is not None:
            stmt = stmt.where(ClientPricing.product_id == product_id)
        if user_id is not None:
            stmt = stmt.where(ClientPricing.user_id == user_id)
        stmt = stmt.order_by(ClientPricing.created_at.desc(), ClientPricing.id.desc())
        return [(row[0], row[1], row[2]) for row in (await self.db.execute(stmt)).all()]

    async def get_client_pricing(self, client_pricing_id: int) -> Optional[ClientPricing]:
        return await self.db.get(ClientPricing, client_pricing_id)

    async def find_client_price(self, product_id: int, user_id: int, at: datetime) -> Optional[ClientPricing]:
        stmt = (
            select(ClientPricing)
            .where(
                ClientPricing.product_id == product_id,
                ClientPricing.user_id == user_id,
                ClientPricing.is_active.is_(True),
                ClientPricing.valid_from <= at,
                or_(ClientPricing.valid_until.is_(None), ClientPricing.valid_until >= at),
            )
            .order_by(ClientPricing.valid_from.desc(), ClientPricing.id.desc())
            .limit(1)
        )
        return (await self.db.execute(stmt)).scalars().first()
