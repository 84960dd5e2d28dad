import logging
from typing import List, Optional, Tuple

from primeur.audit.service import AuditTrail
from primeur.pricing.models import PriceChangeType, PriceHistory
from primeur.products.constants import (
    AUDIT_ENTITY_PRODUCT,
    ERROR_CATEGORY_INVALID,
    ERROR_REFERENCE_EXISTS,
    ERROR_SUBCATEGORY_INVALID,
    MANUAL_PRICE_CHANGE_REASON,
)
from primeur.products.exceptions import InvalidProductOperationException, ProductNotFoundException
from primeur.products.interfaces.repositories import AbstractProductRepository
from primeur.products.models import Product, ProductCreate, ProductRead, ProductUpdate

logger = logging.getLogger(__name__)

PRICE_FIELDS = ("price_ht", "price_ht_t2")


class ProductService:
    """Service applicatif pour le catalogue produits."""

    def __init__(self, repository: AbstractProductRepository, audit: AuditTrail):
        self.repository = repository
        self.audit = audit

    async def _get_live_product(self, product_id: int) -> Product:
        product = await self.repository.get_by_id(product_id)
        if product is None or product.deleted_at is not None:
            raise ProductNotFoundException(product_id)
        return product

    async def _check_classification(self, category_id: Optional[int], sub_category_id: Optional[int]) -> None:
        if category_id is not None and not await self.repository.category_is_live(category_id):
            raise InvalidProductOperationException(ERROR_CATEGORY_INVALID)
        if sub_category_id is not None and not await self.repository.subcategory_belongs_to(sub_category_id, category_id):
            raise InvalidProductOperationException(ERROR_SUBCATEGORY_INVALID)

    async def list_products(
        self,
        page: int,
        limit: int,
        search: Optional[str] = None,
        category_id: Optional[int] = None,
        sub_category_id: Optional[int] = None,
        include_inactive: bool = False,
    ) -> Tuple[List[ProductRead], int]:
        products, total = await self.repository.list(
            offset=(page - 1) * limit,
            limit=limit,
            search=search,
            category_id=category_id,
            sub_category_id=sub_category_id,
            active_only=not include_inactive,
        )
        return [ProductRead.model_validate(p) for p in products], total

    async def get_product(self, product_id: int) -> ProductRead:
        return ProductRead.model_validate(await self._get_live_product(product_id))

    async def create_product(self, product_data: ProductCreate, user_id: Optional[int] = None) -> ProductRead:
        logger.info(f"[ProductService] Création produit: {product_data.name}")
        await self._check_classification(product_data.category_id, product_data.sub_category_id)
        if product_data.reference and await self.repository.reference_exists(product_data.reference):
            raise InvalidProductOperationException(ERROR_REFERENCE_EXISTS.format(reference=product_data.reference))

        try:
            product = await self.repository.create(product_data)
            await self.repository.commit()
        except Exception:
            await self.repository.rollback()
            raise

        result = ProductRead.model_validate(product)
        await self.audit.log_action("CREATE", AUDIT_ENTITY_PRODUCT, result.id, user_id, {"name": result.name})
        return result

    async def update_product(self, product_id: int, product_data: ProductUpdate, user_id: Optional[int] = None) -> ProductRead:
        """Met à jour un produit; un changement de tarif ajoute une ligne d'historique dans la même transaction."""
        logger.info(f"[ProductService] Mise à jour produit ID: {product_id}")
        product = await self._get_live_product(product_id)
        values = product_data.model_dump(exclude_unset=True, exclude={"price_change_reason"})

        category_id = values.get("category_id", product.category_id)
        sub_category_id = values.get("sub_category_id", product.sub_category_id)
        if "category_id" in values or "sub_category_id" in values:
            await self._check_classification(category_id, sub_category_id)

        new_reference = values.get("reference")
        if new_reference and new_reference != product.reference and await self.repository.reference_exists(new_reference):
            raise InvalidProductOperationException(ERROR_REFERENCE_EXISTS.format(reference=new_reference))

        old_price_ht, old_price_ht_t2 = product.price_ht, product.price_ht_t2
        price_changed = any(field in values and values[field] != getattr(product, field) for field in PRICE_FIELDS)

        try:
            product = await self.repository.update(product, values)
            if price_changed:
                await self.repository.add_price_history(PriceHistory(
                    product_id=product.id,
                    old_price_ht=old_price_ht,
                    new_price_ht=product.price_ht,
                    old_price_ht_t2=old_price_ht_t2,
                    new_price_ht_t2=product.price_ht_t2,
                    change_type=PriceChangeType.MANUAL.value,
                    reason=product_data.price_change_reason or MANUAL_PRICE_CHANGE_REASON,
                    changed_by=user_id,
                ))
            await self.repository.commit()
        except Exception:
            await self.repository.rollback()
            raise

        result = ProductRead.model_validate(product)
        await self.audit.log_action("UPDATE", AUDIT_ENTITY_PRODUCT, product_id, user_id, values)
        return result

    async def delete_product(self, product_id: int, user_id: Optional[int] = None) -> None:
        product = await self._get_live_product(product_id)
        await self.repository.soft_delete(product)
        await self.repository.commit()
        await self.audit.log_action("DELETE", AUDIT_ENTITY_PRODUCT, product_id, user_id, {"name": product.name})
