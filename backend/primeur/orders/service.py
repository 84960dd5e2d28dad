"""
Service des commandes: consultation avec cloisonnement par magasin, passage de commande
et transitions de statut.

Le passage de commande est une seule transaction: création de la commande et de ses lignes,
décrément conditionnel du stock de chaque produit, consommation du code promo.
La remise d'un code promo s'applique sur le total TTC de la commande.
"""
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from sqlalchemy.exc import IntegrityError

from primeur.audit.service import AuditTrail
from primeur.config import settings
from primeur.core.calculations import Totals, calculate_document_totals, round_money
from primeur.core.numbering import generate_unique_number
from primeur.orders.constants import (
    AUDIT_ENTITY,
    ERROR_INVALID_TRANSITION,
    ERROR_NO_SHOP_FOR_USER,
    ERROR_NUMBERING,
    ERROR_PRODUCTS_UNAVAILABLE,
    ERROR_ROLE_NOT_ALLOWED,
    ERROR_SHOP_NOT_FOUND,
    ERROR_SHOP_REQUIRED,
    ORDER_NUMBER_PREFIX,
)
from primeur.orders.exceptions import InvalidOrderException, OrderAccessDeniedException, OrderNotFoundException
from primeur.orders.interfaces.repositories import AbstractOrderRepository
from primeur.orders.models import (
    Order,
    OrderCreate,
    OrderItem,
    OrderItemRead,
    OrderRead,
    OrderReadWithItems,
    OrderStatus,
    PaymentStatus,
)
from primeur.pricing.models import PriceTier
from primeur.pricing.service import PricedLine, PricingService
from primeur.promotions.service import PromotionService
from primeur.shops.models import Shop
from primeur.stock.service import StockService
from primeur.users.models import UserRead, UserRole

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

# Statut courant -> (statuts suivants autorisés, rôles autorisés)
ORDER_TRANSITIONS: Dict[OrderStatus, Tuple[Tuple[OrderStatus, ...], Tuple[UserRole, ...]]] = {
    OrderStatus.NEW: ((OrderStatus.AGGREGATED, OrderStatus.ANNULEE), (UserRole.ADMIN,)),
    OrderStatus.AGGREGATED: ((OrderStatus.SUPPLIER_ORDERED, OrderStatus.ANNULEE), (UserRole.ADMIN,)),
    OrderStatus.SUPPLIER_ORDERED: ((OrderStatus.PREPARATION, OrderStatus.ANNULEE), (UserRole.ADMIN,)),
    OrderStatus.PREPARATION: ((OrderStatus.LIVRAISON, OrderStatus.ANNULEE), (UserRole.ADMIN, UserRole.PREPARATEUR)),
    OrderStatus.LIVRAISON: ((OrderStatus.LIVREE, OrderStatus.ANNULEE), (UserRole.ADMIN, UserRole.LIVREUR)),
    OrderStatus.LIVREE: ((), ()),
    OrderStatus.ANNULEE: ((), ()),
}


def check_order_transition(current: OrderStatus, new: OrderStatus, role: str) -> None:
    allowed, roles = ORDER_TRANSITIONS[current]
    if new not in allowed:
        raise InvalidOrderException(ERROR_INVALID_TRANSITION.format(current=current.value, new=new.value))
    if role not in {r.value for r in roles}:
        raise InvalidOrderException(ERROR_ROLE_NOT_ALLOWED)


def to_order_read(order: Union[Order, OrderRead], items: Sequence[OrderItem]) -> OrderReadWithItems:
    return OrderReadWithItems.model_validate({
        **order.model_dump(),
        "items": [OrderItemRead.model_validate(i, from_attributes=True) for i in items],
    })


def line_values(line: PricedLine) -> Dict[str, Any]:
    """Valeurs figées d'une ligne de commande (copie de la ligne tarifée)."""
    product = line.product
    return {
        "product_id": product.id,
        "product_name": product.name,
        "unit": product.unit,
        "quantity": line.quantity,
        "price_ht": line.unit_price_ht,
        "tva_rate": product.tva_rate,
        "total_ht": line.totals.total_ht,
        "total_tva": line.totals.total_tva,
        "total_ttc": line.totals.total_ttc,
    }


class OrderService:

    def __init__(
        self,
        repository: AbstractOrderRepository,
        pricing: PricingService,
        stock: StockService,
        promotions: PromotionService,
        audit: Optional[AuditTrail] = None,
    ):
        self.repository = repository
        self.pricing = pricing
        self.stock = stock
        self.promotions = promotions
        self.audit = audit

    def _check_access(self, order: Order, current_user: UserRead, user_shop: Optional[Shop]) -> None:
        if current_user.is_admin:
            return
        if user_shop is None or order.shop_id != user_shop.id:
            raise OrderAccessDeniedException()

    async def list_orders(
        self,
        current_user: UserRead,
        user_shop: Optional[Shop],
        page: int,
        limit: int,
        shop_id: Optional[int] = None,
        status: Optional[str] = None,
    ) -> Tuple[List[OrderReadWithItems], int]:
        if not current_user.is_admin:
            if user_shop is None:
                return [], 0
            shop_id = user_shop.id
        orders, total = await self.repository.list((page - 1) * limit, limit, shop_id=shop_id, status=status)
        items = await self.repository.get_items_for([o.id for o in orders])
        return [to_order_read(o, items.get(o.id, [])) for o in orders], total

    async def get_order(self, order_id: int, current_user: UserRead, user_shop: Optional[Shop]) -> OrderReadWithItems:
        order = await self.repository.get_by_id(order_id)
        if order is None:
            raise OrderNotFoundException()
        self._check_access(order, current_user, user_shop)
        items = await self.repository.get_items_for([order.id])
        return to_order_read(order, items.get(order.id, []))

    async def _target_shop(self, data: OrderCreate, current_user: UserRead, user_shop: Optional[Shop]) -> Shop:
        if not current_user.is_admin:
            if user_shop is None:
                raise InvalidOrderException(ERROR_NO_SHOP_FOR_USER)
            return user_shop
        if data.shop_id is None:
            raise InvalidOrderException(ERROR_SHOP_REQUIRED)
        shop = await self.repository.get_shop(data.shop_id)
        if shop is None:
            raise OrderNotFoundException(ERROR_SHOP_NOT_FOUND)
        return shop

    async def _insert_with_number(self, build, after_insert=None) -> Order:
        """Insère une commande avec un numéro unique, en rejouant la transaction sur collision.

        ``build(number)`` retourne ``(order, items)``; ``after_insert(order)`` complète
        l'unité de travail avant le commit. Aucun objet chargé avant un rollback n'est relu.
        """
        attempts = settings.TRANSACTION_MAX_RETRIES
        for attempt in range(1, attempts + 1):
            number = await generate_unique_number(ORDER_NUMBER_PREFIX, self.repository.number_exists)
            order, items = build(number)
            try:
                order = await self.repository.create(order, items)
                if after_insert is not None:
                    await after_insert(order)
                await self.repository.commit()
                return order
            except IntegrityError as e:
                await self.repository.rollback()
                logger.warning(f"[OrderService] Collision sur le numéro {number} (essai {attempt}/{attempts}): {e}")
            except Exception:
                await self.repository.rollback()
                raise
        raise InvalidOrderException(ERROR_NUMBERING)

    async def create_order(self, data: OrderCreate, current_user: UserRead, user_shop: Optional[Shop]) -> OrderReadWithItems:
        shop = await self._target_shop(data, current_user, user_shop)
        shop_id, owner_id = shop.id, shop.user_id

        product_ids = {item.product_id for item in data.items}
        products = await self.repository.get_available_products(list(product_ids))
        if len(products) != len(product_ids):
            raise InvalidOrderException(ERROR_PRODUCTS_UNAVAILABLE)

        lines = await self.pricing.price_lines(
            [(products[item.product_id], item.quantity) for item in data.items],
            user_id=owner_id,
            tier=PriceTier(data.pricing_type),
        )
        values = [line_values(line) for line in lines]
        totals = calculate_document_totals(line.totals for line in lines)

        promotion_id = promotion_code = None
        discount = ZERO
        if data.promotion_code:
            promotion, discount = await self.promotions.validate_code(data.promotion_code, totals.total_ttc)
            promotion_id, promotion_code = promotion.id, promotion.code

        def build(number: str):
            order = Order(
                order_number=number,
                shop_id=shop_id,
                status=OrderStatus.NEW.value,
                payment_status=PaymentStatus.EN_ATTENTE.value,
                pricing_type=data.pricing_type.value,
                total_ht=totals.total_ht,
                total_tva=totals.total_tva,
                total_ttc=round_money(totals.total_ttc - discount),
                discount_amount=discount,
                promotion_id=promotion_id,
                promotion_code=promotion_code,
                notes=data.notes,
            )
            return order, [OrderItem(**v) for v in values]

        async def reserve(order: Order) -> None:
            for v in values:
                await self.stock.decrement_stock(v["product_id"], v["quantity"])
            if promotion_id is not None:
                await self.promotions.redeem(promotion_id, promotion_code)

        order = await self._insert_with_number(build, reserve)
        logger.info(f"[OrderService] Commande {order.order_number} créée pour le magasin {shop_id} ({order.total_ttc} € TTC)")
        if self.audit:
            await self.audit.log_action("CREATE", AUDIT_ENTITY, order.id, current_user.id, {
                "order_number": order.order_number, "shop_id": shop_id, "promotion_code": promotion_code,
            })
        items = await self.repository.get_items_for([order.id])
        return to_order_read(order, items.get(order.id, []))

    async def create_from_snapshot(
        self,
        shop_id: int,
        pricing_type: str,
        totals: Totals,
        item_values: List[Dict[str, Any]],
        quote_id: Optional[int] = None,
        after_insert=None,
    ) -> Order:
        """Crée une commande en recopiant des lignes déjà figées (conversion d'un devis)."""
        def build(number: str):
            order = Order(
                order_number=number,
                shop_id=shop_id,
                status=OrderStatus.NEW.value,
                payment_status=PaymentStatus.EN_ATTENTE.value,
                pricing_type=pricing_type,
                total_ht=totals.total_ht,
                total_tva=totals.total_tva,
                total_ttc=totals.total_ttc,
                quote_id=quote_id,
            )
            return order, [OrderItem(**v) for v in item_values]

        return await self._insert_with_number(build, after_insert)

    async def update_status(self, order_id: int, new_status: OrderStatus, current_user: UserRead) -> OrderReadWithItems:
        order = await self.repository.get_by_id(order_id)
        if order is None:
            raise OrderNotFoundException()
        current = OrderStatus(order.status)
        check_order_transition(current, new_status, current_user.role)

        try:
            if not await self.repository.transition(order.id, current.value, new_status.value):
                raise InvalidOrderException(ERROR_INVALID_TRANSITION.format(current=current.value, new=new_status.value))
            await self.repository.commit()
        except Exception:
            await self.repository.rollback()
            raise

        order = await self.repository.reload(order)
        logger.info(f"[OrderService] Commande {order.order_number}: {current.value} -> {new_status.value}")
        if self.audit:
            await self.audit.log_action("UPDATE", AUDIT_ENTITY, order.id, current_user.id, {
                "from": current.value, "to": new_status.value,
            })
        items = await self.repository.get_items_for([order.id])
        return to_order_read(order, items.get(order.id, []))
