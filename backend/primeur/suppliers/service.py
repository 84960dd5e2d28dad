"""
Service des fournisseurs: fiche, catalogue, commandes d'achat et évaluations.

Les commandes fournisseurs sont numérotées ``CF`` + séquence sur 6 chiffres; la colonne
porte une contrainte d'unicité et une collision est rejouée un nombre borné de fois.
La TVA des achats est forfaitaire (``SUPPLIER_VAT_RATE``).
"""
import logging
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.exc import IntegrityError

from primeur.audit.service import AuditTrail
from primeur.config import settings
from primeur.core.calculations import HUNDRED, round_money, to_decimal
from primeur.core.numbering import next_sequence_number
from primeur.core.utils import as_naive_utc, utcnow
from primeur.suppliers.constants import (
    AUDIT_ENTITY,
    AUDIT_ORDER_ENTITY,
    ERROR_NUMBERING,
    LATEST_EVALUATIONS_LIMIT,
    LATEST_ORDERS_LIMIT,
    SUPPLIER_ORDER_NUMBER_PREFIX,
    SUPPLIER_ORDER_NUMBER_WIDTH,
)
from primeur.suppliers.exceptions import (
    InvalidSupplierOrderException,
    SupplierEmailTakenException,
    SupplierHasActiveOrdersException,
    SupplierNotFoundException,
    SupplierOrderNotFoundException,
    SupplierProductNotFoundException,
)
from primeur.suppliers.interfaces.repositories import AbstractSupplierRepository
from primeur.suppliers.models import (
    ACTIVE_ORDER_STATUSES,
    Supplier,
    SupplierCreate,
    SupplierEvaluation,
    SupplierEvaluationCreate,
    SupplierEvaluationRead,
    SupplierListItem,
    SupplierOrder,
    SupplierOrderCreate,
    SupplierOrderItem,
    SupplierOrderItemRead,
    SupplierOrderRead,
    SupplierOrderStatus,
    SupplierOrderUpdate,
    SupplierProduct,
    SupplierProductCreate,
    SupplierProductRead,
    SupplierProductUpdate,
    SupplierRead,
    SupplierReadWithDetails,
    SupplierSortBy,
    SupplierStats,
    SupplierUpdate,
)

logger = logging.getLogger(__name__)


def supplier_ttc(total_ht: Decimal) -> Decimal:
    rate = to_decimal(str(settings.SUPPLIER_VAT_RATE))
    return round_money(to_decimal(total_ht) * (1 + rate / HUNDRED))


def compute_supplier_stats(suppliers: Sequence[Supplier]) -> SupplierStats:
    """Statistiques globales sur la liste filtrée (note absente comptée 0)."""
    count = len(suppliers)
    return SupplierStats(
        total=count,
        active=sum(1 for s in suppliers if s.is_active),
        total_orders=sum(s.total_orders for s in suppliers),
        total_spent=round_money(sum((to_decimal(s.total_spent) for s in suppliers), start=Decimal("0"))),
        avg_rating=sum((s.rating or 0) for s in suppliers) / count if count else 0.0,
    )


def to_supplier_order_read(order: SupplierOrder, items: Sequence[SupplierOrderItem]) -> SupplierOrderRead:
    return SupplierOrderRead.model_validate({
        **order.model_dump(),
        "items": [SupplierOrderItemRead.model_validate(i, from_attributes=True) for i in items],
    })


class SupplierService:

    def __init__(self, repository: AbstractSupplierRepository, audit: Optional[AuditTrail] = None):
        self.repository = repository
        self.audit = audit

    async def _log(self, action: str, entity_id, user_id: Optional[int], changes=None, entity: str = AUDIT_ENTITY) -> None:
        if self.audit:
            await self.audit.log_action(action, entity, entity_id, user_id, changes)

    async def _get_supplier(self, supplier_id: int) -> Supplier:
        supplier = await self.repository.get_by_id(supplier_id)
        if supplier is None:
            raise SupplierNotFoundException()
        return supplier

    async def _orders_read(self, orders: List[SupplierOrder]) -> List[SupplierOrderRead]:
        items = await self.repository.get_order_items([o.id for o in orders])
        return [to_supplier_order_read(o, items.get(o.id, [])) for o in orders]

    # --- Fournisseurs ---

    async def list_suppliers(
        self,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
        min_rating: Optional[float] = None,
        sort_by: SupplierSortBy = SupplierSortBy.CREATED_AT,
    ) -> Tuple[List[SupplierListItem], SupplierStats]:
        suppliers = await self.repository.list(search=search, is_active=is_active, min_rating=min_rating, sort_by=sort_by)
        counts = await self.repository.get_counts([s.id for s in suppliers])
        items = [SupplierListItem.model_validate({**s.model_dump(), **counts.get(s.id, {})}) for s in suppliers]
        return items, compute_supplier_stats(suppliers)

    async def get_supplier(self, supplier_id: int) -> SupplierReadWithDetails:
        supplier = await self._get_supplier(supplier_id)
        counts = (await self.repository.get_counts([supplier.id])).get(supplier.id, {})
        products = await self.repository.list_products(supplier.id, available_only=True)
        orders = await self.repository.list_orders(supplier.id, limit=LATEST_ORDERS_LIMIT)
        evaluations = await self.repository.list_evaluations(supplier.id, limit=LATEST_EVALUATIONS_LIMIT)
        return SupplierReadWithDetails.model_validate({
            **supplier.model_dump(),
            **counts,
            "products": [SupplierProductRead.model_validate(p, from_attributes=True) for p in products],
            "orders": await self._orders_read(orders),
            "evaluations": [SupplierEvaluationRead.model_validate(e, from_attributes=True) for e in evaluations],
        })

    async def create_supplier(self, data: SupplierCreate, user_id: Optional[int] = None) -> SupplierRead:
        if await self.repository.email_exists(data.email):
            raise SupplierEmailTakenException()
        supplier = Supplier(**data.model_dump())
        try:
            supplier = await self.repository.save(supplier)
            await self.repository.commit()
        except IntegrityError:
            await self.repository.rollback()
            raise SupplierEmailTakenException()
        except Exception:
            await self.repository.rollback()
            raise
        logger.info(f"[SupplierService] Fournisseur créé: {supplier.name} (ID {supplier.id})")
        await self._log("CREATE", supplier.id, user_id, {"name": supplier.name, "email": supplier.email})
        return SupplierRead.model_validate(supplier, from_attributes=True)

    async def update_supplier(self, supplier_id: int, data: SupplierUpdate, user_id: Optional[int] = None) -> SupplierRead:
        supplier = await self._get_supplier(supplier_id)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("email") and await self.repository.email_exists(changes["email"], exclude_id=supplier.id):
            raise SupplierEmailTakenException()
        for key, value in changes.items():
            setattr(supplier, key, value)
        try:
            supplier = await self.repository.save(supplier)
            await self.repository.commit()
        except IntegrityError:
            await self.repository.rollback()
            raise SupplierEmailTakenException()
        except Exception:
            await self.repository.rollback()
            raise
        await self._log("UPDATE", supplier.id, user_id, changes)
        return SupplierRead.model_validate(supplier, from_attributes=True)

    async def delete_supplier(self, supplier_id: int, user_id: Optional[int] = None) -> None:
        """Suppression logique, refusée tant que des commandes sont en cours."""
        supplier = await self._get_supplier(supplier_id)
        active = await self.repository.count_orders_in_status(supplier.id, [s.value for s in ACTIVE_ORDER_STATUSES])
        if active > 0:
            raise SupplierHasActiveOrdersException(active)
        supplier.deleted_at = utcnow()
        try:
            await self.repository.save(supplier)
            await self.repository.commit()
        except Exception:
            await self.repository.rollback()
            raise
        logger.info(f"[SupplierService] Fournisseur {supplier_id} supprimé (logique)")
        await self._log("DELETE", supplier_id, user_id)

    # --- Catalogue ---

    async def list_products(self, supplier_id: int) -> List[SupplierProductRead]:
        await self._get_supplier(supplier_id)
        products = await self.repository.list_products(supplier_id)
        return [SupplierProductRead.model_validate(p, from_attributes=True) for p in products]

    async def add_product(self, supplier_id: int, data: SupplierProductCreate, user_id: Optional[int] = None) -> SupplierProductRead:
        await self._get_supplier(supplier_id)
        product = SupplierProduct(supplier_id=supplier_id, last_price_update=utcnow(), **data.model_dump())
        try:
            product = await self.repository.save(product)
            await self.repository.commit()
        except Exception:
            await self.repository.rollback()
            raise
        await self._log("CREATE", product.id, user_id, {"supplier_id": supplier_id, "product_name": product.product_name}, entity="SupplierProduct")
        return SupplierProductRead.model_validate(product, from_attributes=True)

    async def update_product(
        self, supplier_id: int, supplier_product_id: int, data: SupplierProductUpdate, user_id: Optional[int] = None
    ) -> SupplierProductRead:
        await self._get_supplier(supplier_id)
        product = await self.repository.get_product(supplier_id, supplier_product_id)
        if product is None:
            raise SupplierProductNotFoundException()
        changes = data.model_dump(exclude_unset=True)
        for key, value in changes.items():
            setattr(product, key, value)
        if changes.get("unit_price") is not None:
            product.last_price_update = utcnow()
        try:
            product = await self.repository.save(product)
            await self.repository.commit()
        except Exception:
            await self.repository.rollback()
            raise
        await self._log("UPDATE", product.id, user_id, changes, entity="SupplierProduct")
        return SupplierProductRead.model_validate(product, from_attributes=True)

    async def delete_product(self, supplier_id: int, supplier_product_id: int, user_id: Optional[int] = None) -> None:
        await self._get_supplier(supplier_id)
        product = await self.repository.get_product(supplier_id, supplier_product_id)
        if product is None:
            raise SupplierProductNotFoundException()
        try:
            await self.repository.delete_product(product)
            await self.repository.commit()
        except Exception:
            await self.repository.rollback()
            raise
        await self._log("DELETE", supplier_product_id, user_id, {"supplier_id": supplier_id}, entity="SupplierProduct")

    # --- Commandes d'achat ---

    async def list_orders(self, supplier_id: int) -> List[SupplierOrderRead]:
        await self._get_supplier(supplier_id)
        return await self._orders_read(await self.repository.list_orders(supplier_id))

    async def create_order(self, supplier_id: int, data: SupplierOrderCreate, user_id: Optional[int] = None) -> SupplierOrderRead:
        """Crée la commande (statut SENT) et met à jour les cumuls du fournisseur dans la même transaction."""
        await self._get_supplier(supplier_id)
        item_values = [
            {
                "supplier_product_id": item.supplier_product_id,
                "product_name": item.product_name,
                "reference": item.reference,
                "quantity": item.quantity,
                "unit": item.unit,
                "unit_price": item.unit_price,
                "total_ht": round_money(to_decimal(item.quantity) * to_decimal(item.unit_price)),
            }
            for item in data.items
        ]
        total_ht = round_money(sum((v["total_ht"] for v in item_values), start=Decimal("0")))
        total_ttc = supplier_ttc(total_ht)

        attempts = settings.TRANSACTION_MAX_RETRIES
        for attempt in range(1, attempts + 1):
            number = next_sequence_number(
                SUPPLIER_ORDER_NUMBER_PREFIX, await self.repository.last_order_number(), SUPPLIER_ORDER_NUMBER_WIDTH
            )
            order = SupplierOrder(
                order_number=number,
                supplier_id=supplier_id,
                user_id=user_id,
                status=SupplierOrderStatus.SENT.value,
                expected_date=as_naive_utc(data.expected_date),
                total_ht=total_ht,
                total_ttc=total_ttc,
                notes=data.notes,
            )
            try:
                order = await self.repository.create_order(order, [SupplierOrderItem(**v) for v in item_values])
                await self.repository.increment_totals(supplier_id, total_ht)
                await self.repository.commit()
                break
            except IntegrityError as e:
                await self.repository.rollback()
                logger.warning(f"[SupplierService] Collision sur le numéro {number} (essai {attempt}/{attempts}): {e}")
            except Exception:
                await self.repository.rollback()
                raise
        else:
            raise InvalidSupplierOrderException(ERROR_NUMBERING)

        logger.info(f"[SupplierService] Commande {order.order_number} créée pour le fournisseur {supplier_id} ({total_ht} € HT)")
        await self._log(
            "CREATE", order.id, user_id, {"order_number": order.order_number, "total_ht": total_ht}, entity=AUDIT_ORDER_ENTITY
        )
        return (await self._orders_read([order]))[0]

    async def update_order(
        self, supplier_id: int, order_id: int, data: SupplierOrderUpdate, user_id: Optional[int] = None
    ) -> SupplierOrderRead:
        await self._get_supplier(supplier_id)
        order = await self.repository.get_order(supplier_id, order_id)
        if order is None:
            raise SupplierOrderNotFoundException()

        changes = data.model_dump(exclude_unset=True)
        for key, value in changes.items():
            if key == "status" and value is not None:
                order.status = SupplierOrderStatus(value).value
            elif key in ("expected_date", "delivered_date"):
                setattr(order, key, as_naive_utc(value))
            else:
                setattr(order, key, value)
        if data.is_paid is True:
            order.paid_at = utcnow()
        elif data.is_paid is False:
            order.paid_at = None

        try:
            order = await self.repository.save(order)
            await self.repository.commit()
        except Exception:
            await self.repository.rollback()
            raise
        await self._log("UPDATE", order.id, user_id, changes, entity=AUDIT_ORDER_ENTITY)
        return (await self._orders_read([order]))[0]

    # --- Évaluations ---

    async def list_evaluations(self, supplier_id: int) -> List[SupplierEvaluationRead]:
        await self._get_supplier(supplier_id)
        evaluations = await self.repository.list_evaluations(supplier_id)
        return [SupplierEvaluationRead.model_validate(e, from_attributes=True) for e in evaluations]

    async def add_evaluation(
        self, supplier_id: int, data: SupplierEvaluationCreate, user_id: Optional[int] = None
    ) -> Tuple[SupplierEvaluationRead, Optional[float]]:
        """Enregistre l'évaluation puis recalcule la note moyenne du fournisseur."""
        await self._get_supplier(supplier_id)
        if data.order_id is not None and await self.repository.get_order(supplier_id, data.order_id) is None:
            raise SupplierOrderNotFoundException()
        evaluation = SupplierEvaluation(supplier_id=supplier_id, user_id=user_id, **data.model_dump())
        try:
            evaluation = await self.repository.save(evaluation)
            rating = await self.repository.refresh_rating(supplier_id)
            await self.repository.commit()
        except Exception:
            await self.repository.rollback()
            raise
        logger.info(f"[SupplierService] Évaluation {evaluation.rating}/5 pour le fournisseur {supplier_id}, note moyenne {rating}")
        await self._log("CREATE", evaluation.id, user_id, {"supplier_id": supplier_id, "rating": evaluation.rating}, entity="SupplierEvaluation")
        return SupplierEvaluationRead.model_validate(evaluation, from_attributes=True), rating
