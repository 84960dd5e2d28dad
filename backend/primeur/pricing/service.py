"""
Service des tarifs: liste des prix, tarifs dégressifs et clients, modification en masse
et résolution du prix unitaire.

Ordre de priorité du prix unitaire HT:
    1. tarif client actif et valide (le plus récent ``valid_from`` l'emporte)
    2. tranche dégressive contenant la quantité (la plus haute borne minimum l'emporte)
    3. prix de base du produit (T1, ou T2 avec repli sur T1)
Les promotions s'appliquent ensuite sur le total de la commande, jamais sur la ligne.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import List, NamedTuple, Optional, Tuple

from primeur.audit.service import AuditTrail
from primeur.core.calculations import HUNDRED, Totals, calculate_line_totals, round_money
from primeur.core.utils import utcnow
from primeur.pricing.config import PRICE_HISTORY_LIMIT
from primeur.pricing.constants import (
    AUDIT_ENTITY_CLIENT,
    AUDIT_ENTITY_PRODUCT,
    AUDIT_ENTITY_VOLUME,
    BULK_DEFAULT_REASON,
    ERROR_CLIENT_PRICE_NOT_FOUND,
    ERROR_INVALID_BRACKET,
    ERROR_INVALID_WINDOW,
    ERROR_PRODUCT_NOT_FOUND,
    ERROR_USER_NOT_FOUND,
    ERROR_VOLUME_NOT_FOUND,
    ERROR_VOLUME_OVERLAP,
)
from primeur.pricing.exceptions import (
    InvalidPricingException,
    OverlappingVolumeBracketException,
    PricingNotFoundException,
)
from primeur.pricing.interfaces.repositories import AbstractPricingRepository
from primeur.pricing.models import (
    BulkAction,
    BulkPriceUpdateRequest,
    BulkValueType,
    ClientPricing,
    ClientPricingCreate,
    ClientPricingRead,
    ClientPricingUpdate,
    PriceChangeType,
    PriceHistory,
    PriceHistoryRead,
    PriceListItem,
    PriceSource,
    PriceStats,
    PriceTier,
    ResolvedPrice,
    VolumePricing,
    VolumePricingCreate,
    VolumePricingRead,
    VolumePricingUpdate,
)
from primeur.products.models import Product
from primeur.users.models import UserSummary

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class PricedLine(NamedTuple):
    product: Product
    quantity: Decimal
    unit_price_ht: Decimal
    source: PriceSource
    totals: Totals


def compute_bulk_price(current: Decimal, action: BulkAction, value: Decimal, value_type: BulkValueType) -> Decimal:
    """Nouveau prix HT pour une modification en masse, jamais négatif."""
    if action == BulkAction.SET:
        new_price = value
    elif value_type == BulkValueType.PERCENT:
        factor = value / HUNDRED
        new_price = current * (1 + factor) if action == BulkAction.INCREASE else current * (1 - factor)
    else:
        new_price = current + value if action == BulkAction.INCREASE else current - value
    return max(ZERO, round_money(new_price))


def base_tier_price(product: Product, tier: PriceTier) -> Decimal:
    if tier == PriceTier.T2 and product.price_ht_t2 is not None:
        return product.price_ht_t2
    return product.price_ht


class PricingService:

    def __init__(self, repository: AbstractPricingRepository, audit: Optional[AuditTrail] = None):
        self.repository = repository
        self.audit = audit

    async def _log(self, action: str, entity: str, entity_id, user_id: Optional[int], changes=None) -> None:
        if self.audit:
            await self.audit.log_action(action, entity, entity_id, user_id, changes)

    async def _get_live_product(self, product_id: int) -> Product:
        product = await self.repository.get_product(product_id)
        if product is None or product.deleted_at is not None:
            raise PricingNotFoundException(ERROR_PRODUCT_NOT_FOUND)
        return product

    # --- Liste des prix ---

    async def list_prices(
        self,
        category_id: Optional[int] = None,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[PriceListItem], PriceStats]:
        products = await self.repository.list_priced_products(category_id, min_price, max_price, search)
        ids = [p.id for p in products]
        last_changes = await self.repository.get_last_changes(ids)
        with_volume = await self.repository.get_products_with_volume_pricing(ids)
        with_client = await self.repository.get_products_with_client_pricing(ids)

        items = []
        for product in products:
            last = last_changes.get(product.id)
            price_change = price_change_percent = None
            if last is not None and last.old_price_ht:
                price_change = round_money(product.price_ht - last.old_price_ht)
                price_change_percent = round_money(price_change / last.old_price_ht * HUNDRED)
            items.append(PriceListItem(
                id=product.id,
                name=product.name,
                reference=product.reference,
                unit=product.unit,
                price_ht=product.price_ht,
                price_ht_t2=product.price_ht_t2,
                tva_rate=product.tva_rate,
                category_id=product.category_id,
                last_change_at=last.changed_at if last else None,
                price_change=price_change,
                price_change_percent=price_change_percent,
                has_volume_pricing=product.id in with_volume,
                has_client_pricing=product.id in with_client,
            ))

        prices = [p.price_ht for p in products]
        stats = PriceStats(
            total_products=len(products),
            avg_price=round_money(sum(prices, ZERO) / len(prices)) if prices else ZERO,
            min_price=min(prices) if prices else ZERO,
            max_price=max(prices) if prices else ZERO,
            products_with_volume_pricing=len(with_volume),
            products_with_client_pricing=len(with_client),
            recent_changes=len(last_changes),
        )
        return items, stats

    async def get_price_history(self, product_id: int) -> List[PriceHistoryRead]:
        return await self.repository.get_history(product_id, PRICE_HISTORY_LIMIT)

    # --- Modification en masse ---

    async def bulk_update(self, request: BulkPriceUpdateRequest, user_id: Optional[int] = None) -> int:
        """Applique la modification à tous les produits non supprimés, en une seule transaction.

        Chaque produit modifié reçoit exactement une ligne d'historique.
        """
        logger.info(
            f"[PricingService] Bulk update {request.action.value} {request.value} {request.value_type.value} "
            f"sur {len(request.product_ids)} produit(s)"
        )
        try:
            products = await self.repository.get_products_for_update(request.product_ids)
            history = []
            for product in products:
                new_price = compute_bulk_price(product.price_ht, request.action, request.value, request.value_type)
                history.append(PriceHistory(
                    product_id=product.id,
                    old_price_ht=product.price_ht,
                    new_price_ht=new_price,
                    old_price_ht_t2=product.price_ht_t2,
                    new_price_ht_t2=product.price_ht_t2,
                    change_type=PriceChangeType.BULK.value,
                    reason=request.reason or BULK_DEFAULT_REASON,
                    changed_by=user_id,
                    changed_at=utcnow(),
                ))
                await self.repository.set_product_price(product, new_price)
            await self.repository.add_history(history)
            await self.repository.commit()
        except Exception as e:
            logger.error(f"[PricingService] Échec modification en masse, annulation: {e}", exc_info=True)
            await self.repository.rollback()
            raise

        await self._log("BULK_PRICE_UPDATE", AUDIT_ENTITY_PRODUCT, None, user_id, {
            "product_ids": request.product_ids,
            "action": request.action.value,
            "value": request.value,
            "value_type": request.value_type.value,
            "count": len(products),
        })
        return len(products)

    # --- Résolution du prix ---

    async def resolve_unit_price(
        self,
        product_id: int,
        quantity: Decimal,
        user_id: Optional[int] = None,
        tier: PriceTier = PriceTier.T1,
        at: Optional[datetime] = None,
    ) -> ResolvedPrice:
        product = await self._get_live_product(product_id)
        at = at or utcnow()

        if user_id is not None:
            client_price = await self.repository.find_client_price(product_id, user_id, at)
            if client_price is not None:
                unit_price = client_price.price_ht
                if tier == PriceTier.T2 and client_price.price_ht_t2 is not None:
                    unit_price = client_price.price_ht_t2
                return ResolvedPrice(
                    product_id=product_id, quantity=quantity, tier=tier, unit_price_ht=unit_price,
                    tva_rate=product.tva_rate, source=PriceSource.CLIENT,
                )

        bracket = await self.repository.find_volume_bracket(product_id, quantity)
        if bracket is not None:
            return ResolvedPrice(
                product_id=product_id, quantity=quantity, tier=tier, unit_price_ht=bracket.price_ht,
                tva_rate=product.tva_rate, source=PriceSource.VOLUME,
            )

        return ResolvedPrice(
            product_id=product_id, quantity=quantity, tier=tier, unit_price_ht=base_tier_price(product, tier),
            tva_rate=product.tva_rate, source=PriceSource.BASE,
        )

    async def price_lines(
        self,
        lines: List[Tuple[Product, Decimal]],
        user_id: Optional[int] = None,
        tier: PriceTier = PriceTier.T1,
    ) -> List[PricedLine]:
        """Résout le prix de chaque ligne et calcule ses totaux (valeurs à figer sur le document)."""
        at = utcnow()
        priced = []
        for product, quantity in lines:
            resolved = await self.resolve_unit_price(product.id, quantity, user_id=user_id, tier=tier, at=at)
            priced.append(PricedLine(
                product=product,
                quantity=quantity,
                unit_price_ht=resolved.unit_price_ht,
                source=resolved.source,
                totals=calculate_line_totals(quantity, resolved.unit_price_ht, product.tva_rate),
            ))
        return priced

    # --- Tarifs dégressifs ---

    async def _check_overlap(self, product_id: int, min_q: Decimal, max_q: Optional[Decimal], exclude_id: Optional[int] = None) -> None:
        overlapping = await self.repository.find_overlapping_bracket(product_id, min_q, max_q, exclude_id)
        if overlapping is not None:
            upper = overlapping.max_quantity if overlapping.max_quantity is not None else "∞"
            raise OverlappingVolumeBracketException(ERROR_VOLUME_OVERLAP.format(min=overlapping.min_quantity, max=upper))

    async def list_volume_pricing(self, product_id: Optional[int] = None) -> List[VolumePricingRead]:
        rows = await self.repository.list_volume_pricing(product_id)
        return [
            VolumePricingRead(**VolumePricingRead.model_validate(vp).model_dump(exclude={"product_name"}), product_name=name)
            for vp, name in rows
        ]

    async def create_volume_pricing(self, data: VolumePricingCreate, user_id: Optional[int] = None) -> VolumePricingRead:
        product = await self._get_live_product(data.product_id)
        if data.is_active:
            await self._check_overlap(data.product_id, data.min_quantity, data.max_quantity)
        volume = await self.repository.save(VolumePricing.model_validate(data))
        await self.repository.commit()
        await self._log("CREATE_VOLUME_PRICING", AUDIT_ENTITY_VOLUME, volume.id, user_id, data.model_dump())
        return VolumePricingRead(**VolumePricingRead.model_validate(volume).model_dump(exclude={"product_name"}), product_name=product.name)

    async def update_volume_pricing(self, volume_id: int, data: VolumePricingUpdate, user_id: Optional[int] = None) -> VolumePricingRead:
        volume = await self.repository.get_volume_pricing(volume_id)
        if volume is None:
            raise PricingNotFoundException(ERROR_VOLUME_NOT_FOUND)
        changes = data.model_dump(exclude_unset=True)
        min_q = changes.get("min_quantity", volume.min_quantity)
        max_q = changes["max_quantity"] if "max_quantity" in changes else volume.max_quantity
        if min_q is None:
            raise InvalidPricingException(ERROR_INVALID_BRACKET)
        if max_q is not None and max_q <= min_q:
            raise InvalidPricingException(ERROR_INVALID_BRACKET)
        if changes.get("is_active", volume.is_active):
            await self._check_overlap(volume.product_id, min_q, max_q, exclude_id=volume_id)

        for key, value in changes.items():
            setattr(volume, key, value)
        volume = await self.repository.save(volume)
        await self.repository.commit()
        await self._log("UPDATE_VOLUME_PRICING", AUDIT_ENTITY_VOLUME, volume_id, user_id, changes)
        return VolumePricingRead.model_validate(volume)

    async def delete_volume_pricing(self, volume_id: int, user_id: Optional[int] = None) -> None:
        volume = await self.repository.get_volume_pricing(volume_id)
        if volume is None:
            raise PricingNotFoundException(ERROR_VOLUME_NOT_FOUND)
        await self.repository.delete(volume)
        await self.repository.commit()
        await self._log("DELETE_VOLUME_PRICING", AUDIT_ENTITY_VOLUME, volume_id, user_id)

    # --- Tarifs clients ---

    async def list_client_pricing(self, product_id: Optional[int] = None, user_id: Optional[int] = None) -> List[ClientPricingRead]:
        rows = await self.repository.list_client_pricing(product_id, user_id)
        return [
            ClientPricingRead(
                **ClientPricingRead.model_validate(cp).model_dump(exclude={"product_name", "user"}),
                product_name=name,
                user=UserSummary.model_validate(user),
            )
            for cp, name, user in rows
        ]

    async def create_client_pricing(self, data: ClientPricingCreate, user_id: Optional[int] = None) -> ClientPricingRead:
        product = await self._get_live_product(data.product_id)
        client = await self.repository.get_user(data.user_id)
        if client is None:
            raise PricingNotFoundException(ERROR_USER_NOT_FOUND)
        client_price = await self.repository.save(ClientPricing.model_validate(data))
        await self.repository.commit()
        await self._log("CREATE_CLIENT_PRICING", AUDIT_ENTITY_CLIENT, client_price.id, user_id, data.model_dump())
        return ClientPricingRead(
            **ClientPricingRead.model_validate(client_price).model_dump(exclude={"product_name", "user"}),
            product_name=product.name,
            user=UserSummary.model_validate(client),
        )

    async def update_client_pricing(self, client_pricing_id: int, data: ClientPricingUpdate, user_id: Optional[int] = None) -> ClientPricingRead:
        client_price = await self.repository.get_client_pricing(client_pricing_id)
        if client_price is None:
            raise PricingNotFoundException(ERROR_CLIENT_PRICE_NOT_FOUND)
        changes = data.model_dump(exclude_unset=True)
        if "valid_from" in changes and changes["valid_from"] is None:
            changes.pop("valid_from")
        valid_from = changes.get("valid_from", client_price.valid_from)
        valid_until = changes["valid_until"] if "valid_until" in changes else client_price.valid_until
        if valid_until is not None and valid_until <= valid_from:
            raise InvalidPricingException(ERROR_INVALID_WINDOW)

        for key, value in changes.items():
            setattr(client_price, key, value)
        client_price = await self.repository.save(client_price)
        await self.repository.commit()
        await self._log("UPDATE_CLIENT_PRICING", AUDIT_ENTITY_CLIENT, client_pricing_id, user_id, changes)
        return ClientPricingRead.model_validate(client_price)

    async def delete_client_pricing(self, client_pricing_id: int, user_id: Optional[int] = None) -> None:
        client_price = await self.repository.get_client_pricing(client_pricing_id)
        if client_price is None:
            raise PricingNotFoundException(ERROR_CLIENT_PRICE_NOT_FOUND)
        await self.repository.delete(client_price)
        await self.repository.commit()
        await self._log("DELETE_CLIENT_PRICING", AUDIT_ENTITY_CLIENT, client_pricing_id, user_id)
