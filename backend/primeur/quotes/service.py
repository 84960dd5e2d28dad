"""
Service des devis.

Cycle de vie: DRAFT -> SENT -> {ACCEPTED, REJECTED, EXPIRED}; ACCEPTED -> CONVERTED.
CONVERTED, REJECTED et EXPIRED sont terminaux. Les lignes d'un devis sont un instantané
des prix résolus au chiffrage: une modification ultérieure du catalogue ne les change pas.
Chaque changement de statut est un UPDATE conditionnel sur le statut attendu.
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Set, Tuple, Union

from sqlalchemy.exc import IntegrityError

from primeur.audit.service import AuditTrail
from primeur.config import settings
from primeur.core.calculations import Totals, calculate_document_totals
from primeur.core.numbering import generate_unique_number
from primeur.core.utils import utcnow
from primeur.notifications.models import NotificationType
from primeur.notifications.service import NotificationService
from primeur.orders.models import OrderReadWithItems
from primeur.orders.service import OrderService, to_order_read
from primeur.pdf.generator import AbstractPDFGenerator
from primeur.pdf.models import PDFQuoteData, PDFDocumentLine, PDFShopInfo
from primeur.pricing.models import PriceTier
from primeur.pricing.service import PricingService
from primeur.quotes.constants import (
    AUDIT_ENTITY,
    ERROR_DELETE_CONVERTED,
    ERROR_INVALID_TRANSITION,
    ERROR_NOT_ACCEPTED,
    ERROR_NUMBERING,
    ERROR_PRODUCTS_UNAVAILABLE,
    ERROR_SHOP_NOT_FOUND,
    ERROR_UPDATE_CONVERTED,
    NOTIFY_QUOTE_ACCEPTED_TITLE,
    NOTIFY_QUOTE_REJECTED_TITLE,
    NOTIFY_QUOTE_RESPONSE_MSG,
    NOTIFY_QUOTE_SENT_MSG,
    NOTIFY_QUOTE_SENT_TITLE,
    QUOTE_NUMBER_PREFIX,
)
from primeur.quotes.exceptions import (
    InvalidQuoteException,
    QuoteAccessDeniedException,
    QuoteAlreadyConvertedException,
    QuoteExpiredException,
    QuoteNotFoundException,
)
from primeur.quotes.interfaces.repositories import AbstractQuoteRepository
from primeur.quotes.models import (
    Quote,
    QuoteCreate,
    QuoteItem,
    QuoteItemCreate,
    QuoteItemRead,
    QuoteRead,
    QuoteReadWithItems,
    QuoteStatus,
    QuoteUpdate,
)
from primeur.shops.models import Shop, ShopSummary
from primeur.users.models import UserRead

logger = logging.getLogger(__name__)

QUOTE_TRANSITIONS: Dict[QuoteStatus, Set[QuoteStatus]] = {
    QuoteStatus.DRAFT: {QuoteStatus.SENT},
    QuoteStatus.SENT: {QuoteStatus.ACCEPTED, QuoteStatus.REJECTED, QuoteStatus.EXPIRED},
    QuoteStatus.ACCEPTED: set(),
    QuoteStatus.REJECTED: set(),
    QuoteStatus.EXPIRED: set(),
    QuoteStatus.CONVERTED: set(),
}


def check_quote_transition(current: QuoteStatus, new: QuoteStatus) -> None:
    """CONVERTED n'est jamais une cible manuelle: seule la conversion y mène."""
    if new == current:
        return
    if new not in QUOTE_TRANSITIONS[current]:
        raise InvalidQuoteException(ERROR_INVALID_TRANSITION.format(current=current.value, new=new.value))


def to_quote_read(
    quote: Union[Quote, QuoteRead], items: Sequence[QuoteItem], shop: Optional[Shop] = None
) -> QuoteReadWithItems:
    return QuoteReadWithItems.model_validate({
        **quote.model_dump(),
        "shop": ShopSummary.model_validate(shop, from_attributes=True) if shop else None,
        "items": [QuoteItemRead.model_validate(i, from_attributes=True) for i in items],
    })


class QuoteService:

    def __init__(
        self,
        repository: AbstractQuoteRepository,
        pricing: PricingService,
        orders: OrderService,
        notifications: NotificationService,
        audit: Optional[AuditTrail] = None,
    ):
        self.repository = repository
        self.pricing = pricing
        self.orders = orders
        self.notifications = notifications
        self.audit = audit

    async def _log(self, action: str, entity_id, user_id: Optional[int], changes=None) -> None:
        if self.audit:
            await self.audit.log_action(action, AUDIT_ENTITY, entity_id, user_id, changes)

    async def _get_quote(self, quote_id: int) -> Quote:
        quote = await self.repository.get_by_id(quote_id)
        if quote is None:
            raise QuoteNotFoundException()
        return quote

    def _check_access(self, quote: Quote, current_user: UserRead, user_shop: Optional[Shop]) -> None:
        if current_user.is_admin:
            return
        if user_shop is None or quote.shop_id != user_shop.id:
            raise QuoteAccessDeniedException()

    async def _read(self, quote: Quote) -> QuoteReadWithItems:
        items = await self.repository.get_items_for([quote.id])
        shops = await self.repository.get_shops([quote.shop_id])
        return to_quote_read(quote, items.get(quote.id, []), shops.get(quote.shop_id))

    async def _price_items(self, items: List[QuoteItemCreate], shop: Shop, tier: PriceTier) -> Tuple[List[dict], Totals]:
        """Résout et fige les prix des lignes pour le propriétaire du magasin."""
        product_ids = {item.product_id for item in items}
        products = await self.repository.get_available_products(list(product_ids))
        if len(products) != len(product_ids):
            raise InvalidQuoteException(ERROR_PRODUCTS_UNAVAILABLE)

        lines = await self.pricing.price_lines(
            [(products[item.product_id], item.quantity) for item in items], user_id=shop.user_id, tier=tier
        )
        values = [
            {
                "product_id": line.product.id,
                "product_name": line.product.name,
                "unit": line.product.unit,
                "quantity": line.quantity,
                "price_ht": line.unit_price_ht,
                "tva_rate": line.product.tva_rate,
                "total_ht": line.totals.total_ht,
                "total_tva": line.totals.total_tva,
                "total_ttc": line.totals.total_ttc,
                "price_source": line.source.value,
            }
            for line in lines
        ]
        return values, calculate_document_totals(line.totals for line in lines)

    # --- Consultation ---

    async def list_quotes(
        self,
        current_user: UserRead,
        user_shop: Optional[Shop],
        page: int,
        limit: int,
        shop_id: Optional[int] = None,
        status: Optional[str] = None,
    ) -> Tuple[List[QuoteReadWithItems], int]:
        if not current_user.is_admin:
            if user_shop is None:
                return [], 0
            # Les filtres ne s'appliquent qu'aux admins
            shop_id, status = user_shop.id, None
        quotes, total = await self.repository.list((page - 1) * limit, limit, shop_id=shop_id, status=status)
        items = await self.repository.get_items_for([q.id for q in quotes])
        shops = await self.repository.get_shops(q.shop_id for q in quotes)
        return [to_quote_read(q, items.get(q.id, []), shops.get(q.shop_id)) for q in quotes], total

    async def get_quote(self, quote_id: int, current_user: UserRead, user_shop: Optional[Shop]) -> QuoteReadWithItems:
        quote = await self._get_quote(quote_id)
        self._check_access(quote, current_user, user_shop)
        return await self._read(quote)

    # --- Création / modification ---

    async def create_quote(self, data: QuoteCreate, user_id: Optional[int] = None) -> QuoteReadWithItems:
        shop = (await self.repository.get_shops([data.shop_id])).get(data.shop_id)
        if shop is None:
            raise QuoteNotFoundException(ERROR_SHOP_NOT_FOUND)
        values, totals = await self._price_items(data.items, shop, PriceTier(data.pricing_type))
        shop_id = shop.id

        attempts = settings.TRANSACTION_MAX_RETRIES
        for attempt in range(1, attempts + 1):
            number = await generate_unique_number(QUOTE_NUMBER_PREFIX, self.repository.number_exists)
            quote = Quote(
                quote_number=number,
                shop_id=shop_id,
                status=QuoteStatus.DRAFT.value,
                pricing_type=data.pricing_type.value,
                total_ht=totals.total_ht,
                total_tva=totals.total_tva,
                total_ttc=totals.total_ttc,
                valid_until=data.valid_until,
                notes=data.notes,
                created_by=user_id,
            )
            try:
                quote = await self.repository.create(quote, [QuoteItem(**v) for v in values])
                await self.repository.commit()
                break
            except IntegrityError as e:
                await self.repository.rollback()
                logger.warning(f"[QuoteService] Collision sur le numéro {number} (essai {attempt}/{attempts}): {e}")
            except Exception:
                await self.repository.rollback()
                raise
        else:
            raise InvalidQuoteException(ERROR_NUMBERING)

        logger.info(f"[QuoteService] Devis {quote.quote_number} créé pour le magasin {shop_id} ({quote.total_ttc} € TTC)")
        await self._log("CREATE", quote.id, user_id, {"quote_number": quote.quote_number, "shop_id": shop_id})
        return await self._read(quote)

    async def update_quote(self, quote_id: int, data: QuoteUpdate, user_id: Optional[int] = None) -> QuoteReadWithItems:
        quote = await self._get_quote(quote_id)
        if quote.status == QuoteStatus.CONVERTED.value:
            raise InvalidQuoteException(ERROR_UPDATE_CONVERTED)

        changes = data.model_dump(exclude_unset=True, exclude={"items"})
        if data.status is not None:
            check_quote_transition(QuoteStatus(quote.status), data.status)
            responding = quote.status == QuoteStatus.SENT.value and data.status in (QuoteStatus.ACCEPTED, QuoteStatus.REJECTED)
            valid_until = data.valid_until or quote.valid_until
            # Même règle que l'acceptation par le client: trop tard, le devis expire
            if responding and data.status == QuoteStatus.ACCEPTED and valid_until < utcnow():
                try:
                    await self._transition(quote, [QuoteStatus.SENT], QuoteStatus.EXPIRED, responded_at=utcnow())
                    await self.repository.commit()
                except Exception:
                    await self.repository.rollback()
                    raise
                logger.info(f"[QuoteService] Devis {quote.quote_number} expiré lors de son acceptation")
                raise QuoteExpiredException()
            quote.status = data.status.value
            if responding:
                quote.responded_at = utcnow()
        if data.valid_until is not None:
            quote.valid_until = data.valid_until
        if "notes" in changes:
            quote.notes = data.notes

        new_items = None
        if data.items is not None:
            shop = (await self.repository.get_shops([quote.shop_id])).get(quote.shop_id)
            if shop is None:
                raise QuoteNotFoundException(ERROR_SHOP_NOT_FOUND)
            values, totals = await self._price_items(data.items, shop, PriceTier(quote.pricing_type))
            new_items = [QuoteItem(**v) for v in values]
            quote.total_ht, quote.total_tva, quote.total_ttc = totals
            changes["items"] = len(new_items)

        try:
            if new_items is not None:
                await self.repository.replace_items(quote, new_items)
            quote = await self.repository.save(quote)
            await self.repository.commit()
        except Exception:
            await self.repository.rollback()
            raise

        await self._log("UPDATE", quote.id, user_id, changes)
        return await self._read(quote)

    async def delete_quote(self, quote_id: int, user_id: Optional[int] = None) -> None:
        quote = await self._get_quote(quote_id)
        if quote.status == QuoteStatus.CONVERTED.value:
            raise InvalidQuoteException(ERROR_DELETE_CONVERTED)
        number = quote.quote_number
        try:
            await self.repository.delete(quote)
            await self.repository.commit()
        except Exception:
            await self.repository.rollback()
            raise
        await self._log("DELETE", quote_id, user_id, {"quote_number": number})

    # --- Transitions ---

    async def _transition(self, quote: Quote, from_statuses: List[QuoteStatus], target: QuoteStatus, **values) -> None:
        """Applique la transition dans la transaction courante (sans commit)."""
        applied = await self.repository.transition(
            quote.id, [s.value for s in from_statuses], {"status": target.value, **values}
        )
        if not applied:
            raise InvalidQuoteException(ERROR_INVALID_TRANSITION.format(current=quote.status, new=target.value))

    async def send_quote(self, quote_id: int, user_id: Optional[int] = None) -> QuoteReadWithItems:
        quote = await self._get_quote(quote_id)
        current = QuoteStatus(quote.status)
        if current != QuoteStatus.SENT:
            check_quote_transition(current, QuoteStatus.SENT)
        shop = (await self.repository.get_shops([quote.shop_id])).get(quote.shop_id)

        try:
            await self._transition(quote, [QuoteStatus.DRAFT, QuoteStatus.SENT], QuoteStatus.SENT, sent_at=utcnow())
            if shop is not None:
                await self.notifications.notify(
                    shop.user_id,
                    NotificationType.QUOTE_SENT,
                    NOTIFY_QUOTE_SENT_TITLE,
                    NOTIFY_QUOTE_SENT_MSG.format(
                        number=quote.quote_number, amount=quote.total_ttc, valid_until=f"{quote.valid_until:%d/%m/%Y}"
                    ),
                    link=f"/quotes/{quote.id}",
                    data={"quote_id": quote.id},
                )
            await self.repository.commit()
        except Exception:
            await self.repository.rollback()
            raise

        quote = await self.repository.reload(quote)
        logger.info(f"[QuoteService] Devis {quote.quote_number} envoyé")
        await self._log("UPDATE", quote.id, user_id, {"action": "sent"})
        return await self._read(quote)

    async def _respond(
        self, quote_id: int, target: QuoteStatus, current_user: UserRead, user_shop: Optional[Shop], now: Optional[datetime] = None
    ) -> QuoteReadWithItems:
        quote = await self._get_quote(quote_id)
        self._check_access(quote, current_user, user_shop)
        check_quote_transition(QuoteStatus(quote.status), target)
        now = now or utcnow()

        if target == QuoteStatus.ACCEPTED and quote.valid_until < now:
            try:
                await self._transition(quote, [QuoteStatus.SENT], QuoteStatus.EXPIRED, responded_at=now)
                await self.repository.commit()
            except Exception:
                await self.repository.rollback()
                raise
            logger.info(f"[QuoteService] Devis {quote.quote_number} expiré lors de son acceptation")
            raise QuoteExpiredException()

        shops = await self.repository.get_shops([quote.shop_id])
        shop = shops.get(quote.shop_id)
        accepted = target == QuoteStatus.ACCEPTED
        try:
            await self._transition(quote, [QuoteStatus.SENT], target, responded_at=now)
            await self.notifications.notify_admins(
                NotificationType.QUOTE_ACCEPTED if accepted else NotificationType.QUOTE_REJECTED,
                NOTIFY_QUOTE_ACCEPTED_TITLE if accepted else NOTIFY_QUOTE_REJECTED_TITLE,
                NOTIFY_QUOTE_RESPONSE_MSG.format(
                    number=quote.quote_number, verb="accepté" if accepted else "refusé", shop=shop.name if shop else quote.shop_id
                ),
                link=f"/admin/quotes/{quote.id}",
                data={"quote_id": quote.id},
            )
            await self.repository.commit()
        except Exception:
            await self.repository.rollback()
            raise

        quote = await self.repository.reload(quote)
        await self._log("UPDATE", quote.id, current_user.id, {"action": target.value.lower()})
        return await self._read(quote)

    async def accept_quote(self, quote_id: int, current_user: UserRead, user_shop: Optional[Shop]) -> QuoteReadWithItems:
        return await self._respond(quote_id, QuoteStatus.ACCEPTED, current_user, user_shop)

    async def reject_quote(self, quote_id: int, current_user: UserRead, user_shop: Optional[Shop]) -> QuoteReadWithItems:
        return await self._respond(quote_id, QuoteStatus.REJECTED, current_user, user_shop)

    # --- Conversion ---

    async def convert_quote(
        self, quote_id: int, user_id: Optional[int] = None, now: Optional[datetime] = None
    ) -> Tuple[QuoteReadWithItems, OrderReadWithItems]:
        """Crée la commande à partir de l'instantané du devis, dans une seule transaction.

        Refusé si le devis est déjà converti, expiré (statut inchangé) ou non accepté.
        """
        quote = await self._get_quote(quote_id)
        if quote.converted_to_order_id is not None or quote.status == QuoteStatus.CONVERTED.value:
            raise QuoteAlreadyConvertedException(quote.converted_to_order_id)
        if quote.valid_until < (now or utcnow()):
            raise QuoteExpiredException()
        if quote.status != QuoteStatus.ACCEPTED.value:
            raise InvalidQuoteException(ERROR_NOT_ACCEPTED)

        items = (await self.repository.get_items_for([quote.id])).get(quote.id, [])
        item_values = [
            {
                "product_id": i.product_id,
                "product_name": i.product_name,
                "unit": i.unit,
                "quantity": i.quantity,
                "price_ht": i.price_ht,
                "tva_rate": i.tva_rate,
                "total_ht": i.total_ht,
                "total_tva": i.total_tva,
                "total_ttc": i.total_ttc,
            }
            for i in items
        ]
        totals = Totals(quote.total_ht, quote.total_tva, quote.total_ttc)
        quote_number = quote.quote_number

        async def mark_converted(order) -> None:
            if not await self.repository.mark_converted(quote_id, order.id):
                raise QuoteAlreadyConvertedException()

        order = await self.orders.create_from_snapshot(
            shop_id=quote.shop_id,
            pricing_type=quote.pricing_type,
            totals=totals,
            item_values=item_values,
            quote_id=quote_id,
            after_insert=mark_converted,
        )

        logger.info(f"[QuoteService] Devis {quote_number} converti en commande {order.order_number}")
        await self._log("UPDATE", quote_id, user_id, {"action": "converted", "order_id": order.id})
        quote = await self.repository.reload(await self._get_quote(quote_id))
        order_items = await self.orders.repository.get_items_for([order.id])
        return await self._read(quote), to_order_read(order, order_items.get(order.id, []))

    # --- PDF ---

    async def render_pdf(
        self, quote_id: int, current_user: UserRead, user_shop: Optional[Shop], generator: AbstractPDFGenerator
    ) -> Tuple[str, bytes]:
        """Retourne le nom de fichier et le contenu PDF du devis."""
        quote = await self._get_quote(quote_id)
        self._check_access(quote, current_user, user_shop)
        items = (await self.repository.get_items_for([quote.id])).get(quote.id, [])
        shop = (await self.repository.get_shops([quote.shop_id])).get(quote.shop_id)

        data = PDFQuoteData(
            quote_number=quote.quote_number,
            created_at=quote.created_at,
            valid_until=quote.valid_until,
            shop=PDFShopInfo(
                name=shop.name, address=shop.address, postal_code=shop.postal_code, city=shop.city, phone=shop.phone
            ),
            items=[
                PDFDocumentLine(
                    product_name=i.product_name,
                    unit=i.unit,
                    quantity=i.quantity,
                    price_ht=i.price_ht,
                    tva_rate=i.tva_rate,
                    total_ttc=i.total_ttc,
                )
                for i in items
            ],
            total_ht=quote.total_ht,
            total_tva=quote.total_tva,
            total_ttc=quote.total_ttc,
            notes=quote.notes,
        )
        return f"devis-{quote.quote_number}.pdf", await generator.generate_quote_pdf(data)
