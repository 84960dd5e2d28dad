"""
Service des factures.

Une facture est émise pour une commande livrée, au plus une par commande. Elle copie
les totaux de la commande; ses lignes sont celles de la commande, elles-mêmes figées.
Le PDF est produit à la demande à partir de ces données.
"""
import logging
from typing import List, Optional, Sequence, Tuple, Union

from sqlalchemy.exc import IntegrityError

from primeur.audit.service import AuditTrail
from primeur.config import settings
from primeur.core.numbering import generate_unique_number
from primeur.core.utils import utcnow
from primeur.invoices.constants import (
    AUDIT_ENTITY,
    ERROR_NUMBERING,
    ERROR_ORDER_NOT_DELIVERED,
    ERROR_ORDER_NOT_FOUND,
    INVOICE_NUMBER_PREFIX,
    NOTIFY_INVOICE_SENT_MSG,
    NOTIFY_INVOICE_SENT_TITLE,
)
from primeur.invoices.exceptions import (
    InvalidInvoiceException,
    InvoiceAccessDeniedException,
    InvoiceAlreadyExistsException,
    InvoiceNotFoundException,
)
from primeur.invoices.interfaces.repositories import AbstractInvoiceRepository
from primeur.invoices.models import Invoice, InvoiceRead, InvoiceReadWithDetails
from primeur.notifications.models import NotificationType
from primeur.notifications.service import NotificationService
from primeur.orders.models import OrderItem, OrderItemRead, OrderStatus
from primeur.pdf.generator import AbstractPDFGenerator
from primeur.pdf.models import PDFDocumentLine, PDFInvoiceData, PDFShopInfo
from primeur.shops.models import Shop, ShopSummary
from primeur.users.models import UserRead

logger = logging.getLogger(__name__)


def to_invoice_read(
    invoice: Union[Invoice, InvoiceRead], items: Sequence[OrderItem], shop: Optional[Shop] = None
) -> InvoiceReadWithDetails:
    return InvoiceReadWithDetails.model_validate({
        **invoice.model_dump(),
        "shop": ShopSummary.model_validate(shop, from_attributes=True) if shop else None,
        "items": [OrderItemRead.model_validate(i, from_attributes=True) for i in items],
    })


class InvoiceService:

    def __init__(
        self,
        repository: AbstractInvoiceRepository,
        notifications: NotificationService,
        audit: Optional[AuditTrail] = None,
    ):
        self.repository = repository
        self.notifications = notifications
        self.audit = audit

    async def _get_invoice(self, invoice_id: int) -> Invoice:
        invoice = await self.repository.get_by_id(invoice_id)
        if invoice is None:
            raise InvoiceNotFoundException()
        return invoice

    def _check_access(self, invoice: Invoice, current_user: UserRead, user_shop: Optional[Shop]) -> None:
        if current_user.is_admin:
            return
        if user_shop is None or invoice.shop_id != user_shop.id:
            raise InvoiceAccessDeniedException()

    async def _read(self, invoice: Invoice) -> InvoiceReadWithDetails:
        items = await self.repository.get_order_items([invoice.order_id])
        shops = await self.repository.get_shops([invoice.shop_id])
        return to_invoice_read(invoice, items.get(invoice.order_id, []), shops.get(invoice.shop_id))

    async def list_invoices(
        self, current_user: UserRead, user_shop: Optional[Shop], page: int, limit: int, shop_id: Optional[int] = None
    ) -> Tuple[List[InvoiceReadWithDetails], int]:
        if not current_user.is_admin:
            if user_shop is None:
                return [], 0
            shop_id = user_shop.id
        invoices, total = await self.repository.list((page - 1) * limit, limit, shop_id=shop_id)
        items = await self.repository.get_order_items([i.order_id for i in invoices])
        shops = await self.repository.get_shops(i.shop_id for i in invoices)
        return [to_invoice_read(i, items.get(i.order_id, []), shops.get(i.shop_id)) for i in invoices], total

    async def get_invoice(
        self, invoice_id: int, current_user: UserRead, user_shop: Optional[Shop]
    ) -> InvoiceReadWithDetails:
        invoice = await self._get_invoice(invoice_id)
        self._check_access(invoice, current_user, user_shop)
        return await self._read(invoice)

    async def generate_invoice(self, order_id: int, user_id: Optional[int] = None) -> InvoiceReadWithDetails:
        """Émet la facture d'une commande livrée avec un numéro ``FAC-YYYYMM-NNNN``."""
        existing = await self.repository.get_by_order_id(order_id)
        if existing is not None:
            raise InvoiceAlreadyExistsException(existing.id)
        order = await self.repository.get_order(order_id)
        if order is None:
            raise InvoiceNotFoundException(ERROR_ORDER_NOT_FOUND)
        if order.status != OrderStatus.LIVREE.value:
            raise InvalidInvoiceException(ERROR_ORDER_NOT_DELIVERED)

        # Copie des montants: un rollback expire la commande chargée
        copied = {
            "order_id": order.id,
            "shop_id": order.shop_id,
            "order_number": order.order_number,
            "total_ht": order.total_ht,
            "total_tva": order.total_tva,
            "total_ttc": order.total_ttc,
            "discount_amount": order.discount_amount,
        }

        attempts = settings.TRANSACTION_MAX_RETRIES
        for attempt in range(1, attempts + 1):
            number = await generate_unique_number(INVOICE_NUMBER_PREFIX, self.repository.number_exists)
            invoice = Invoice(invoice_number=number, created_by=user_id, **copied)
            try:
                invoice = await self.repository.create(invoice)
                await self.repository.commit()
                break
            except IntegrityError as e:
                await self.repository.rollback()
                concurrent = await self.repository.get_by_order_id(order_id)
                if concurrent is not None:
                    raise InvoiceAlreadyExistsException(concurrent.id)
                logger.warning(f"[InvoiceService] Collision sur le numéro {number} (essai {attempt}/{attempts}): {e}")
            except Exception:
                await self.repository.rollback()
                raise
        else:
            raise InvalidInvoiceException(ERROR_NUMBERING)

        logger.info(
            f"[InvoiceService] Facture {invoice.invoice_number} émise pour la commande {copied['order_number']}"
            f" ({invoice.total_ttc} € TTC)"
        )
        if self.audit:
            await self.audit.log_action("CREATE", AUDIT_ENTITY, invoice.id, user_id, {
                "invoice_number": invoice.invoice_number, "order_id": order_id,
            })
        return await self._read(invoice)

    async def send_invoice(self, invoice_id: int, user_id: Optional[int] = None) -> InvoiceReadWithDetails:
        """Marque la facture comme envoyée et prévient le propriétaire du magasin."""
        invoice = await self._get_invoice(invoice_id)
        shop = (await self.repository.get_shops([invoice.shop_id])).get(invoice.shop_id)

        invoice.sent_at = utcnow()
        try:
            await self.repository.save(invoice)
            if shop is not None:
                await self.notifications.notify(
                    shop.user_id,
                    NotificationType.INVOICE_SENT,
                    NOTIFY_INVOICE_SENT_TITLE,
                    NOTIFY_INVOICE_SENT_MSG.format(
                        number=invoice.invoice_number, order_number=invoice.order_number, amount=invoice.total_ttc
                    ),
                    link=f"/invoices/{invoice.id}",
                    data={"invoice_id": invoice.id, "order_id": invoice.order_id},
                )
            await self.repository.commit()
        except Exception:
            await self.repository.rollback()
            raise

        logger.info(f"[InvoiceService] Facture {invoice.invoice_number} envoyée au magasin {invoice.shop_id}")
        if self.audit:
            await self.audit.log_action("UPDATE", AUDIT_ENTITY, invoice.id, user_id, {"action": "sent"})
        return await self._read(invoice)

    async def render_pdf(
        self, invoice_id: int, current_user: UserRead, user_shop: Optional[Shop], generator: AbstractPDFGenerator
    ) -> Tuple[str, bytes]:
        """Retourne le nom de fichier et le contenu PDF de la facture."""
        invoice = await self._get_invoice(invoice_id)
        self._check_access(invoice, current_user, user_shop)
        order = await self.repository.get_order(invoice.order_id)
        items = (await self.repository.get_order_items([invoice.order_id])).get(invoice.order_id, [])
        shop = (await self.repository.get_shops([invoice.shop_id])).get(invoice.shop_id)
        if order is None or shop is None:
            raise InvoiceNotFoundException(ERROR_ORDER_NOT_FOUND)

        data = PDFInvoiceData(
            invoice_number=invoice.invoice_number,
            generated_at=invoice.generated_at,
            order_number=invoice.order_number,
            order_date=order.created_at,
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
            total_ht=invoice.total_ht,
            total_tva=invoice.total_tva,
            total_ttc=invoice.total_ttc,
            discount_amount=invoice.discount_amount,
        )
        return f"facture-{invoice.invoice_number}.pdf", await generator.generate_invoice_pdf(data)
