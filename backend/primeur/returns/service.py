"""
Service des retours produits.

Cycle de vie: PENDING -> {APPROVED, REJECTED}; APPROVED -> REFUNDED.
Une approbation en avoir (CREDIT_NOTE) crée l'avoir dans la même transaction que
le changement de statut. Chaque décision est notifiée au demandeur.
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from sqlalchemy.exc import IntegrityError

from primeur.audit.service import AuditTrail
from primeur.config import settings
from primeur.core.calculations import round_money, to_decimal
from primeur.core.numbering import generate_unique_number
from primeur.core.utils import utcnow
from primeur.notifications.models import NotificationType
from primeur.notifications.service import NotificationService
from primeur.orders.models import Order
from primeur.returns.constants import (
    AUDIT_ENTITY,
    CREDIT_NOTE_NUMBER_PREFIX,
    CREDIT_NOTE_REASON,
    ERROR_NOT_APPROVED,
    ERROR_NOT_PENDING,
    ERROR_NUMBERING,
    ERROR_ORDER_NOT_FOUND,
    NOTIFY_RETURN_APPROVED_MSG,
    NOTIFY_RETURN_APPROVED_TITLE,
    NOTIFY_RETURN_CREATED_MSG,
    NOTIFY_RETURN_CREATED_TITLE,
    NOTIFY_RETURN_REFUNDED_MSG,
    NOTIFY_RETURN_REFUNDED_TITLE,
    NOTIFY_RETURN_REJECTED_MSG,
    NOTIFY_RETURN_REJECTED_TITLE,
    RETURN_NUMBER_PREFIX,
)
from primeur.returns.exceptions import (
    InvalidReturnException,
    ReturnAccessDeniedException,
    ReturnNotFoundException,
)
from primeur.returns.interfaces.repositories import AbstractReturnRepository
from primeur.returns.models import (
    CreditNote,
    CreditNoteRead,
    RefundMethod,
    Return,
    ReturnApprove,
    ReturnCreate,
    ReturnItem,
    ReturnItemRead,
    ReturnReadWithDetails,
    ReturnStats,
    ReturnStatus,
)
from primeur.returns.storage import PhotoUpload, delete_return_photo, save_return_photo, validate_photo
from primeur.shops.models import Shop
from primeur.users.models import UserRead

logger = logging.getLogger(__name__)

REFUND_METHOD_LABELS = {
    RefundMethod.CREDIT_NOTE: "avoir",
    RefundMethod.REFUND: "remboursement",
    RefundMethod.REPLACEMENT: "remplacement",
}


def to_return_read(
    return_: Return,
    items: Sequence[ReturnItem],
    order: Optional[Order] = None,
    shop: Optional[Shop] = None,
    credit_note: Optional[CreditNote] = None,
) -> ReturnReadWithDetails:
    return ReturnReadWithDetails.model_validate({
        **return_.model_dump(),
        "order_number": order.order_number if order else None,
        "shop_name": shop.name if shop else None,
        "items": [ReturnItemRead.model_validate(i, from_attributes=True) for i in items],
        "credit_note": CreditNoteRead.model_validate(credit_note, from_attributes=True) if credit_note else None,
    })


class ReturnService:

    def __init__(
        self,
        repository: AbstractReturnRepository,
        notifications: NotificationService,
        audit: Optional[AuditTrail] = None,
    ):
        self.repository = repository
        self.notifications = notifications
        self.audit = audit

    async def _log(self, action: str, entity_id, user_id: Optional[int], changes=None) -> None:
        if self.audit:
            await self.audit.log_action(action, AUDIT_ENTITY, entity_id, user_id, changes)

    async def _get_return(self, return_id: int) -> Return:
        return_ = await self.repository.get_by_id(return_id)
        if return_ is None:
            raise ReturnNotFoundException()
        return return_

    def _check_access(self, return_: Return, current_user: UserRead, user_shop: Optional[Shop]) -> None:
        if current_user.is_admin:
            return
        if user_shop is None or return_.shop_id != user_shop.id:
            raise ReturnAccessDeniedException()

    async def _read_many(self, returns: List[Return]) -> List[ReturnReadWithDetails]:
        items = await self.repository.get_items_for([r.id for r in returns])
        orders = await self.repository.get_orders(r.order_id for r in returns)
        shops = await self.repository.get_shops(r.shop_id for r in returns)
        notes = await self.repository.get_credit_notes(r.credit_note_id for r in returns)
        return [
            to_return_read(
                r, items.get(r.id, []), orders.get(r.order_id), shops.get(r.shop_id), notes.get(r.credit_note_id)
            )
            for r in returns
        ]

    async def _read(self, return_: Return) -> ReturnReadWithDetails:
        return (await self._read_many([return_]))[0]

    # --- Consultation ---

    async def list_returns(
        self,
        current_user: UserRead,
        user_shop: Optional[Shop],
        status: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> List[ReturnReadWithDetails]:
        shop_id = None
        if not current_user.is_admin:
            if user_shop is None:
                return []
            shop_id = user_shop.id
        returns = await self.repository.list(shop_id=shop_id, status=status, start_date=start_date, end_date=end_date)
        return await self._read_many(returns)

    async def get_return(self, return_id: int, current_user: UserRead, user_shop: Optional[Shop]) -> ReturnReadWithDetails:
        return_ = await self._get_return(return_id)
        self._check_access(return_, current_user, user_shop)
        return await self._read(return_)

    async def get_stats(self, shop_id: Optional[int] = None) -> ReturnStats:
        raw = await self.repository.get_stats(shop_id)
        by_status: Dict[str, int] = raw["by_status"]
        return ReturnStats(
            total=sum(by_status.values()),
            pending=by_status.get(ReturnStatus.PENDING.value, 0),
            approved=by_status.get(ReturnStatus.APPROVED.value, 0),
            rejected=by_status.get(ReturnStatus.REJECTED.value, 0),
            refunded=by_status.get(ReturnStatus.REFUNDED.value, 0),
            total_amount=round_money(raw["total_amount"]),
            by_reason=raw["by_reason"],
        )

    # --- Demande ---

    async def create_return(
        self,
        data: ReturnCreate,
        current_user: UserRead,
        user_shop: Optional[Shop],
        photo: Optional[PhotoUpload] = None,
    ) -> ReturnReadWithDetails:
        """Enregistre une demande de retour sur une commande du magasin du demandeur."""
        order = await self.repository.get_order(data.order_id)
        if order is None:
            raise ReturnNotFoundException(ERROR_ORDER_NOT_FOUND)
        if not current_user.is_admin and (user_shop is None or order.shop_id != user_shop.id):
            raise ReturnAccessDeniedException()
        if photo is not None:
            validate_photo(photo)

        item_values = [
            {
                "product_id": item.product_id,
                "product_name": item.product_name,
                "quantity": item.quantity,
                "unit_price": item.unit_price,
                "total_price": round_money(to_decimal(item.quantity) * to_decimal(item.unit_price)),
                "reason": item.reason,
                "notes": item.notes,
            }
            for item in data.items
        ]
        total_amount = round_money(sum((v["total_price"] for v in item_values), start=to_decimal(0)))
        order_id, order_number, shop_id = order.id, order.order_number, order.shop_id

        photo_url = await save_return_photo(photo) if photo is not None else None
        try:
            return_ = await self._insert_return(
                data, item_values, total_amount, order_id, order_number, shop_id, photo_url, current_user.id
            )
        except Exception:
            if photo_url:
                await delete_return_photo(photo_url)
            raise

        logger.info(f"[ReturnService] Retour {return_.return_number} créé sur la commande {order_number} ({total_amount} €)")
        await self._log("CREATE", return_.id, current_user.id, {"return_number": return_.return_number, "order_id": order_id})
        return await self._read(return_)

    async def _insert_return(
        self,
        data: ReturnCreate,
        item_values: List[dict],
        total_amount,
        order_id: int,
        order_number: str,
        shop_id: int,
        photo_url: Optional[str],
        user_id: int,
    ) -> Return:
        attempts = settings.TRANSACTION_MAX_RETRIES
        for attempt in range(1, attempts + 1):
            number = await generate_unique_number(RETURN_NUMBER_PREFIX, self.repository.number_exists)
            return_ = Return(
                return_number=number,
                order_id=order_id,
                shop_id=shop_id,
                status=ReturnStatus.PENDING.value,
                reason=data.reason,
                description=data.description,
                total_amount=total_amount,
                photo_url=photo_url,
                requested_by=user_id,
            )
            try:
                return_ = await self.repository.create(return_, [ReturnItem(**v) for v in item_values])
                await self.notifications.notify_admins(
                    NotificationType.RETURN_CREATED,
                    NOTIFY_RETURN_CREATED_TITLE,
                    NOTIFY_RETURN_CREATED_MSG.format(number=number, amount=total_amount, order=order_number),
                    link=f"/admin/returns/{return_.id}",
                    data={"return_id": return_.id},
                )
                await self.repository.commit()
                return return_
            except IntegrityError as e:
                await self.repository.rollback()
                logger.warning(f"[ReturnService] Collision sur le numéro {number} (essai {attempt}/{attempts}): {e}")
            except Exception:
                await self.repository.rollback()
                raise
        raise InvalidReturnException(ERROR_NUMBERING)

    # --- Décisions ---

    async def approve_return(self, return_id: int, data: ReturnApprove, user_id: int) -> ReturnReadWithDetails:
        return_ = await self._get_return(return_id)
        if return_.status != ReturnStatus.PENDING.value:
            raise InvalidReturnException(ERROR_NOT_PENDING)
        number, order_id, amount, requester = (
            return_.return_number, return_.order_id, return_.total_amount, return_.requested_by
        )

        attempts = settings.TRANSACTION_MAX_RETRIES
        for attempt in range(1, attempts + 1):
            values = {
                "status": ReturnStatus.APPROVED.value,
                "refund_method": data.refund_method.value,
                "notes": data.notes,
                "processed_by": user_id,
                "processed_at": utcnow(),
            }
            try:
                if data.refund_method == RefundMethod.CREDIT_NOTE:
                    note_number = await generate_unique_number(
                        CREDIT_NOTE_NUMBER_PREFIX, self.repository.credit_note_number_exists
                    )
                    credit_note = await self.repository.create_credit_note(CreditNote(
                        credit_note_number=note_number,
                        order_id=order_id,
                        amount=amount,
                        reason=CREDIT_NOTE_REASON.format(number=number),
                    ))
                    values["credit_note_id"] = credit_note.id
                if not await self.repository.transition(return_id, ReturnStatus.PENDING.value, values):
                    raise InvalidReturnException(ERROR_NOT_PENDING)
                if requester is not None:
                    await self.notifications.notify(
                        requester,
                        NotificationType.RETURN_APPROVED,
                        NOTIFY_RETURN_APPROVED_TITLE,
                        NOTIFY_RETURN_APPROVED_MSG.format(number=number, method=REFUND_METHOD_LABELS[data.refund_method]),
                        link=f"/returns/{return_id}",
                        data={"return_id": return_id},
                    )
                await self.repository.commit()
                break
            except IntegrityError as e:
                await self.repository.rollback()
                logger.warning(f"[ReturnService] Collision sur le numéro d'avoir (essai {attempt}/{attempts}): {e}")
            except Exception:
                await self.repository.rollback()
                raise
        else:
            raise InvalidReturnException(ERROR_NUMBERING)

        return_ = await self.repository.reload(return_)
        logger.info(f"[ReturnService] Retour {number} approuvé ({data.refund_method.value})")
        await self._log("UPDATE", return_id, user_id, {"action": "approved", "refund_method": data.refund_method.value})
        return await self._read(return_)

    async def reject_return(self, return_id: int, reason: str, user_id: int) -> ReturnReadWithDetails:
        return_ = await self._get_return(return_id)
        if return_.status != ReturnStatus.PENDING.value:
            raise InvalidReturnException(ERROR_NOT_PENDING)
        number, requester = return_.return_number, return_.requested_by
        try:
            applied = await self.repository.transition(return_id, ReturnStatus.PENDING.value, {
                "status": ReturnStatus.REJECTED.value,
                "notes": reason,
                "processed_by": user_id,
                "processed_at": utcnow(),
            })
            if not applied:
                raise InvalidReturnException(ERROR_NOT_PENDING)
            if requester is not None:
                await self.notifications.notify(
                    requester,
                    NotificationType.RETURN_REJECTED,
                    NOTIFY_RETURN_REJECTED_TITLE,
                    NOTIFY_RETURN_REJECTED_MSG.format(number=number, reason=reason),
                    link=f"/returns/{return_id}",
                    data={"return_id": return_id},
                )
            await self.repository.commit()
        except Exception:
            await self.repository.rollback()
            raise

        return_ = await self.repository.reload(return_)
        logger.info(f"[ReturnService] Retour {number} rejeté")
        await self._log("UPDATE", return_id, user_id, {"action": "rejected", "reason": reason})
        return await self._read(return_)

    async def refund_return(self, return_id: int, user_id: int) -> ReturnReadWithDetails:
        return_ = await self._get_return(return_id)
        if return_.status != ReturnStatus.APPROVED.value:
            raise InvalidReturnException(ERROR_NOT_APPROVED)
        number, amount, requester = return_.return_number, return_.total_amount, return_.requested_by
        try:
            applied = await self.repository.transition(return_id, ReturnStatus.APPROVED.value, {
                "status": ReturnStatus.REFUNDED.value,
                "processed_by": user_id,
                "processed_at": utcnow(),
            })
            if not applied:
                raise InvalidReturnException(ERROR_NOT_APPROVED)
            if requester is not None:
                await self.notifications.notify(
                    requester,
                    NotificationType.RETURN_REFUNDED,
                    NOTIFY_RETURN_REFUNDED_TITLE,
                    NOTIFY_RETURN_REFUNDED_MSG.format(number=number, amount=amount),
                    link=f"/returns/{return_id}",
                    data={"return_id": return_id},
                )
            await self.repository.commit()
        except Exception:
            await self.repository.rollback()
            raise

        return_ = await self.repository.reload(return_)
        logger.info(f"[ReturnService] Retour {number} remboursé")
        await self._log("UPDATE", return_id, user_id, {"action": "refunded"})
        return await self._read(return_)
