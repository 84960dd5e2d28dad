import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError

from primeur.audit.service import AuditTrail
from primeur.core.calculations import HUNDRED, round_money, to_decimal
from primeur.core.utils import utcnow
from primeur.promotions.constants import (
    AUDIT_ENTITY_PROMOTION,
    ERROR_CODE_EXISTS,
    ERROR_INVALID_WINDOW,
    ERROR_PERCENTAGE_TOO_HIGH,
    ERROR_PROMOTION_NOT_FOUND,
)
from primeur.promotions.exceptions import (
    InvalidPromotionException,
    PromotionBelowMinimumException,
    PromotionInactiveException,
    PromotionNotFoundException,
    PromotionOutOfWindowException,
    PromotionUsageExceededException,
)
from primeur.promotions.interfaces.repositories import AbstractPromotionRepository
from primeur.promotions.models import (
    Promotion,
    PromotionCreate,
    PromotionRead,
    PromotionType,
    PromotionUpdate,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def compute_discount(promotion: Promotion, order_amount: Decimal) -> Decimal:
    """Remise pour un montant de commande, jamais supérieure à ce montant."""
    amount = to_decimal(order_amount)
    if promotion.type == PromotionType.PERCENTAGE.value:
        discount = amount * to_decimal(promotion.value) / HUNDRED
        if promotion.max_discount is not None:
            discount = min(discount, to_decimal(promotion.max_discount))
    elif promotion.type == PromotionType.FIXED_AMOUNT.value:
        discount = min(to_decimal(promotion.value), amount)
    else:
        # FREE_SHIPPING: pas de remise monétaire sur les produits
        discount = ZERO
    return max(ZERO, round_money(discount))


def check_promotion(promotion: Optional[Promotion], order_amount: Decimal, now: Optional[datetime] = None) -> Promotion:
    """Vérifie qu'une promotion est utilisable pour ce montant. Ne modifie rien."""
    if promotion is None:
        raise PromotionNotFoundException()
    now = now or utcnow()
    if not promotion.is_active:
        raise PromotionInactiveException()
    if now < promotion.valid_from or now > promotion.valid_to:
        raise PromotionOutOfWindowException()
    if promotion.usage_limit is not None and promotion.usage_count >= promotion.usage_limit:
        raise PromotionUsageExceededException()
    if promotion.min_amount is not None and to_decimal(order_amount) < promotion.min_amount:
        raise PromotionBelowMinimumException(promotion.min_amount)
    return promotion


class PromotionService:

    def __init__(self, repository: AbstractPromotionRepository, audit: Optional[AuditTrail] = None):
        self.repository = repository
        self.audit = audit

    async def list_promotions(self, is_active: Optional[bool] = None) -> List[PromotionRead]:
        promotions = await self.repository.list(is_active=is_active)
        return [PromotionRead.model_validate(p) for p in promotions]

    async def validate_code(self, code: str, order_amount: Decimal, now: Optional[datetime] = None) -> Tuple[Promotion, Decimal]:
        """Valide un code promo et calcule la remise, sans consommer d'utilisation."""
        promotion = check_promotion(await self.repository.get_by_code(code.strip()), order_amount, now)
        discount = compute_discount(promotion, order_amount)
        logger.debug(f"[PromotionService] Code {promotion.code} valide pour {order_amount}: remise {discount}")
        return promotion, discount

    async def redeem(self, promotion_id: int, code: str) -> None:
        """Consomme une utilisation dans la transaction courante (sans commit)."""
        if not await self.repository.increment_usage(promotion_id):
            logger.warning(f"[PromotionService] Limite d'utilisation atteinte pour {code}")
            raise PromotionUsageExceededException()

    async def create_promotion(self, data: PromotionCreate, user_id: Optional[int] = None) -> PromotionRead:
        if await self.repository.get_by_code(data.code) is not None:
            raise InvalidPromotionException(ERROR_CODE_EXISTS)
        values = data.model_dump()
        values["type"] = data.type.value
        values["applies_to"] = data.applies_to.value
        try:
            promotion = await self.repository.create(values)
            await self.repository.commit()
        except IntegrityError:
            await self.repository.rollback()
            raise InvalidPromotionException(ERROR_CODE_EXISTS)

        result = PromotionRead.model_validate(promotion)
        if self.audit:
            await self.audit.log_action("CREATE", AUDIT_ENTITY_PROMOTION, result.id, user_id, {"code": result.code})
        return result

    async def update_promotion(self, promotion_id: int, data: PromotionUpdate, user_id: Optional[int] = None) -> PromotionRead:
        promotion = await self.repository.get_by_id(promotion_id)
        if promotion is None:
            raise PromotionNotFoundException(ERROR_PROMOTION_NOT_FOUND)

        values = data.model_dump(exclude_unset=True)
        for enum_field in ("type", "applies_to"):
            if values.get(enum_field) is not None:
                values[enum_field] = getattr(data, enum_field).value
        valid_from = values.get("valid_from") or promotion.valid_from
        valid_to = values.get("valid_to") or promotion.valid_to
        if valid_to <= valid_from:
            raise InvalidPromotionException(ERROR_INVALID_WINDOW)
        promo_type = values.get("type", promotion.type)
        value = values.get("value", promotion.value)
        if promo_type == PromotionType.PERCENTAGE.value and value > HUNDRED:
            raise InvalidPromotionException(ERROR_PERCENTAGE_TOO_HIGH)

        promotion = await self.repository.update(promotion, values)
        await self.repository.commit()
        if self.audit:
            await self.audit.log_action("UPDATE", AUDIT_ENTITY_PROMOTION, promotion_id, user_id, values)
        return PromotionRead.model_validate(promotion)

    async def delete_promotion(self, promotion_id: int, user_id: Optional[int] = None) -> None:
        promotion = await self.repository.get_by_id(promotion_id)
        if promotion is None:
            raise PromotionNotFoundException(ERROR_PROMOTION_NOT_FOUND)
        await self.repository.delete(promotion)
        await self.repository.commit()
        if self.audit:
            await self.audit.log_action("DELETE", AUDIT_ENTITY_PROMOTION, promotion_id, user_id, {"code": promotion.code})
