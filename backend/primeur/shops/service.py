import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError

from primeur.audit.service import AuditTrail
from primeur.auth.security import get_password_hash
from primeur.core.utils import utcnow
from primeur.orders.models import OrderRead
from primeur.shops.constants import LATEST_ORDERS_LIMIT
from primeur.shops.exceptions import (
    ShopEmailTakenException,
    ShopHasDocumentsException,
    ShopHasOrdersException,
    ShopNotFoundException,
)
from primeur.shops.interfaces.repositories import AbstractShopRepository
from primeur.shops.models import (
    Shop,
    ShopCreate,
    ShopReadWithDetails,
    ShopReadWithOwner,
    ShopUpdate,
)
from primeur.users.models import User, UserRole, UserSummary

logger = logging.getLogger(__name__)

AUDIT_ENTITY = "Shop"


class ShopService:

    def __init__(self, repository: AbstractShopRepository, audit: Optional[AuditTrail] = None):
        self.repository = repository
        self.audit = audit

    def _with_owner(self, shop: Shop, owner: Optional[User], orders_count: int) -> ShopReadWithOwner:
        return ShopReadWithOwner(
            **shop.model_dump(),
            user=UserSummary.model_validate(owner, from_attributes=True) if owner else None,
            orders_count=orders_count,
        )

    async def _get_shop(self, shop_id: int) -> Shop:
        shop = await self.repository.get_by_id(shop_id)
        if shop is None:
            raise ShopNotFoundException()
        return shop

    async def get_shop_for_user(self, user_id: int) -> Optional[Shop]:
        return await self.repository.get_by_user_id(user_id)

    async def list_shops(self) -> List[ShopReadWithOwner]:
        shops = await self.repository.list_all()
        owners = await self.repository.get_owners([s.user_id for s in shops])
        counts = await self.repository.count_orders([s.id for s in shops])
        return [self._with_owner(s, owners.get(s.user_id), counts.get(s.id, 0)) for s in shops]

    async def get_shop(self, shop_id: int) -> ShopReadWithDetails:
        shop = await self._get_shop(shop_id)
        owners = await self.repository.get_owners([shop.user_id])
        counts = await self.repository.count_orders([shop.id])
        orders = await self.repository.get_latest_orders(shop.id, LATEST_ORDERS_LIMIT)
        summary = self._with_owner(shop, owners.get(shop.user_id), counts.get(shop.id, 0))
        return ShopReadWithDetails(
            **summary.model_dump(exclude={"user"}),
            user=summary.user,
            orders=[OrderRead.model_validate(o, from_attributes=True) for o in orders],
        )

    async def create_shop(self, data: ShopCreate, user_id: Optional[int] = None) -> ShopReadWithOwner:
        """Crée le compte client et son magasin dans une même transaction."""
        if await self.repository.get_user_by_email(data.email) is not None:
            raise ShopEmailTakenException()

        owner = User(
            email=data.email,
            name=data.user_name,
            phone=data.user_phone,
            password_hash=get_password_hash(data.password),
            role=UserRole.CLIENT.value,
            email_verified=True,
            is_approved=True,
        )
        shop = Shop(
            name=data.shop_name,
            address=data.address,
            city=data.city,
            postal_code=data.postal_code,
            phone=data.phone,
            user_id=0,
        )
        try:
            shop = await self.repository.create_with_owner(owner, shop)
            await self.repository.commit()
        except IntegrityError:
            await self.repository.rollback()
            raise ShopEmailTakenException()
        except Exception:
            await self.repository.rollback()
            raise

        logger.info(f"[ShopService] Magasin {shop.id} ({shop.name}) créé avec le compte {owner.email}")
        if self.audit:
            await self.audit.log_action("CREATE", AUDIT_ENTITY, shop.id, user_id, {"name": shop.name, "email": owner.email})
        return self._with_owner(shop, owner, 0)

    async def update_shop(self, shop_id: int, data: ShopUpdate, user_id: Optional[int] = None) -> ShopReadWithOwner:
        shop = await self._get_shop(shop_id)
        owners = await self.repository.get_owners([shop.user_id])
        owner = owners.get(shop.user_id)

        changes = data.model_dump(exclude_unset=True)
        if data.email is not None:
            existing = await self.repository.get_user_by_email(data.email)
            if existing is not None and existing.id != shop.user_id:
                raise ShopEmailTakenException()

        for field in ("name", "address", "city", "postal_code", "phone", "is_active"):
            if field in changes:
                setattr(shop, field, changes[field])
        shop.updated_at = utcnow()

        if owner is not None:
            if data.user_name is not None:
                owner.name = data.user_name
            if data.email is not None:
                owner.email = data.email
            if "user_phone" in changes:
                owner.phone = data.user_phone
            owner.updated_at = utcnow()

        try:
            await self.repository.save(*[i for i in (shop, owner) if i is not None])
            await self.repository.commit()
        except IntegrityError:
            await self.repository.rollback()
            raise ShopEmailTakenException()
        except Exception:
            await self.repository.rollback()
            raise

        if self.audit:
            await self.audit.log_action("UPDATE", AUDIT_ENTITY, shop.id, user_id, changes)
        counts = await self.repository.count_orders([shop.id])
        return self._with_owner(shop, owner, counts.get(shop.id, 0))

    async def delete_shop(self, shop_id: int, user_id: Optional[int] = None) -> None:
        """Supprime le magasin et son compte; refusé dès qu'une commande, un devis ou un retour existe."""
        shop = await self._get_shop(shop_id)
        orders_count = (await self.repository.count_orders([shop.id])).get(shop.id, 0)
        if orders_count > 0:
            raise ShopHasOrdersException(orders_count)
        quotes_count = await self.repository.count_quotes(shop.id)
        returns_count = await self.repository.count_returns(shop.id)
        if quotes_count > 0 or returns_count > 0:
            logger.warning(
                f"[ShopService] Suppression du magasin {shop_id} refusée: {quotes_count} devis, {returns_count} retours"
            )
            raise ShopHasDocumentsException(quotes_count, returns_count)

        try:
            await self.repository.delete_with_owner(shop)
            await self.repository.commit()
        except Exception:
            await self.repository.rollback()
            raise

        logger.info(f"[ShopService] Magasin {shop_id} et son compte supprimés")
        if self.audit:
            await self.audit.log_action("DELETE", AUDIT_ENTITY, shop_id, user_id, {"name": shop.name})
