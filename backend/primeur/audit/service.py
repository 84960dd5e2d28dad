"""
Piste d'audit des mutations métier.

L'écriture a lieu après le commit de la mutation, dans une session dédiée ouverte sur le
même moteur que la requête: un échec n'expire jamais les objets de la session métier et
n'est jamais propagé.
"""
import json
import logging
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from primeur.audit.models import AuditLog

logger = logging.getLogger(__name__)


class AuditTrail:
    """Enregistre les actions des utilisateurs (journal applicatif + table audit_logs)."""

    def __init__(self, db_session: AsyncSession, ip_address: Optional[str] = None, user_agent: Optional[str] = None):
        # Seul le moteur de la session de requête est réutilisé
        self.bind = db_session.bind
        self.ip_address = ip_address
        self.user_agent = user_agent

    async def log_action(
        self,
        action: str,
        entity: str,
        entity_id: Any = None,
        user_id: Optional[int] = None,
        changes: Optional[Any] = None,
    ) -> None:
        logger.info(f"[AuditTrail] {action} {entity} {entity_id} par user {user_id}")
        entry = AuditLog(
            action=action,
            entity=entity,
            entity_id=str(entity_id) if entity_id is not None else None,
            user_id=user_id,
            changes=json.dumps(changes, default=str) if changes is not None else None,
            ip_address=self.ip_address,
            user_agent=(self.user_agent or "")[:255] or None,
        )
        session = AsyncSession(self.bind, expire_on_commit=False)
        try:
            session.add(entry)
            await session.commit()
        except Exception as e:
            # La mutation métier est déjà validée
            logger.warning(f"[AuditTrail] Échec écriture audit {action} {entity} {entity_id}: {e}")
            await self._discard(session)
        finally:
            await session.close()

    async def _discard(self, session: AsyncSession) -> None:
        try:
            await session.rollback()
        except SQLAlchemyError as e:
            logger.warning(f"[AuditTrail] Rollback audit impossible: {e}")
