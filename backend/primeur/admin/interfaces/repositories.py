from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from primeur.audit.models import AuditLogRead


class AbstractSecurityRepository(ABC):
    """Lecture du journal d'audit pour le tableau de bord sécurité."""

    @abstractmethod
    async def count_logs(self, since: Optional[datetime] = None) -> int:
        pass

    @abstractmethod
    async def count_active_users(self) -> int:
        pass

    @abstractmethod
    async def get_log_summaries(self, since: datetime) -> List[Tuple[str, str, datetime]]:
        """(action, entity, created_at) des entrées postérieures à ``since``."""
        pass

    @abstractmethod
    async def list_logs(self, offset: int, limit: int, filters: Dict[str, Any]) -> Tuple[List[AuditLogRead], int]:
        pass
