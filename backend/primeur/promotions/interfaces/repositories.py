from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from primeur.promotions.models import Promotion


class AbstractPromotionRepository(ABC):

    @abstractmethod
    async def commit(self) -> None:
        pass

    @abstractmethod
    async def rollback(self) -> None:
        pass

    @abstractmethod
    async def get_by_id(self, promotion_id: int) -> Optional[Promotion]:
        pass

    @abstractmethod
    async def get_by_code(self, code: str) -> Optional[Promotion]:
        pass

    @abstractmethod
    async def list(self, is_active: Optional[bool] = None, now: Optional[datetime] = None) -> List[Promotion]:
        pass

    @abstractmethod
    async def create(self, values: Dict[str, Any]) -> Promotion:
        pass

    @abstractmethod
    async def update(self, promotion: Promotion, values: Dict[str, Any]) -> Promotion:
        pass

    @abstractmethod
    async def delete(self, promotion: Promotion) -> None:
        pass

    @abstractmethod
    async def increment_usage(self, promotion_id: int) -> bool:
        """Incrémente ``usage_count`` si la limite n'est pas atteinte. Retourne False sinon."""
        pass
