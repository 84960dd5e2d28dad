from typing import Optional

from pydantic import BaseModel


class Pagination(BaseModel):
    """Bloc de pagination renvoyé par les listes."""
    total: int
    page: int
    limit: int
    total_pages: int


class MessageResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
