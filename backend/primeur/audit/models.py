from typing import Optional
from datetime import datetime

from sqlmodel import SQLModel, Field

from primeur.core.utils import utcnow


class AuditLog(SQLModel, table=True):
    """Journal d'audit: une ligne par mutation métier."""
    __tablename__ = "audit_logs"

    id: Optional[int] = Field(default=None, primary_key=True)
    action: str = Field(index=True, max_length=50)
    entity: str = Field(index=True, max_length=50)
    entity_id: Optional[str] = Field(default=None, max_length=64)
    user_id: Optional[int] = Field(default=None, index=True)
    changes: Optional[str] = Field(default=None) # JSON sérialisé
    ip_address: Optional[str] = Field(default=None, max_length=64)
    user_agent: Optional[str] = Field(default=None, max_length=255)
    created_at: datetime = Field(default_factory=utcnow, index=True)


class AuditLogRead(SQLModel):
    id: int
    action: str
    entity: str
    entity_id: Optional[str] = None
    user_id: Optional[int] = None
    changes: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime
