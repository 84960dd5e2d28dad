from datetime import datetime
from enum import Enum
from typing import List, Optional

from sqlmodel import Field, SQLModel

from primeur.core.schemas import Pagination
from primeur.core.utils import utcnow


class NotificationType(str, Enum):
    ORDER_CREATED = "ORDER_CREATED"
    QUOTE_SENT = "QUOTE_SENT"
    QUOTE_ACCEPTED = "QUOTE_ACCEPTED"
    QUOTE_REJECTED = "QUOTE_REJECTED"
    RETURN_CREATED = "RETURN_CREATED"
    RETURN_APPROVED = "RETURN_APPROVED"
    RETURN_REJECTED = "RETURN_REJECTED"
    RETURN_REFUNDED = "RETURN_REFUNDED"
    INVOICE_SENT = "INVOICE_SENT"
    SYSTEM = "SYSTEM"


class Notification(SQLModel, table=True):
    __tablename__ = "notifications"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    type: str = Field(max_length=50, index=True)
    title: str = Field(max_length=200)
    message: str
    link: Optional[str] = Field(default=None, max_length=255)
    data: Optional[str] = Field(default=None, description="Données complémentaires sérialisées en JSON")
    read: bool = Field(default=False, index=True)
    read_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow, index=True)


class NotificationRead(SQLModel):
    id: int
    user_id: int
    type: str
    title: str
    message: str
    link: Optional[str] = None
    data: Optional[str] = None
    read: bool
    read_at: Optional[datetime] = None
    created_at: datetime


class NotificationListResponse(SQLModel):
    success: bool = True
    notifications: List[NotificationRead]
    unread_count: int
    pagination: Pagination


class UnreadCountResponse(SQLModel):
    success: bool = True
    count: int


class ReadAllResponse(SQLModel):
    success: bool = True
    message: str
    count: int
