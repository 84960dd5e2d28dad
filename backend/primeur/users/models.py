# primeur/users/models.py
"""
Module définissant les modèles SQLModel pour l'entité User.

Ce module contient :
- UserRole : Rôles applicatifs (admin, client magasin, préparateur...).
- UserBase : Classe SQLModel de base avec les champs communs.
- User : Modèle de table SQLModel (table=True) héritant de UserBase.
- UserRead, UserSummary : Schémas de lecture pour l'API.
"""
from enum import Enum
from typing import Optional
from datetime import datetime

from sqlmodel import SQLModel, Field
from pydantic import EmailStr

from primeur.core.utils import utcnow


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    CLIENT = "CLIENT"
    PREPARATEUR = "PREPARATEUR"
    LIVREUR = "LIVREUR"
    COMMERCIAL = "COMMERCIAL"


# =====================================================
# Schémas: Utilisateurs (SQLModel approach)
# =====================================================

class UserBase(SQLModel):
    """Modèle SQLModel de base pour un utilisateur (données communes, Pydantic)."""
    email: EmailStr = Field(unique=True, index=True, max_length=255, nullable=False)
    name: Optional[str] = Field(default=None, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=30)
    role: str = Field(default=UserRole.CLIENT.value, max_length=20, nullable=False)
    is_active: bool = Field(default=True, nullable=False)
    email_verified: bool = Field(default=False, nullable=False)
    is_approved: bool = Field(default=False, nullable=False)


# ----- Modèle de Table -----
class User(UserBase, table=True):
    """Modèle de table SQLModel pour les utilisateurs."""
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True, index=True)
    password_hash: str = Field(nullable=False, max_length=255)
    created_at: datetime = Field(default_factory=utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=utcnow, nullable=False)


# ----- Schémas API -----
class UserRead(UserBase):
    """Schéma Pydantic/SQLModel pour lire les données d'un utilisateur."""
    id: int
    created_at: datetime

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class UserSummary(SQLModel):
    """Résumé d'un utilisateur embarqué dans d'autres ressources (magasin...)."""
    id: int
    name: Optional[str] = None
    email: str
    phone: Optional[str] = None
