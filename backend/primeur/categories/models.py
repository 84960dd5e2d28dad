from typing import Optional, List
from datetime import datetime

from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field
from pydantic import ConfigDict

from primeur.core.utils import utcnow


# --- Modèle de base pour les catégories ---
class CategoryBase(SQLModel):
    """Modèle de base pour les catégories."""
    name: str = Field(index=True, unique=True, max_length=100)
    icon: Optional[str] = Field(default=None, max_length=50)
    color: Optional[str] = Field(default=None, max_length=20)
    description: Optional[str] = Field(default=None)
    order: int = Field(default=0)


class Category(CategoryBase, table=True):
    """Modèle de table pour les catégories (suppression logique via deleted_at)."""
    __tablename__ = "categories"

    id: Optional[int] = Field(default=None, primary_key=True)
    is_active: bool = Field(default=True)
    deleted_at: Optional[datetime] = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(from_attributes=True)


# --- Modèle de base pour les sous-catégories ---
class SubCategoryBase(SQLModel):
    name: str = Field(max_length=100)
    description: Optional[str] = Field(default=None)
    order: int = Field(default=0)


class SubCategory(SubCategoryBase, table=True):
    """Sous-catégorie, unique par (catégorie, nom)."""
    __tablename__ = "sub_categories"
    __table_args__ = (UniqueConstraint("category_id", "name", name="uq_sub_categories_category_name"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    category_id: int = Field(foreign_key="categories.id", index=True)
    is_active: bool = Field(default=True)
    deleted_at: Optional[datetime] = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


# --- Schémas API ---
class CategoryCreate(CategoryBase):
    """Schéma pour la création d'une catégorie."""
    name: str = Field(min_length=1, max_length=100)


class CategoryUpdate(SQLModel):
    """Schéma pour la mise à jour d'une catégorie."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    icon: Optional[str] = None
    color: Optional[str] = None
    description: Optional[str] = None
    order: Optional[int] = None
    is_active: Optional[bool] = None


class CategoryRead(CategoryBase):
    """Schéma pour la lecture d'une catégorie."""
    id: int
    is_active: bool
    deleted_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class CategoryListItem(CategoryRead):
    products_count: int = 0
    subcategories_count: int = 0


class SubCategoryCreate(SubCategoryBase):
    name: str = Field(min_length=1, max_length=100)


class SubCategoryUpdate(SQLModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    order: Optional[int] = None
    is_active: Optional[bool] = None


class SubCategoryRead(SubCategoryBase):
    id: int
    category_id: int
    is_active: bool
    deleted_at: Optional[datetime] = None
    created_at: datetime


class CategoryReadWithDetails(CategoryRead):
    """Schéma pour la lecture d'une catégorie avec ses sous-catégories."""
    sub_categories: List[SubCategoryRead] = []


# --- Réponses ---
class CategoryListResponse(SQLModel):
    success: bool = True
    categories: List[CategoryListItem]


class CategoryMutationResponse(SQLModel):
    success: bool = True
    message: str
    restored: bool = False
    category: CategoryRead


class SubCategoryListResponse(SQLModel):
    success: bool = True
    sub_categories: List[SubCategoryRead]


class SubCategoryMutationResponse(SQLModel):
    success: bool = True
    message: str
    restored: bool = False
    sub_category: SubCategoryRead
