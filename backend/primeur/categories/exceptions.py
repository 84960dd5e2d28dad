"""Exceptions personnalisées pour le module categories."""
from typing import Optional

from primeur.categories.constants import (
    ERROR_CATEGORY_NOT_FOUND,
    ERROR_SUBCATEGORY_NOT_FOUND,
    ERROR_CATEGORY_HAS_PRODUCTS,
    ERROR_SUBCATEGORY_HAS_PRODUCTS,
)


class CategoryDomainException(Exception):
    """Classe de base pour les exceptions du module categories."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class CategoryNotFoundException(CategoryDomainException):
    """Exception levée lorsqu'une catégorie n'est pas trouvée (ou supprimée)."""
    def __init__(self, category_id: Optional[int] = None):
        self.category_id = category_id
        super().__init__(ERROR_CATEGORY_NOT_FOUND)


class SubCategoryNotFoundException(CategoryDomainException):
    def __init__(self, sub_category_id: Optional[int] = None):
        self.sub_category_id = sub_category_id
        super().__init__(ERROR_SUBCATEGORY_NOT_FOUND)


class DuplicateCategoryNameException(CategoryDomainException):
    """Exception levée lorsqu'une catégorie avec le même nom existe déjà."""
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Une catégorie avec le nom '{name}' existe déjà.")


class DuplicateSubCategoryNameException(CategoryDomainException):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Une sous-catégorie avec le nom '{name}' existe déjà dans cette catégorie.")


class CategoryNotEmptyException(CategoryDomainException):
    """Levée lorsqu'on tente de supprimer une catégorie qui contient encore des produits."""
    def __init__(self, products_count: int, sub_category: bool = False):
        self.products_count = products_count
        template = ERROR_SUBCATEGORY_HAS_PRODUCTS if sub_category else ERROR_CATEGORY_HAS_PRODUCTS
        super().__init__(template.format(count=products_count))
