"""Exceptions spécifiques au module products."""
from typing import Optional

from primeur.products.constants import ERROR_PRODUCT_NOT_FOUND


class ProductDomainException(Exception):
    """Classe de base pour les exceptions du module products."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class ProductNotFoundException(ProductDomainException):
    """Levée lorsqu'un produit n'existe pas ou a été supprimé."""
    def __init__(self, product_id: Optional[int] = None):
        self.product_id = product_id
        super().__init__(ERROR_PRODUCT_NOT_FOUND)


class InvalidProductOperationException(ProductDomainException):
    pass
