from primeur.shops.constants import (
    ERROR_EMAIL_TAKEN,
    ERROR_SHOP_HAS_DOCUMENTS,
    ERROR_SHOP_HAS_ORDERS,
    ERROR_SHOP_NOT_FOUND,
)


class ShopDomainException(Exception):
    """Exception de base pour le domaine des magasins."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class ShopNotFoundException(ShopDomainException):
    def __init__(self, message: str = ERROR_SHOP_NOT_FOUND):
        super().__init__(message)


class ShopEmailTakenException(ShopDomainException):
    def __init__(self):
        super().__init__(ERROR_EMAIL_TAKEN)


class ShopHasOrdersException(ShopDomainException):
    def __init__(self, orders_count: int):
        self.orders_count = orders_count
        super().__init__(ERROR_SHOP_HAS_ORDERS)


class ShopHasDocumentsException(ShopDomainException):
    def __init__(self, quotes_count: int, returns_count: int):
        self.quotes_count = quotes_count
        self.returns_count = returns_count
        super().__init__(ERROR_SHOP_HAS_DOCUMENTS)
