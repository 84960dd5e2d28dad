from primeur.suppliers.constants import (
    ERROR_ACTIVE_ORDERS,
    ERROR_EMAIL_TAKEN,
    ERROR_ORDER_NOT_FOUND,
    ERROR_PRODUCT_NOT_FOUND,
    ERROR_SUPPLIER_NOT_FOUND,
)


class SupplierDomainException(Exception):
    """Exception de base pour le domaine des fournisseurs."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class SupplierNotFoundException(SupplierDomainException):
    def __init__(self, message: str = ERROR_SUPPLIER_NOT_FOUND):
        super().__init__(message)


class SupplierProductNotFoundException(SupplierNotFoundException):
    def __init__(self):
        super().__init__(ERROR_PRODUCT_NOT_FOUND)


class SupplierOrderNotFoundException(SupplierNotFoundException):
    def __init__(self):
        super().__init__(ERROR_ORDER_NOT_FOUND)


class SupplierEmailTakenException(SupplierDomainException):
    def __init__(self):
        super().__init__(ERROR_EMAIL_TAKEN)


class SupplierHasActiveOrdersException(SupplierDomainException):
    def __init__(self, count: int):
        self.count = count
        super().__init__(ERROR_ACTIVE_ORDERS.format(count=count))


class InvalidSupplierOrderException(SupplierDomainException):
    pass
