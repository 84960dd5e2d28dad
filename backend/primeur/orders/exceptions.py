from primeur.orders.constants import ERROR_ACCESS_DENIED, ERROR_ORDER_NOT_FOUND


class OrderDomainException(Exception):
    """Exception de base pour le domaine des commandes."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class OrderNotFoundException(OrderDomainException):
    def __init__(self, message: str = ERROR_ORDER_NOT_FOUND):
        super().__init__(message)


class OrderAccessDeniedException(OrderDomainException):
    def __init__(self):
        super().__init__(ERROR_ACCESS_DENIED)


class InvalidOrderException(OrderDomainException):
    """Commande invalide: produits indisponibles, magasin manquant, transition refusée..."""
    pass
