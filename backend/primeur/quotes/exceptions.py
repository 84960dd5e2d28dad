from primeur.quotes.constants import (
    ERROR_ACCESS_DENIED,
    ERROR_ALREADY_CONVERTED,
    ERROR_EXPIRED,
    ERROR_QUOTE_NOT_FOUND,
)


class QuoteDomainException(Exception):
    """Exception de base pour le domaine des devis."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class QuoteNotFoundException(QuoteDomainException):
    def __init__(self, message: str = ERROR_QUOTE_NOT_FOUND):
        super().__init__(message)


class QuoteAccessDeniedException(QuoteDomainException):
    def __init__(self):
        super().__init__(ERROR_ACCESS_DENIED)


class InvalidQuoteException(QuoteDomainException):
    """Données invalides ou transition de statut refusée."""
    pass


class QuoteAlreadyConvertedException(QuoteDomainException):
    def __init__(self, order_id=None):
        self.order_id = order_id
        super().__init__(ERROR_ALREADY_CONVERTED)


class QuoteExpiredException(QuoteDomainException):
    def __init__(self):
        super().__init__(ERROR_EXPIRED)
