from primeur.returns.constants import ERROR_ACCESS_DENIED, ERROR_RETURN_NOT_FOUND


class ReturnDomainException(Exception):
    """Exception de base pour le domaine des retours."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class ReturnNotFoundException(ReturnDomainException):
    def __init__(self, message: str = ERROR_RETURN_NOT_FOUND):
        super().__init__(message)


class ReturnAccessDeniedException(ReturnDomainException):
    def __init__(self):
        super().__init__(ERROR_ACCESS_DENIED)


class InvalidReturnException(ReturnDomainException):
    """Demande invalide (photo, lignes) ou transition de statut refusée."""
    pass
