"""Exceptions du module pricing."""


class PricingDomainException(Exception):
    """Classe de base pour les exceptions du module pricing."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class PricingNotFoundException(PricingDomainException):
    """Produit, client, tarif dégressif ou tarif client introuvable."""
    pass


class InvalidPricingException(PricingDomainException):
    pass


class OverlappingVolumeBracketException(InvalidPricingException):
    pass
