"""Exceptions du module promotions.

Les échecs de validation d'un code sont vérifiés dans cet ordre:
introuvable, inactif, hors période, limite atteinte, montant minimum.
"""
from decimal import Decimal

from primeur.promotions.constants import (
    ERROR_BELOW_MINIMUM,
    ERROR_INACTIVE,
    ERROR_INVALID_CODE,
    ERROR_OUT_OF_WINDOW,
    ERROR_USAGE_EXCEEDED,
)


class PromotionDomainException(Exception):
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class PromotionNotFoundException(PromotionDomainException):
    def __init__(self, message: str = ERROR_INVALID_CODE):
        super().__init__(message)


class PromotionInactiveException(PromotionDomainException):
    def __init__(self):
        super().__init__(ERROR_INACTIVE)


class PromotionOutOfWindowException(PromotionDomainException):
    def __init__(self):
        super().__init__(ERROR_OUT_OF_WINDOW)


class PromotionUsageExceededException(PromotionDomainException):
    def __init__(self):
        super().__init__(ERROR_USAGE_EXCEEDED)


class PromotionBelowMinimumException(PromotionDomainException):
    def __init__(self, min_amount: Decimal):
        self.min_amount = min_amount
        super().__init__(ERROR_BELOW_MINIMUM.format(amount=min_amount))


class InvalidPromotionException(PromotionDomainException):
    pass
