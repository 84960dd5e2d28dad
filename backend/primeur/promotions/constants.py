"""Messages du module promotions."""

ERROR_PROMOTION_NOT_FOUND = "Promotion non trouvée"
ERROR_INVALID_CODE = "Code promo invalide"
ERROR_INACTIVE = "Cette promotion n'est plus active"
ERROR_OUT_OF_WINDOW = "Cette promotion n'est plus valide"
ERROR_USAGE_EXCEEDED = "Cette promotion a atteint sa limite d'utilisation"
ERROR_BELOW_MINIMUM = "Montant minimum requis: {amount} €"
ERROR_CODE_EXISTS = "Ce code promo existe déjà"
ERROR_INVALID_WINDOW = "La date de fin doit être postérieure à la date de début"
ERROR_PERCENTAGE_TOO_HIGH = "Une remise en pourcentage ne peut pas dépasser 100"

PROMOTION_CREATED_MSG = "Promotion créée avec succès"
PROMOTION_UPDATED_MSG = "Promotion modifiée avec succès"
PROMOTION_DELETED_MSG = "Promotion supprimée"

AUDIT_ENTITY_PROMOTION = "Promotion"
