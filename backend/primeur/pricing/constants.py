"""Constantes du module pricing."""

BULK_DEFAULT_REASON = "Modification en masse"
BULK_UPDATED_MSG = "{count} prix mis à jour avec succès"

VOLUME_DELETED_MSG = "Tarif dégressif supprimé"
CLIENT_DELETED_MSG = "Tarif client supprimé"

ERROR_PRODUCT_NOT_FOUND = "Produit non trouvé"
ERROR_USER_NOT_FOUND = "Client non trouvé"
ERROR_VOLUME_NOT_FOUND = "Tarif dégressif non trouvé"
ERROR_CLIENT_PRICE_NOT_FOUND = "Tarif client non trouvé"
ERROR_VOLUME_OVERLAP = "Cette tranche de quantités chevauche une tranche existante ({min} - {max})"
ERROR_INVALID_BRACKET = "La quantité maximum doit être supérieure à la quantité minimum"
ERROR_INVALID_WINDOW = "La date de fin doit être postérieure à la date de début"

AUDIT_ENTITY_PRODUCT = "Product"
AUDIT_ENTITY_VOLUME = "VolumePricing"
AUDIT_ENTITY_CLIENT = "ClientPricing"
