"""Constantes pour le module products."""

ERROR_PRODUCT_NOT_FOUND = "Produit non trouvé"
ERROR_PRODUCT_DELETED = "Produit supprimé"
ERROR_CATEGORY_INVALID = "Catégorie invalide ou supprimée"
ERROR_SUBCATEGORY_INVALID = "Sous-catégorie invalide pour cette catégorie"
ERROR_REFERENCE_EXISTS = "Un produit avec la référence '{reference}' existe déjà"

PRODUCT_DELETED_MSG = "Produit supprimé avec succès"
MANUAL_PRICE_CHANGE_REASON = "Modification manuelle"

AUDIT_ENTITY_PRODUCT = "Product"
