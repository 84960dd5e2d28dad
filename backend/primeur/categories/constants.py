"""Constantes pour le module categories."""

CATEGORY_CREATED_MSG = "Catégorie créée avec succès"
CATEGORY_RESTORED_MSG = "Catégorie restaurée avec succès"
CATEGORY_UPDATED_MSG = "Catégorie mise à jour avec succès"
CATEGORY_DELETED_MSG = "Catégorie supprimée avec succès"

SUBCATEGORY_CREATED_MSG = "Sous-catégorie créée avec succès"
SUBCATEGORY_RESTORED_MSG = "Sous-catégorie restaurée avec succès"
SUBCATEGORY_UPDATED_MSG = "Sous-catégorie mise à jour avec succès"
SUBCATEGORY_DELETED_MSG = "Sous-catégorie supprimée avec succès"

ERROR_CATEGORY_NOT_FOUND = "Catégorie non trouvée"
ERROR_SUBCATEGORY_NOT_FOUND = "Sous-catégorie non trouvée"
ERROR_CATEGORY_HAS_PRODUCTS = (
    "Impossible de supprimer cette catégorie car elle contient {count} produit(s). "
    "Veuillez d'abord déplacer ou supprimer les produits."
)
ERROR_SUBCATEGORY_HAS_PRODUCTS = (
    "Impossible de supprimer cette sous-catégorie car elle contient {count} produit(s)."
)

# Actions d'audit
AUDIT_ENTITY_CATEGORY = "Category"
AUDIT_ENTITY_SUBCATEGORY = "SubCategory"
