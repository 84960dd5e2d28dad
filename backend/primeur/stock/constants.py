"""Messages du module stock."""

ERROR_PRODUCT_NOT_FOUND = "Produit non trouvé"
ERROR_PRODUCT_DELETED = "Produit supprimé"
ERROR_NEGATIVE_STOCK = "Stock invalide (négatif)"
ERROR_INSUFFICIENT_STOCK = "Stock insuffisant pour {name}. Stock disponible: {stock} {unit}"
ERROR_OPERATION_IMPOSSIBLE = "Opération impossible. Stock actuel: {stock} {unit}, tentative: {delta}"

STOCK_UPDATED_MSG = "Stock mis à jour avec succès"
STOCK_ADJUSTED_MSG = "Stock ajusté de {delta}"

AUDIT_ENTITY_STOCK = "Stock"
