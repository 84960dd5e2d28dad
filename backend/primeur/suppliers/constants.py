SUPPLIER_ORDER_NUMBER_PREFIX = "CF"
SUPPLIER_ORDER_NUMBER_WIDTH = 6
LATEST_ORDERS_LIMIT = 10
LATEST_EVALUATIONS_LIMIT = 10

ERROR_SUPPLIER_NOT_FOUND = "Fournisseur non trouvé"
ERROR_PRODUCT_NOT_FOUND = "Produit fournisseur non trouvé"
ERROR_ORDER_NOT_FOUND = "Commande fournisseur non trouvée"
ERROR_EMAIL_TAKEN = "Cet email est déjà utilisé"
ERROR_ACTIVE_ORDERS = "Impossible de supprimer : {count} commande(s) en cours"
ERROR_NUMBERING = "Impossible d'attribuer un numéro de commande fournisseur, veuillez réessayer"

SUPPLIER_CREATED_MSG = "Fournisseur créé"
SUPPLIER_UPDATED_MSG = "Fournisseur modifié"
SUPPLIER_DELETED_MSG = "Fournisseur supprimé"
PRODUCT_ADDED_MSG = "Produit ajouté au catalogue"
PRODUCT_UPDATED_MSG = "Produit du catalogue modifié"
PRODUCT_DELETED_MSG = "Produit supprimé du catalogue"
ORDER_CREATED_MSG = "Commande fournisseur créée"
ORDER_UPDATED_MSG = "Commande fournisseur modifiée"
EVALUATION_CREATED_MSG = "Évaluation enregistrée"

AUDIT_ENTITY = "Supplier"
AUDIT_ORDER_ENTITY = "SupplierOrder"
