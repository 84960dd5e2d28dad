ERROR_SHOP_NOT_FOUND = "Magasin non trouvé"
ERROR_EMAIL_TAKEN = "Cet email est déjà utilisé"
ERROR_SHOP_HAS_ORDERS = "Impossible de supprimer un magasin avec des commandes. Désactivez-le plutôt."
ERROR_SHOP_HAS_DOCUMENTS = "Impossible de supprimer un magasin avec des devis ou des retours. Désactivez-le plutôt."
ERROR_NO_SHOP_FOR_USER = "Magasin non trouvé pour cet utilisateur"

SHOP_CREATED_MSG = "Magasin créé avec succès"
SHOP_UPDATED_MSG = "Magasin modifié avec succès"
SHOP_DELETED_MSG = "Magasin supprimé avec succès"

LATEST_ORDERS_LIMIT = 10
