ORDER_NUMBER_PREFIX = "CMD"

ERROR_ORDER_NOT_FOUND = "Commande non trouvée"
ERROR_ACCESS_DENIED = "Accès refusé"
ERROR_NO_SHOP_FOR_USER = "Magasin non trouvé pour cet utilisateur"
ERROR_SHOP_REQUIRED = "ID magasin requis"
ERROR_SHOP_NOT_FOUND = "Magasin non trouvé"
ERROR_PRODUCTS_UNAVAILABLE = "Un ou plusieurs produits ne sont pas disponibles"
ERROR_INVALID_TRANSITION = "Transition non autorisée: {current} → {new}"
ERROR_ROLE_NOT_ALLOWED = "Votre rôle ne permet pas cette transition"
ERROR_NUMBERING = "Impossible d'attribuer un numéro de commande, veuillez réessayer"

ORDER_CREATED_MSG = "Commande créée avec succès"
ORDER_STATUS_UPDATED_MSG = "Statut de la commande mis à jour"

AUDIT_ENTITY = "Order"
