QUOTE_NUMBER_PREFIX = "DEV"

ERROR_QUOTE_NOT_FOUND = "Devis non trouvé"
ERROR_SHOP_NOT_FOUND = "Magasin non trouvé"
ERROR_ACCESS_DENIED = "Accès refusé"
ERROR_PRODUCTS_UNAVAILABLE = "Un ou plusieurs produits ne sont pas disponibles"
ERROR_UPDATE_CONVERTED = "Impossible de modifier un devis déjà converti en commande"
ERROR_DELETE_CONVERTED = "Impossible de supprimer un devis converti en commande"
ERROR_ALREADY_CONVERTED = "Ce devis a déjà été converti en commande"
ERROR_EXPIRED = "Ce devis a expiré"
ERROR_NOT_ACCEPTED = "Seul un devis accepté peut être converti en commande"
ERROR_INVALID_TRANSITION = "Transition de statut non autorisée: {current} → {new}"
ERROR_NUMBERING = "Impossible d'attribuer un numéro de devis, veuillez réessayer"

QUOTE_CREATED_MSG = "Devis créé avec succès"
QUOTE_UPDATED_MSG = "Devis modifié avec succès"
QUOTE_SENT_MSG = "Devis envoyé avec succès"
QUOTE_ACCEPTED_MSG = "Devis accepté"
QUOTE_REJECTED_MSG = "Devis refusé"
QUOTE_CONVERTED_MSG = "Devis converti en commande avec succès"
QUOTE_DELETED_MSG = "Devis supprimé avec succès"

NOTIFY_QUOTE_SENT_TITLE = "Nouveau devis"
NOTIFY_QUOTE_SENT_MSG = "Le devis {number} d'un montant de {amount} € TTC est disponible, valable jusqu'au {valid_until}."
NOTIFY_QUOTE_ACCEPTED_TITLE = "Devis accepté"
NOTIFY_QUOTE_REJECTED_TITLE = "Devis refusé"
NOTIFY_QUOTE_RESPONSE_MSG = "Le devis {number} a été {verb} par le magasin {shop}."

AUDIT_ENTITY = "Quote"
