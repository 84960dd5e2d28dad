RETURN_NUMBER_PREFIX = "RET"
CREDIT_NOTE_NUMBER_PREFIX = "AV"
PHOTO_SUBDIR = "returns"
PHOTO_ALLOWED_EXTENSIONS = (".jpeg", ".jpg", ".png", ".gif")

ERROR_RETURN_NOT_FOUND = "Retour non trouvé"
ERROR_ORDER_NOT_FOUND = "Commande non trouvée"
ERROR_ACCESS_DENIED = "Accès refusé"
ERROR_INVALID_ITEMS = "Liste de produits invalide"
ERROR_PHOTO_TYPE = "Seules les images sont autorisées"
ERROR_PHOTO_TOO_LARGE = "La photo ne doit pas dépasser 5 Mo"
ERROR_NOT_PENDING = "Seul un retour en attente peut être traité"
ERROR_NOT_APPROVED = "Seul un retour approuvé peut être remboursé"
ERROR_NUMBERING = "Impossible d'attribuer un numéro de retour, veuillez réessayer"

RETURN_CREATED_MSG = "Retour créé avec succès"
RETURN_APPROVED_MSG = "Retour approuvé"
RETURN_REJECTED_MSG = "Retour rejeté"
RETURN_REFUNDED_MSG = "Retour remboursé"

CREDIT_NOTE_REASON = "Retour produit - {number}"

NOTIFY_RETURN_CREATED_TITLE = "Nouvelle demande de retour"
NOTIFY_RETURN_CREATED_MSG = "Le retour {number} ({amount} €) a été demandé pour la commande {order}."
NOTIFY_RETURN_APPROVED_TITLE = "Retour approuvé"
NOTIFY_RETURN_APPROVED_MSG = "Votre retour {number} a été approuvé ({method})."
NOTIFY_RETURN_REJECTED_TITLE = "Retour rejeté"
NOTIFY_RETURN_REJECTED_MSG = "Votre retour {number} a été rejeté: {reason}"
NOTIFY_RETURN_REFUNDED_TITLE = "Retour remboursé"
NOTIFY_RETURN_REFUNDED_MSG = "Votre retour {number} a été remboursé ({amount} €)."

AUDIT_ENTITY = "Return"
