INVOICE_NUMBER_PREFIX = "FAC"

ERROR_INVOICE_NOT_FOUND = "Facture non trouvée"
ERROR_ORDER_NOT_FOUND = "Commande non trouvée"
ERROR_ACCESS_DENIED = "Accès refusé"
ERROR_ALREADY_INVOICED = "Une facture existe déjà pour cette commande"
ERROR_ORDER_NOT_DELIVERED = "La commande doit être livrée pour générer une facture"
ERROR_NUMBERING = "Impossible d'attribuer un numéro de facture, veuillez réessayer"

INVOICE_GENERATED_MSG = "Facture générée avec succès"
INVOICE_SENT_MSG = "Facture envoyée au magasin"

NOTIFY_INVOICE_SENT_TITLE = "Nouvelle facture"
NOTIFY_INVOICE_SENT_MSG = "La facture {number} de la commande {order_number} ({amount} € TTC) est disponible."

AUDIT_ENTITY = "Invoice"
