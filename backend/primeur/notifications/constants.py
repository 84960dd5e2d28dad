ERROR_NOTIFICATION_NOT_FOUND = "Notification non trouvée"
NOTIFICATION_READ_MSG = "Notification marquée comme lue"
NOTIFICATIONS_READ_ALL_MSG = "{count} notification(s) marquée(s) comme lue(s)"
NOTIFICATION_DELETED_MSG = "Notification supprimée"
