from primeur.notifications.constants import ERROR_NOTIFICATION_NOT_FOUND


class NotificationNotFoundException(Exception):
    """Notification absente ou appartenant à un autre utilisateur."""
    def __init__(self, notification_id: int):
        self.notification_id = notification_id
        self.message = ERROR_NOTIFICATION_NOT_FOUND
        super().__init__(self.message)
