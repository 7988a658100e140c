from tutorix.models.notification.notification import Notification

__all__ = ["Notification"]
