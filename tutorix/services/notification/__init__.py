from tutorix.services.notification.notification_service import NotificationService, NotificationType

__all__ = ["NotificationService", "NotificationType"]
