from happenings_service.notifications.dispatcher import NotificationDispatcher
from happenings_service.notifications.push import (
  FcmPushSender,
  LoggingPushSender,
  PushDeliveryError,
  PushSender,
  get_push_sender,
)
from happenings_service.notifications.reminders import REMINDER_TYPES, Reminder

__all__ = [
  "FcmPushSender",
  "LoggingPushSender",
  "NotificationDispatcher",
  "PushDeliveryError",
  "PushSender",
  "REMINDER_TYPES",
  "Reminder",
  "get_push_sender",
]
