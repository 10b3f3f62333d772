import asyncio
import logging
from datetime import datetime
from typing import Optional

from happenings_service.notifications.push import PushSender
from happenings_service.notifications.reminders import reminder_message
from happenings_service.storage.repository import Repository
from happenings_service.storage.tables import utc_now

logger = logging.getLogger("happenings_service")


class NotificationDispatcher:
  """Delivers reminders whose fire time has passed.

  Rows are the schedule: a delivered reminder is deleted, a failed one is kept
  with status ``failed`` and the error. Deleting a row before it is due is how
  a reminder gets cancelled. Each row is claimed before sending, so several
  dispatchers can share one table without delivering a reminder twice.
  """

  def __init__(self, repository: Repository, push_sender: PushSender, batch_size: int = 100) -> None:
    self.repository = repository
    self.push_sender = push_sender
    self.batch_size = batch_size

  async def dispatch_due(self, now: Optional[datetime] = None) -> int:
    """Send every due reminder once; returns how many were delivered."""
    now = now or utc_now()
    repository = self.repository
    delivered = 0
    rows = await asyncio.to_thread(repository.due_notifications, now, self.batch_size)
    for row in rows:
      if not await asyncio.to_thread(repository.claim_notification, row.id):
        logger.debug("Notification %s already claimed", row.id)
        continue
      user = await asyncio.to_thread(repository.get_user, row.user_id)
      if user is None or not user.fcm_token:
        logger.warning("Notification %s skipped: user %s has no FCM token", row.id, row.user_id)
        await asyncio.to_thread(repository.fail_notification, row.id, "User FCM token not found")
        continue
      title, body = reminder_message(row.reminder_id, row.event_title, row.event_date, row.event_time)
      try:
        await self.push_sender.send(user.fcm_token, title, body)
      except Exception as exc:
        logger.warning("Error sending notification %s: %s", row.id, exc)
        await asyncio.to_thread(repository.fail_notification, row.id, str(exc) or exc.__class__.__name__)
        continue
      await asyncio.to_thread(repository.complete_notification, row.id)
      delivered += 1
    if delivered:
      logger.info("Delivered %s notification(s)", delivered)
    return delivered

  async def run(self, poll_seconds: float = 30.0) -> None:
    """Poll until cancelled."""
    logger.info("Notification dispatcher polling every %ss", poll_seconds)
    while True:
      try:
        await self.dispatch_due()
      except asyncio.CancelledError:
        raise
      except Exception:
        logger.exception("Notification dispatch pass failed")
      await asyncio.sleep(poll_seconds)
