import asyncio
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, status

from happenings_service.api.deps import AuthenticatedUser, Services, current_user, get_services
from happenings_service.errors import NotFound, ValidationFailed
from happenings_service.models import (
  MessageResponse,
  Notification,
  NotificationCreate,
  NotificationEvent,
  NotificationsScheduled,
  NotificationUpdate,
)
from happenings_service.notifications.reminders import event_start_utc, fire_time, get_reminder
from happenings_service.storage.tables import NotificationRow, utc_now

logger = logging.getLogger("happenings_service")

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


def _parse_id(raw_id: str) -> int:
  try:
    return int(raw_id)
  except ValueError:
    raise ValidationFailed("Invalid Notification ID")


def _event_snapshot(raw: dict) -> Dict[str, Any]:
  start = (raw.get("dates") or {}).get("start") or {}
  return {
    "event_title": raw.get("name"),
    "event_date": start.get("localDate"),
    "event_time": start.get("localTime"),
    "event_start": event_start_utc(raw),
  }


def _event_view(raw: dict) -> NotificationEvent:
  start = (raw.get("dates") or {}).get("start") or {}
  return NotificationEvent(
    id=str(raw.get("id")),
    title=raw.get("name"),
    dateTime=start.get("dateTime"),
    date=start.get("localDate"),
    time=start.get("localTime"),
  )


def _to_model(row: NotificationRow, event: Optional[NotificationEvent]) -> Notification:
  return Notification(
    notificationId=row.id,
    eventId=row.event_id,
    reminderId=row.reminder_id,
    reminderLabel=get_reminder(row.reminder_id).label,
    fireAt=row.fire_at,
    status=row.status,
    event=event,
  )


@router.get("", response_model=List[Notification])
async def get_notifications(
  user: AuthenticatedUser = Depends(current_user),
  services: Services = Depends(get_services),
) -> List[Notification]:
  rows = await asyncio.to_thread(services.repository.list_notifications, user.user_id)
  event_ids = list(dict.fromkeys(row.event_id for row in rows))
  gathered = await asyncio.gather(
    *[services.ticketmaster.get_event(event_id) for event_id in event_ids],
    return_exceptions=True,
  )
  events: Dict[str, NotificationEvent] = {}
  for event_id, outcome in zip(event_ids, gathered):
    if isinstance(outcome, Exception):
      logger.warning("Could not load event %s for notifications: %s", event_id, outcome)
      continue
    events[event_id] = _event_view(outcome)
  return [_to_model(row, events.get(row.event_id)) for row in rows]


@router.post("", status_code=status.HTTP_201_CREATED, response_model=NotificationsScheduled)
async def create_notification(
  payload: NotificationCreate,
  user: AuthenticatedUser = Depends(current_user),
  services: Services = Depends(get_services),
) -> NotificationsScheduled:
  event_id = (payload.eventId or "").strip()
  if not event_id:
    raise ValidationFailed("Invalid input data: eventId is required")

  reminder_ids = list(payload.reminderIds or [])
  if payload.reminderId is not None:
    reminder_ids.append(payload.reminderId)
  reminder_ids = list(dict.fromkeys(reminder_ids))
  if not reminder_ids:
    raise ValidationFailed("Invalid input data: invalid reminderId(s)")
  for reminder_id in reminder_ids:
    get_reminder(reminder_id)

  raw = await services.ticketmaster.get_event(event_id)
  snapshot = _event_snapshot(raw)
  start = snapshot["event_start"]
  if start is None:
    raise NotFound("Event not found")
  now = utc_now()
  if start <= now:
    raise ValidationFailed("Event has already passed")

  profile = await asyncio.to_thread(services.repository.get_user, user.user_id)
  if profile is None or not profile.fcm_token:
    raise ValidationFailed("User FCM token not found")

  schedule = []
  skipped = []
  for reminder_id in reminder_ids:
    fire_at = fire_time(start, reminder_id)
    if fire_at <= now:
      skipped.append(reminder_id)
    else:
      schedule.append((reminder_id, fire_at))
  if not schedule:
    raise ValidationFailed("Reminder time has already passed")

  rows = await asyncio.to_thread(services.repository.add_notifications, user.user_id, event_id, schedule, snapshot)
  logger.info("Scheduled %s reminder(s) for event %s, user %s", len(rows), event_id, user.user_id)
  return NotificationsScheduled(
    message="Notification(s) scheduled successfully",
    notificationIds=[row.id for row in rows],
    skippedReminderIds=skipped,
  )


@router.put("/{notification_id}", response_model=MessageResponse)
async def update_notification(
  notification_id: str,
  payload: NotificationUpdate,
  user: AuthenticatedUser = Depends(current_user),
  services: Services = Depends(get_services),
) -> MessageResponse:
  parsed_id = _parse_id(notification_id)
  get_reminder(payload.newReminderId)

  raw = await services.ticketmaster.get_event(payload.newEventId)
  snapshot = _event_snapshot(raw)
  start = snapshot["event_start"]
  if start is None:
    raise NotFound("Event not found")
  now = utc_now()
  if start <= now:
    raise ValidationFailed("Event has already passed")
  fire_at = fire_time(start, payload.newReminderId)
  if fire_at <= now:
    raise ValidationFailed("Reminder time has already passed")

  updated = await asyncio.to_thread(
    services.repository.reschedule_notification,
    user.user_id,
    parsed_id,
    payload.newEventId,
    payload.newReminderId,
    fire_at,
    snapshot,
  )
  if not updated:
    raise NotFound("Notification not found or no changes made")
  return MessageResponse(message="Notification updated successfully")


@router.delete("/{notification_id}", response_model=MessageResponse)
def delete_notification(
  notification_id: str,
  user: AuthenticatedUser = Depends(current_user),
  services: Services = Depends(get_services),
) -> MessageResponse:
  parsed_id = _parse_id(notification_id)
  if not services.repository.delete_notification(user.user_id, parsed_id):
    raise NotFound("Notification not found")
  return MessageResponse(message="Notification deleted")
