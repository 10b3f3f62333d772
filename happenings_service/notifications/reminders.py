from datetime import datetime, timedelta, timezone
from typing import Dict, NamedTuple, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from happenings_service.errors import ValidationFailed


class Reminder(NamedTuple):
  label: str
  offset: timedelta


REMINDER_TYPES: Dict[int, Reminder] = {
  1: Reminder("1 hour", timedelta(hours=1)),
  2: Reminder("1 day", timedelta(days=1)),
  3: Reminder("2 days", timedelta(days=2)),
  4: Reminder("1 week", timedelta(days=7)),
}


def get_reminder(reminder_id: int) -> Reminder:
  reminder = REMINDER_TYPES.get(reminder_id)
  if reminder is None:
    raise ValidationFailed("Invalid input data: invalid reminderId(s)")
  return reminder


def _event_zone(raw_event: dict) -> Optional[ZoneInfo]:
  venues = (raw_event.get("_embedded") or {}).get("venues") or [{}]
  name = (raw_event.get("dates") or {}).get("timezone") or (venues[0] or {}).get("timezone")
  if not name:
    return None
  try:
    return ZoneInfo(name)
  except (ZoneInfoNotFoundError, ValueError):
    return None


def event_start_utc(raw_event: dict) -> Optional[datetime]:
  """Event start as naive UTC.

  Prefers ``dates.start.dateTime``; without it, ``localDate``/``localTime`` are
  read in the event (or venue) timezone, and as UTC when neither is known.
  """
  dates = raw_event.get("dates") or {}
  start = dates.get("start") or {}
  stamp = start.get("dateTime")
  if stamp:
    try:
      parsed = datetime.fromisoformat(stamp.replace("Z", "+00:00"))
    except ValueError:
      parsed = None
    if parsed is not None:
      if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
      return parsed
  local_date = start.get("localDate")
  if not local_date:
    return None
  try:
    local = datetime.fromisoformat(f"{local_date}T{start.get('localTime') or '00:00:00'}")
  except ValueError:
    return None
  zone = _event_zone(raw_event)
  if zone is None:
    return local
  return local.replace(tzinfo=zone).astimezone(timezone.utc).replace(tzinfo=None)


def fire_time(event_start: datetime, reminder_id: int) -> datetime:
  return event_start - get_reminder(reminder_id).offset


def reminder_message(reminder_id: int, title: Optional[str], date: Optional[str], time: Optional[str]) -> Tuple[str, str]:
  label = get_reminder(reminder_id).label
  name = title or "your event"
  when = " at ".join(part for part in [date, time] if part)
  body = f"{name} starts in {label}"
  if when:
    body += f" - {when}"
  return f"Reminder for {name}", body + "."
