import math
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Any, Dict, NamedTuple, Optional, Union

from pydantic import BaseModel

from happenings_service.errors import InvalidArgument

MAX_RADIUS_MILES = 19999
DEFAULT_RADIUS_MILES = 24.85  # ~40 km
KM_PER_MILE = 1.609344

SAME_DAY = "sameDay"
UPCOMING = "upcoming"


class DateWindow(NamedTuple):
  start: str
  end: str


class EventQuery(BaseModel):
  """Everything needed for one Ticketmaster events search."""

  latitude: Optional[float] = None
  longitude: Optional[float] = None
  radius: int = math.floor(DEFAULT_RADIUS_MILES)
  startDateTime: Optional[str] = None
  endDateTime: Optional[str] = None
  classificationName: Optional[str] = None
  classificationId: Optional[str] = None
  keyword: Optional[str] = None
  countryCode: Optional[str] = None

  @property
  def classification(self) -> Optional[str]:
    return self.classificationId or self.classificationName


def normalize_radius(radius: Union[float, int, str, None], unit: str = "miles") -> int:
  """Convert to whole miles (floor) and enforce the provider's ceiling."""
  if radius is None or radius == "":
    radius = DEFAULT_RADIUS_MILES
    unit = "miles"
  try:
    value = float(radius)
  except (TypeError, ValueError):
    raise InvalidArgument("Radius must be a number")
  if math.isnan(value) or math.isinf(value):
    raise InvalidArgument("Radius must be a number")
  if (unit or "miles").lower() in ("km", "kilometers", "kilometres"):
    value = value / KM_PER_MILE
  miles = math.floor(value)
  if miles < 0:
    raise InvalidArgument("Radius cannot be negative")
  if miles > MAX_RADIUS_MILES:
    raise InvalidArgument("Radius cannot exceed 19,999 miles")
  return miles


def format_iso(dt: datetime) -> str:
  """Render as the UTC second-precision form Ticketmaster expects."""
  return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _now(now: Optional[datetime], tz: Optional[tzinfo]) -> datetime:
  if now is None:
    return datetime.now(tz) if tz else datetime.now().astimezone()
  if now.tzinfo is None:
    return now.replace(tzinfo=tz) if tz else now.astimezone()
  return now


def _zone(day_owner: datetime, tz: Optional[tzinfo]) -> tzinfo:
  return tz or day_owner.tzinfo or timezone.utc


def day_window(day: date, tz: Optional[tzinfo] = None) -> DateWindow:
  zone = tz or _now(None, None).tzinfo
  start = datetime.combine(day, time(0, 0, 0), tzinfo=zone)
  end = datetime.combine(day, time(23, 59, 59), tzinfo=zone)
  return DateWindow(format_iso(start), format_iso(end))


def same_day_window(now: Optional[datetime] = None, tz: Optional[tzinfo] = None) -> DateWindow:
  """00:00:00 to 23:59:59 of today."""
  current = _now(now, tz)
  return day_window(current.date(), _zone(current, tz))


def upcoming_window(now: Optional[datetime] = None, tz: Optional[tzinfo] = None) -> DateWindow:
  """From this time tomorrow to seven days after that."""
  current = _now(now, tz).replace(microsecond=0)
  start = current + timedelta(days=1)
  end = start + timedelta(days=7)
  return DateWindow(format_iso(start), format_iso(end))


def _parse_bound(value: str, tz: Optional[tzinfo], end_of_day: bool) -> datetime:
  text = value.strip()
  if len(text) == 10:
    day = date.fromisoformat(text)
    clock = time(23, 59, 59) if end_of_day else time(0, 0, 0)
    return datetime.combine(day, clock, tzinfo=tz or _now(None, None).tzinfo)
  if text.endswith("Z"):
    text = text[:-1] + "+00:00"
  parsed = datetime.fromisoformat(text)
  if parsed.tzinfo is None:
    parsed = parsed.replace(tzinfo=tz) if tz else parsed.astimezone()
  return parsed


def explicit_window(start: str, end: str, tz: Optional[tzinfo] = None) -> DateWindow:
  try:
    start_dt = _parse_bound(start, tz, end_of_day=False)
    end_dt = _parse_bound(end, tz, end_of_day=True)
  except ValueError:
    raise InvalidArgument("Invalid date format")
  if end_dt < start_dt:
    raise InvalidArgument("endDate must not be before startDate")
  return DateWindow(format_iso(start_dt), format_iso(end_dt))


def resolve_window(
  event_date: Optional[str] = None,
  start_date: Optional[str] = None,
  end_date: Optional[str] = None,
  now: Optional[datetime] = None,
  tz: Optional[tzinfo] = None,
) -> DateWindow:
  """Pick the date window for a request.

  An explicit (start, end) pair wins over ``eventDate``; ``eventDate`` is one of
  ``sameDay``, ``upcoming`` or a ``YYYY-MM-DD`` day; with nothing given the
  upcoming window applies.
  """
  if start_date and end_date:
    return explicit_window(start_date, end_date, tz)
  if start_date or end_date:
    raise InvalidArgument("startDate and endDate must be supplied together")
  if not event_date or event_date == UPCOMING:
    return upcoming_window(now, tz)
  if event_date == SAME_DAY:
    return same_day_window(now, tz)
  try:
    chosen = date.fromisoformat(event_date)
  except ValueError:
    raise InvalidArgument("Invalid date format")
  return day_window(chosen, tz or _now(now, tz).tzinfo)


def build_event_params(query: EventQuery, api_key: Optional[str]) -> Dict[str, Any]:
  """Flat query-string mapping for the events endpoint."""
  params: Dict[str, Any] = {"apikey": api_key}
  if query.latitude is not None and query.longitude is not None:
    params["latlong"] = f"{query.latitude},{query.longitude}"
    params["radius"] = query.radius
  if query.startDateTime:
    params["startDateTime"] = query.startDateTime
  if query.endDateTime:
    params["endDateTime"] = query.endDateTime
  params["sort"] = "date,asc"
  if query.classificationId:
    params["classificationId"] = query.classificationId
  elif query.classificationName:
    params["classificationName"] = query.classificationName
  if query.keyword:
    params["keyword"] = query.keyword
  if query.countryCode:
    params["countryCode"] = query.countryCode
  return params


def cache_key(query: EventQuery) -> str:
  """Deterministic key: coordinates, radius, start, end, classification, keyword."""
  parts = [
    query.latitude,
    query.longitude,
    query.radius,
    query.startDateTime,
    query.endDateTime,
    query.classification,
    query.keyword,
  ]
  if query.countryCode:
    parts.append(query.countryCode)
  return "events_" + "_".join("" if part is None else str(part) for part in parts)
