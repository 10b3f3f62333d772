from typing import List, Optional

from fastapi import APIRouter, Depends

from happenings_service.api.deps import Services, get_services
from happenings_service.discovery.query import resolve_window
from happenings_service.errors import ValidationFailed
from happenings_service.models import EventDetail, EventSummary

router = APIRouter(prefix="/api/events", tags=["events"])


@router.get("/keyword", response_model=List[EventSummary])
async def get_events_keyword(
  keyword: Optional[str] = None,
  countryCode: Optional[str] = None,
  services: Services = Depends(get_services),
) -> List[EventSummary]:
  if not keyword:
    raise ValidationFailed("Keyword parameter is required")
  return await services.events.events_for_keyword(keyword, countryCode)


@router.get("", response_model=List[EventSummary])
async def get_events(
  latitude: Optional[float] = None,
  longitude: Optional[float] = None,
  radius: Optional[float] = None,
  unit: str = "miles",
  eventDate: Optional[str] = None,
  startDate: Optional[str] = None,
  endDate: Optional[str] = None,
  categories: Optional[str] = None,
  category: Optional[str] = None,
  keyword: Optional[str] = None,
  search: Optional[str] = None,
  services: Services = Depends(get_services),
) -> List[EventSummary]:
  """Events around a point, narrowed by one discovery mode.

  Modes are tried in order: free-text ``search`` (address, else keyword),
  ``categories`` (comma-separated top-level names), ``category``
  (classification name), ``keyword``, then a plain location search.
  """
  window = resolve_window(eventDate, startDate, endDate, tz=services.settings.timezone)
  events = services.events

  if search and search.strip():
    return await events.search_events(search.strip(), latitude, longitude, radius, window.start, window.end, unit)

  has_point = latitude is not None and longitude is not None
  if keyword and not categories and not category:
    return await events.fetch_events_by_keyword(keyword, latitude, longitude, radius, window.start, window.end, unit)
  if not has_point:
    raise ValidationFailed("latitude and longitude are required")

  names = [name.strip() for name in (categories or "").split(",") if name.strip()]
  if names:
    return await events.fetch_events_by_categories(latitude, longitude, radius, window.start, window.end, names, unit)
  return await events.fetch_events_by_location(
    latitude, longitude, radius, window.start, window.end, category=category, unit=unit
  )


@router.get("/{event_id}", response_model=EventDetail)
async def get_event_by_id(event_id: str, services: Services = Depends(get_services)) -> EventDetail:
  return await services.events.get_event_by_id(event_id)
