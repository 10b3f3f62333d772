import logging
from datetime import datetime, tzinfo
from typing import List, Optional, Sequence, Union

from happenings_service.cache import ResultCache
from happenings_service.discovery.categories import CategoryResolver
from happenings_service.discovery.formatting import format_event_details, format_event_summary
from happenings_service.discovery.query import (
  DEFAULT_RADIUS_MILES,
  EventQuery,
  build_event_params,
  cache_key,
  normalize_radius,
  same_day_window,
  upcoming_window,
)
from happenings_service.errors import AddressNotFound, NotFound
from happenings_service.models import Coordinates, EventDetail, EventSummary
from happenings_service.providers.geocoding import GoogleGeocoder
from happenings_service.providers.ticketmaster import TicketmasterClient

logger = logging.getLogger("happenings_service")

Radius = Union[float, int, str, None]


class EventService:
  """Event discovery on top of Ticketmaster, with a short-lived result cache."""

  def __init__(
    self,
    ticketmaster: TicketmasterClient,
    geocoder: GoogleGeocoder,
    categories: CategoryResolver,
    cache: ResultCache,
    tz: Optional[tzinfo] = None,
  ) -> None:
    self.ticketmaster = ticketmaster
    self.geocoder = geocoder
    self.categories = categories
    self.cache = cache
    self.tz = tz

  async def _run(self, query: EventQuery) -> List[EventSummary]:
    key = cache_key(query)
    cached = self.cache.get(key)
    if cached is not None:
      return cached
    raw_events = await self.ticketmaster.search_events(build_event_params(query, self.ticketmaster.api_key))
    events = [format_event_summary(raw) for raw in raw_events]
    self.cache.set(key, events)
    return events

  async def fetch_events_by_location(
    self,
    latitude: float,
    longitude: float,
    radius: Radius,
    start_date_time: str,
    end_date_time: str,
    category: Optional[str] = None,
    unit: str = "miles",
  ) -> List[EventSummary]:
    query = EventQuery(
      latitude=latitude,
      longitude=longitude,
      radius=normalize_radius(radius, unit),
      startDateTime=start_date_time or None,
      endDateTime=end_date_time or None,
      classificationName=category or None,
    )
    return await self._run(query)

  async def fetch_same_day_events(
    self, latitude: float, longitude: float, now: Optional[datetime] = None
  ) -> List[EventSummary]:
    window = same_day_window(now, self.tz)
    return await self.fetch_events_by_location(latitude, longitude, DEFAULT_RADIUS_MILES, window.start, window.end)

  async def fetch_upcoming_events(
    self, latitude: float, longitude: float, now: Optional[datetime] = None
  ) -> List[EventSummary]:
    window = upcoming_window(now, self.tz)
    return await self.fetch_events_by_location(latitude, longitude, DEFAULT_RADIUS_MILES, window.start, window.end)

  async def fetch_events_by_categories(
    self,
    latitude: float,
    longitude: float,
    radius: Radius,
    start_date_time: str,
    end_date_time: str,
    category_names: Sequence[str],
    unit: str = "miles",
  ) -> List[EventSummary]:
    miles = normalize_radius(radius, unit)
    ids: List[str] = []
    for name in category_names:
      joined = await self.categories.sub_categories_of(name)
      if joined:
        ids.append(joined)
    if not ids:
      logger.info("No classification ids for categories %s; skipping search", list(category_names))
      return []
    query = EventQuery(
      latitude=latitude,
      longitude=longitude,
      radius=miles,
      startDateTime=start_date_time or None,
      endDateTime=end_date_time or None,
      classificationId=",".join(ids),
    )
    return await self._run(query)

  async def fetch_events_by_keyword(
    self,
    keyword: str,
    latitude: Optional[float],
    longitude: Optional[float],
    radius: Radius,
    start_date_time: Optional[str],
    end_date_time: Optional[str],
    unit: str = "miles",
  ) -> List[EventSummary]:
    query = EventQuery(
      latitude=latitude,
      longitude=longitude,
      radius=normalize_radius(radius, unit),
      startDateTime=start_date_time or None,
      endDateTime=end_date_time or None,
      keyword=keyword,
    )
    return await self._run(query)

  async def search_events(
    self,
    text: str,
    latitude: Optional[float],
    longitude: Optional[float],
    radius: Radius,
    start_date_time: Optional[str],
    end_date_time: Optional[str],
    unit: str = "miles",
  ) -> List[EventSummary]:
    """Treat ``text`` as an address first; fall back to a keyword search."""
    try:
      coords = await self.geocoder.get_coordinates(text)
    except AddressNotFound:
      logger.info("Search %r did not geocode; using it as a keyword", text)
      return await self.fetch_events_by_keyword(
        text, latitude, longitude, radius, start_date_time, end_date_time, unit
      )
    return await self.fetch_events_by_location(
      coords.lat, coords.lng, radius, start_date_time, end_date_time, unit=unit
    )

  async def events_for_keyword(self, keyword: str, country_code: Optional[str] = None) -> List[EventSummary]:
    query = EventQuery(keyword=keyword, countryCode=country_code or None)
    events = await self._run(query)
    if not events:
      raise NotFound("No events found for the given keyword.")
    return events

  async def get_event_by_id(self, event_id: str) -> EventDetail:
    raw = await self.ticketmaster.get_event(event_id)
    return format_event_details(raw)

  async def get_coordinates_from_address(self, address: str) -> Coordinates:
    return await self.geocoder.get_coordinates(address)
