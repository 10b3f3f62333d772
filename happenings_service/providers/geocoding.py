import logging
from typing import Optional

import httpx

from happenings_service.errors import AddressNotFound
from happenings_service.models import Coordinates

logger = logging.getLogger("happenings_service")

GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"


class GoogleGeocoder:
  """Resolve free-text addresses to coordinates with the Google Geocoding API."""

  def __init__(
    self,
    api_key: Optional[str],
    timeout: float = 8.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
  ) -> None:
    self.api_key = api_key
    self.timeout = timeout
    self.transport = transport

  async def get_coordinates(self, address: str) -> Coordinates:
    """Return the first match; any failure reads as ``AddressNotFound``."""
    if not address or not address.strip():
      raise AddressNotFound()
    if not self.api_key:
      logger.info("API_KEY_GEOCODING not set; treating %r as unresolvable", address)
      raise AddressNotFound()

    params = {"address": address, "key": self.api_key}
    try:
      async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
        resp = await client.get(GEOCODE_URL, params=params)
    except httpx.RequestError as exc:
      logger.warning("Geocoding request failed for %r: %s", address, exc)
      raise AddressNotFound() from exc

    if resp.status_code != 200:
      logger.warning("Geocoding failed (status=%s, address=%r)", resp.status_code, address)
      raise AddressNotFound()
    try:
      data = resp.json()
    except ValueError as exc:
      logger.warning("Geocoding sent a non-JSON body for %r", address)
      raise AddressNotFound() from exc
    first = ((data.get("results") if isinstance(data, dict) else None) or [None])[0]
    if not isinstance(first, dict):
      raise AddressNotFound()
    loc = first.get("geometry", {}).get("location", {})
    lat = loc.get("lat")
    lng = loc.get("lng")
    if lat is None or lng is None:
      raise AddressNotFound()
    return Coordinates(lat=float(lat), lng=float(lng))
