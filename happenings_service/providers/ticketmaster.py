import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from happenings_service.errors import NotFound, UpstreamError

logger = logging.getLogger("happenings_service")

TICKETMASTER_API_BASE = "https://app.ticketmaster.com/discovery/v2"


class TicketmasterClient:
  """Client for the Ticketmaster Discovery API.

  Every call opens a short-lived ``httpx.AsyncClient`` with an explicit timeout.
  Failures are not retried; they surface as ``UpstreamError`` (or ``NotFound``
  for a missing event).
  """

  def __init__(
    self,
    api_key: Optional[str],
    timeout: float = 8.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
  ) -> None:
    self.api_key = api_key
    self.timeout = timeout
    self.transport = transport
    self.base_url = TICKETMASTER_API_BASE

  async def _get(self, path: str, params: Dict[str, Any], failure_message: str) -> httpx.Response:
    if not self.api_key:
      logger.warning("TICKETMASTER_API_KEY not set; cannot call %s", path)
      raise UpstreamError(failure_message)
    query = dict(params)
    query["apikey"] = self.api_key
    try:
      async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
        return await client.get(f"{self.base_url}{path}", params=query)
    except httpx.RequestError as exc:
      logger.warning("Ticketmaster request failed (path=%s, error=%s)", path, exc)
      raise UpstreamError(failure_message) from exc

  def _json(self, resp: httpx.Response, failure_message: str) -> dict:
    try:
      data = resp.json()
    except ValueError as exc:
      logger.warning("Ticketmaster sent a non-JSON body (status=%s, body=%s)", resp.status_code, resp.text[:200])
      raise UpstreamError(failure_message) from exc
    if not isinstance(data, dict):
      raise UpstreamError(failure_message)
    return data

  async def search_events(self, params: Dict[str, Any]) -> List[dict]:
    """Run an events search; ``params`` is the flat mapping from the query builder."""
    resp = await self._get("/events.json", params, "Failed to fetch events")
    if resp.status_code != 200:
      logger.warning(
        "Ticketmaster events search failed (status=%s, body=%s)",
        resp.status_code,
        resp.text[:200],
      )
      raise UpstreamError("Failed to fetch events")
    data = self._json(resp, "Failed to fetch events")
    events = (data.get("_embedded") or {}).get("events", [])
    logger.info("Ticketmaster returned %s events", len(events))
    return events

  async def get_event(self, event_id: str) -> dict:
    path = f"/events/{quote(event_id, safe='')}.json"
    resp = await self._get(path, {}, "Failed to fetch event details")
    if resp.status_code == 404:
      raise NotFound("Event not found")
    if resp.status_code != 200:
      logger.warning(
        "Ticketmaster event lookup failed (status=%s, event=%s, body=%s)",
        resp.status_code,
        event_id,
        resp.text[:200],
      )
      raise UpstreamError(f"API call failed with status: {resp.status_code}")
    return self._json(resp, "Failed to fetch event details")

  async def classifications(self) -> List[dict]:
    resp = await self._get("/classifications.json", {}, "Error fetching categories from Ticketmaster")
    if resp.status_code != 200:
      logger.warning(
        "Ticketmaster classifications failed (status=%s, body=%s)",
        resp.status_code,
        resp.text[:200],
      )
      raise UpstreamError("Error fetching categories from Ticketmaster")
    data = self._json(resp, "Invalid classification data from Ticketmaster")
    classifications = (data.get("_embedded") or {}).get("classifications")
    if not classifications:
      raise UpstreamError("Invalid classification data from Ticketmaster")
    return classifications
