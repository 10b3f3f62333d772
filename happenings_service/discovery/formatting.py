from typing import List, Optional, Union

from happenings_service.models import EventDetail, EventSummary, VenueAddress

PREFERRED_RATIO = "16_9"
DEFAULT_IMAGE_WIDTH = 640
DEFAULT_IMAGE_HEIGHT = 360


def pick_image(images: Optional[List[dict]]) -> dict:
  for image in images or []:
    if isinstance(image, dict) and image.get("ratio") == PREFERRED_RATIO:
      return {
        "url": image.get("url"),
        "width": image.get("width") or DEFAULT_IMAGE_WIDTH,
        "height": image.get("height") or DEFAULT_IMAGE_HEIGHT,
      }
  return {"url": None, "width": DEFAULT_IMAGE_WIDTH, "height": DEFAULT_IMAGE_HEIGHT}


def first_venue(raw: dict) -> dict:
  venues = (raw.get("_embedded") or {}).get("venues") or []
  return venues[0] if venues and isinstance(venues[0], dict) else {}


def venue_address(venue: dict) -> VenueAddress:
  if not venue:
    return VenueAddress()
  return VenueAddress(
    address=(venue.get("address") or {}).get("line1"),
    city=(venue.get("city") or {}).get("name"),
    postalCode=venue.get("postalCode"),
    country=(venue.get("country") or {}).get("name"),
  )


def min_price(raw: dict) -> Union[float, str]:
  ranges = raw.get("priceRanges") or []
  if ranges and isinstance(ranges[0], dict) and ranges[0].get("min") is not None:
    return ranges[0]["min"]
  return "N/A"


def genre_name(raw: dict) -> Optional[str]:
  classifications = raw.get("classifications") or []
  if not classifications:
    return None
  return (classifications[0].get("genre") or {}).get("name")


def _start(raw: dict) -> dict:
  return (raw.get("dates") or {}).get("start") or {}


def format_event_details(raw: dict) -> EventDetail:
  """Display object for one event; missing optional parts fall back field by field."""
  venue = first_venue(raw)
  image = pick_image(raw.get("images"))
  start = _start(raw)
  return EventDetail(
    id=str(raw.get("id")),
    name=raw.get("name"),
    date=start.get("localDate"),
    time=start.get("localTime"),
    dateTime=start.get("dateTime"),
    venue=venue.get("name") or "N/A",
    venueAddress=venue_address(venue),
    imageUrl=image["url"],
    imageWidth=image["width"],
    imageHeight=image["height"],
    priceRange=min_price(raw),
    genre=genre_name(raw),
    eventUrl=raw.get("url"),
  )


def format_event_summary(raw: dict) -> EventSummary:
  venue = first_venue(raw)
  address = venue_address(venue)
  start = _start(raw)
  line = ", ".join(part for part in [address.address, address.city] if part)
  return EventSummary(
    id=str(raw.get("id")),
    name=raw.get("name"),
    date=start.get("localDate"),
    time=start.get("localTime"),
    priceRange=min_price(raw),
    imageUrl=pick_image(raw.get("images"))["url"],
    venue=venue.get("name"),
    address=line or None,
    url=raw.get("url"),
  )
