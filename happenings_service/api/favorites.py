import asyncio
import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, status

from happenings_service.api.deps import AuthenticatedUser, Services, current_user, get_services
from happenings_service.discovery.formatting import first_venue, genre_name, pick_image, venue_address
from happenings_service.errors import NotFound, ValidationFailed
from happenings_service.models import Favorite, FavoriteCreate, MessageResponse
from happenings_service.storage import DuplicateFavorite
from happenings_service.storage.tables import FavoriteRow

logger = logging.getLogger("happenings_service")

router = APIRouter(prefix="/api/favorites", tags=["favorites"])


def _snapshot(raw: dict) -> Dict[str, Any]:
  """Display fields copied onto the favorite so listing needs no upstream call."""
  start = (raw.get("dates") or {}).get("start") or {}
  ranges = raw.get("priceRanges") or []
  venue = first_venue(raw)
  image = pick_image(raw.get("images"))
  return {
    "title": raw["name"],
    "date": start["localDate"],
    "time": start.get("localTime"),
    "price_range": ranges[0].get("min") if ranges else None,
    "image_url": image["url"],
    "image_width": image["width"] if image["url"] else None,
    "image_height": image["height"] if image["url"] else None,
    "category": genre_name(raw),
    "venue": venue.get("name"),
    "venue_address": venue_address(venue).model_dump() if venue else None,
    "event_url": raw.get("url"),
  }


def _to_model(row: FavoriteRow) -> Favorite:
  return Favorite(
    favoriteId=row.id,
    eventId=row.event_id,
    title=row.title,
    date=row.date,
    time=row.time,
    priceRange=row.price_range,
    imageUrl=row.image_url,
    imageWidth=row.image_width,
    imageHeight=row.image_height,
    category=row.category,
    venue=row.venue,
    venueAddress=row.venue_address,
    eventUrl=row.event_url,
  )


@router.post("", status_code=status.HTTP_201_CREATED, response_model=MessageResponse)
async def add_to_favorite(
  payload: FavoriteCreate,
  user: AuthenticatedUser = Depends(current_user),
  services: Services = Depends(get_services),
) -> MessageResponse:
  event_id = (payload.eventId or "").strip()
  if not event_id:
    raise ValidationFailed("Invalid or missing Event ID")

  repository = services.repository
  if await asyncio.to_thread(repository.find_favorite, user.user_id, event_id) is not None:
    logger.info("Event %s is already in favorites for %s", event_id, user.user_id)
    raise DuplicateFavorite()

  raw = await services.ticketmaster.get_event(event_id)
  start = (raw.get("dates") or {}).get("start") or {}
  if not raw.get("name") or not start.get("localDate"):
    logger.info("Invalid event data from API for %s", event_id)
    raise NotFound("Event not found")

  await asyncio.to_thread(repository.add_favorite, user.user_id, event_id, _snapshot(raw))
  logger.info("Event %s added to favorites for %s", event_id, user.user_id)
  return MessageResponse(message="Event added to favorite")


@router.get("", response_model=List[Favorite])
def get_favorites(
  user: AuthenticatedUser = Depends(current_user),
  services: Services = Depends(get_services),
) -> List[Favorite]:
  return [_to_model(row) for row in services.repository.list_favorites(user.user_id)]


@router.delete("/{favorite_id}", response_model=MessageResponse)
def remove_from_favorite(
  favorite_id: str,
  user: AuthenticatedUser = Depends(current_user),
  services: Services = Depends(get_services),
) -> MessageResponse:
  try:
    parsed_id = int(favorite_id)
  except ValueError:
    raise ValidationFailed("Invalid or missing Favorite ID")
  if not services.repository.remove_favorite(user.user_id, parsed_id):
    raise NotFound("Favorite not found")
  return MessageResponse(message="Event removed from favorite")
