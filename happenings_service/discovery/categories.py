import logging
from typing import List

from happenings_service.cache import ResultCache
from happenings_service.models import Category
from happenings_service.providers.ticketmaster import TicketmasterClient

logger = logging.getLogger("happenings_service")

UNDEFINED_NAME = "Undefined"
MISCELLANEOUS_NAME = "Miscellaneous"

_CLASSIFICATIONS_KEY = "classifications"
_TOP_CATEGORIES_KEY = "top_categories"

_LEVELS = ("segment", "genre", "subGenre", "type", "subType")


class CategoryResolver:
  """Maps category names to Ticketmaster classification ids.

  The classification tree changes rarely, so it is held in its own long-lived
  cache. ``reset`` drops everything, e.g. between tests or after a taxonomy
  change upstream.
  """

  def __init__(self, client: TicketmasterClient, cache: ResultCache) -> None:
    self.client = client
    self.cache = cache

  async def classifications(self) -> List[dict]:
    cached = self.cache.get(_CLASSIFICATIONS_KEY)
    if cached is not None:
      return cached
    classifications = await self.client.classifications()
    self.cache.set(_CLASSIFICATIONS_KEY, classifications)
    return classifications

  async def list_top_categories(self) -> List[Category]:
    cached = self.cache.get(_TOP_CATEGORIES_KEY)
    if cached is not None:
      logger.info("Returning cached categories")
      return cached

    seen = set()
    categories: List[Category] = []
    for classification in await self.classifications():
      segment = classification.get("segment") or {}
      seg_id = segment.get("id")
      name = (segment.get("name") or "").strip()
      if not seg_id or not name or name == UNDEFINED_NAME or seg_id in seen:
        continue
      seen.add(seg_id)
      categories.append(Category(id=seg_id, name=name))

    # stable sort: only Miscellaneous moves
    categories.sort(key=lambda category: category.name == MISCELLANEOUS_NAME)
    self.cache.set(_TOP_CATEGORIES_KEY, categories)
    logger.info("Fetched %s top-level categories", len(categories))
    return categories

  async def sub_categories_of(self, category_name: str) -> str:
    """Comma-joined ids of the segment and everything below it; "" if unknown."""
    wanted = (category_name or "").strip().lower()
    if not wanted:
      return ""
    key = f"segment:{wanted}"
    cached = self.cache.get(key)
    if cached is not None:
      return cached

    ids: List[str] = []
    for classification in await self.classifications():
      segment = classification.get("segment") or {}
      if (segment.get("name") or "").lower() != wanted:
        continue
      for level in _LEVELS:
        node = classification.get(level) or {}
        node_id = node.get("id")
        if node_id and node_id not in ids:
          ids.append(node_id)

    joined = ",".join(ids)
    self.cache.set(key, joined)
    return joined

  def reset(self) -> None:
    self.cache.reset()
