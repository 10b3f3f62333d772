import time
from typing import Any, Callable, Hashable, Optional

from cachetools import TTLCache

DEFAULT_MAXSIZE = 10_000


class ResultCache:
  """Process-local store where every entry expires after a fixed time.

  Backed by ``cachetools.TTLCache``: expired entries read as misses and are
  purged on the next write, and ``maxsize`` bounds memory when many distinct
  queries arrive within one TTL.
  """

  def __init__(
    self,
    ttl: float,
    maxsize: int = DEFAULT_MAXSIZE,
    clock: Callable[[], float] = time.monotonic,
  ) -> None:
    self.ttl = ttl
    self._entries = TTLCache(maxsize=maxsize, ttl=ttl, timer=clock)

  def get(self, key: Hashable) -> Optional[Any]:
    return self._entries.get(key)

  def set(self, key: Hashable, value: Any) -> None:
    self._entries[key] = value

  def reset(self) -> None:
    self._entries.clear()

  def __contains__(self, key: Hashable) -> bool:
    return key in self._entries

  def __len__(self) -> int:
    return len(self._entries)
