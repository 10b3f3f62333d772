from happenings_service.storage.db import create_db_engine
from happenings_service.storage.repository import (
  STATUS_FAILED,
  STATUS_PENDING,
  STATUS_SENDING,
  DuplicateFavorite,
  Repository,
  SqlRepository,
)

__all__ = [
  "STATUS_FAILED",
  "STATUS_PENDING",
  "STATUS_SENDING",
  "DuplicateFavorite",
  "Repository",
  "SqlRepository",
  "create_db_engine",
]
