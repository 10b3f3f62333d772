"""Standalone reminder worker: ``python -m happenings_service.notifications.worker``."""

import asyncio
import logging

from happenings_service.config import Settings
from happenings_service.notifications.dispatcher import NotificationDispatcher
from happenings_service.notifications.push import get_push_sender
from happenings_service.storage import SqlRepository, create_db_engine


def build_dispatcher(settings: Settings) -> NotificationDispatcher:
  repository = SqlRepository(create_db_engine(settings.database_url))
  repository.create_schema()
  return NotificationDispatcher(repository, get_push_sender(settings))


def main() -> None:
  settings = Settings.from_env()
  logging.basicConfig(level=settings.log_level)
  dispatcher = build_dispatcher(settings)
  try:
    asyncio.run(dispatcher.run(settings.notification_poll_seconds))
  except KeyboardInterrupt:
    logging.getLogger("happenings_service").info("Notification worker stopped")


if __name__ == "__main__":
  main()
