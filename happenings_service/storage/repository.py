import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import Engine, delete, select, update
from sqlalchemy.exc import IntegrityError

from happenings_service.errors import ValidationFailed
from happenings_service.storage.db import create_session_factory
from happenings_service.storage.tables import Base, FavoriteRow, NotificationRow, UserRow

logger = logging.getLogger("happenings_service")

STATUS_PENDING = "pending"
STATUS_SENDING = "sending"
STATUS_FAILED = "failed"


class DuplicateFavorite(ValidationFailed):
  def __init__(self) -> None:
    super().__init__("Event is already in favorite")


class Repository(ABC):
  """Persistence for users, favorites and scheduled notifications."""

  @abstractmethod
  def create_schema(self) -> None:
    raise NotImplementedError

  # users
  @abstractmethod
  def create_user(self, user_id: str, name: str, email: str) -> UserRow:
    raise NotImplementedError

  @abstractmethod
  def get_user(self, user_id: str) -> Optional[UserRow]:
    raise NotImplementedError

  @abstractmethod
  def list_users(self) -> List[UserRow]:
    raise NotImplementedError

  @abstractmethod
  def update_user(self, user_id: str, **fields: Any) -> bool:
    raise NotImplementedError

  @abstractmethod
  def delete_user(self, user_id: str) -> bool:
    raise NotImplementedError

  # favorites
  @abstractmethod
  def find_favorite(self, user_id: str, event_id: str) -> Optional[FavoriteRow]:
    raise NotImplementedError

  @abstractmethod
  def add_favorite(self, user_id: str, event_id: str, snapshot: Dict[str, Any]) -> FavoriteRow:
    raise NotImplementedError

  @abstractmethod
  def list_favorites(self, user_id: str) -> List[FavoriteRow]:
    raise NotImplementedError

  @abstractmethod
  def remove_favorite(self, user_id: str, favorite_id: int) -> bool:
    raise NotImplementedError

  # notifications
  @abstractmethod
  def add_notifications(
    self,
    user_id: str,
    event_id: str,
    schedule: Sequence[Tuple[int, datetime]],
    snapshot: Dict[str, Any],
  ) -> List[NotificationRow]:
    raise NotImplementedError

  @abstractmethod
  def list_notifications(self, user_id: str) -> List[NotificationRow]:
    raise NotImplementedError

  @abstractmethod
  def reschedule_notification(
    self,
    user_id: str,
    notification_id: int,
    event_id: str,
    reminder_id: int,
    fire_at: datetime,
    snapshot: Dict[str, Any],
  ) -> bool:
    raise NotImplementedError

  @abstractmethod
  def delete_notification(self, user_id: str, notification_id: int) -> bool:
    raise NotImplementedError

  @abstractmethod
  def due_notifications(self, now: datetime, limit: int = 100) -> List[NotificationRow]:
    raise NotImplementedError

  @abstractmethod
  def claim_notification(self, notification_id: int) -> bool:
    """Move a pending row to sending; False when another dispatcher got it first."""
    raise NotImplementedError

  @abstractmethod
  def complete_notification(self, notification_id: int) -> None:
    raise NotImplementedError

  @abstractmethod
  def fail_notification(self, notification_id: int, reason: str) -> None:
    raise NotImplementedError


class SqlRepository(Repository):
  """SQLAlchemy implementation; works on SQLite and MySQL."""

  def __init__(self, engine: Engine) -> None:
    self.engine = engine
    self._session = create_session_factory(engine)

  def create_schema(self) -> None:
    Base.metadata.create_all(self.engine)

  def create_user(self, user_id: str, name: str, email: str) -> UserRow:
    row = UserRow(id=user_id, name=name, email=email)
    with self._session() as session, session.begin():
      session.add(row)
    logger.info("Stored profile for user %s", user_id)
    return row

  def get_user(self, user_id: str) -> Optional[UserRow]:
    with self._session() as session:
      return session.get(UserRow, user_id)

  def list_users(self) -> List[UserRow]:
    with self._session() as session:
      return list(session.scalars(select(UserRow).order_by(UserRow.registered_at)))

  def update_user(self, user_id: str, **fields: Any) -> bool:
    values = {key: value for key, value in fields.items() if value is not None}
    try:
      with self._session() as session, session.begin():
        if not values:
          return session.get(UserRow, user_id) is not None
        result = session.execute(update(UserRow).where(UserRow.id == user_id).values(**values))
        return result.rowcount > 0
    except IntegrityError as exc:
      # email is the only unique column a profile update can touch
      raise ValidationFailed("The email address is already in use by another account.") from exc

  def delete_user(self, user_id: str) -> bool:
    with self._session() as session, session.begin():
      session.execute(delete(FavoriteRow).where(FavoriteRow.user_id == user_id))
      session.execute(delete(NotificationRow).where(NotificationRow.user_id == user_id))
      result = session.execute(delete(UserRow).where(UserRow.id == user_id))
      return result.rowcount > 0

  def find_favorite(self, user_id: str, event_id: str) -> Optional[FavoriteRow]:
    with self._session() as session:
      stmt = select(FavoriteRow).where(FavoriteRow.user_id == user_id, FavoriteRow.event_id == event_id)
      return session.scalars(stmt).first()

  def add_favorite(self, user_id: str, event_id: str, snapshot: Dict[str, Any]) -> FavoriteRow:
    row = FavoriteRow(user_id=user_id, event_id=event_id, **snapshot)
    try:
      with self._session() as session, session.begin():
        session.add(row)
    except IntegrityError as exc:
      if self.find_favorite(user_id, event_id) is not None:
        raise DuplicateFavorite() from exc
      raise
    return row

  def list_favorites(self, user_id: str) -> List[FavoriteRow]:
    with self._session() as session:
      stmt = select(FavoriteRow).where(FavoriteRow.user_id == user_id).order_by(FavoriteRow.id)
      return list(session.scalars(stmt))

  def remove_favorite(self, user_id: str, favorite_id: int) -> bool:
    with self._session() as session, session.begin():
      result = session.execute(
        delete(FavoriteRow).where(FavoriteRow.id == favorite_id, FavoriteRow.user_id == user_id)
      )
      return result.rowcount > 0

  def add_notifications(
    self,
    user_id: str,
    event_id: str,
    schedule: Sequence[Tuple[int, datetime]],
    snapshot: Dict[str, Any],
  ) -> List[NotificationRow]:
    rows = [
      NotificationRow(
        user_id=user_id,
        event_id=event_id,
        reminder_id=reminder_id,
        fire_at=fire_at,
        status=STATUS_PENDING,
        **snapshot,
      )
      for reminder_id, fire_at in schedule
    ]
    # all reminders for one request land together or not at all
    with self._session() as session, session.begin():
      session.add_all(rows)
    return rows

  def list_notifications(self, user_id: str) -> List[NotificationRow]:
    with self._session() as session:
      stmt = select(NotificationRow).where(NotificationRow.user_id == user_id).order_by(NotificationRow.fire_at)
      return list(session.scalars(stmt))

  def reschedule_notification(
    self,
    user_id: str,
    notification_id: int,
    event_id: str,
    reminder_id: int,
    fire_at: datetime,
    snapshot: Dict[str, Any],
  ) -> bool:
    with self._session() as session, session.begin():
      result = session.execute(
        update(NotificationRow)
        .where(NotificationRow.id == notification_id, NotificationRow.user_id == user_id)
        .values(
          event_id=event_id,
          reminder_id=reminder_id,
          fire_at=fire_at,
          status=STATUS_PENDING,
          last_error=None,
          **snapshot,
        )
      )
      return result.rowcount > 0

  def delete_notification(self, user_id: str, notification_id: int) -> bool:
    with self._session() as session, session.begin():
      result = session.execute(
        delete(NotificationRow).where(
          NotificationRow.id == notification_id,
          NotificationRow.user_id == user_id,
        )
      )
      return result.rowcount > 0

  def due_notifications(self, now: datetime, limit: int = 100) -> List[NotificationRow]:
    with self._session() as session:
      stmt = (
        select(NotificationRow)
        .where(NotificationRow.status == STATUS_PENDING, NotificationRow.fire_at <= now)
        .order_by(NotificationRow.fire_at)
        .limit(limit)
      )
      return list(session.scalars(stmt))

  def claim_notification(self, notification_id: int) -> bool:
    with self._session() as session, session.begin():
      result = session.execute(
        update(NotificationRow)
        .where(NotificationRow.id == notification_id, NotificationRow.status == STATUS_PENDING)
        .values(status=STATUS_SENDING)
      )
      return result.rowcount == 1

  def complete_notification(self, notification_id: int) -> None:
    with self._session() as session, session.begin():
      session.execute(delete(NotificationRow).where(NotificationRow.id == notification_id))

  def fail_notification(self, notification_id: int, reason: str) -> None:
    with self._session() as session, session.begin():
      session.execute(
        update(NotificationRow)
        .where(NotificationRow.id == notification_id)
        .values(status=STATUS_FAILED, last_error=reason[:500])
      )
