from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import JSON, DateTime, Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now() -> datetime:
  """Naive UTC timestamp; every DateTime column in this schema is naive UTC."""
  return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
  pass


class UserRow(Base):
  __tablename__ = "users"

  id: Mapped[str] = mapped_column(String(128), primary_key=True)
  name: Mapped[str] = mapped_column(String(255), nullable=False)
  email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
  fcm_token: Mapped[Optional[str]] = mapped_column(String(512))
  registered_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)

  def __repr__(self) -> str:
    return f"<UserRow(id={self.id}, email={self.email})>"


class FavoriteRow(Base):
  """Favorite plus a snapshot of the event's display fields at creation time."""

  __tablename__ = "favorites"
  __table_args__ = (UniqueConstraint("user_id", "event_id", name="uq_favorite_user_event"),)

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  user_id: Mapped[str] = mapped_column(String(128), ForeignKey("users.id", ondelete="CASCADE"), index=True)
  event_id: Mapped[str] = mapped_column(String(64), nullable=False)
  title: Mapped[str] = mapped_column(String(255), nullable=False)
  date: Mapped[str] = mapped_column(String(10), nullable=False)
  time: Mapped[Optional[str]] = mapped_column(String(8))
  price_range: Mapped[Optional[float]] = mapped_column(Float)
  image_url: Mapped[Optional[str]] = mapped_column(String(500))
  image_width: Mapped[Optional[int]] = mapped_column(Integer)
  image_height: Mapped[Optional[int]] = mapped_column(Integer)
  category: Mapped[Optional[str]] = mapped_column(String(100))
  venue: Mapped[Optional[str]] = mapped_column(String(255))
  venue_address: Mapped[Optional[dict]] = mapped_column(JSON)
  event_url: Mapped[Optional[str]] = mapped_column(String(500))
  created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)


class NotificationRow(Base):
  """A scheduled reminder; the dispatcher deletes it once delivered."""

  __tablename__ = "notifications"

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  user_id: Mapped[str] = mapped_column(String(128), ForeignKey("users.id", ondelete="CASCADE"), index=True)
  event_id: Mapped[str] = mapped_column(String(64), nullable=False)
  reminder_id: Mapped[int] = mapped_column(Integer, nullable=False)
  fire_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
  status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")
  event_title: Mapped[Optional[str]] = mapped_column(String(255))
  event_date: Mapped[Optional[str]] = mapped_column(String(10))
  event_time: Mapped[Optional[str]] = mapped_column(String(8))
  event_start: Mapped[Optional[datetime]] = mapped_column(DateTime)
  last_error: Mapped[Optional[str]] = mapped_column(String(500))
  created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
