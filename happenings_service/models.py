from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, Field


class Category(BaseModel):
  """Top-level Ticketmaster segment shown to users as a category."""

  id: str
  name: str


class Coordinates(BaseModel):
  lat: float
  lng: float


class VenueAddress(BaseModel):
  address: Optional[str] = None
  city: Optional[str] = None
  postalCode: Optional[str] = None
  country: Optional[str] = None


class EventSummary(BaseModel):
  """Stable projection of a Ticketmaster event for result lists."""

  id: str
  name: Optional[str] = None
  date: Optional[str] = None
  time: Optional[str] = None
  priceRange: Union[float, str] = "N/A"
  imageUrl: Optional[str] = None
  venue: Optional[str] = None
  address: Optional[str] = None
  url: Optional[str] = None


class EventDetail(BaseModel):
  id: str
  name: Optional[str] = None
  date: Optional[str] = None
  time: Optional[str] = None
  dateTime: Optional[str] = None
  venue: str = "N/A"
  venueAddress: VenueAddress = VenueAddress()
  imageUrl: Optional[str] = None
  imageWidth: int = 640
  imageHeight: int = 360
  priceRange: Union[float, str] = "N/A"
  genre: Optional[str] = None
  eventUrl: Optional[str] = None


class MessageResponse(BaseModel):
  message: str


class FavoriteCreate(BaseModel):
  eventId: Optional[str] = None


class Favorite(BaseModel):
  favoriteId: int
  eventId: str
  title: str
  date: str
  time: Optional[str] = None
  priceRange: Optional[float] = None
  imageUrl: Optional[str] = None
  imageWidth: Optional[int] = None
  imageHeight: Optional[int] = None
  category: Optional[str] = None
  venue: Optional[str] = None
  venueAddress: Optional[dict] = None
  eventUrl: Optional[str] = None


class NotificationCreate(BaseModel):
  """Either a single reminderId or a list of reminderIds."""

  eventId: Optional[str] = None
  reminderId: Optional[int] = None
  reminderIds: Optional[List[int]] = None


class NotificationUpdate(BaseModel):
  newEventId: str = Field(..., min_length=1)
  newReminderId: int


class NotificationEvent(BaseModel):
  id: str
  title: Optional[str] = None
  dateTime: Optional[str] = None
  date: Optional[str] = None
  time: Optional[str] = None


class Notification(BaseModel):
  notificationId: int
  eventId: str
  reminderId: int
  reminderLabel: str
  fireAt: datetime
  status: str
  event: Optional[NotificationEvent] = None


class NotificationsScheduled(BaseModel):
  message: str
  notificationIds: List[int] = []
  skippedReminderIds: List[int] = []


class UserRegister(BaseModel):
  name: Optional[str] = None
  email: Optional[str] = None
  password: Optional[str] = None


class UserLogin(BaseModel):
  email: Optional[str] = None
  password: Optional[str] = None


class UserUpdate(BaseModel):
  name: Optional[str] = None
  email: Optional[str] = None
  password: Optional[str] = None
  fcmToken: Optional[str] = None


class User(BaseModel):
  userId: str
  name: str
  email: str
  dateOfRegistration: datetime
  hasDeviceToken: bool = False


class RegisterResponse(BaseModel):
  message: str
  userId: str


class LoginResponse(BaseModel):
  message: str
  userId: str
  token: str
