"""
Shared pytest fixtures for the happenings service test suite.

Upstream APIs (Ticketmaster, Google Geocoding, Firebase Identity Toolkit) are
replaced by an ``httpx.MockTransport`` routed on URL path; storage is an
in-memory SQLite database.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from happenings_service.api.deps import AuthenticatedUser, build_services, current_user
from happenings_service.config import Settings
from happenings_service.main import create_app
from happenings_service.notifications import LoggingPushSender
from happenings_service.storage import SqlRepository, create_db_engine

USER_ID = "user-1"
ID_TOKEN = "token-1"

EVENTS_PATH = "/discovery/v2/events.json"
CLASSIFICATIONS_PATH = "/discovery/v2/classifications.json"
GEOCODE_PATH = "/maps/api/geocode/json"


def event_path(event_id: str) -> str:
  return f"/discovery/v2/events/{event_id}.json"


def identity_path(method: str) -> str:
  return f"/v1/accounts:{method}"


class FakeUpstream:
  """Routes outgoing requests to canned handlers keyed by URL path."""

  def __init__(self) -> None:
    self.routes: Dict[str, Callable[[httpx.Request], httpx.Response]] = {}
    self.requests: List[httpx.Request] = []

  def add(self, path: str, json_body=None, status_code: int = 200, handler=None) -> None:
    if handler is None:
      def handler(request, body=json_body, code=status_code):
        return httpx.Response(code, json=body)
    self.routes[path] = handler

  def calls(self, path: str) -> List[httpx.Request]:
    return [request for request in self.requests if request.url.path == path]

  def __call__(self, request: httpx.Request) -> httpx.Response:
    self.requests.append(request)
    handler = self.routes.get(request.url.path)
    if handler is None:
      return httpx.Response(404, json={"errors": [{"detail": "not mocked"}]})
    return handler(request)


def make_event(
  event_id: str = "E1",
  name: Optional[str] = "Test Concert",
  start: Optional[datetime] = None,
  with_image: bool = True,
  with_venue: bool = True,
  price: Optional[float] = 25.0,
  genre: Optional[str] = "Rock",
) -> dict:
  """Raw Ticketmaster event record with sensible defaults."""
  if start is None:
    start = datetime.now(timezone.utc).replace(microsecond=0) + timedelta(days=14)
  raw = {
    "id": event_id,
    "name": name,
    "url": f"https://www.ticketmaster.com/event/{event_id}",
    "dates": {
      "start": {
        "localDate": start.strftime("%Y-%m-%d"),
        "localTime": start.strftime("%H:%M:%S"),
        "dateTime": start.strftime("%Y-%m-%dT%H:%M:%SZ"),
      }
    },
    "images": [
      {"ratio": "4_3", "url": "https://img.example.com/4x3.jpg", "width": 305, "height": 225},
    ],
  }
  if with_image:
    raw["images"].append({"ratio": "16_9", "url": "https://img.example.com/16x9.jpg", "width": 1024, "height": 576})
  if with_venue:
    raw["_embedded"] = {
      "venues": [
        {
          "name": "Royal Arena",
          "postalCode": "2300",
          "address": {"line1": "Hannemanns Allé 18"},
          "city": {"name": "Copenhagen"},
          "country": {"name": "Denmark"},
        }
      ]
    }
  if price is not None:
    raw["priceRanges"] = [{"type": "standard", "currency": "DKK", "min": price, "max": price * 2}]
  if genre is not None:
    raw["classifications"] = [{"segment": {"id": "KZFzniwnSyZfZ7v7nJ", "name": "Music"}, "genre": {"name": genre}}]
  return raw


def events_body(*events: dict) -> dict:
  if not events:
    return {"page": {"totalElements": 0}}
  return {"_embedded": {"events": list(events)}}


@pytest.fixture
def settings() -> Settings:
  return Settings(
    ticketmaster_api_key="tm-test-key",
    geocoding_api_key="geo-test-key",
    firebase_api_key="fb-test-key",
    database_url="sqlite://",
    app_timezone="UTC",
  )


@pytest.fixture
def upstream() -> FakeUpstream:
  return FakeUpstream()


@pytest.fixture
def transport(upstream) -> httpx.MockTransport:
  return httpx.MockTransport(upstream)


@pytest.fixture
def repository() -> SqlRepository:
  repo = SqlRepository(create_db_engine("sqlite://"))
  repo.create_schema()
  return repo


@pytest.fixture
def push_sender() -> LoggingPushSender:
  return LoggingPushSender()


@pytest.fixture
def services(settings, transport, repository, push_sender):
  return build_services(settings, transport=transport, repository=repository, push_sender=push_sender)


@pytest.fixture
def registered_user(repository):
  repository.create_user(USER_ID, "Test User", "test@example.com")
  return repository.get_user(USER_ID)


@pytest.fixture
def app(services):
  return create_app(services=services)


@pytest.fixture
def anon_client(app):
  """Client without an authenticated caller."""
  with TestClient(app) as client:
    yield client


@pytest.fixture
def client(app):
  """Client whose requests run as ``USER_ID``."""
  app.dependency_overrides[current_user] = lambda: AuthenticatedUser(user_id=USER_ID, token=ID_TOKEN)
  with TestClient(app) as test_client:
    yield test_client
  app.dependency_overrides.clear()
