import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from fastapi import Depends, Header, Request

from happenings_service.cache import ResultCache
from happenings_service.config import Settings
from happenings_service.discovery import CategoryResolver, EventService
from happenings_service.errors import Unauthorized
from happenings_service.notifications import NotificationDispatcher, PushSender, get_push_sender
from happenings_service.providers import FirebaseIdentityClient, GoogleGeocoder, IdentityError, TicketmasterClient
from happenings_service.storage import Repository, SqlRepository, create_db_engine

logger = logging.getLogger("happenings_service")


@dataclass
class Services:
  """Long-lived collaborators built once per process and shared by handlers."""

  settings: Settings
  ticketmaster: TicketmasterClient
  geocoder: GoogleGeocoder
  identity: FirebaseIdentityClient
  categories: CategoryResolver
  events: EventService
  repository: Repository
  push_sender: PushSender
  dispatcher: NotificationDispatcher


@dataclass
class AuthenticatedUser:
  user_id: str
  token: str


def build_services(
  settings: Settings,
  transport: Optional[httpx.AsyncBaseTransport] = None,
  repository: Optional[Repository] = None,
  push_sender: Optional[PushSender] = None,
) -> Services:
  timeout = settings.http_timeout
  ticketmaster = TicketmasterClient(settings.ticketmaster_api_key, timeout=timeout, transport=transport)
  geocoder = GoogleGeocoder(settings.geocoding_api_key, timeout=timeout, transport=transport)
  identity = FirebaseIdentityClient(settings.firebase_api_key, timeout=timeout, transport=transport)
  categories = CategoryResolver(ticketmaster, ResultCache(settings.category_cache_ttl))
  events = EventService(
    ticketmaster,
    geocoder,
    categories,
    ResultCache(settings.event_cache_ttl),
    tz=settings.timezone,
  )
  repository = repository or SqlRepository(create_db_engine(settings.database_url))
  push_sender = push_sender or get_push_sender(settings)
  return Services(
    settings=settings,
    ticketmaster=ticketmaster,
    geocoder=geocoder,
    identity=identity,
    categories=categories,
    events=events,
    repository=repository,
    push_sender=push_sender,
    dispatcher=NotificationDispatcher(repository, push_sender),
  )


def get_services(request: Request) -> Services:
  return request.app.state.services


def bearer_token(authorization: Optional[str]) -> Optional[str]:
  if not authorization or not authorization.startswith("Bearer "):
    return None
  token = authorization[len("Bearer "):].strip()
  return token or None


async def current_user(
  authorization: Optional[str] = Header(default=None),
  services: Services = Depends(get_services),
) -> AuthenticatedUser:
  token = bearer_token(authorization)
  if token is None:
    raise Unauthorized("No token provided")
  try:
    user_id = await services.identity.verify_token(token)
  except IdentityError as exc:
    logger.info("Rejected bearer token: %s", exc.code)
    raise Unauthorized("Unauthorized") from exc
  return AuthenticatedUser(user_id=user_id, token=token)
