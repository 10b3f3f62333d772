from happenings_service.providers.geocoding import GoogleGeocoder
from happenings_service.providers.identity import AuthSession, FirebaseIdentityClient, IdentityError
from happenings_service.providers.ticketmaster import TicketmasterClient

__all__ = [
  "AuthSession",
  "FirebaseIdentityClient",
  "GoogleGeocoder",
  "IdentityError",
  "TicketmasterClient",
]
