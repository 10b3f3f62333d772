from typing import Optional


class ServiceError(Exception):
  """Base error carrying the HTTP status it should surface as."""

  status_code = 500

  def __init__(self, message: str, status_code: Optional[int] = None) -> None:
    super().__init__(message)
    self.message = message
    if status_code is not None:
      self.status_code = status_code


class ValidationFailed(ServiceError):
  status_code = 400


class InvalidArgument(ValidationFailed):
  pass


class Unauthorized(ServiceError):
  status_code = 401


class Forbidden(ServiceError):
  status_code = 403


class NotFound(ServiceError):
  status_code = 404


class AddressNotFound(NotFound):
  def __init__(self, message: str = "Address not found") -> None:
    super().__init__(message)


class UpstreamError(ServiceError):
  """Ticketmaster, Google or Firebase call failed."""

  status_code = 500


class PersistenceError(ServiceError):
  status_code = 500
