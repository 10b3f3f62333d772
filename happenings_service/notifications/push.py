import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from happenings_service.config import Settings

logger = logging.getLogger("happenings_service")

FCM_SCOPE = "https://www.googleapis.com/auth/firebase.messaging"


class PushDeliveryError(Exception):
  pass


class PushSender(ABC):
  @abstractmethod
  async def send(self, device_token: str, title: str, body: str) -> str:
    """Deliver one message and return the provider's message id."""
    raise NotImplementedError


class LoggingPushSender(PushSender):
  """Logs messages instead of delivering them (local development)."""

  def __init__(self) -> None:
    self.sent = []

  async def send(self, device_token: str, title: str, body: str) -> str:
    self.sent.append({"token": device_token, "title": title, "body": body})
    logger.info("Push (not delivered) to %s...: %s | %s", device_token[:8], title, body)
    return f"logged-{len(self.sent)}"


class FcmPushSender(PushSender):
  """Firebase Cloud Messaging HTTP v1, authorised with a service account."""

  def __init__(
    self,
    project_id: str,
    credentials_file: str,
    timeout: float = 8.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
  ) -> None:
    self.project_id = project_id
    self.credentials_file = credentials_file
    self.timeout = timeout
    self.transport = transport
    self.url = f"https://fcm.googleapis.com/v1/projects/{project_id}/messages:send"
    self._credentials = None

  async def _access_token(self) -> str:
    if self._credentials is None:
      self._credentials = service_account.Credentials.from_service_account_file(
        self.credentials_file, scopes=[FCM_SCOPE]
      )
    if not self._credentials.valid:
      # google-auth refreshes synchronously
      await asyncio.to_thread(self._credentials.refresh, Request())
    return self._credentials.token

  async def send(self, device_token: str, title: str, body: str) -> str:
    token = await self._access_token()
    payload = {
      "message": {
        "token": device_token,
        "notification": {"title": title, "body": body},
      }
    }
    headers = {"Authorization": f"Bearer {token}"}
    try:
      async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport, headers=headers) as client:
        resp = await client.post(self.url, json=payload)
    except httpx.RequestError as exc:
      raise PushDeliveryError(f"FCM request failed: {exc}") from exc
    if resp.status_code != 200:
      logger.warning("FCM send failed (status=%s, body=%s)", resp.status_code, resp.text[:200])
      raise PushDeliveryError(f"FCM returned status {resp.status_code}")
    try:
      name = resp.json().get("name", "")
    except (ValueError, AttributeError) as exc:
      raise PushDeliveryError("FCM returned an unreadable response") from exc
    logger.info("Successfully sent message: %s", name)
    return name


def get_push_sender(settings: Settings) -> PushSender:
  backend = settings.push_backend
  if backend == "fcm":
    if not settings.fcm_project_id or not settings.google_credentials_file:
      raise RuntimeError("FCM_PROJECT_ID and GOOGLE_APPLICATION_CREDENTIALS are required for the fcm push backend")
    return FcmPushSender(
      settings.fcm_project_id,
      settings.google_credentials_file,
      timeout=settings.http_timeout,
    )
  if backend != "log":
    logger.warning("Unknown PUSH_BACKEND %r; falling back to logging sender", backend)
  return LoggingPushSender()
