import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import BaseModel

from happenings_service.errors import UpstreamError

logger = logging.getLogger("happenings_service")

IDENTITY_TOOLKIT_BASE = "https://identitytoolkit.googleapis.com/v1"


class IdentityError(Exception):
  """The identity provider rejected a request; ``code`` is its error message."""

  def __init__(self, code: str, status_code: int) -> None:
    super().__init__(code)
    self.code = code
    self.status_code = status_code


class AuthSession(BaseModel):
  userId: str
  idToken: str
  email: Optional[str] = None


def _session(data: dict) -> AuthSession:
  if not data.get("localId") or not data.get("idToken"):
    raise UpstreamError("Invalid response from identity provider")
  return AuthSession(userId=data["localId"], idToken=data["idToken"], email=data.get("email"))


class FirebaseIdentityClient:
  """Firebase Authentication through the Identity Toolkit REST API."""

  def __init__(
    self,
    api_key: Optional[str],
    timeout: float = 8.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
  ) -> None:
    self.api_key = api_key
    self.timeout = timeout
    self.transport = transport

  async def _post(self, method: str, payload: Dict[str, Any]) -> dict:
    if not self.api_key:
      logger.warning("FIREBASE_API_KEY not set; cannot call accounts:%s", method)
      raise UpstreamError("Identity provider is not configured")
    url = f"{IDENTITY_TOOLKIT_BASE}/accounts:{method}"
    try:
      async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
        resp = await client.post(url, params={"key": self.api_key}, json=payload)
    except httpx.RequestError as exc:
      logger.warning("Identity request accounts:%s failed: %s", method, exc)
      raise UpstreamError("Identity provider unavailable") from exc

    try:
      data = resp.json() if resp.content else {}
    except ValueError:
      data = None
    if not isinstance(data, dict):
      if resp.status_code == 200:
        logger.warning("Identity provider sent a non-JSON body for accounts:%s", method)
        raise UpstreamError("Invalid response from identity provider")
      data = {}
    if resp.status_code != 200:
      error = data.get("error")
      code = (error.get("message") if isinstance(error, dict) else None) or f"HTTP_{resp.status_code}"
      logger.info("Identity provider rejected accounts:%s (status=%s, code=%s)", method, resp.status_code, code)
      raise IdentityError(code, resp.status_code)
    return data

  async def sign_up(self, email: str, password: str, display_name: Optional[str] = None) -> AuthSession:
    payload: Dict[str, Any] = {"email": email, "password": password, "returnSecureToken": True}
    if display_name:
      payload["displayName"] = display_name
    data = await self._post("signUp", payload)
    return _session(data)

  async def sign_in(self, email: str, password: str) -> AuthSession:
    data = await self._post(
      "signInWithPassword",
      {"email": email, "password": password, "returnSecureToken": True},
    )
    return _session(data)

  async def verify_token(self, id_token: str) -> str:
    """Return the uid owning ``id_token``."""
    data = await self._post("lookup", {"idToken": id_token})
    users = data.get("users") or []
    if not users or not users[0].get("localId"):
      raise IdentityError("USER_NOT_FOUND", 400)
    return users[0]["localId"]

  async def update_account(
    self,
    id_token: str,
    email: Optional[str] = None,
    password: Optional[str] = None,
    display_name: Optional[str] = None,
  ) -> None:
    payload: Dict[str, Any] = {"idToken": id_token, "returnSecureToken": False}
    if email:
      payload["email"] = email
    if password:
      payload["password"] = password
    if display_name:
      payload["displayName"] = display_name
    await self._post("update", payload)

  async def delete_account(self, id_token: str) -> None:
    await self._post("delete", {"idToken": id_token})
