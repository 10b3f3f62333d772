import os
from datetime import tzinfo
from typing import List, Optional
from zoneinfo import ZoneInfo

from dotenv import load_dotenv
from pydantic import BaseModel

# Load .env file when running locally so API keys are picked up.
load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
  value = os.getenv(name)
  if value is None:
    return default
  return value.strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
  """Runtime configuration, read from the environment."""

  ticketmaster_api_key: Optional[str] = None
  geocoding_api_key: Optional[str] = None
  firebase_api_key: Optional[str] = None
  database_url: str = "sqlite:///happenings.db"
  event_cache_ttl: int = 100
  category_cache_ttl: int = 24 * 60 * 60
  http_timeout: float = 8.0
  app_timezone: Optional[str] = None
  push_backend: str = "log"
  fcm_project_id: Optional[str] = None
  google_credentials_file: Optional[str] = None
  notification_worker_enabled: bool = False
  notification_poll_seconds: float = 30.0
  cors_origins: List[str] = ["*"]
  log_level: str = "INFO"

  @classmethod
  def from_env(cls) -> "Settings":
    origins = os.getenv("CORS_ORIGINS", "*")
    return cls(
      ticketmaster_api_key=os.getenv("TICKETMASTER_API_KEY"),
      geocoding_api_key=os.getenv("API_KEY_GEOCODING") or os.getenv("GOOGLE_MAPS_API_KEY"),
      firebase_api_key=os.getenv("FIREBASE_API_KEY"),
      database_url=os.getenv("DATABASE_URL", "sqlite:///happenings.db"),
      event_cache_ttl=int(os.getenv("EVENT_CACHE_TTL", "100")),
      category_cache_ttl=int(os.getenv("CATEGORY_CACHE_TTL", str(24 * 60 * 60))),
      http_timeout=float(os.getenv("HTTP_TIMEOUT", "8.0")),
      app_timezone=os.getenv("APP_TIMEZONE") or None,
      push_backend=os.getenv("PUSH_BACKEND", "log").lower(),
      fcm_project_id=os.getenv("FCM_PROJECT_ID"),
      google_credentials_file=os.getenv("GOOGLE_APPLICATION_CREDENTIALS"),
      notification_worker_enabled=_env_bool("NOTIFICATION_WORKER_ENABLED"),
      notification_poll_seconds=float(os.getenv("NOTIFICATION_POLL_SECONDS", "30")),
      cors_origins=[item.strip() for item in origins.split(",") if item.strip()],
      log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )

  @property
  def timezone(self) -> Optional[tzinfo]:
    """Timezone used for date presets; None means the host's local zone."""
    if not self.app_timezone:
      return None
    return ZoneInfo(self.app_timezone)
