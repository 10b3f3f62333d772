import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from happenings_service.api import routers
from happenings_service.api.deps import Services, build_services
from happenings_service.config import Settings
from happenings_service.errors import ServiceError

logger = logging.getLogger("happenings_service")


def _validation_message(exc: RequestValidationError) -> str:
  errors = exc.errors()
  if not errors:
    return "Invalid input data"
  first = errors[0]
  field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
  return f"Invalid input data: {field} {first.get('msg', '')}".strip()


def _install_error_handlers(app: FastAPI) -> None:
  @app.exception_handler(ServiceError)
  async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    if exc.status_code >= 500:
      logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

  @app.exception_handler(RequestValidationError)
  async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"message": _validation_message(exc)})

  @app.exception_handler(SQLAlchemyError)
  async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": "Database error"})

  @app.exception_handler(Exception)
  async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"message": "Internal server error"})


def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> FastAPI:
  settings = settings or (services.settings if services else Settings.from_env())

  @asynccontextmanager
  async def lifespan(app: FastAPI):
    current: Services = app.state.services
    await asyncio.to_thread(current.repository.create_schema)
    worker: Optional[asyncio.Task] = None
    if settings.notification_worker_enabled:
      worker = asyncio.create_task(current.dispatcher.run(settings.notification_poll_seconds))
    try:
      yield
    finally:
      if worker is not None:
        worker.cancel()
        try:
          await worker
        except asyncio.CancelledError:
          logger.info("Notification dispatcher stopped")

  app = FastAPI(
    title="Happenings Service",
    version="0.1.0",
    description="Finds Ticketmaster events near a place and reminds users before they start.",
    lifespan=lifespan,
  )
  app.state.services = services or build_services(settings)

  app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
  )
  _install_error_handlers(app)

  @app.get("/health")
  async def health() -> dict:
    return {"ok": True}

  for router in routers:
    app.include_router(router)
  return app


_settings = Settings.from_env()
logging.basicConfig(level=_settings.log_level)

app = create_app(_settings)


if __name__ == "__main__":
  import uvicorn

  host = os.getenv("HOST", "0.0.0.0")
  port = int(os.getenv("PORT", "8000"))
  uvicorn.run("happenings_service.main:app", host=host, port=port, reload=True)
