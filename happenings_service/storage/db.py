import logging

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger("happenings_service")


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
  """Engine for SQLite (dev/tests) or MySQL (``mysql+pymysql://``)."""
  if database_url.startswith("sqlite"):
    kwargs = {"connect_args": {"check_same_thread": False}}
    if database_url in ("sqlite://", "sqlite:///:memory:"):
      # one shared connection, otherwise every session sees an empty database
      kwargs["poolclass"] = StaticPool
    engine = create_engine(database_url, echo=echo, **kwargs)

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record) -> None:
      cursor = dbapi_connection.cursor()
      cursor.execute("PRAGMA foreign_keys=ON")
      cursor.close()

    logger.info("Using SQLite database: %s", database_url)
    return engine

  engine = create_engine(database_url, echo=echo, pool_pre_ping=True, pool_size=10)
  logger.info("Using database: %s", engine.url.render_as_string(hide_password=True))
  return engine


def create_session_factory(engine: Engine, expire_on_commit: bool = False) -> sessionmaker[Session]:
  return sessionmaker(bind=engine, expire_on_commit=expire_on_commit)
