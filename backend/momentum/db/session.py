import logging

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from momentum.core.config import get_settings

logger = logging.getLogger(__name__)


def build_engine(database_url: str) -> Engine:
    """Engine for ``database_url``; SQLite files get WAL so readers never block the writer."""
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, pool_pre_ping=True)

    sqlite_engine = create_engine(database_url, connect_args={"check_same_thread": False})

    if ":memory:" not in database_url:
        @event.listens_for(sqlite_engine, "connect")
        def _set_sqlite_pragmas(dbapi_conn, connection_record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

    return sqlite_engine


settings = get_settings()
engine = build_engine(settings.database_url)
logger.debug(f"Database engine ready: {engine.dialect.name}")

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
