import logging
from collections.abc import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from channel_order.config import settings

logger = logging.getLogger(__name__)


_is_sqlite = settings.DATABASE_URL.startswith("sqlite")

_engine_kwargs: dict = (
    {"connect_args": {"check_same_thread": False}}
    if _is_sqlite
    else {"pool_pre_ping": True, "pool_size": 10, "max_overflow": 20}
)

engine = create_engine(settings.DATABASE_URL, **_engine_kwargs)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    pass


def get_db() -> Generator:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def enable_sqlite_foreign_keys(target_engine) -> None:
    """Turn on FK enforcement for SQLite connections.

    SQLite ignores ON DELETE SET NULL unless the pragma is set per connection,
    and deleting a category relies on it to move channels to uncategorized.
    No-op for other dialects.
    """
    if not str(target_engine.url).startswith("sqlite"):
        return

    @event.listens_for(target_engine, "connect")
    def _set_pragma(dbapi_connection, connection_record) -> None:  # noqa: ARG001
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    logger.debug("SQLite foreign key enforcement enabled for %s", target_engine.url)


enable_sqlite_foreign_keys(engine)
