import logging

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import declarative_base, sessionmaker

from rental_api.domain.errors import StoreUnavailableError

logger = logging.getLogger(__name__)

Base = declarative_base()


def _report_connection_failure(database_url: str, exc: Exception) -> None:
    """Log high-signal diagnostics when the store backend cannot be reached."""
    logger.error("Could not connect to the document store: %s", exc)

    try:
        url = make_url(database_url)
    except Exception as parse_error:  # pragma: no cover
        logger.error("Unable to parse DATABASE_URL (%s); skipping detailed diagnostics.", parse_error)
        return

    logger.error(
        "Store connection settings: dialect=%s driver=%s host=%s port=%s database=%s",
        url.get_backend_name(),
        url.get_driver_name() or "default",
        url.host or "localhost",
        url.port or "(default)",
        url.database,
    )


def build_engine(database_url: str) -> Engine:
    """
    Create an engine usable from the import worker threads.

    SQLite connections are shared across threads by the pool, so the
    same-thread check is disabled and writers wait on the file lock.
    """
    url = make_url(database_url)
    connect_args = {}
    if url.get_backend_name() == "sqlite":
        connect_args = {"check_same_thread": False, "timeout": 30}
    return create_engine(database_url, connect_args=connect_args, pool_pre_ping=True)


def check_connection(engine: Engine) -> None:
    """Raise StoreUnavailableError when a trivial round trip fails."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except OperationalError as exc:
        _report_connection_failure(str(engine.url), exc)
        raise StoreUnavailableError(f"Document store unavailable: {exc.orig}") from exc


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autoflush=False, expire_on_commit=False, bind=engine)
