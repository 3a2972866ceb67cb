"""Database connection and session management."""

from contextlib import contextmanager
from typing import Any, Callable, Generator, TypeVar

from sqlalchemy import create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.exc import (
    DBAPIError,
    DisconnectionError,
    IntegrityError,
    OperationalError,
    SQLAlchemyError,
    TimeoutError as PoolTimeoutError,
)
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool
from tenacity import RetryCallState, retry, retry_if_exception_type, stop_after_attempt, wait_random_exponential

from giveroom.errors import StorageError, StorageFatal, StorageTransient
from giveroom.logging_config import get_logger
from giveroom.settings import settings
from giveroom.storage.models import Base

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

# PostgreSQL SQLSTATEs that clear on retry: serialization failure, deadlock,
# lock timeout, statement timeout
_TRANSIENT_SQLSTATES = {"40001", "40P01", "55P03", "57014"}

# Driver messages for lock contention and lost connections
_TRANSIENT_MESSAGES = (
    "database is locked",
    "database table is locked",
    "could not connect",
    "connection refused",
    "server closed the connection",
    "terminating connection",
    "timeout expired",
)


def _is_sqlite(database_url: str) -> bool:
    return make_url(database_url).get_backend_name() == "sqlite"


def _is_memory_sqlite(database_url: str) -> bool:
    url = make_url(database_url)
    return _is_sqlite(database_url) and url.database in (None, "", ":memory:")


def _engine_options(database_url: str) -> dict[str, Any]:
    """Engine keyword arguments with bounded waits for the given backend."""
    options: dict[str, Any] = {
        "echo": settings.env == "development",
        "pool_pre_ping": True,
    }
    if _is_sqlite(database_url):
        options["connect_args"] = {
            "check_same_thread": False,
            "timeout": settings.db_timeout_seconds,  # busy timeout on locked database
        }
        if _is_memory_sqlite(database_url):
            # Every thread must share the one connection that holds the data
            options["poolclass"] = StaticPool
            return options
    else:
        timeout_ms = int(settings.db_timeout_seconds * 1000)
        connect_args: dict[str, Any] = {
            "connect_timeout": max(1, int(settings.db_timeout_seconds)),
            "options": f"-c statement_timeout={timeout_ms} -c lock_timeout={timeout_ms}",
        }
        if settings.database_ssl_require:
            connect_args["sslmode"] = "require"
        options["connect_args"] = connect_args
    options["pool_timeout"] = settings.db_timeout_seconds
    return options


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _is_transient(error: SQLAlchemyError) -> bool:
    if isinstance(error, (DisconnectionError, PoolTimeoutError)):
        return True
    if isinstance(error, DBAPIError) and error.connection_invalidated:
        return True
    if not isinstance(error, OperationalError):
        return False
    if getattr(error.orig, "pgcode", None) in _TRANSIENT_SQLSTATES:
        return True
    message = str(error.orig).lower()
    return any(fragment in message for fragment in _TRANSIENT_MESSAGES)


def translate_error(error: SQLAlchemyError) -> StorageError:
    """Map a SQLAlchemy error onto the retryable/fatal storage taxonomy.

    Only lock contention, timeouts and lost connections are transient.
    Schema problems such as a missing table are fatal even though drivers
    report them as OperationalError.
    """
    if isinstance(error, IntegrityError):
        return StorageFatal(f"Constraint violated: {error.orig}")
    if _is_transient(error):
        return StorageTransient(f"Storage unavailable: {error.__class__.__name__}")
    return StorageFatal(f"Storage error: {error.__class__.__name__}")


class Database:
    """Database connection manager."""

    def __init__(self, database_url: str | None = None):
        """Initialize database connection.

        Args:
            database_url: Database URL (defaults to settings)
        """
        self.database_url = database_url or settings.database_url
        self.engine = create_engine(self.database_url, **_engine_options(self.database_url))
        if _is_sqlite(self.database_url):
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)
        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=self.engine,
        )
        logger.info(
            "database_initialized",
            url=make_url(self.database_url).render_as_string(hide_password=True),
        )

    @staticmethod
    def _register_models() -> None:
        # Import models so they register on the metadata
        import giveroom.auth.models  # noqa: F401
        import giveroom.giveaways.models  # noqa: F401

    def create_tables(self) -> None:
        """Create all tables in the database."""
        self._register_models()
        Base.metadata.create_all(bind=self.engine)
        logger.info("tables_created")

    def drop_tables(self) -> None:
        """Drop all tables from the database."""
        self._register_models()
        Base.metadata.drop_all(bind=self.engine)
        logger.warning("tables_dropped")

    def dispose(self) -> None:
        """Close all pooled connections."""
        self.engine.dispose()

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Provide a transactional scope for database operations.

        Commits when the block exits normally and rolls back on any
        exception. SQLAlchemy errors are re-raised as StorageTransient
        (retryable) or StorageFatal.

        Yields:
            Database session
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            storage_error = translate_error(e)
            logger.warning(
                "storage_error",
                kind=storage_error.__class__.__name__,
                error=e.__class__.__name__,
            )
            raise storage_error from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


def _log_retry(retry_state: RetryCallState) -> None:
    logger.warning(
        "storage_retry",
        operation=getattr(retry_state.fn, "__qualname__", None),
        attempt=retry_state.attempt_number,
        error=str(retry_state.outcome.exception()) if retry_state.outcome else None,
    )


def retry_transient(func: F) -> F:
    """Retry a unit of work on StorageTransient with jittered exponential backoff.

    The wrapped callable must open its own transaction so every attempt
    starts from a clean state.
    """
    return retry(
        retry=retry_if_exception_type(StorageTransient),
        stop=stop_after_attempt(settings.storage_max_attempts),
        wait=wait_random_exponential(multiplier=settings.storage_retry_wait_seconds, max=2),
        before_sleep=_log_retry,
        reraise=True,
    )(func)


# Global database instance
db = Database()
