from collections.abc import Generator, Iterator
from contextlib import contextmanager

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlmodel import Session, SQLModel, create_engine

from ...config import settings
from ...domain.exceptions import TransientStorageError
from ...logging_config import get_logger

logger = get_logger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite ignores REFERENCES/ON DELETE unless asked per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def configure_engine(engine: Engine) -> Engine:
    """Attach per-dialect connection hooks to an engine."""
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def _get_engine() -> Engine:
    database_url = settings.database_url
    timeout = settings.db_timeout_seconds
    connect_args: dict[str, object] = {}
    engine_kwargs: dict[str, int | bool | float] = {}

    if "sqlite" in database_url:
        # Sync endpoints run in a thread pool
        connect_args["check_same_thread"] = False
        connect_args["timeout"] = timeout
    elif "postgresql" in database_url:
        connect_args["connect_timeout"] = max(1, int(timeout))
        connect_args["options"] = f"-c statement_timeout={int(timeout * 1000)}"
        engine_kwargs["pool_pre_ping"] = True
        engine_kwargs["pool_size"] = 10
        engine_kwargs["max_overflow"] = 20
        engine_kwargs["pool_timeout"] = timeout

    engine = create_engine(
        database_url,
        # echo=True,  # Enable for SQL debugging
        connect_args=connect_args,
        **engine_kwargs,
    )
    return configure_engine(engine)


def init_db(engine: Engine) -> None:
    SQLModel.metadata.create_all(engine)


_engine: Engine | None = None


def get_main_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = _get_engine()
    return _engine


def get_session() -> Generator[Session, None, None]:
    with Session(get_main_engine()) as session:
        yield session


@contextmanager
def storage_errors(session: Session) -> Iterator[None]:
    """Roll back and translate timeouts and lost connections.

    Anything that is not a transient failure propagates unchanged.
    """
    try:
        yield
    except (OperationalError, PoolTimeoutError) as e:
        session.rollback()
        logger.error(
            "Transient storage failure",
            error_type=type(e).__name__,
            error_message=str(getattr(e, "orig", e)),
        )
        raise TransientStorageError() from e
