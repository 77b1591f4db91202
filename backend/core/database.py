from __future__ import annotations

import logging
import time
from typing import Iterator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from core.config import settings


logger = logging.getLogger(__name__)


class DatabaseUnavailableError(RuntimeError):
    """The database could not be reached after retrying."""


# Backoff between attempts to open a session while the database is unreachable.
RETRY_DELAYS_SECONDS: tuple[float, ...] = (0.2, 0.5, 1.0)

# Lower-cased fragments of driver messages that mean "could not reach the server",
# as opposed to a bad query or a constraint violation.
_TRANSIENT_MARKERS: tuple[str, ...] = (
    "getaddrinfo failed",
    "could not translate host name",
    "name or service not known",
    "connection refused",
    "connection reset",
    "server closed the connection unexpectedly",
    "timeout",
    "timed out",
)


def _exception_chain(exc: BaseException) -> Iterator[BaseException]:
    seen: set[int] = set()
    cur: BaseException | None = exc
    while cur is not None and id(cur) not in seen:
        seen.add(id(cur))
        yield cur
        cur = cur.__cause__ or cur.__context__


def is_transient_db_connectivity_error(exc: BaseException) -> bool:
    text_ = "\n".join(str(e).lower() for e in _exception_chain(exc))
    return any(marker in text_ for marker in _TRANSIENT_MARKERS)


def normalize_database_url(url: str) -> str:
    """Map the Postgres URL spellings hosting providers hand out onto the psycopg2 dialect."""
    url = url.strip()
    for prefix in ("postgresql+psycopg://", "postgresql://", "postgres://"):
        if url.startswith(prefix):
            return "postgresql+psycopg2://" + url.removeprefix(prefix)
    return url


def build_engine(database_url: str) -> Engine:
    url = normalize_database_url(database_url)
    parsed = make_url(url)

    if parsed.get_backend_name() == "sqlite":
        connect_args: dict[str, object] = {"check_same_thread": False}
        if parsed.database in (None, "", ":memory:"):
            # One shared connection, otherwise every checkout sees an empty database.
            return create_engine(url, connect_args=connect_args, poolclass=StaticPool)
        # Writers queue on the file lock instead of failing straight away.
        connect_args["timeout"] = 30
        return create_engine(url, connect_args=connect_args)

    return create_engine(url, pool_pre_ping=True, connect_args={"connect_timeout": 3})


ENGINE = build_engine(settings.database_url)
SessionLocal = sessionmaker(bind=ENGINE, autoflush=False, autocommit=False, expire_on_commit=False)


def ping(bind: Engine | Session) -> None:
    if isinstance(bind, Session):
        bind.execute(text("SELECT 1"))
        return
    with bind.connect() as conn:
        conn.execute(text("SELECT 1"))


def database_is_reachable(engine: Engine = ENGINE) -> bool:
    try:
        ping(engine)
    except OperationalError as exc:
        logger.warning("Database ping failed: %s", exc.__class__.__name__)
        return False
    return True


def _open_checked_session() -> Session:
    """Open a session that has answered a ping, retrying transient outages."""
    attempts = len(RETRY_DELAYS_SECONDS) + 1
    for attempt in range(attempts):
        db = SessionLocal()
        try:
            ping(db)
            return db
        except OperationalError as exc:
            db.close()
            if not is_transient_db_connectivity_error(exc) or attempt == attempts - 1:
                raise DatabaseUnavailableError("Database temporarily unavailable") from exc
            logger.info("Database unreachable (attempt %s/%s); retrying", attempt + 1, attempts)
            time.sleep(RETRY_DELAYS_SECONDS[attempt])
    raise DatabaseUnavailableError("Database temporarily unavailable")


def get_db() -> Iterator[Session]:
    # Only the ping is retried; errors raised by the endpoint itself propagate untouched.
    db = _open_checked_session()
    try:
        yield db
    finally:
        db.close()
