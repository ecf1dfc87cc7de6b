import logging
from contextlib import contextmanager
from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from espetinhos.errors import StorageError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_ledger_engine(url: str) -> Engine:
    if not url.startswith("sqlite"):
        return create_engine(url)

    kwargs = {"connect_args": {"check_same_thread": False}}
    if url in ("sqlite://", "sqlite:///:memory:"):
        # In-memory databases live and die with their connection
        kwargs["poolclass"] = StaticPool
    engine = create_engine(url, **kwargs)
    event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


class LedgerStore:
    """Owns the engine and session factory for one ledger database.

    Opened once at process start and disposed at shutdown. Tests build their
    own instance over an in-memory SQLite database.
    """

    def __init__(self, url: str):
        self.url = url
        self.engine = create_ledger_engine(url)
        self.session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def create_schema(self) -> None:
        # Import all models so Base.metadata knows about them
        import espetinhos.models.cash  # noqa: F401
        import espetinhos.models.customer  # noqa: F401
        import espetinhos.models.inventory  # noqa: F401
        import espetinhos.models.order  # noqa: F401
        import espetinhos.models.product  # noqa: F401

        Base.metadata.create_all(bind=self.engine)
        logger.info("Ledger schema ready at %s", self.url)

    def session(self) -> Session:
        return self.session_factory()

    def dispose(self) -> None:
        self.engine.dispose()


def get_db(request: Request) -> Iterator[Session]:
    db = request.app.state.ledger.session()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """Run a block of writes as one all-or-nothing unit.

    Commits when the block finishes, rolls back on any exception. Driver and
    constraint failures are re-raised as :class:`StorageError`.
    """
    try:
        yield db
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Ledger write rolled back: %s", exc)
        raise StorageError(f"Storage failure: {exc}") from exc
    except Exception:
        db.rollback()
        raise
