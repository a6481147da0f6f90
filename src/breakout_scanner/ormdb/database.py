"""Database configuration and session management."""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import Engine, create_engine, event, text
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config.logging import get_logger

logger = get_logger(__name__)

# Base class for all ORM models
Base = declarative_base()


def _configure_sqlite_for_performance(dbapi_connection, connection_record):
    """Configure SQLite for better performance and reliability."""
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.execute("PRAGMA temp_store=MEMORY")
    finally:
        cursor.close()


def create_database_engine(database_url: str, echo: bool = False) -> Engine:
    """Create a database engine configured for the URL's backend."""
    logger.info(
        "Creating database engine",
        url_type="sqlite" if "sqlite" in database_url else "other",
        echo_sql=echo,
    )

    engine_kwargs = {"echo": echo, "pool_pre_ping": True}

    if "sqlite" in database_url:
        engine_kwargs.update(
            {
                "connect_args": {"check_same_thread": False, "timeout": 30},
                "poolclass": StaticPool,
            }
        )
    else:
        engine_kwargs.update({"pool_size": 5, "max_overflow": 10})

    engine = create_engine(database_url, **engine_kwargs)

    if "sqlite" in database_url and ":memory:" not in database_url:
        event.listen(engine, "connect", _configure_sqlite_for_performance)

    return engine


class Database:
    """Owns one engine and its session factory."""

    def __init__(self, database_url: str, echo: bool = False):
        self.database_url = database_url
        self.engine = create_database_engine(database_url, echo=echo)
        self._session_factory = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=self.engine,
            expire_on_commit=False,
        )

    def create_tables(self) -> None:
        """Create all database tables."""
        # Import models so they register on Base.metadata
        from . import models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)
        logger.info("Database tables created successfully")

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """
        Provide a transactional session.

        Commits on success, rolls back and re-raises on error.
        """
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.error("Database session rolled back", error=str(e), exc_info=True)
            raise
        finally:
            session.close()

    def check_health(self) -> dict:
        """Check database connectivity."""
        try:
            with self.session_scope() as session:
                session.execute(text("SELECT 1"))
            return {"status": "healthy", "database_url": self.database_url}
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return {"status": "unhealthy", "error": str(e)}

    def dispose(self) -> None:
        self.engine.dispose()
