import logging

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

# Base class for models
Base = declarative_base()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """
    Explicit handle around a SQLAlchemy engine and its session factory.

    One instance is created per process (in the FastAPI lifespan or the
    Celery worker init hook) and passed down to whoever needs a session.
    """

    def __init__(self, url: str, pool_size: int = 10, max_overflow: int = 20):
        self.url = url

        if url.startswith("sqlite"):
            # SQLite has no real pool; in-memory databases must share one connection
            options = {"connect_args": {"check_same_thread": False}}
            if url in ("sqlite://", "sqlite:///:memory:"):
                options["poolclass"] = StaticPool
        else:
            options = {
                "pool_size": pool_size,
                "max_overflow": max_overflow,
                "pool_pre_ping": True,
            }

        self.engine = create_engine(url, **options)

        if url.startswith("sqlite"):
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)

        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    @classmethod
    def from_settings(cls, settings) -> "Database":
        return cls(
            settings.DATABASE_URL,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
        )

    def create_all(self) -> None:
        """Create all tables registered on ``Base``."""
        # Import models so they are registered on the metadata
        from retailops import models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def drop_all(self) -> None:
        Base.metadata.drop_all(bind=self.engine)

    def session(self) -> Session:
        return self.SessionLocal()

    def dispose(self) -> None:
        logger.info("Disposing database engine")
        self.engine.dispose()


def get_db(request: Request):
    """
    Dependency to get database session.
    Yields a session from the application's database handle and closes it after use.
    """
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()
