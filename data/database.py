"""
Database connection and session management.

A DatabaseManager is created once by the caller and passed explicitly to
whatever needs persistence; there is no module-level connection.
"""
import logging
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

from .db_models import Base

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Manages database connections and sessions."""

    def __init__(self, database_url: Optional[str] = None):
        """
        Initialize database manager.

        Args:
            database_url: SQLAlchemy database URL. If None, uses the
                          configured DATABASE_URL setting.
        """
        if database_url is None:
            from config.settings import settings
            database_url = settings.database_url
        self.database_url = database_url

        # SQLite connections are used from worker threads (asyncio.to_thread)
        if self.database_url.startswith('sqlite'):
            self.engine = create_engine(
                self.database_url,
                connect_args={'check_same_thread': False},
                echo=False  # Set to True for SQL query logging
            )
        else:
            self.engine = create_engine(self.database_url, echo=False)

        # Create session factory
        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=self.engine
        )

    def create_tables(self):
        """Create all database tables."""
        Base.metadata.create_all(bind=self.engine)
        logger.info("Database tables created at: %s", self.database_url)

    def drop_tables(self):
        """Drop all database tables. Use with caution!"""
        Base.metadata.drop_all(bind=self.engine)
        logger.info("Database tables dropped from: %s", self.database_url)

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """
        Context manager for database sessions.

        Automatically commits on success and rolls back on exception.

        Usage:
            with db_manager.session() as session:
                # ... use session ...
                # Automatically commits when exiting normally
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self):
        """Close pooled connections."""
        self.engine.dispose()


def init_database(db_manager: DatabaseManager) -> DatabaseManager:
    """
    Initialize database by creating all tables.

    Args:
        db_manager: Manager for the target database

    Returns:
        The same manager, for chaining
    """
    db_manager.create_tables()
    return db_manager
