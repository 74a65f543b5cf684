"""
Database Connection Manager for the SEO metadata pipeline.

SQLAlchemy-based connection manager. One instance is created per process
entry point (API app, CLI command, job run) and passed explicitly to each
component that needs the store.
"""

import time
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from db.models import Base
from runner.logging_setup import get_logger

logger = get_logger("database_manager")


class DatabaseManager:
    """Manages a database engine and session factory."""

    def __init__(self, database_url: str, echo: bool = False):
        if not database_url:
            raise RuntimeError("DATABASE_URL not set in environment")

        self.database_url = database_url
        self.engine = self._create_engine(database_url, echo)
        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=self.engine
        )
        logger.info("Database engine initialized successfully")

    @staticmethod
    def _create_engine(database_url: str, echo: bool):
        if database_url.startswith("sqlite"):
            # In-memory SQLite must share one connection across sessions
            if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
                return create_engine(
                    database_url,
                    connect_args={"check_same_thread": False},
                    poolclass=StaticPool,
                    echo=echo,
                )
            return create_engine(database_url, echo=echo)

        return create_engine(
            database_url,
            pool_size=5,
            max_overflow=10,
            pool_pre_ping=True,  # Verify connections before using
            pool_recycle=3600,
            echo=echo
        )

    def create_tables(self):
        """Create all tables that do not exist yet."""
        Base.metadata.create_all(self.engine)
        logger.info("Database tables created")

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """
        Context manager for database sessions.

        Commits on success, rolls back and re-raises on error.

        Usage:
            with db_manager.get_session() as session:
                session.add(record)
        """
        session = self.SessionLocal()

        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.error(f"Database session error: {e}")
            raise
        finally:
            session.close()

    def get_connection_health(self) -> dict:
        """
        Check database connection health with latency measurement.

        Returns:
            dict with keys: connected (bool), latency_ms (float), error (str)
        """
        result = {
            'connected': False,
            'latency_ms': None,
            'error': None
        }

        try:
            start_time = time.time()
            with self.get_session() as session:
                session.execute(text("SELECT 1"))

            latency = (time.time() - start_time) * 1000
            result['connected'] = True
            result['latency_ms'] = round(latency, 2)

        except Exception as e:
            result['error'] = str(e)
            logger.error(f"Connection health check failed: {e}")

        return result

    def close(self):
        """Dispose the engine and its pooled connections."""
        if self.engine is not None:
            self.engine.dispose()
            logger.info("Database engine closed")


def create_db_manager(database_url: Optional[str] = None) -> DatabaseManager:
    """Build a DatabaseManager from an explicit URL or the configured one."""
    if database_url is None:
        from seo_pipeline.config import Config
        database_url = Config.DATABASE_URL

    return DatabaseManager(database_url)
