"""Record store engine and transaction scope."""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from loguru import logger
from sqlalchemy import make_url, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, create_engine

from src.catalog.runtime.config.config_data import DatabaseConfig
from src.catalog.runtime.context import get_config


def _connect_args(backend: str, environment: str) -> dict[str, Any]:
    if backend == "postgresql":
        return {
            "application_name": f"{environment}_catalog",
            "connect_timeout": 30,
            "options": "-c jit=off",
        }
    if backend == "sqlite":
        # Ingestion commits run on worker threads
        return {"check_same_thread": False, "timeout": 20}
    return {}


def build_engine(db_config: DatabaseConfig, environment: str) -> Engine:
    """Create the engine for ``db_config``; pool sizing applies to server databases only."""
    backend = make_url(db_config.connection_string).get_backend_name()
    kwargs: dict[str, Any] = {
        "pool_pre_ping": True,
        "connect_args": _connect_args(backend, environment),
    }
    if backend != "sqlite":
        kwargs.update(
            pool_size=db_config.pool_size,
            max_overflow=db_config.max_overflow,
            pool_timeout=db_config.pool_timeout,
            pool_recycle=db_config.pool_recycle,
        )
    elif environment == "production":
        logger.warning("SQLite in production: title search falls back to substring matching")

    engine = create_engine(db_config.connection_string, **kwargs)
    logger.info("Database engine initialized", dialect=engine.dialect.name, environment=environment)
    return engine


class DbSessionService:
    """Owns the engine and hands out one transaction per unit of work.

    Tests pass a pre-built in-memory SQLite engine.
    """

    def __init__(self, engine: Engine | None = None):
        if engine is None:
            config = get_config()
            engine = build_engine(config.database, config.app.environment)
        self._engine = engine

    @property
    def engine(self) -> Engine:
        return self._engine

    def get_session(self) -> Session:
        # Entities are built from rows after commit
        return Session(self._engine, expire_on_commit=False)

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Run the block in one transaction: commit on success, roll back on error."""
        session = self.get_session()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error("Database transaction rolled back", error_type=type(e).__name__, error=str(e))
            raise
        except BaseException:
            session.rollback()
            raise
        finally:
            session.close()

    def health_check(self) -> bool:
        """Return True if the database answers ``SELECT 1``."""
        try:
            with self._engine.connect() as connection:
                connection.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.error("Database health check failed", error_type=type(e).__name__, error=str(e))
            return False
        return True
