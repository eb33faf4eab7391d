from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from contextlib import contextmanager
from typing import Generator, Optional

from tickerbrief.config import CONFIG
from .model import Base


IN_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


def create_db_engine(database_url: Optional[str] = None) -> Engine:
    """Create database engine based on configuration and make sure all tables exist."""
    database_url = database_url or CONFIG.DATABASE_URL

    engine_kwargs = {}
    if database_url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        if database_url in IN_MEMORY_URLS:
            # A single shared connection, otherwise every session sees an empty database
            engine_kwargs["poolclass"] = StaticPool

    engine = create_engine(database_url, echo=False, **engine_kwargs)
    Base.metadata.create_all(engine)

    return engine


def create_session_factory(database_url: Optional[str] = None) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=create_db_engine(database_url))


_session_factory: Optional[sessionmaker] = None


def configure_database(database_url: Optional[str] = None) -> sessionmaker:
    """(Re)bind the process-wide session factory, e.g. to a test database."""
    global _session_factory
    _session_factory = create_session_factory(database_url)
    return _session_factory


def get_session_factory() -> sessionmaker:
    if _session_factory is None:
        return configure_database()
    return _session_factory


@contextmanager
def get_db_session(session_factory: Optional[sessionmaker] = None) -> Generator[Session, None, None]:
    """Get database session with automatic cleanup."""
    session = (session_factory or get_session_factory())()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
