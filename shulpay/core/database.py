from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from shulpay.core.config import settings


def engine_options(dsn: str) -> dict[str, Any]:
    """Connection options for the configured backend.

    SQLite sessions are shared across FastAPI's threadpool; server databases
    get connection health checks since the worker holds sessions for a whole
    billing run.
    """
    if dsn.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


engine = create_engine(settings.APP_DATABASE_DSN, **engine_options(settings.APP_DATABASE_DSN))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base: Any = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session; uncommitted work is rolled back on error."""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db() -> None:
    """Create all tables for the registered models."""
    import shulpay.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
