"""
Database engine and session. Supports SQLite (dev/tests) and Postgres via DATABASE_URL.

get_db is the single dependency for DB access; used by the auth and files routers.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from config import DATABASE_URL

# SQLite needs check_same_thread=False for FastAPI's threadpool; Postgres does not
_connect_args = {}
_engine_kwargs = {}
if DATABASE_URL.startswith("sqlite"):
    _connect_args["check_same_thread"] = False
    # In-memory databases live on one connection; share it across sessions
    if DATABASE_URL in ("sqlite://", "sqlite:///:memory:"):
        _engine_kwargs["poolclass"] = StaticPool

engine = create_engine(DATABASE_URL, connect_args=_connect_args, **_engine_kwargs)
SessionLocal = sessionmaker(bind=engine)

Base = declarative_base()


def init_db() -> None:
    """Create all tables. Production deployments use migrations instead."""
    import models  # noqa: F401  registers tables on Base.metadata

    Base.metadata.create_all(bind=engine)


def get_db():
    """FastAPI dependency: yields a DB session and closes it after the request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
