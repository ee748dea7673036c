from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from galleryharvest import config
from galleryharvest.db.models import Base

# Simple cache to avoid creating multiple Engine objects in the same process.
_ENGINE: Optional[Engine] = None


def make_engine(database_url: Optional[str] = None) -> Engine:
    """Create or return a cached SQLAlchemy Engine for `database_url`.

    Caches a single Engine instance per process. SQLite engines are created
    with `check_same_thread=False` because jobs write from worker threads.
    """
    global _ENGINE
    database_url = database_url or config.DATABASE_URL
    if not database_url:
        raise RuntimeError("DATABASE_URL not set")
    if _ENGINE is None:
        kwargs = {}
        if database_url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            if ":memory:" in database_url or database_url == "sqlite://":
                # One shared connection, or each thread would see an empty database.
                kwargs["poolclass"] = StaticPool
        _ENGINE = create_engine(database_url, future=True, **kwargs)
    return _ENGINE


def init_db(engine: Engine) -> None:
    """Create all tables that do not exist yet."""
    Base.metadata.create_all(engine)
