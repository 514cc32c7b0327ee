"""Engine and session factory.

SQLite gets NullPool (one connection per session, thread-safe with FastAPI's
threadpool); server databases get a sized QueuePool.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

from erp_agent.core.config import settings


def make_engine(url: str, **overrides):
    """Engine for ``url``; keyword overrides replace the pool defaults."""
    if url.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}, "poolclass": NullPool}
    else:
        options = {
            "pool_size": 5,
            "max_overflow": 10,
            "pool_timeout": 30,
            "pool_recycle": 3600,
            "pool_pre_ping": True,
        }
    options.update(overrides)
    return create_engine(url, **options)


engine = make_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
