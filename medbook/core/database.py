from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from typing import Generator
import redis

from .config import settings


def engine_options(database_url: str) -> dict:
    """Connection options for the given database URL."""
    if database_url.startswith("sqlite"):
        # SQLite serialises writers; wait for the lock instead of failing fast
        return {"connect_args": {"check_same_thread": False, "timeout": 30}}
    return {
        "pool_size": 5,
        "max_overflow": 10,
        "pool_timeout": 30,
        "pool_recycle": 1800,  # Recycle connections after 30 minutes
        "pool_pre_ping": True,
    }


engine = create_engine(
    settings.get_database_url,
    **engine_options(settings.get_database_url)
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

# Connections are opened lazily on the first command
redis_client = redis.from_url(settings.REDIS_URL, decode_responses=True)


# Database dependency
def get_db() -> Generator[Session, None, None]:
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# Redis dependency
def get_redis():
    """Get Redis client."""
    return redis_client


# Database initialization
def init_db(bind=None):
    """Initialize database tables."""
    # Register every model on the metadata before creating tables
    from ..models import appointment, doctor, user  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
