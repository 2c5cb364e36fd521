import redis
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from plantlog.config import settings

# Initialize Base class for declarative models
Base = declarative_base()

# Needed for SQLite only
connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

# Create engine instance
engine = create_engine(settings.DATABASE_URL, connect_args=connect_args)

# Create sessionmaker
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)

# Local keyed store; returns strings instead of bytes
redis_client = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)

# Export these for use in other modules
__all__ = ['Base', 'SessionLocal', 'engine', 'redis_client']


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_redis():
    return redis_client
