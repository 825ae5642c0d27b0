from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
import redis
import os
import logging

logger = logging.getLogger(__name__)

# Database Configuration
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./leadminer.db")
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": int(os.getenv("DB_POOL_SIZE", "10")),
        "max_overflow": 20,
        "pool_pre_ping": True,
    }


engine = create_engine(
    DATABASE_URL,
    echo=os.getenv("ENVIRONMENT") == "development",
    **_engine_options(DATABASE_URL)
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Redis Connection, established on first use
_redis_client = None
_redis_checked = False


def _connect_redis():
    global _redis_client, _redis_checked
    _redis_checked = True
    try:
        client = redis.from_url(
            REDIS_URL,
            max_connections=int(os.getenv("REDIS_MAX_CONNECTIONS", "20")),
            decode_responses=True
        )
        client.ping()
        logger.info("Redis connection established successfully")
        _redis_client = client
    except redis.RedisError as e:
        logger.warning(f"Redis connection failed: {e}. Cache will be disabled.")
        _redis_client = None
    return _redis_client


def get_redis():
    """Redis client, or None when redis is unreachable"""
    if not _redis_checked:
        return _connect_redis()
    return _redis_client


def get_db_session():
    """Get database session for the scraping pipeline"""
    return SessionLocal()


def create_tables():
    """Create all database tables"""
    from .models import Base
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created successfully")
