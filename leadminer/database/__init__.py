from .connection import get_redis, get_db_session, create_tables, SessionLocal, engine
from .models import Base, Lead, LeadContact
from .repository import LeadRepository

__all__ = [
    "get_redis",
    "get_db_session",
    "create_tables",
    "SessionLocal",
    "engine",
    "Base",
    "Lead",
    "LeadContact",
    "LeadRepository",
]
