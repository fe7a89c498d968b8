"""Infrastructure layer - Database, persistence and configuration"""

from .db import DatabaseEngine, close_db, get_engine, init_db
from .repository import SessionStorage, StateRepository

__all__ = ["DatabaseEngine", "close_db", "get_engine", "init_db", "SessionStorage", "StateRepository"]
