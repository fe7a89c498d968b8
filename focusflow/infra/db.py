"""
SQLAlchemy database models and configuration.

Architecture Decision: Why a key-value table?
The application state is persisted as one snapshot. A single table keyed by
name keeps the storage opaque: the domain never depends on a schema, and
swapping SQLite for another database only touches the engine URL.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, String, Text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# Base class for all models
class Base(DeclarativeBase):
    pass


class StateModel(Base):
    """SQLAlchemy model for a stored snapshot"""
    __tablename__ = "app_state"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, onupdate=datetime.now, nullable=False
    )



class DatabaseEngine:
    """
    The process-wide engine and its session factory.

    Created lazily from the configured URL on first use and disposed by
    ``close_db()`` when the application exits.
    """
    _instance: Optional['DatabaseEngine'] = None

    def __init__(self, db_url: str):
        self.url = db_url
        self.engine = create_async_engine(db_url, echo=False)
        self.session_factory = async_sessionmaker(self.engine, class_=AsyncSession, expire_on_commit=False)

    @classmethod
    def get_instance(cls, db_url: Optional[str] = None) -> 'DatabaseEngine':
        if cls._instance is None:
            if db_url is None:
                from focusflow.infra.config import get_settings
                db_url = get_settings().get_db_url()
            cls._instance = cls(db_url)
        elif db_url is not None and db_url != cls._instance.url:
            raise RuntimeError(f"Database already opened at {cls._instance.url}")
        return cls._instance

    async def create_tables(self):
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    def get_session(self) -> AsyncSession:
        return self.session_factory()


def get_engine(db_url: Optional[str] = None) -> DatabaseEngine:
    return DatabaseEngine.get_instance(db_url)


async def init_db(db_url: Optional[str] = None) -> DatabaseEngine:
    """Open the database and make sure the snapshot table exists."""
    engine = get_engine(db_url)
    await engine.create_tables()
    return engine


async def close_db() -> None:
    """Dispose the engine so aiosqlite worker threads end with the process."""
    engine, DatabaseEngine._instance = DatabaseEngine._instance, None
    if engine is not None:
        await engine.engine.dispose()
