"""
Repository Pattern Implementation.

Architecture Decision: Why Repository Pattern?
Separates data access from the command processor. The processor never knows
where snapshots go; tests inject an in-memory session, production uses the
SQLite file from the settings.
"""

import logging
from typing import Dict, Optional

from pydantic import ValidationError
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from focusflow.domain.errors import StorageError
from focusflow.domain.models import AppState
from focusflow.infra.db import StateModel, get_engine

logger = logging.getLogger(__name__)

DEFAULT_STATE_KEY = "focusflow-state"


class StateRepository:
    """
    Persistence gateway for the whole application state.

    The snapshot is the Pydantic JSON dump of ``AppState``. Datetimes are
    written as ISO-8601 strings and re-hydrated by model validation on load.
    """

    def __init__(self, session: Optional[AsyncSession] = None, key: str = DEFAULT_STATE_KEY):
        self.session = session
        self.key = key

    async def _get_session(self) -> AsyncSession:
        """Get session - either injected or create new one"""
        if self.session:
            return self.session
        engine = get_engine()
        return engine.get_session()

    async def load_raw(self) -> Optional[str]:
        """Stored snapshot text, or None. Raises on database errors."""
        session = await self._get_session()
        async with session:
            result = await session.execute(
                select(StateModel.value).where(StateModel.key == self.key)
            )
            return result.scalar_one_or_none()

    async def load(self) -> Optional[AppState]:
        """
        Load the saved state.

        Returns:
            The stored state, or None when nothing usable is stored. Read
            failures and malformed snapshots are logged, never raised.
        """
        try:
            raw = await self.load_raw()
        except SQLAlchemyError as e:
            logger.error(f"Failed to read saved state: {e}")
            return None

        if raw is None:
            return None

        try:
            return AppState.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Ignoring malformed saved state ({e.error_count()} errors)")
            return None

    async def save(self, state: AppState) -> None:
        """
        Write the state snapshot, replacing the previous one.

        Raises:
            StorageError: if the snapshot could not be written
        """
        payload = state.model_dump_json()
        session = await self._get_session()
        try:
            async with session:
                model = await session.get(StateModel, self.key)
                if model is None:
                    session.add(StateModel(key=self.key, value=payload))
                else:
                    model.value = payload
                await session.commit()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to save state: {e}") from e

    async def clear(self) -> None:
        """Remove the stored snapshot"""
        session = await self._get_session()
        async with session:
            await session.execute(delete(StateModel).where(StateModel.key == self.key))
            await session.commit()


class SessionStorage:
    """
    Ephemeral, process-scoped key-value storage.

    Nothing here survives the process, which is exactly what the access gate
    needs for its "authenticated" flag.
    """

    def __init__(self):
        self._items: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove(self, key: str) -> None:
        self._items.pop(key, None)

    def clear(self) -> None:
        self._items.clear()
