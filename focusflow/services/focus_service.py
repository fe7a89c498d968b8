"""
Focus Service - owns the application state and drives the countdown.

Architecture Decision: Single writer
All changes go through ``dispatch``, which runs one command at a time
through the command processor and swaps in the resulting state. Around that
the service:
- runs at most one ticker task, which dispatches ``TickTimer`` every period
  while the timer is Running
- schedules best-effort saves after every change (fire and forget)
- notifies listeners through Qt signals (Observer Pattern)
"""

import asyncio
import logging
from datetime import date
from typing import Optional, Set

from PySide6.QtCore import QObject, Signal

from focusflow.domain.commands import (
    CompleteTimer,
    LoadState,
    StartTimer,
    StopTimer,
    TaskChanges,
    TickTimer,
    UpdateTask,
)
from focusflow.domain.errors import StorageError
from focusflow.domain.models import AppState, TaskStatus, TimerType, default_state
from focusflow.infra.repository import StateRepository
from focusflow.services import queries, timer_machine
from focusflow.services.command_processor import DEFAULT_CONTEXT, ProcessorContext, apply
from focusflow.services.progress_engine import newly_earned

logger = logging.getLogger(__name__)


class FocusService(QObject):
    """
    The application engine. Manages state but knows nothing about any UI.
    Emits signals when things change (Observer Pattern).
    """

    # Signals
    state_changed = Signal(object)          # AppState
    timer_ticked = Signal(int)              # time_left in seconds
    session_completed = Signal(object)      # TimerSession
    achievement_unlocked = Signal(object)   # Achievement
    level_up = Signal(int)                  # new level

    def __init__(self, repository: Optional[StateRepository] = None,
                 ctx: Optional[ProcessorContext] = None,
                 tick_interval: float = 1.0,
                 initial_state: Optional[AppState] = None):
        super().__init__()
        self.repository = repository
        self.ctx = ctx or DEFAULT_CONTEXT
        self.tick_interval = tick_interval
        self._state = initial_state or default_state()

        # Save bookkeeping: every change bumps the version
        self._version = 0
        self._saved_version = 0
        self._save_lock = asyncio.Lock()
        self._pending_saves: Set[asyncio.Task] = set()

        self._ticker: Optional[asyncio.Task] = None

    @property
    def state(self) -> AppState:
        return self._state

    @property
    def has_unsaved_changes(self) -> bool:
        return self._saved_version < self._version

    @property
    def ticker_active(self) -> bool:
        return self._ticker is not None and not self._ticker.done()

    async def boot(self) -> AppState:
        """
        Restore the saved state, if any.

        A missing or unreadable snapshot leaves the fresh default state in
        place. A run that expired while the app was closed is resolved here.
        """
        loaded = await self.repository.load() if self.repository else None
        if loaded is None:
            logger.info("No saved state found, starting fresh")
            return self._state

        self.dispatch(LoadState(state=loaded))
        self._saved_version = self._version
        self.dispatch(CompleteTimer())
        logger.info(f"State restored: {len(loaded.tasks)} tasks, level {loaded.progress.level}")
        return self._state

    def dispatch(self, command: object) -> AppState:
        """Apply one command and publish the result."""
        old = self._state
        new = apply(old, command, self.ctx)
        if new is old:
            return old

        self._state = new
        self._version += 1
        self._sync_ticker(command)
        self._schedule_save()
        self._notify(old, new, command)
        return new

    # Convenience actions

    def start_focus(self, task_id: Optional[str] = None) -> AppState:
        minutes = self._state.settings.pomodoro_minutes
        return self.dispatch(StartTimer(type=TimerType.FOCUS, duration_minutes=minutes, task_id=task_id))

    def start_break(self, long: Optional[bool] = None, today: Optional[date] = None) -> AppState:
        """
        Start a break. Without an explicit choice, every fourth focus
        session of the day is followed by a long break.
        """
        if long is None:
            done_today = len(queries.focus_sessions_on(self._state, today or date.today()))
            timer_type = queries.next_break_type(done_today)
        else:
            timer_type = TimerType.LONG_BREAK if long else TimerType.SHORT_BREAK
        minutes = timer_machine.duration_for(self._state.settings, timer_type)
        return self.dispatch(StartTimer(type=timer_type, duration_minutes=minutes))

    def stop_timer(self) -> AppState:
        return self.dispatch(StopTimer())

    def complete_task(self, task_id: str) -> AppState:
        return self.dispatch(UpdateTask(task_id=task_id, changes=TaskChanges(status=TaskStatus.COMPLETED)))

    # Ticker

    def _sync_ticker(self, command: object) -> None:
        """Keep exactly one ticker alive while Running, none otherwise."""
        running = self._state.current_timer.is_running
        if isinstance(command, StartTimer) or not running:
            self._cancel_ticker()
        if running and not self.ticker_active:
            self._start_ticker()

    def _start_ticker(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop; the timer will not tick")
            return
        self._ticker = loop.create_task(self._run_ticker())

    def _cancel_ticker(self) -> None:
        ticker, self._ticker = self._ticker, None
        if ticker is None or ticker.done():
            return
        if ticker is _current_task():
            # The ticker stopped itself; its loop condition ends it
            return
        ticker.cancel()

    async def _run_ticker(self) -> None:
        me = asyncio.current_task()
        while self._owns_ticker(me):
            await asyncio.sleep(self.tick_interval)
            if not self._owns_ticker(me):
                break
            self.dispatch(TickTimer())

    def _owns_ticker(self, task: Optional[asyncio.Task]) -> bool:
        """A replaced ticker must never tick the run that replaced it."""
        return self._ticker is task and self._state.current_timer.is_running

    # Persistence

    def _schedule_save(self) -> None:
        if self.repository is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; save deferred until flush()")
            return
        task = loop.create_task(self._save_latest())
        self._pending_saves.add(task)
        task.add_done_callback(self._pending_saves.discard)

    async def _save_latest(self) -> None:
        async with self._save_lock:
            if self._saved_version >= self._version:
                return
            version, state = self._version, self._state
            try:
                await self.repository.save(state)
            except StorageError as e:
                logger.error(f"Save failed, keeping state in memory: {e}")
                return
            except Exception:
                logger.exception("Unexpected error while saving, keeping state in memory")
                return
            self._saved_version = version

    async def flush(self) -> None:
        """Wait for scheduled saves and write anything still unsaved."""
        if self._pending_saves:
            await asyncio.gather(*list(self._pending_saves), return_exceptions=True)
        if self.repository is not None:
            await self._save_latest()

    async def close(self) -> None:
        """Cancel the ticker and flush pending saves."""
        ticker, self._ticker = self._ticker, None
        if ticker is not None and not ticker.done():
            ticker.cancel()
            try:
                await ticker
            except asyncio.CancelledError:
                pass
        await self.flush()

    # Notifications

    def _notify(self, old: AppState, new: AppState, command: object) -> None:
        self.state_changed.emit(new)
        if isinstance(command, LoadState):
            return

        if isinstance(command, TickTimer) and new.current_timer.is_running:
            self.timer_ticked.emit(new.current_timer.time_left)

        for session in new.timer_sessions[len(old.timer_sessions):]:
            self.session_completed.emit(session)

        for achievement in newly_earned(old.progress, new.progress):
            logger.info(f"Achievement unlocked: {achievement.title}")
            self.achievement_unlocked.emit(achievement)

        if new.progress.level > old.progress.level:
            logger.info(f"Level up: {new.progress.level}")
            self.level_up.emit(new.progress.level)


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None
