"""
Tests for the single-writer service: ticker lifecycle, fire-and-forget saves,
boot restore and listener notifications.
"""

import asyncio
from typing import List, Optional

import pytest

from focusflow.domain.commands import AddTask, SettingsChanges, StartTimer, UpdateSettings
from focusflow.domain.errors import StorageError
from focusflow.domain.models import AppSettings, AppState, Priority, Task, TimerType, default_state
from focusflow.services.focus_service import FocusService

FAST_TICK = 0.001


class MemoryRepository:
    """Stand-in persistence gateway that records every saved snapshot."""

    def __init__(self, stored: Optional[AppState] = None, fail: bool = False):
        self.stored = stored
        self.fail = fail
        self.saved: List[AppState] = []

    async def load(self) -> Optional[AppState]:
        return self.stored

    async def save(self, state: AppState) -> None:
        await asyncio.sleep(0)
        if self.fail:
            raise StorageError("disk full")
        self.saved.append(state)
        self.stored = state


def one_minute_state() -> AppState:
    return default_state(AppSettings(pomodoro_minutes=1, short_break_minutes=1, long_break_minutes=2))


def sample_task(task_id: str = "t1") -> Task:
    return Task(id=task_id, title="Write tests", priority=Priority.LOW)


async def wait_for(predicate, timeout: float = 5.0) -> None:
    async def _poll():
        while not predicate():
            await asyncio.sleep(0.005)
    await asyncio.wait_for(_poll(), timeout)


def live_tickers() -> List[asyncio.Task]:
    return [
        t for t in asyncio.all_tasks()
        if not t.done() and t.get_coro().__qualname__ == "FocusService._run_ticker"
    ]


@pytest.mark.asyncio
async def test_focus_session_ticks_to_completion(ctx):
    service = FocusService(ctx=ctx, tick_interval=FAST_TICK, initial_state=one_minute_state())
    completed = []
    service.session_completed.connect(completed.append)

    service.start_focus()
    assert service.ticker_active

    await wait_for(lambda: completed)
    await asyncio.sleep(0.02)

    assert len(completed) == 1
    assert completed[0].duration == 1
    assert service.state.progress.total_points == 10
    assert not service.state.current_timer.is_active
    assert not service.ticker_active
    await service.close()


@pytest.mark.asyncio
async def test_stop_cancels_the_ticker(ctx):
    service = FocusService(ctx=ctx, tick_interval=FAST_TICK, initial_state=one_minute_state())
    service.start_focus()
    await asyncio.sleep(0.01)

    service.stop_timer()
    assert not service.ticker_active
    paused_at = service.state.current_timer.time_left

    await asyncio.sleep(0.05)
    assert service.state.current_timer.time_left == paused_at
    assert service.state.timer_sessions == ()
    await service.close()


@pytest.mark.asyncio
async def test_restart_replaces_the_pending_ticker(ctx):
    service = FocusService(ctx=ctx, tick_interval=10.0, initial_state=one_minute_state())
    service.start_focus()
    first = service._ticker

    service.start_break(long=True)
    second = service._ticker
    await asyncio.sleep(0.01)

    assert first is not second
    assert first.cancelled()
    assert not second.done()
    assert service.state.current_timer.type == TimerType.LONG_BREAK
    assert service.state.current_timer.time_left == 120
    await service.close()
    assert second.done()


@pytest.mark.asyncio
async def test_break_started_from_completion_listener_has_one_ticker(ctx):
    service = FocusService(ctx=ctx, tick_interval=FAST_TICK, initial_state=one_minute_state())
    service.session_completed.connect(lambda session: service.start_break(long=False))

    service.start_focus()
    await wait_for(lambda: service.state.current_timer.type == TimerType.SHORT_BREAK)
    await asyncio.sleep(0.02)

    assert service.state.current_timer.is_running
    assert len(live_tickers()) == 1
    assert live_tickers()[0] is service._ticker
    await service.close()
    assert live_tickers() == []


@pytest.mark.asyncio
async def test_ticks_are_published(ctx):
    service = FocusService(ctx=ctx, tick_interval=FAST_TICK, initial_state=one_minute_state())
    ticks = []
    service.timer_ticked.connect(ticks.append)
    service.start_focus()

    await wait_for(lambda: len(ticks) >= 3)
    assert ticks[:3] == [59, 58, 57]
    await service.close()


@pytest.mark.asyncio
async def test_break_policy_uses_todays_focus_sessions(ctx, clock):
    service = FocusService(ctx=ctx, tick_interval=FAST_TICK, initial_state=one_minute_state())
    today = clock().date()

    service.start_break(today=today)
    assert service.state.current_timer.type == TimerType.SHORT_BREAK

    for _ in range(4):
        service.start_focus()
        await wait_for(lambda: not service.state.current_timer.is_active)

    service.start_break(today=today)
    assert service.state.current_timer.type == TimerType.LONG_BREAK
    await service.close()


@pytest.mark.asyncio
async def test_changes_are_saved_in_the_background(ctx):
    repo = MemoryRepository()
    service = FocusService(repository=repo, ctx=ctx)

    service.dispatch(AddTask(task=sample_task("t1")))
    service.dispatch(AddTask(task=sample_task("t2")))
    service.complete_task("t1")
    await service.flush()

    assert repo.saved
    assert repo.saved[-1] == service.state
    assert not service.has_unsaved_changes


@pytest.mark.asyncio
async def test_save_failure_keeps_state_and_catches_up(ctx):
    repo = MemoryRepository(fail=True)
    service = FocusService(repository=repo, ctx=ctx)

    service.dispatch(AddTask(task=sample_task()))
    await service.flush()

    assert service.state.find_task("t1") is not None
    assert service.has_unsaved_changes
    assert repo.saved == []

    repo.fail = False
    service.dispatch(UpdateSettings(changes=SettingsChanges(sound_enabled=False)))
    await service.flush()

    assert repo.saved[-1] == service.state
    assert repo.saved[-1].find_task("t1") is not None


@pytest.mark.asyncio
async def test_unexpected_save_error_is_contained(ctx):
    class BrokenRepository(MemoryRepository):
        async def save(self, state: AppState) -> None:
            raise RuntimeError("engine not configured")

    service = FocusService(repository=BrokenRepository(), ctx=ctx)
    service.dispatch(AddTask(task=sample_task()))
    pending = list(service._pending_saves)

    await service.flush()

    assert all(task.done() and task.exception() is None for task in pending)
    assert service.state.find_task("t1") is not None
    assert service.has_unsaved_changes


@pytest.mark.asyncio
async def test_noop_commands_are_not_saved(ctx):
    repo = MemoryRepository()
    service = FocusService(repository=repo, ctx=ctx)

    service.stop_timer()
    service.dispatch("not a command")
    await service.flush()

    assert repo.saved == []


@pytest.mark.asyncio
async def test_boot_restores_saved_state(ctx):
    saved = default_state().model_copy(update={"tasks": (sample_task(),)})
    repo = MemoryRepository(stored=saved)
    service = FocusService(repository=repo, ctx=ctx)

    state = await service.boot()
    await service.flush()

    assert state == saved
    assert repo.saved == []
    assert not service.has_unsaved_changes


@pytest.mark.asyncio
async def test_boot_without_snapshot_keeps_defaults(ctx):
    service = FocusService(repository=MemoryRepository(), ctx=ctx)
    state = await service.boot()
    assert state == default_state()


@pytest.mark.asyncio
async def test_boot_resolves_run_that_expired_while_closed(ctx):
    running = FocusService(ctx=ctx, tick_interval=10.0, initial_state=one_minute_state())
    running.start_focus()
    snapshot = running.state.model_copy(update={
        "current_timer": running.state.current_timer.model_copy(update={"time_left": 0})
    })
    await running.close()

    service = FocusService(repository=MemoryRepository(stored=snapshot), ctx=ctx)
    state = await service.boot()

    assert len(state.timer_sessions) == 1
    assert state.progress.focus_sessions_completed == 1
    await service.close()


@pytest.mark.asyncio
async def test_boot_resumes_ticking_a_running_timer(ctx):
    running = FocusService(ctx=ctx, tick_interval=10.0, initial_state=one_minute_state())
    running.start_focus()
    snapshot = running.state
    await running.close()

    service = FocusService(repository=MemoryRepository(stored=snapshot), ctx=ctx, tick_interval=FAST_TICK)
    await service.boot()
    assert service.ticker_active
    await service.close()


@pytest.mark.asyncio
async def test_achievement_and_level_signals(ctx):
    service = FocusService(ctx=ctx)
    unlocked, levels = [], []
    service.achievement_unlocked.connect(lambda a: unlocked.append(a.id))
    service.level_up.connect(levels.append)

    for i in range(20):
        service.dispatch(AddTask(task=sample_task(f"t{i}")))
        service.complete_task(f"t{i}")

    assert unlocked == ["first-task", "task-master-10"]
    assert levels == [2]
    assert service.state.progress.total_points == 100


@pytest.mark.asyncio
async def test_listeners_see_the_committed_state(ctx):
    service = FocusService(ctx=ctx)
    seen = []
    service.state_changed.connect(lambda state: seen.append((state, service.state)))

    service.dispatch(AddTask(task=sample_task()))

    assert len(seen) == 1
    emitted, current = seen[0]
    assert emitted is current
    assert emitted.find_task("t1") is not None


def test_dispatch_without_event_loop(ctx):
    """Outside a loop the state still changes; only ticking and saving wait."""
    repo = MemoryRepository()
    service = FocusService(repository=repo, ctx=ctx)

    service.dispatch(StartTimer(type=TimerType.FOCUS, duration_minutes=25))

    assert service.state.current_timer.is_running
    assert not service.ticker_active
    assert service.has_unsaved_changes
    assert repo.saved == []
