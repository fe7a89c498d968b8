"""
Timer State Machine - the Pomodoro countdown.

States:
    Idle     is_active=False
    Running  is_active=True, time_left > 0
    Expired  is_active=True, time_left == 0 (resolved right away into a
             TimerSession record, then Idle)

The machine does not decide which break follows a focus session. It runs
whatever Start it is given.
"""

from datetime import datetime
from typing import Optional, Tuple

from focusflow.domain.models import (
    ActiveTimer,
    AppSettings,
    TimerPhase,
    TimerSession,
    TimerType,
)


def duration_for(settings: AppSettings, timer_type: TimerType) -> int:
    """Configured length in minutes for a session type."""
    if timer_type == TimerType.FOCUS:
        return settings.pomodoro_minutes
    if timer_type == TimerType.SHORT_BREAK:
        return settings.short_break_minutes
    return settings.long_break_minutes


def start(timer: ActiveTimer, timer_type: TimerType, duration_minutes: int,
          task_id: Optional[str] = None) -> ActiveTimer:
    """
    Begin a new run from any state.

    A run that was still going is dropped without being logged. The new run
    gets the next ``run_id`` so an old expiry marker can never apply to it.
    """
    return timer.model_copy(update={
        "is_active": True,
        "time_left": duration_minutes * 60,
        "type": timer_type,
        "task_id": task_id,
        "run_id": timer.run_id + 1,
    })


def tick(timer: ActiveTimer) -> ActiveTimer:
    """Count down one second. Ignored unless Running."""
    if timer.phase != TimerPhase.RUNNING:
        return timer
    return timer.model_copy(update={"time_left": max(0, timer.time_left - 1)})


def stop(timer: ActiveTimer) -> ActiveTimer:
    """Pause: back to Idle with the remaining time kept as is."""
    if not timer.is_active:
        return timer
    return timer.model_copy(update={"is_active": False})


def resolve_expiry(timer: ActiveTimer, settings: AppSettings, now: datetime,
                   session_id: str) -> Tuple[ActiveTimer, Optional[TimerSession]]:
    """
    Turn an Expired run into its completion record.

    Returns the Idle timer and the session the first time a given run is
    seen expired. Any other call returns ``(timer, None)``.
    """
    if timer.phase != TimerPhase.EXPIRED or timer.resolved_run_id == timer.run_id:
        return timer, None

    session = TimerSession(
        id=session_id,
        task_id=timer.task_id,
        type=timer.type,
        duration=duration_for(settings, timer.type),
        completed_at=now,
        was_completed=True,
    )
    idle = timer.model_copy(update={
        "is_active": False,
        "time_left": 0,
        "resolved_run_id": timer.run_id,
    })
    return idle, session


def format_time(seconds: int) -> str:
    """Render a countdown as MM:SS."""
    minutes, secs = divmod(max(0, seconds), 60)
    return f"{minutes:02d}:{secs:02d}"


def progress_percent(timer: ActiveTimer, settings: AppSettings) -> float:
    """Share of the configured duration already elapsed, 0-100."""
    total = duration_for(settings, timer.type) * 60
    if total <= 0:
        return 0.0
    elapsed = max(0, total - timer.time_left)
    return min(100.0, elapsed / total * 100)
