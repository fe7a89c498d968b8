"""
Read-side projections of the application state.

Collaborators use these to build their views (dashboard counters, filtered
lists). Nothing here changes state.
"""

from datetime import date, datetime, timedelta
from typing import List, NamedTuple, Optional, Tuple

from focusflow.domain.models import (
    Achievement,
    AppState,
    BrainDumpEntry,
    Task,
    TaskStatus,
    TimerSession,
    TimerType,
)
from focusflow.services.progress_engine import level_progress

LONG_BREAK_EVERY = 4


class DailySummary(NamedTuple):
    day: date
    tasks_completed: int
    focus_sessions: int
    pending_tasks: int
    unprocessed_entries: int
    level: int
    total_points: int
    points_to_next_level: int
    streak_days: int


def completed_tasks_on(state: AppState, day: date) -> List[Task]:
    return [
        t for t in state.tasks
        if t.is_completed and t.completed_at is not None and t.completed_at.date() == day
    ]


def _is_completed_focus(session: TimerSession) -> bool:
    return session.type == TimerType.FOCUS and session.was_completed


def focus_sessions_on(state: AppState, day: date) -> List[TimerSession]:
    return [
        s for s in state.timer_sessions
        if _is_completed_focus(s) and s.completed_at.date() == day
    ]


def focus_sessions_since(state: AppState, since: datetime) -> List[TimerSession]:
    return [s for s in state.timer_sessions if _is_completed_focus(s) and s.completed_at >= since]


def focus_sessions_this_week(state: AppState, now: Optional[datetime] = None) -> List[TimerSession]:
    """Completed focus sessions of the last seven days."""
    now = now or datetime.now()
    return focus_sessions_since(state, now - timedelta(days=7))


def next_break_type(focus_sessions_today: int) -> TimerType:
    """Every fourth completed focus session of the day earns a long break."""
    if focus_sessions_today > 0 and focus_sessions_today % LONG_BREAK_EVERY == 0:
        return TimerType.LONG_BREAK
    return TimerType.SHORT_BREAK


def pending_tasks(state: AppState, limit: Optional[int] = None) -> List[Task]:
    tasks = [t for t in state.tasks if not t.is_completed]
    return tasks if limit is None else tasks[:limit]


def filter_tasks(state: AppState, project_id: Optional[str] = None,
                 status: Optional[TaskStatus] = None) -> List[Task]:
    """Tasks matching the project and status filters (None matches all)."""
    return [
        t for t in state.tasks
        if (project_id is None or t.project_id == project_id)
        and (status is None or t.status == status)
    ]


def project_task_counts(state: AppState, project_id: str) -> Tuple[int, int]:
    """Live (completed, total) counts, independent of the stored denormalized ones."""
    tasks = filter_tasks(state, project_id=project_id)
    return sum(1 for t in tasks if t.is_completed), len(tasks)


def unprocessed_entries(state: AppState, limit: Optional[int] = None) -> List[BrainDumpEntry]:
    entries = [e for e in state.brain_dump_entries if not e.processed]
    return entries if limit is None else entries[:limit]


def filter_entries(state: AppState, search: str = "", tag: Optional[str] = None,
                   processed_only: bool = False) -> List[BrainDumpEntry]:
    """Case-insensitive text search combined with tag and processed filters."""
    needle = search.lower()
    return [
        e for e in state.brain_dump_entries
        if needle in e.content.lower()
        and (not tag or tag in e.tags)
        and (not processed_only or e.processed)
    ]


def all_tags(state: AppState) -> List[str]:
    return sorted({tag for e in state.brain_dump_entries for tag in e.tags})


def earned_achievements(state: AppState) -> List[Achievement]:
    return [a for a in state.progress.achievements if a.is_earned]


def locked_achievements(state: AppState) -> List[Achievement]:
    return [a for a in state.progress.achievements if not a.is_earned]


def daily_summary(state: AppState, today: Optional[date] = None) -> DailySummary:
    today = today or date.today()
    progress = state.progress
    return DailySummary(
        day=today,
        tasks_completed=len(completed_tasks_on(state, today)),
        focus_sessions=len(focus_sessions_on(state, today)),
        pending_tasks=len(pending_tasks(state)),
        unprocessed_entries=len(unprocessed_entries(state)),
        level=progress.level,
        total_points=progress.total_points,
        points_to_next_level=level_progress(progress.total_points).points_to_next_level,
        streak_days=progress.streak_days,
    )
