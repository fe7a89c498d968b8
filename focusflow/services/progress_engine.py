"""
Progress Engine - points, levels and achievements.

Every function here is pure: same input, same output, no I/O. The only
source of time is the ``now`` argument, which defaults to ``datetime.now()``.
"""

from datetime import datetime
from typing import Iterable, NamedTuple, Optional, Tuple

from focusflow.domain.models import (
    Achievement,
    Priority,
    RequirementKind,
    Task,
    UserProgress,
)

BASE_TASK_POINTS = 5
PRIORITY_BONUS = {
    Priority.HIGH: 5,
    Priority.MEDIUM: 2,
    Priority.LOW: 0,
}
FOCUS_SESSION_POINTS = 10
POINTS_PER_LEVEL = 100


class LevelProgress(NamedTuple):
    level: int
    points_into_level: int
    points_to_next_level: int
    percent: float


def points_for_task(task: Task) -> int:
    """Base 5, plus a priority bonus, plus one per subtask (done or not)."""
    return BASE_TASK_POINTS + PRIORITY_BONUS[task.priority] + len(task.subtasks)


def points_for_focus_session() -> int:
    return FOCUS_SESSION_POINTS


def level_for_points(total_points: int) -> int:
    return total_points // POINTS_PER_LEVEL + 1


def level_progress(total_points: int) -> LevelProgress:
    """How far the user is into the current level."""
    into = total_points % POINTS_PER_LEVEL
    return LevelProgress(
        level=level_for_points(total_points),
        points_into_level=into,
        points_to_next_level=POINTS_PER_LEVEL - into,
        percent=into / POINTS_PER_LEVEL * 100,
    )


def metric_value(progress: UserProgress, kind: RequirementKind) -> int:
    if kind == RequirementKind.TASKS_COMPLETED:
        return progress.tasks_completed
    if kind == RequirementKind.FOCUS_SESSIONS:
        return progress.focus_sessions_completed
    if kind == RequirementKind.STREAK_DAYS:
        return progress.streak_days
    if kind == RequirementKind.PROJECT_COMPLETED:
        return progress.projects_completed
    raise ValueError(f"Unknown requirement kind: {kind}")


def evaluate_achievements(
    progress: UserProgress,
    achievements: Iterable[Achievement],
    now: Optional[datetime] = None,
) -> Tuple[Achievement, ...]:
    """
    Stamp every unearned achievement whose metric has reached its target.

    Earned achievements are returned untouched: they are never re-checked,
    re-stamped or cleared, even if the metric has since gone down.
    """
    now = now or datetime.now()
    result = []
    for achievement in achievements:
        if not achievement.is_earned:
            req = achievement.requirement
            if metric_value(progress, req.kind) >= req.target:
                achievement = achievement.model_copy(update={"earned_at": now})
        result.append(achievement)
    return tuple(result)


def recompute(progress: UserProgress, now: Optional[datetime] = None) -> UserProgress:
    """Re-derive the level from points and re-run achievement evaluation."""
    progress = progress.model_copy(update={"level": level_for_points(progress.total_points)})
    return progress.model_copy(
        update={"achievements": evaluate_achievements(progress, progress.achievements, now)}
    )


def award(
    progress: UserProgress,
    points: int = 0,
    tasks: int = 0,
    focus_sessions: int = 0,
    now: Optional[datetime] = None,
) -> UserProgress:
    """
    Add points and bump counters, then recompute level and achievements.

    This is the only path through which ``total_points`` grows.
    """
    progress = progress.model_copy(update={
        "total_points": progress.total_points + points,
        "tasks_completed": progress.tasks_completed + tasks,
        "focus_sessions_completed": progress.focus_sessions_completed + focus_sessions,
    })
    return recompute(progress, now)


def newly_earned(before: UserProgress, after: UserProgress) -> Tuple[Achievement, ...]:
    """Achievements earned in ``after`` that were not earned in ``before``."""
    earned_before = {a.id for a in before.achievements if a.is_earned}
    return tuple(a for a in after.achievements if a.is_earned and a.id not in earned_before)
