"""
Domain Models using Pydantic for validation.

Architecture Decision: Why frozen Pydantic models?
Every record is an immutable value. The command processor is the only writer
of application state and it always builds new records with ``model_copy``,
so nothing can mutate a task or an achievement behind its back. Pydantic also
gives us JSON serialization with ISO-8601 datetimes that re-hydrate into real
``datetime`` objects on load.
"""

from datetime import date, datetime
from enum import Enum
from typing import FrozenSet, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class TimerType(str, Enum):
    FOCUS = "focus"
    SHORT_BREAK = "short-break"
    LONG_BREAK = "long-break"


class RequirementKind(str, Enum):
    TASKS_COMPLETED = "tasks_completed"
    FOCUS_SESSIONS = "focus_sessions"
    STREAK_DAYS = "streak_days"
    PROJECT_COMPLETED = "project_completed"


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"


class TimerPhase(str, Enum):
    """Observable phase of the countdown machine."""
    IDLE = "idle"
    RUNNING = "running"
    EXPIRED = "expired"


class Subtask(BaseModel):
    """A checklist item owned by exactly one Task."""
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    completed: bool = False
    created_at: datetime = Field(default_factory=datetime.now)


class Task(BaseModel):
    """
    Represents a unit of work.

    ``completed_at`` is present exactly when ``status`` is completed. The
    command processor keeps that pairing when a status update comes in.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: Optional[str] = None
    priority: Priority = Priority.MEDIUM
    status: TaskStatus = TaskStatus.PENDING
    project_id: Optional[str] = None
    subtasks: Tuple[Subtask, ...] = ()
    estimated_minutes: Optional[int] = None
    actual_minutes: Optional[int] = None
    created_at: datetime = Field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None
    tags: FrozenSet[str] = frozenset()

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED


class Project(BaseModel):
    """A named group of tasks. Task counts are denormalized and caller-maintained."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: Optional[str] = None
    color: str = "#3b82f6"
    created_at: datetime = Field(default_factory=datetime.now)
    completed_tasks: int = 0
    total_tasks: int = 0


class TimerSession(BaseModel):
    """
    One finished countdown run.

    Sessions are only ever appended to the log; ``duration`` is the
    configured length for the session type in minutes, not elapsed time.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    task_id: Optional[str] = None
    type: TimerType
    duration: int
    completed_at: datetime
    was_completed: bool = True


class AchievementRequirement(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: RequirementKind
    target: int = Field(..., ge=0)


class Achievement(BaseModel):
    """An entry of the fixed achievement catalog. Earned at most once."""
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str
    icon_name: str
    earned_at: Optional[datetime] = None
    requirement: AchievementRequirement

    @property
    def is_earned(self) -> bool:
        return self.earned_at is not None


def _req(kind: RequirementKind, target: int) -> AchievementRequirement:
    return AchievementRequirement(kind=kind, target=target)


DEFAULT_ACHIEVEMENTS: Tuple[Achievement, ...] = (
    Achievement(
        id="first-task",
        title="Getting Started",
        description="Complete your first task",
        icon_name="Trophy",
        requirement=_req(RequirementKind.TASKS_COMPLETED, 1),
    ),
    Achievement(
        id="task-master-10",
        title="Task Master",
        description="Complete 10 tasks",
        icon_name="Star",
        requirement=_req(RequirementKind.TASKS_COMPLETED, 10),
    ),
    Achievement(
        id="focus-warrior-5",
        title="Focus Warrior",
        description="Complete 5 focus sessions",
        icon_name="Target",
        requirement=_req(RequirementKind.FOCUS_SESSIONS, 5),
    ),
    Achievement(
        id="streak-champion",
        title="Streak Champion",
        description="Maintain a 7-day streak",
        icon_name="Flame",
        requirement=_req(RequirementKind.STREAK_DAYS, 7),
    ),
    Achievement(
        id="project-finisher",
        title="Project Finisher",
        description="Complete your first project",
        icon_name="CheckCircle",
        requirement=_req(RequirementKind.PROJECT_COMPLETED, 1),
    ),
)


class UserProgress(BaseModel):
    """
    Gamification counters.

    ``level`` is a projection of ``total_points``. Only the progress engine
    writes it, and always from ``level_for_points``.
    """
    model_config = ConfigDict(frozen=True)

    total_points: int = 0
    level: int = 1
    streak_days: int = 0
    last_active_date: Optional[date] = None
    tasks_completed: int = 0
    focus_sessions_completed: int = 0
    projects_completed: int = 0
    achievements: Tuple[Achievement, ...] = DEFAULT_ACHIEVEMENTS


class BrainDumpEntry(BaseModel):
    """A quickly captured thought, tagged by the hashtags it contains."""
    model_config = ConfigDict(frozen=True)

    id: str
    content: str
    created_at: datetime = Field(default_factory=datetime.now)
    tags: FrozenSet[str] = frozenset()
    processed: bool = False


class AppSettings(BaseModel):
    """
    User-facing preferences stored with the application state.

    Not to be confused with ``focusflow.infra.config.Settings`` which
    configures the process (paths, database, logging).
    """
    model_config = ConfigDict(frozen=True)

    pomodoro_minutes: int = Field(default=25, ge=1, description="Focus session length")
    short_break_minutes: int = Field(default=5, ge=1, description="Short break length")
    long_break_minutes: int = Field(default=15, ge=1, description="Long break length")
    theme: Theme = Theme.LIGHT
    notifications_enabled: bool = True
    sound_enabled: bool = True
    passcode: str = "123456"


class ActiveTimer(BaseModel):
    """
    The single countdown of the process.

    ``run_id`` is bumped by every Start. ``resolved_run_id`` remembers which
    run already produced its completion record, so an expired run can never
    be logged twice however often it is observed.
    """
    model_config = ConfigDict(frozen=True)

    is_active: bool = False
    time_left: int = 0
    type: TimerType = TimerType.FOCUS
    task_id: Optional[str] = None
    run_id: int = 0
    resolved_run_id: Optional[int] = None

    @property
    def phase(self) -> TimerPhase:
        if not self.is_active:
            return TimerPhase.IDLE
        if self.time_left > 0:
            return TimerPhase.RUNNING
        return TimerPhase.EXPIRED

    @property
    def is_running(self) -> bool:
        return self.phase == TimerPhase.RUNNING


class AppState(BaseModel):
    """The aggregate root holding every entity and the transient timer."""
    model_config = ConfigDict(frozen=True)

    tasks: Tuple[Task, ...] = ()
    projects: Tuple[Project, ...] = ()
    timer_sessions: Tuple[TimerSession, ...] = ()
    progress: UserProgress = Field(default_factory=UserProgress)
    brain_dump_entries: Tuple[BrainDumpEntry, ...] = ()
    settings: AppSettings = Field(default_factory=AppSettings)
    current_timer: ActiveTimer = Field(default_factory=ActiveTimer)

    def find_task(self, task_id: str) -> Optional[Task]:
        return next((t for t in self.tasks if t.id == task_id), None)


def default_state(settings: Optional[AppSettings] = None) -> AppState:
    """Fresh aggregate with the default achievement catalog."""
    return AppState(settings=settings or AppSettings())
