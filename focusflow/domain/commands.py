"""
Commands accepted by the command processor.

A command is a named request to change the application state. Payloads are
trusted: collaborators validate user input (see ``factories``) before a
command is ever built. ``*Changes`` models carry partial updates; only the
fields that were explicitly set are applied.
"""

from datetime import date, datetime
from typing import FrozenSet, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from focusflow.domain.models import (
    AppState,
    BrainDumpEntry,
    Priority,
    Project,
    Subtask,
    Task,
    TaskStatus,
    Theme,
    TimerSession,
    TimerType,
)


class _Command(BaseModel):
    model_config = ConfigDict(frozen=True)


class _Changes(BaseModel):
    model_config = ConfigDict(frozen=True)

    def as_update(self) -> dict:
        """Fields explicitly set by the caller, ready for ``model_copy(update=...)``."""
        return {name: getattr(self, name) for name in self.model_fields_set}


# Partial updates

class TaskChanges(_Changes):
    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[Priority] = None
    status: Optional[TaskStatus] = None
    project_id: Optional[str] = None
    subtasks: Optional[Tuple[Subtask, ...]] = None
    estimated_minutes: Optional[int] = None
    actual_minutes: Optional[int] = None
    completed_at: Optional[datetime] = None
    tags: Optional[FrozenSet[str]] = None


class ProjectChanges(_Changes):
    name: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None
    completed_tasks: Optional[int] = None
    total_tasks: Optional[int] = None


class BrainDumpChanges(_Changes):
    content: Optional[str] = None
    tags: Optional[FrozenSet[str]] = None
    processed: Optional[bool] = None


class SettingsChanges(_Changes):
    pomodoro_minutes: Optional[int] = Field(default=None, ge=1)
    short_break_minutes: Optional[int] = Field(default=None, ge=1)
    long_break_minutes: Optional[int] = Field(default=None, ge=1)
    theme: Optional[Theme] = None
    notifications_enabled: Optional[bool] = None
    sound_enabled: Optional[bool] = None
    passcode: Optional[str] = None


class ProgressChanges(_Changes):
    """
    Counters maintained outside the core (streak, project completions).

    Points, level and achievements are absent: only the progress engine
    changes them.
    """
    streak_days: Optional[int] = Field(default=None, ge=0)
    last_active_date: Optional[date] = None
    projects_completed: Optional[int] = Field(default=None, ge=0)


# Tasks

class AddTask(_Command):
    task: Task


class UpdateTask(_Command):
    task_id: str
    changes: TaskChanges


class DeleteTask(_Command):
    task_id: str


# Projects

class AddProject(_Command):
    project: Project


class UpdateProject(_Command):
    project_id: str
    changes: ProjectChanges


class DeleteProject(_Command):
    project_id: str


# Brain dump

class AddBrainDumpEntry(_Command):
    entry: BrainDumpEntry


class UpdateBrainDumpEntry(_Command):
    entry_id: str
    changes: BrainDumpChanges


class DeleteBrainDumpEntry(_Command):
    entry_id: str


# Settings and progress

class UpdateSettings(_Command):
    changes: SettingsChanges


class UpdateProgress(_Command):
    changes: ProgressChanges


class AddTimerSession(_Command):
    """Log a session recorded elsewhere (e.g. imported). Rewards like a natural expiry."""
    session: TimerSession


# Timer

class StartTimer(_Command):
    type: TimerType
    duration_minutes: int = Field(..., ge=0)
    task_id: Optional[str] = None


class StopTimer(_Command):
    pass


class TickTimer(_Command):
    pass


class CompleteTimer(_Command):
    """Observe the timer and resolve it if it has expired."""


# Boot

class LoadState(_Command):
    """Replace the aggregate wholesale. The loaded state is trusted as consistent."""
    state: AppState


Command = Union[
    AddTask, UpdateTask, DeleteTask,
    AddProject, UpdateProject, DeleteProject,
    AddBrainDumpEntry, UpdateBrainDumpEntry, DeleteBrainDumpEntry,
    UpdateSettings, UpdateProgress, AddTimerSession,
    StartTimer, StopTimer, TickTimer, CompleteTimer,
    LoadState,
]
