"""Domain layer - Pure business entities and commands"""

from .models import (
    AppSettings,
    AppState,
    ActiveTimer,
    Achievement,
    BrainDumpEntry,
    Project,
    Subtask,
    Task,
    TimerSession,
    UserProgress,
    default_state,
)

__all__ = [
    "AppSettings", "AppState", "ActiveTimer", "Achievement", "BrainDumpEntry",
    "Project", "Subtask", "Task", "TimerSession", "UserProgress", "default_state",
]
