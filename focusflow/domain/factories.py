"""
Constructors used by collaborators before a command is built.

Input validation lives here, not in the command processor: an empty title is
rejected with ``ValueError`` and no command is ever created for it.
"""

import re
import uuid
from datetime import datetime
from typing import Iterable, Optional

from focusflow.domain.models import BrainDumpEntry, Priority, Project, Subtask, Task

HASHTAG_PATTERN = re.compile(r"#(\w+)")


def new_id() -> str:
    return uuid.uuid4().hex


def _require_text(value: str, field: str) -> str:
    if value is None or not value.strip():
        raise ValueError(f"{field} must not be empty")
    return value.strip()


def extract_hashtags(text: str) -> frozenset:
    """Lower-cased hashtags found in ``text`` (``#Idea`` -> ``idea``)."""
    return frozenset(match.lower() for match in HASHTAG_PATTERN.findall(text))


def new_subtask(title: str, now: Optional[datetime] = None) -> Subtask:
    return Subtask(
        id=new_id(),
        title=_require_text(title, "Subtask title"),
        created_at=now or datetime.now(),
    )


def new_task(
    title: str,
    priority: Priority = Priority.MEDIUM,
    description: Optional[str] = None,
    project_id: Optional[str] = None,
    subtasks: Iterable[str] = (),
    tags: Iterable[str] = (),
    estimated_minutes: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Task:
    """
    Build a pending task.

    Args:
        title: Task title, must contain non-whitespace text
        subtasks: Subtask titles, in order
        tags: Free-form tags, stored lower-cased

    Raises:
        ValueError: if the title or a subtask title is empty
    """
    now = now or datetime.now()
    if estimated_minutes is not None and estimated_minutes < 0:
        raise ValueError("Estimated minutes must not be negative")
    return Task(
        id=new_id(),
        title=_require_text(title, "Task title"),
        description=(description or "").strip() or None,
        priority=priority,
        project_id=project_id,
        subtasks=tuple(new_subtask(s, now) for s in subtasks),
        estimated_minutes=estimated_minutes,
        created_at=now,
        tags=frozenset(t.strip().lower() for t in tags if t.strip()),
    )


def new_project(
    name: str,
    description: Optional[str] = None,
    color: str = "#3b82f6",
    now: Optional[datetime] = None,
) -> Project:
    return Project(
        id=new_id(),
        name=_require_text(name, "Project name"),
        description=(description or "").strip() or None,
        color=color,
        created_at=now or datetime.now(),
    )


def new_brain_dump_entry(content: str, now: Optional[datetime] = None) -> BrainDumpEntry:
    """Capture a thought; hashtags in the text become its tags."""
    content = _require_text(content, "Entry")
    return BrainDumpEntry(
        id=new_id(),
        content=content,
        created_at=now or datetime.now(),
        tags=extract_hashtags(content),
    )
