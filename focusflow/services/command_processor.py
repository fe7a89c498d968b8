"""
Command Processor - the only writer of application state.

``apply(state, command, ctx)`` is synchronous, deterministic for a given
``ProcessorContext`` and total: every known command yields a new state and
anything else returns the input state unchanged.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, Optional

from focusflow.domain.commands import (
    AddBrainDumpEntry,
    AddProject,
    AddTask,
    AddTimerSession,
    Command,
    CompleteTimer,
    DeleteBrainDumpEntry,
    DeleteProject,
    DeleteTask,
    LoadState,
    StartTimer,
    StopTimer,
    TickTimer,
    UpdateBrainDumpEntry,
    UpdateProgress,
    UpdateProject,
    UpdateSettings,
    UpdateTask,
)
from focusflow.domain.models import AppState, TaskStatus, TimerPhase, TimerSession, TimerType
from focusflow.services import progress_engine, timer_machine

logger = logging.getLogger(__name__)


def _uuid() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class ProcessorContext:
    """Sources of time and identity. Inject fixed ones for reproducible runs."""
    now: Callable[[], datetime] = datetime.now
    new_id: Callable[[], str] = field(default=_uuid)


DEFAULT_CONTEXT = ProcessorContext()


def apply(state: AppState, command: Command, ctx: Optional[ProcessorContext] = None) -> AppState:
    """Compute the state that follows ``command``."""
    handler = _HANDLERS.get(type(command))
    if handler is None:
        logger.debug(f"Ignoring unrecognized command: {command!r}")
        return state
    return handler(state, command, ctx or DEFAULT_CONTEXT)


# Tasks

def _add_task(state: AppState, cmd: AddTask, ctx: ProcessorContext) -> AppState:
    return state.model_copy(update={"tasks": state.tasks + (cmd.task,)})


def _update_task(state: AppState, cmd: UpdateTask, ctx: ProcessorContext) -> AppState:
    current = state.find_task(cmd.task_id)
    if current is None:
        return state

    updates = cmd.changes.as_update()
    new_status = updates.get("status", current.status)
    completing = new_status == TaskStatus.COMPLETED and not current.is_completed
    now = ctx.now() if completing else None

    if new_status == TaskStatus.COMPLETED:
        if updates.get("completed_at") is None:
            updates["completed_at"] = current.completed_at or now
    else:
        updates["completed_at"] = None

    updated = current.model_copy(update=updates)
    tasks = tuple(updated if t.id == current.id else t for t in state.tasks)
    progress = state.progress
    if completing:
        progress = progress_engine.award(
            progress,
            points=progress_engine.points_for_task(current),
            tasks=1,
            now=now,
        )
    return state.model_copy(update={"tasks": tasks, "progress": progress})


def _delete_task(state: AppState, cmd: DeleteTask, ctx: ProcessorContext) -> AppState:
    return state.model_copy(update={"tasks": tuple(t for t in state.tasks if t.id != cmd.task_id)})


# Projects

def _add_project(state: AppState, cmd: AddProject, ctx: ProcessorContext) -> AppState:
    return state.model_copy(update={"projects": state.projects + (cmd.project,)})


def _update_project(state: AppState, cmd: UpdateProject, ctx: ProcessorContext) -> AppState:
    updates = cmd.changes.as_update()
    projects = tuple(
        p.model_copy(update=updates) if p.id == cmd.project_id else p
        for p in state.projects
    )
    return state.model_copy(update={"projects": projects})


def _delete_project(state: AppState, cmd: DeleteProject, ctx: ProcessorContext) -> AppState:
    # Tasks survive the project; they just lose the reference.
    tasks = tuple(
        t.model_copy(update={"project_id": None}) if t.project_id == cmd.project_id else t
        for t in state.tasks
    )
    projects = tuple(p for p in state.projects if p.id != cmd.project_id)
    return state.model_copy(update={"projects": projects, "tasks": tasks})


# Brain dump

def _add_entry(state: AppState, cmd: AddBrainDumpEntry, ctx: ProcessorContext) -> AppState:
    return state.model_copy(update={"brain_dump_entries": state.brain_dump_entries + (cmd.entry,)})


def _update_entry(state: AppState, cmd: UpdateBrainDumpEntry, ctx: ProcessorContext) -> AppState:
    updates = cmd.changes.as_update()
    entries = tuple(
        e.model_copy(update=updates) if e.id == cmd.entry_id else e
        for e in state.brain_dump_entries
    )
    return state.model_copy(update={"brain_dump_entries": entries})


def _delete_entry(state: AppState, cmd: DeleteBrainDumpEntry, ctx: ProcessorContext) -> AppState:
    entries = tuple(e for e in state.brain_dump_entries if e.id != cmd.entry_id)
    return state.model_copy(update={"brain_dump_entries": entries})


# Settings and progress

def _update_settings(state: AppState, cmd: UpdateSettings, ctx: ProcessorContext) -> AppState:
    settings = state.settings.model_copy(update=cmd.changes.as_update())
    return state.model_copy(update={"settings": settings})


def _update_progress(state: AppState, cmd: UpdateProgress, ctx: ProcessorContext) -> AppState:
    progress = state.progress.model_copy(update=cmd.changes.as_update())
    return state.model_copy(update={"progress": progress_engine.recompute(progress, ctx.now())})


def _log_session(state: AppState, session: TimerSession) -> AppState:
    progress = state.progress
    if session.type == TimerType.FOCUS and session.was_completed:
        progress = progress_engine.award(
            progress,
            points=progress_engine.points_for_focus_session(),
            focus_sessions=1,
            now=session.completed_at,
        )
    return state.model_copy(update={
        "timer_sessions": state.timer_sessions + (session,),
        "progress": progress,
    })


def _add_timer_session(state: AppState, cmd: AddTimerSession, ctx: ProcessorContext) -> AppState:
    return _log_session(state, cmd.session)


# Timer

def _resolve(state: AppState, ctx: ProcessorContext) -> AppState:
    """Log the current run if it has just expired. Safe to call on any state."""
    if state.current_timer.phase != TimerPhase.EXPIRED:
        return state
    idle, session = timer_machine.resolve_expiry(
        state.current_timer, state.settings, ctx.now(), ctx.new_id()
    )
    if session is None:
        return state
    state = state.model_copy(update={"current_timer": idle})
    logger.info(f"{session.type.value} session completed ({session.duration} min)")
    return _log_session(state, session)


def _start_timer(state: AppState, cmd: StartTimer, ctx: ProcessorContext) -> AppState:
    timer = timer_machine.start(state.current_timer, cmd.type, cmd.duration_minutes, cmd.task_id)
    return _resolve(state.model_copy(update={"current_timer": timer}), ctx)


def _stop_timer(state: AppState, cmd: StopTimer, ctx: ProcessorContext) -> AppState:
    # An expired run is logged before anything is paused
    state = _resolve(state, ctx)
    timer = timer_machine.stop(state.current_timer)
    if timer is state.current_timer:
        return state
    return state.model_copy(update={"current_timer": timer})


def _tick_timer(state: AppState, cmd: TickTimer, ctx: ProcessorContext) -> AppState:
    timer = timer_machine.tick(state.current_timer)
    if timer is not state.current_timer:
        state = state.model_copy(update={"current_timer": timer})
    return _resolve(state, ctx)


def _complete_timer(state: AppState, cmd: CompleteTimer, ctx: ProcessorContext) -> AppState:
    return _resolve(state, ctx)


# Boot

def _load_state(state: AppState, cmd: LoadState, ctx: ProcessorContext) -> AppState:
    return cmd.state


_HANDLERS: Dict[type, Callable[[AppState, object, ProcessorContext], AppState]] = {
    AddTask: _add_task,
    UpdateTask: _update_task,
    DeleteTask: _delete_task,
    AddProject: _add_project,
    UpdateProject: _update_project,
    DeleteProject: _delete_project,
    AddBrainDumpEntry: _add_entry,
    UpdateBrainDumpEntry: _update_entry,
    DeleteBrainDumpEntry: _delete_entry,
    UpdateSettings: _update_settings,
    UpdateProgress: _update_progress,
    AddTimerSession: _add_timer_session,
    StartTimer: _start_timer,
    StopTimer: _stop_timer,
    TickTimer: _tick_timer,
    CompleteTimer: _complete_timer,
    LoadState: _load_state,
}
