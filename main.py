#!/usr/bin/env python

"""
FocusFlow - Main Entry Point

Tasks, a Pomodoro focus timer, brain dump capture and progress tracking with
points, levels and achievements.

Usage:
    python main.py status
    python main.py add-task "Write report" --priority high --subtask Outline
    python main.py complete <task-id>
    python main.py focus [--task <task-id>]
    python main.py break [--long | --short]
    python main.py dump "Call the dentist #errands"
    python main.py backup | restore <file>

Requirements:
    - Python 3.12+
    - See pyproject.toml for dependencies
"""

import argparse
import asyncio
import getpass
import sys
from pathlib import Path

from focusflow.domain.commands import AddBrainDumpEntry, AddTask, LoadState
from focusflow.domain.factories import new_brain_dump_entry, new_task
from focusflow.domain.models import Priority, default_state
from focusflow.infra.config import get_settings
from focusflow.infra.db import close_db, init_db
from focusflow.infra.logging_config import setup_logging
from focusflow.infra.repository import SessionStorage, StateRepository
from focusflow.services import AccessGate, BackupService, FocusService
from focusflow.services import queries
from focusflow.services.timer_machine import format_time


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="focusflow", description="FocusFlow productivity tracker")
    parser.add_argument("--passcode", help="Access passcode (prompted when omitted)")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("status", help="Show today's progress")
    sub.add_parser("tasks", help="List pending tasks")

    add = sub.add_parser("add-task", help="Create a task")
    add.add_argument("title")
    add.add_argument("--priority", choices=[p.value for p in Priority], default=Priority.MEDIUM.value)
    add.add_argument("--description")
    add.add_argument("--subtask", action="append", default=[])
    add.add_argument("--tag", action="append", default=[])

    complete = sub.add_parser("complete", help="Mark a task completed")
    complete.add_argument("task_id")

    dump = sub.add_parser("dump", help="Capture a thought")
    dump.add_argument("content")

    focus = sub.add_parser("focus", help="Run a focus session")
    focus.add_argument("--task", dest="task_id")

    brk = sub.add_parser("break", help="Run a break")
    group = brk.add_mutually_exclusive_group()
    group.add_argument("--long", dest="long", action="store_true", default=None)
    group.add_argument("--short", dest="long", action="store_false")

    sub.add_parser("backup", help="Write a JSON backup")
    restore = sub.add_parser("restore", help="Restore a JSON backup")
    restore.add_argument("file", type=Path)

    return parser


def print_status(service: FocusService) -> None:
    summary = queries.daily_summary(service.state)
    print(f"Level {summary.level} - {summary.total_points} points "
          f"({summary.points_to_next_level} to next level)")
    print(f"Today: {summary.tasks_completed} tasks completed, {summary.focus_sessions} focus sessions")
    print(f"Pending tasks: {summary.pending_tasks}, unprocessed ideas: {summary.unprocessed_entries}")
    print(f"Streak: {summary.streak_days} days")
    for achievement in queries.earned_achievements(service.state):
        print(f"  * {achievement.title}: {achievement.description}")


async def run_countdown(service: FocusService) -> None:
    """Block until the current run expires; Ctrl+C pauses it."""
    done = asyncio.Event()
    service.timer_ticked.connect(lambda left: print(f"\r{format_time(left)}", end="", flush=True))
    service.session_completed.connect(lambda session: done.set())
    service.achievement_unlocked.connect(lambda a: print(f"\nAchievement unlocked: {a.title}"))
    service.level_up.connect(lambda level: print(f"\nLevel up! You are now level {level}"))

    timer = service.state.current_timer
    print(f"{timer.type.value} started: {format_time(timer.time_left)}")
    try:
        await done.wait()
        print("\nSession complete!")
    except asyncio.CancelledError:
        service.stop_timer()
        print("\nTimer stopped")
        raise


async def run(args: argparse.Namespace) -> int:
    settings = get_settings()
    setup_logging(settings.get_log_file(), settings.log_level)

    await init_db(settings.get_db_url())
    repo = StateRepository(key=settings.state_key)
    service = FocusService(
        repository=repo,
        tick_interval=settings.tick_interval_seconds,
        initial_state=default_state(settings.defaults),
    )
    await service.boot()

    gate = AccessGate(lambda: service.state.settings, SessionStorage())
    try:
        if settings.require_passcode:
            code = args.passcode if args.passcode is not None else getpass.getpass("Passcode: ")
            if not gate.submit(code):
                print("Incorrect passcode")
                return 1

        if args.command == "status":
            print_status(service)
        elif args.command == "tasks":
            for task in queries.pending_tasks(service.state):
                print(f"{task.id}  [{task.priority.value}] {task.title}")
        elif args.command == "add-task":
            task = new_task(args.title, Priority(args.priority), args.description,
                            subtasks=args.subtask, tags=args.tag)
            service.dispatch(AddTask(task=task))
            print(f"Added task {task.id}")
        elif args.command == "complete":
            if service.state.find_task(args.task_id) is None:
                print(f"Task {args.task_id} not found")
                return 1
            before = service.state.progress.total_points
            service.complete_task(args.task_id)
            print(f"Completed! +{service.state.progress.total_points - before} points")
        elif args.command == "dump":
            entry = new_brain_dump_entry(args.content)
            service.dispatch(AddBrainDumpEntry(entry=entry))
            print(f"Captured ({', '.join(sorted(entry.tags)) or 'no tags'})")
        elif args.command == "focus":
            service.start_focus(args.task_id)
            await run_countdown(service)
        elif args.command == "break":
            service.start_break(args.long)
            await run_countdown(service)
        elif args.command == "backup":
            backups = BackupService(settings.get_backup_dir())
            path = backups.create_backup(service.state)
            backups.cleanup_old_backups(keep_count=settings.backup_retention_count)
            print(f"Backup written to {path}")
        elif args.command == "restore":
            state = BackupService(settings.get_backup_dir()).restore_backup(args.file)
            service.dispatch(LoadState(state=state))
            print("Backup restored")
    except (ValueError, FileNotFoundError) as e:
        print(f"Error: {e}")
        return 1
    finally:
        await service.close()
        await close_db()

    return 0


def main():
    """Main entry point"""
    args = build_parser().parse_args()
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
