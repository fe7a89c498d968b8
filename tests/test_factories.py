"""
Tests for the entity constructors.
"""

from datetime import datetime

import pytest

from focusflow.domain.factories import (
    extract_hashtags,
    new_brain_dump_entry,
    new_project,
    new_task,
)
from focusflow.domain.models import Priority, TaskStatus

NOW = datetime(2026, 3, 2, 9, 0)


def test_new_task_defaults():
    task = new_task("  Write report ", now=NOW)

    assert task.title == "Write report"
    assert task.priority == Priority.MEDIUM
    assert task.status == TaskStatus.PENDING
    assert task.created_at == NOW
    assert task.completed_at is None
    assert task.id


def test_new_task_with_subtasks_and_tags():
    task = new_task("Ship", priority=Priority.HIGH, subtasks=["Build", "Test"],
                    tags=["Release", " ", "q1"], now=NOW)

    assert [s.title for s in task.subtasks] == ["Build", "Test"]
    assert not any(s.completed for s in task.subtasks)
    assert task.tags == frozenset({"release", "q1"})


def test_ids_are_unique():
    assert new_task("a").id != new_task("a").id


@pytest.mark.parametrize("title", ["", "   ", "\n\t"])
def test_blank_task_title_is_rejected(title):
    with pytest.raises(ValueError, match="must not be empty"):
        new_task(title)


def test_blank_subtask_is_rejected():
    with pytest.raises(ValueError):
        new_task("Ship", subtasks=["Build", ""])


def test_negative_estimate_is_rejected():
    with pytest.raises(ValueError):
        new_task("Ship", estimated_minutes=-5)


def test_new_project():
    project = new_project("Website", description="", now=NOW)

    assert project.name == "Website"
    assert project.description is None
    assert project.color == "#3b82f6"
    assert project.completed_tasks == 0
    assert project.total_tasks == 0

    with pytest.raises(ValueError):
        new_project(" ")


def test_hashtags_are_extracted_lowercased():
    assert extract_hashtags("Try #Idea and #work_item, not # this") == frozenset({"idea", "work_item"})
    assert extract_hashtags("no tags") == frozenset()


def test_new_brain_dump_entry():
    entry = new_brain_dump_entry("Learn #Rust over the #weekend", now=NOW)

    assert entry.content == "Learn #Rust over the #weekend"
    assert entry.tags == frozenset({"rust", "weekend"})
    assert entry.processed is False
    assert entry.created_at == NOW

    with pytest.raises(ValueError):
        new_brain_dump_entry("   ")
