"""
Report statistics for the daily/weekly progress notifications.

Everything here is a pure function of its input. "now" is always passed in
by the caller so reports can be regenerated for a fixed point in time.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List, Optional
from constants import TaskStatus
from models.report import ProgressSnapshot
from models.task import TaskSummary


@dataclass(frozen=True)
class ProgressStats:
    completed: int
    pending: int
    blockers: int
    total: int
    overdue_count: int
    carried_over_count: int
    completion_rate: int


def _as_utc(value: datetime) -> datetime:
    # Naive datetimes coming from the ORM are UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_overdue(task: TaskSummary, now: datetime) -> bool:
    """A task is overdue when it is not completed and its deadline is strictly before now."""
    if task.status == TaskStatus.COMPLETED or task.deadline is None:
        return False
    return _as_utc(task.deadline) < _as_utc(now)


def is_carried_over(task: TaskSummary) -> bool:
    # Only subtask blocker reasons count; the task's own blocker_reason is ignored.
    if task.status != TaskStatus.BLOCKER:
        return False
    return any(subtask.blocker_reason for subtask in task.subtasks)


def overdue_count(tasks: Iterable[TaskSummary], now: datetime) -> int:
    return sum(1 for task in tasks if is_overdue(task, now))


def carried_over_count(tasks: Iterable[TaskSummary]) -> int:
    return sum(1 for task in tasks if is_carried_over(task))


def completion_rate(completed: int, total: int) -> int:
    """Percentage of completed tasks, rounded half-up, within [0, 100]."""
    if total <= 0:
        return 0
    completed = max(0, min(completed, total))
    # Integer form of floor(completed * 100 / total + 0.5)
    return (completed * 200 + total) // (2 * total)


def build_progress_snapshot(tasks: Optional[Iterable[TaskSummary]]) -> ProgressSnapshot:
    """Count a user's tasks by status. Task order is preserved."""
    task_list: List[TaskSummary] = list(tasks or [])
    completed = sum(1 for t in task_list if t.status == TaskStatus.COMPLETED)
    pending = sum(1 for t in task_list if t.status in TaskStatus.PENDING)
    blockers = sum(1 for t in task_list if t.status == TaskStatus.BLOCKER)
    return ProgressSnapshot(completed=completed, pending=pending, blockers=blockers, tasks=task_list)


def summarize_progress(snapshot: ProgressSnapshot, now: datetime) -> ProgressStats:
    """Derive the report figures for a snapshot. Recomputed on every call."""
    total = len(snapshot.tasks)
    return ProgressStats(
        completed=snapshot.completed,
        pending=snapshot.pending,
        blockers=snapshot.blockers,
        total=total,
        overdue_count=overdue_count(snapshot.tasks, now),
        carried_over_count=carried_over_count(snapshot.tasks),
        completion_rate=completion_rate(snapshot.completed, total),
    )
