"""Read-only dashboard rollups.

Every function derives its result from the collection passed in and keeps no
state between calls. Records with an unparseable date still count toward
``total`` but are left out of any date-dependent figure.
"""

from __future__ import annotations

import datetime
from collections import Counter
from collections.abc import Iterable

from .dates import coerce_datetime
from .models import ActivityLogEntry, Project, ProjectStats, Task, TaskStats, TeamStats, User

PROJECT_STATUSES = ("active", "completed", "delayed")
TASK_STATUS_FIELDS = {
    "pending": "pending",
    "in_progress": "in_progress",
    "completed": "completed",
}


def project_stats(projects: Iterable[Project]) -> ProjectStats:
    counts: Counter[str] = Counter()
    total = 0
    for project in projects:
        total += 1
        if project.status in PROJECT_STATUSES:
            counts[project.status] += 1
    return ProjectStats(total=total, **{s: counts[s] for s in PROJECT_STATUSES})


def is_overdue(task: Task, now: datetime.datetime) -> bool:
    """A task is overdue when due strictly before ``now`` and not completed.

    This is a derived view; the stored status is never touched.
    """
    if task.status == "completed":
        return False
    due = coerce_datetime(task.due_date)
    return due is not None and due < now


def task_stats(tasks: Iterable[Task], now: datetime.datetime | None = None) -> TaskStats:
    current = coerce_datetime(now) if now is not None else None
    if current is None:
        current = datetime.datetime.now(tz=datetime.UTC)

    stats = TaskStats()
    for task in tasks:
        stats.total += 1
        attr = TASK_STATUS_FIELDS.get(task.status)
        if attr is not None:
            setattr(stats, attr, getattr(stats, attr) + 1)
        if is_overdue(task, current):
            stats.overdue += 1
    return stats


def team_stats(users: Iterable[User]) -> TeamStats:
    """Member count, summed project counters and distributions.

    ``active_projects`` adds up each user's own counter field; it is not a
    deduplicated count of projects and is independent of ``Project.team``.
    """
    departments: Counter[str] = Counter()
    roles: Counter[str] = Counter()
    members = 0
    active = 0
    for user in users:
        members += 1
        if user.department:
            departments[user.department] += 1
        for role in user.roles:
            roles[role] += 1
        active += user.active_projects
    return TeamStats(
        total_members=members,
        active_projects=active,
        department_distribution=dict(departments),
        role_distribution=dict(roles),
    )


def recent_activity(
    entries: Iterable[ActivityLogEntry], limit: int = 10
) -> list[ActivityLogEntry]:
    """The ``limit`` most recent entries, newest first.

    Ties keep the order the entries were supplied in. Entries whose
    timestamp cannot be read are omitted.
    """
    if limit <= 0:
        return []
    dated = []
    for entry in entries:
        ts = coerce_datetime(entry.created_at)
        if ts is not None:
            dated.append((ts, entry))
    dated.sort(key=lambda pair: pair[0], reverse=True)
    return [entry for _, entry in dated[:limit]]
