"""Merge tasks and projects into one ordered calendar event sequence."""

from __future__ import annotations

from collections.abc import Iterable

from .dates import coerce_datetime
from .models import (
    CalendarEvent,
    Project,
    ProjectEventDetails,
    Task,
    TaskEventDetails,
)


def task_event(task: Task) -> CalendarEvent | None:
    start = coerce_datetime(task.due_date)
    if start is None:
        return None
    return CalendarEvent(
        id=task.id,
        title=task.title,
        start=start,
        all_day=True,
        details=TaskEventDetails(
            status=task.status,
            assignee=task.assigned_to,
            description=task.description,
        ),
    )


def project_event(project: Project) -> CalendarEvent | None:
    start = coerce_datetime(project.deadline)
    if start is None:
        return None
    return CalendarEvent(
        id=project.id,
        title=project.name,
        start=start,
        all_day=True,
        details=ProjectEventDetails(
            status=project.status, description=project.description
        ),
    )


def project_calendar(
    tasks: Iterable[Task], projects: Iterable[Project]
) -> list[CalendarEvent]:
    """All-day events for every dated task and project, earliest first.

    Records without a readable date are skipped. Events sharing a start date
    keep their input order, tasks before projects.
    """
    events: list[CalendarEvent] = []
    for task in tasks:
        event = task_event(task)
        if event is not None:
            events.append(event)
    for project in projects:
        event = project_event(project)
        if event is not None:
            events.append(event)
    events.sort(key=lambda e: e.start)
    return events
