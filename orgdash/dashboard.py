"""Dashboard and calendar queries over fresh store snapshots."""

from __future__ import annotations

import asyncio
import datetime
import logging
from collections.abc import Iterable
from typing import Any, TypeVar

import pydantic
from pydantic import Field

from .adapters.base import ACTIVITY_LOGS, PROJECTS, TASKS, USERS, DocumentStore, Query
from .core import calendar, stats
from .core.models import (
    ActivityLogEntry,
    CalendarEvent,
    Project,
    ProjectStats,
    StatsModel,
    Task,
    TaskStats,
    TeamStats,
    User,
)

log = logging.getLogger("orgdash.dashboard")

M = TypeVar("M", bound=pydantic.BaseModel)


def _salvage(model: type[M], doc: dict[str, Any], exc: pydantic.ValidationError) -> M:
    """Rebuild ``doc`` with only the fields that failed validation reset.

    A reset field is left empty rather than defaulted, so a user whose roles
    could not be read does not gain the default ``member`` role.
    """
    failed = {str(err["loc"][0]) for err in exc.errors() if err.get("loc")}
    fields = model.model_fields
    names = {
        name
        for name, info in fields.items()
        if name in failed or info.alias in failed
    }
    if "roles" in names:
        failed.add("role")
    kept = {k: v for k, v in doc.items() if k not in failed and k not in names}
    try:
        record = model.model_validate(kept)
    except pydantic.ValidationError:
        record = model.model_construct(id=str(doc.get("id", "")))
        names = {"roles"} & set(fields)
    if "roles" in names:
        setattr(record, "roles", [])
    return record


def _records(model: type[M], docs: Iterable[dict[str, Any]]) -> list[M]:
    """Validate documents, salvaging what can be read from malformed ones.

    A document that fails validation still takes part in totals and in
    every figure its readable fields support.
    """
    records = []
    for doc in docs:
        try:
            records.append(model.model_validate(doc))
        except pydantic.ValidationError as exc:
            log.warning("Malformed %s document %s", model.__name__, doc.get("id"))
            records.append(_salvage(model, doc, exc))
    return records


class DashboardSummary(StatsModel):
    project_stats: ProjectStats
    task_stats: TaskStats
    team_stats: TeamStats
    recent_activity: list[ActivityLogEntry] = Field(default_factory=list)


class Dashboard:
    """Read-only aggregate queries.

    Each query fetches its own snapshot, so independent queries may run
    concurrently without sharing state.
    """

    def __init__(self, store: DocumentStore, activity_limit: int = 10) -> None:
        self.store = store
        self.activity_limit = activity_limit

    async def project_stats(self) -> ProjectStats:
        docs = await self.store.fetch(PROJECTS)
        return stats.project_stats(_records(Project, docs))

    async def task_stats(self, now: datetime.datetime | None = None) -> TaskStats:
        docs = await self.store.fetch(TASKS)
        return stats.task_stats(_records(Task, docs), now)

    async def team_stats(self) -> TeamStats:
        docs = await self.store.fetch(USERS)
        return stats.team_stats(_records(User, docs))

    async def recent_activity(self, limit: int | None = None) -> list[ActivityLogEntry]:
        docs = await self.store.fetch(
            ACTIVITY_LOGS, Query(order_by="created_at", descending=True)
        )
        return stats.recent_activity(
            _records(ActivityLogEntry, docs),
            self.activity_limit if limit is None else limit,
        )

    async def summary(self, now: datetime.datetime | None = None) -> DashboardSummary:
        projects, tasks, team, activity = await asyncio.gather(
            self.project_stats(),
            self.task_stats(now),
            self.team_stats(),
            self.recent_activity(),
        )
        return DashboardSummary(
            project_stats=projects,
            task_stats=tasks,
            team_stats=team,
            recent_activity=activity,
        )

    async def calendar(self) -> list[CalendarEvent]:
        task_docs, project_docs = await asyncio.gather(
            self.store.fetch(TASKS, Query(order_by="due_date")),
            self.store.fetch(PROJECTS, Query(order_by="deadline")),
        )
        return calendar.project_calendar(
            _records(Task, task_docs), _records(Project, project_docs)
        )
