"""Data models for the organisational directory and dashboard.

The models are implemented using :mod:`pydantic` so that they provide
runtime validation and convenient serialisation to and from the documents
held by the external store. Directory records (users and teams) are stored
with camelCase keys; the project, task and activity documents written by the
CRUD screens use snake_case keys and are modelled as-is.

Date fields on projects, tasks and activity entries are kept raw and only
interpreted through :func:`orgdash.core.dates.coerce_datetime`, so a record
with an unparseable date still loads and can be counted.
"""

from __future__ import annotations

import datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .roles import MEMBER


def _migrate_single_role(data: Any, default: str | None) -> Any:
    """Wrap a legacy single ``role`` value into a ``roles`` list."""
    if not isinstance(data, dict) or "roles" in data:
        return data
    data = dict(data)
    role = data.pop("role", None)
    if role:
        data["roles"] = [role]
    elif default is not None:
        data["roles"] = [default]
    return data


def _unique_strings(value: Any) -> Any:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple, set, frozenset)):
        return value
    seen: list[str] = []
    for role in value:
        role = str(role).strip()
        if role and role not in seen:
            seen.append(role)
    return seen


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _text(value: Any) -> str:
    """Stored free-text fields: anything that is not a string reads as empty."""
    return value if isinstance(value, str) else ""


class DirectoryModel(BaseModel):
    """Base for camelCase directory documents."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )

    def to_document(self) -> dict[str, Any]:
        """Return the store representation (without the document id)."""
        return self.model_dump(by_alias=True, exclude={"id"})


class User(DirectoryModel):
    """A member of the organisation.

    Attributes
    ----------
    id:
        Directory document id.
    uid:
        Identifier of the matching authentication identity.
    roles:
        Non-empty, duplicate-free list of role identifiers.
    permissions:
        Capability tokens. Derived from ``roles`` unless
        ``permissions_override`` is set.
    reports_to:
        Directory id of this user's direct superior.
    active_projects:
        Free-form per-user counter summed by the team statistics.
    """

    id: str = ""
    uid: str | None = None
    email: str = ""
    full_name: str = ""
    roles: list[str] = Field(default_factory=lambda: [MEMBER])
    department: str | None = None
    status: str = "active"
    permissions: list[str] = Field(default_factory=list)
    permissions_override: bool = False
    reports_to: str | None = None
    active_projects: int = 0
    created_at: Any = None
    updated_at: Any = None
    created_by: str | None = None
    updated_by: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _legacy_role(cls, data: Any) -> Any:
        return _migrate_single_role(data, MEMBER)

    @field_validator("roles", mode="before")
    @classmethod
    def _roles(cls, value: Any) -> Any:
        return _unique_strings(value) or [MEMBER]

    @field_validator("email", "full_name", "status", mode="before")
    @classmethod
    def _free_text(cls, value: Any) -> str:
        return _text(value)

    @field_validator("department", "reports_to", "uid", mode="before")
    @classmethod
    def _blank(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("active_projects", mode="before")
    @classmethod
    def _counter(cls, value: Any) -> int:
        if isinstance(value, bool):
            return 0
        if isinstance(value, (int, float)):
            return int(value)
        try:
            return int(str(value))
        except (TypeError, ValueError):
            return 0


class UserCreate(DirectoryModel):
    """Payload accepted by :meth:`OrgService.create_user`."""

    email: str = Field(min_length=1)
    password: str = Field(min_length=1)
    full_name: str = Field(min_length=1)
    roles: list[str] = Field(min_length=1)
    department: str | None = None
    reports_to: str | None = None
    permissions: list[str] | None = None
    status: Literal["active", "inactive"] = "active"

    @model_validator(mode="before")
    @classmethod
    def _legacy_role(cls, data: Any) -> Any:
        return _migrate_single_role(data, None)

    @field_validator("roles", mode="before")
    @classmethod
    def _roles(cls, value: Any) -> Any:
        return _unique_strings(value)

    @field_validator("email", "full_name", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("department", "reports_to", mode="before")
    @classmethod
    def _blank(cls, value: Any) -> Any:
        return _blank_to_none(value)


class UserUpdate(DirectoryModel):
    """Partial update; only fields explicitly provided are applied."""

    full_name: str | None = None
    roles: list[str] | None = None
    department: str | None = None
    permissions: list[str] | None = None
    status: Literal["active", "inactive"] | None = None
    reports_to: str | None = None
    active_projects: int | None = None

    @model_validator(mode="before")
    @classmethod
    def _legacy_role(cls, data: Any) -> Any:
        return _migrate_single_role(data, None)

    @field_validator("roles", mode="before")
    @classmethod
    def _roles(cls, value: Any) -> Any:
        return None if value is None else _unique_strings(value)

    @field_validator("department", "reports_to", mode="before")
    @classmethod
    def _blank(cls, value: Any) -> Any:
        return _blank_to_none(value)


class Team(DirectoryModel):
    """A department-scoped group with a designated lead."""

    id: str = ""
    name: str = ""
    department: str | None = None
    eligible_roles: list[str] = Field(default_factory=list)
    lead_id: str | None = None
    member_ids: list[str] = Field(default_factory=list)
    created_at: Any = None
    created_by: str | None = None

    @field_validator("eligible_roles", mode="before")
    @classmethod
    def _roles(cls, value: Any) -> Any:
        return _unique_strings(value) if value is not None else []


class TeamCreate(DirectoryModel):
    """Payload accepted by :meth:`OrgService.create_team`."""

    name: str = Field(min_length=1)
    department: str | None = None
    eligible_roles: list[str] = Field(default_factory=list)
    lead_id: str | None = None
    member_ids: list[str] = Field(default_factory=list)

    @field_validator("eligible_roles", "member_ids", mode="before")
    @classmethod
    def _dedupe(cls, value: Any) -> Any:
        return _unique_strings(value) if value is not None else []

    @field_validator("department", "lead_id", mode="before")
    @classmethod
    def _blank(cls, value: Any) -> Any:
        return _blank_to_none(value)


# ----------------------------------------------------------------------
# Records written by the project/task screens


class Project(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = ""
    name: str = ""
    description: str = ""
    status: str = ""
    deadline: Any = None
    team: list[str] = Field(default_factory=list)
    created_by: str | None = None
    created_at: Any = None

    @field_validator("name", "description", "status", mode="before")
    @classmethod
    def _free_text(cls, value: Any) -> str:
        return _text(value)


class Task(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = ""
    title: str = ""
    description: str = ""
    status: str = ""
    due_date: Any = None
    project_id: str | None = None
    assigned_to: str | None = None
    created_by: str | None = None
    created_at: Any = None

    @field_validator("title", "description", "status", mode="before")
    @classmethod
    def _free_text(cls, value: Any) -> str:
        return _text(value)


class ActivityLogEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = ""
    action: str = ""
    entity_type: str = ""
    created_at: Any = None

    @field_validator("action", "entity_type", mode="before")
    @classmethod
    def _free_text(cls, value: Any) -> str:
        return _text(value)


# ----------------------------------------------------------------------
# Derived views


class StatsModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProjectStats(StatsModel):
    total: int = 0
    active: int = 0
    completed: int = 0
    delayed: int = 0


class TaskStats(StatsModel):
    total: int = 0
    pending: int = 0
    in_progress: int = 0
    completed: int = 0
    overdue: int = 0


class TeamStats(StatsModel):
    total_members: int = 0
    active_projects: int = 0
    department_distribution: dict[str, int] = Field(default_factory=dict)
    role_distribution: dict[str, int] = Field(default_factory=dict)


class TaskEventDetails(BaseModel):
    kind: Literal["task"] = "task"
    status: str = ""
    assignee: str | None = None
    description: str = ""


class ProjectEventDetails(BaseModel):
    kind: Literal["project"] = "project"
    status: str = ""
    description: str = ""


class CalendarEvent(StatsModel):
    id: str
    title: str
    start: datetime.datetime
    end: datetime.datetime | None = None
    all_day: bool = True
    details: Annotated[
        TaskEventDetails | ProjectEventDetails, Field(discriminator="kind")
    ]

    @property
    def kind(self) -> str:
        return self.details.kind
