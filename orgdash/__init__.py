"""Core package for OrgDash.

This module exposes the directory models, the service facades and the
exception taxonomy so that consumers of the package can simply import them
from ``orgdash``.
"""

from .core.models import (
    ActivityLogEntry,
    CalendarEvent,
    Project,
    ProjectStats,
    Task,
    TaskStats,
    Team,
    TeamStats,
    User,
)
from .dashboard import Dashboard
from .errors import CycleError, NotFoundError, OrgDashError, UpstreamError, ValidationError
from .service import OrgService
from .session import Session

__all__ = [
    "ActivityLogEntry",
    "CalendarEvent",
    "CycleError",
    "Dashboard",
    "NotFoundError",
    "OrgDashError",
    "OrgService",
    "Project",
    "ProjectStats",
    "Session",
    "Task",
    "TaskStats",
    "Team",
    "TeamStats",
    "UpstreamError",
    "User",
    "ValidationError",
]
